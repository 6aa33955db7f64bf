"""Watching the state directory tree for namespace and package changes."""

from __future__ import annotations

import logging
import os
import stat
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .state import State

log = logging.getLogger("khutulun.watcher")


class Change(IntEnum):
    """The kind of change reported to a watcher callback."""

    ADDED = 1
    REMOVED = 2
    CHANGED = 3

    def __str__(self) -> str:
        return self.name.capitalize()


OnChanged = Callable[[Change, list[str]], None]


def _is_hidden(path: str) -> bool:
    return os.path.basename(path).startswith(".")


@dataclass(frozen=True)
class Dir:
    """A directory path relative to the state root, as segments."""

    segments: tuple[str, ...]

    @classmethod
    def from_path(cls, path: str) -> Dir:
        return cls(tuple(path.split(os.sep)))

    def __str__(self) -> str:
        return os.path.join(*self.segments) if self.segments else ""

    def identifier(self) -> tuple[list[str] | None, bool]:
        """Return the identifier this directory refers to and whether it is inside a package."""
        length = len(self.segments)
        if length == 1:
            return ["namespace", self.segments[0]], False
        if length > 2:
            return [self.segments[1], self.segments[0], self.segments[2]], length > 3
        return None, False


class _Handler(FileSystemEventHandler):
    def __init__(self, watcher: Watcher):
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._watcher._handle(event)


class Watcher:
    """Reports additions, removals and changes in the state tree to a callback."""

    def __init__(self, state: State, on_changed: OnChanged):
        self._state = state
        self._on_changed = on_changed
        self._observer = Observer()
        self._handler = _Handler(self)
        self._dirs: list[Dir] = []
        self._watches: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._sync()

    @property
    def dirs(self) -> list[Dir]:
        with self._lock:
            return list(self._dirs)

    def start(self) -> None:
        log.info("starting watcher")
        self._observer.start()

    def stop(self) -> None:
        if self._observer.is_alive():
            self._observer.stop()
            self._observer.join()
            log.info("closed watcher")

    def _sync(self) -> None:
        root = self._state.root_dir
        if not os.path.isdir(root):
            raise FileNotFoundError(f"state directory not found: {root}")
        with self._lock:
            for path, dirnames, _ in os.walk(root):
                dirnames[:] = sorted(name for name in dirnames if not _is_hidden(name))
                self._watch(path)
                directory = self._to_dir(path)
                log.debug("adding dir: %s", directory)
                self._dirs.append(directory)

    def _watch(self, path: str) -> None:
        self._watches[path] = self._observer.schedule(self._handler, path, recursive=False)

    def _unwatch(self, path: str) -> None:
        watch = self._watches.pop(path, None)
        if watch is not None:
            try:
                self._observer.unschedule(watch)
            except (KeyError, OSError):
                pass

    def _add(self, directory: Dir) -> None:
        with self._lock:
            log.debug("adding dir: %s", directory)
            self._dirs.append(directory)
            self._watch(self._to_path(directory))

    def _remove(self, directory: Dir) -> None:
        with self._lock:
            kept = []
            for existing in self._dirs:
                if existing == directory:
                    log.debug("removing dir: %s", directory)
                    self._unwatch(self._to_path(directory))
                else:
                    kept.append(existing)
            self._dirs = kept

    def _to_dir(self, path: str) -> Dir:
        root = self._state.root_dir
        path = "" if path == root else path[len(root) + 1 :]
        return Dir.from_path(path)

    def _to_path(self, directory: Dir) -> str:
        return os.path.join(self._state.root_dir, *directory.segments)

    def _handle(self, event: FileSystemEvent) -> None:
        path = os.fsdecode(event.src_path)
        if _is_hidden(path):
            return

        log.debug("%s %s", event.event_type, path)
        kind = event.event_type

        if kind == EVENT_TYPE_CREATED:
            try:
                mode = os.stat(path).st_mode
            except OSError as error:
                log.warning("%s", error)
                return
            if stat.S_ISDIR(mode):
                directory = self._to_dir(path)
                try:
                    self._add(directory)
                except OSError as error:
                    log.warning("%s", error)
                identifier, package_file = directory.identifier()
                if identifier is not None:
                    self._on_changed(Change.CHANGED if package_file else Change.ADDED, identifier)

        elif kind in (EVENT_TYPE_DELETED, EVENT_TYPE_MOVED):
            # This may arrive twice: once from the dir itself and once from its parent
            directory = self._to_dir(path)
            self._remove(directory)
            identifier, package_file = directory.identifier()
            if identifier is not None:
                self._on_changed(Change.CHANGED if package_file else Change.REMOVED, identifier)

        elif kind == EVENT_TYPE_MODIFIED:
            identifier, package_file = self._to_dir(path).identifier()
            if identifier is not None and package_file:
                self._on_changed(Change.CHANGED, identifier)