"""On-disk cluster state: namespaces, packages, hosts and service Clouts."""

from __future__ import annotations

import logging
import os
import shutil
import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, BinaryIO

import portalocker
import yaml

LOCK_FILE = ".lock"

log = logging.getLogger("khutulun.state")


class LockHeldError(RuntimeError):
    """Raised when a package lock could not be acquired in time."""


def _is_hidden(name: str) -> bool:
    return os.path.basename(name).startswith(".")


@dataclass(frozen=True)
class PackageIdentifier:
    """Identifies a package by namespace, type and name."""

    namespace: str
    type: str
    name: str

    def __lt__(self, other: PackageIdentifier) -> bool:
        if self.namespace != other.namespace:
            return self.namespace < other.namespace
        if self.type != other.type:
            # Types are ordered in reverse
            return self.type > other.type
        return self.name < other.name


@dataclass(frozen=True)
class PackageFile:
    """A file within a package, relative to the package directory."""

    path: str
    executable: bool


@dataclass
class Host:
    """A cluster host record."""

    address: str = ""


class _PackageLock:
    """A shared lock on a package's lock file."""

    def __init__(self, file: BinaryIO):
        self._file: BinaryIO | None = file

    def unlock(self) -> None:
        if self._file is not None:
            try:
                portalocker.unlock(self._file)
            finally:
                self._file.close()
                self._file = None

    def __enter__(self) -> _PackageLock:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.unlock()


class _LockedFile:
    """A package file that releases its package lock when closed."""

    def __init__(self, file: BinaryIO, lock: _PackageLock):
        self.file = file
        self.lock = lock

    def read(self, size: int = -1) -> bytes:
        return self.file.read(size)

    def write(self, data: bytes) -> int:
        return self.file.write(data)

    def close(self) -> None:
        try:
            self.file.close()
        except OSError as error:
            log.error("close: %s", error)
        self.lock.unlock()

    def __enter__(self) -> _LockedFile:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


@dataclass
class State:
    """Access to the state directory tree rooted at root_dir."""

    root_dir: str
    lock_wait: float = 1.0
    lock_attempts: int = 5

    # Namespaces

    def namespace_dir(self, namespace: str) -> str:
        return os.path.join(self.root_dir, namespace or "_")

    def list_namespaces(self) -> list[str]:
        try:
            entries = list(os.scandir(self.root_dir))
        except FileNotFoundError:
            return []
        return sorted(
            entry.name for entry in entries if entry.is_dir() and not _is_hidden(entry.name)
        )

    def list_namespaces_for(self, namespace: str) -> list[str]:
        return self.list_namespaces() if not namespace else [namespace]

    # Packages

    def package_type_dir(self, namespace: str, type_: str) -> str:
        return os.path.join(self.namespace_dir(namespace), type_)

    def package_dir(self, namespace: str, type_: str, name: str) -> str:
        return os.path.join(self.package_type_dir(namespace, type_), name)

    def package_main_file(self, namespace: str, type_: str, name: str) -> str | None:
        """The package's main file path, or None if it has none."""
        directory = self.package_dir(namespace, type_, name)
        if type_ == "service":
            return os.path.join(directory, "clout.yaml")
        if type_ == "profile":
            return os.path.join(directory, "profile.yaml")
        if type_ == "host":
            return os.path.join(directory, "host.yaml")
        if type_ in ("template", "delegate"):
            try:
                names = sorted(os.listdir(directory))
            except OSError:
                return None
            for entry in names:
                path = os.path.join(directory, entry)
                if type_ == "template":
                    if os.path.splitext(path)[1] == ".yaml":
                        return path
                else:
                    try:
                        mode = os.stat(path).st_mode
                    except OSError:
                        continue
                    if mode & 0o100 and not os.path.isdir(path):
                        return path
            return None
        return os.path.join(directory, name)

    def list_packages(self, namespace: str, type_: str) -> list[PackageIdentifier]:
        identifiers = []
        for namespace_ in self.list_namespaces_for(namespace):
            try:
                entries = list(os.scandir(self.package_type_dir(namespace_, type_)))
            except FileNotFoundError:
                continue
            identifiers.extend(
                PackageIdentifier(namespace_, type_, entry.name)
                for entry in entries
                if entry.is_dir() and not _is_hidden(entry.name)
            )
        return sorted(identifiers)

    def _try_lock(self, path: str) -> _PackageLock:
        file = open(path, "rb")
        attempts = 0
        while True:
            try:
                portalocker.lock(file, portalocker.LOCK_SH | portalocker.LOCK_NB)
                return _PackageLock(file)
            except portalocker.LockException:
                time.sleep(self.lock_wait)
                if self.lock_attempts > 0:
                    attempts += 1
                    if attempts == self.lock_attempts:
                        file.close()
                        raise LockHeldError(f"lock held: {path}") from None

    def lock_package(self, namespace: str, type_: str, name: str, create: bool) -> _PackageLock:
        """Acquire a shared lock on the package, optionally creating its lock file."""
        path = os.path.join(self.package_dir(namespace, type_, name), LOCK_FILE)
        try:
            return self._try_lock(path)
        except FileNotFoundError:
            if not create:
                raise
        os.makedirs(os.path.dirname(path), exist_ok=True)
        open(path, "ab").close()
        return self._try_lock(path)

    def list_package_files(self, namespace: str, type_: str, name: str) -> list[PackageFile]:
        with self.lock_package(namespace, type_, name, False):
            root = self.package_dir(namespace, type_, name)
            return [
                PackageFile(
                    path=os.path.relpath(path, root),
                    executable=bool(os.stat(path).st_mode & 0o100),
                )
                for path in _walk_files(root)
            ]

    def open_package_file(self, namespace: str, type_: str, name: str, path: str) -> BinaryIO:
        path = os.path.join(self.package_dir(namespace, type_, name), path)
        log.debug("reading from %r", path)
        return open(path, "rb")

    def create_package_file(self, namespace: str, type_: str, name: str, path: str) -> BinaryIO:
        path = os.path.join(self.package_dir(namespace, type_, name), path)
        log.debug("writing to %r", path)
        return open(path, "wb")

    def lock_and_open_package_file(
        self, namespace: str, type_: str, name: str, path: str
    ) -> _LockedFile:
        lock = self.lock_package(namespace, type_, name, False)
        try:
            file = self.open_package_file(namespace, type_, name, path)
        except BaseException:
            lock.unlock()
            raise
        return _LockedFile(file, lock)

    def lock_and_create_package_file(
        self, namespace: str, type_: str, name: str, path: str
    ) -> _LockedFile:
        lock = self.lock_package(namespace, type_, name, True)
        try:
            file = self.create_package_file(namespace, type_, name, path)
        except BaseException:
            lock.unlock()
            raise
        return _LockedFile(file, lock)

    def delete_package(self, namespace: str, type_: str, name: str) -> None:
        """Remove everything in the package except its lock file."""
        with self.lock_package(namespace, type_, name, False):
            path = self.package_dir(namespace, type_, name)
            log.info("deleting package %r", path)
            try:
                entries = os.listdir(path)
            except OSError:
                return
            for entry in entries:
                if entry == LOCK_FILE:
                    continue
                full = os.path.join(path, entry)
                if os.path.isdir(full) and not os.path.islink(full):
                    shutil.rmtree(full)
                else:
                    os.remove(full)

    # Hosts

    def get_host(self, name: str) -> Host:
        with self.lock_and_open_package_file("common", "host", name, "host.yaml") as reader:
            data = yaml.safe_load(reader.read())
        if data is None:
            raise ValueError(f"empty host file for: {name}")
        if not isinstance(data, dict):
            raise ValueError(f"malformed host file for: {name}")
        address = data.get("address")
        return Host(address="" if address is None else str(address))

    def set_host(self, name: str, host: Host) -> None:
        with self.lock_and_create_package_file("common", "host", name, "host.yaml") as writer:
            writer.write(yaml.safe_dump({"address": host.address}).encode("utf-8"))

    # Services

    def open_service_clout(self, namespace: str, service_name: str) -> tuple[_PackageLock, Any]:
        """Lock the service and load its Clout; the caller must unlock."""
        lock = self.lock_package(namespace, "service", service_name, False)
        try:
            path = self.package_main_file(namespace, "service", service_name)
            log.debug("reading clout: %r", path)
            with open(path, "rb") as file:
                clout = yaml.safe_load(file)
        except BaseException:
            lock.unlock()
            raise
        return lock, clout

    def save_service_clout(self, namespace: str, service_name: str, clout: Any) -> None:
        path = self.package_main_file(namespace, "service", service_name)
        log.info("writing to %r", path)
        with open(path, "w", encoding="utf-8") as file:
            yaml.safe_dump(clout, file, indent=2, sort_keys=False, default_flow_style=False)


def _walk_files(root: str) -> Iterator[str]:
    """Yield non-directory paths under root in lexical depth-first order."""
    for entry in sorted(os.scandir(root), key=lambda e: e.name):
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_files(entry.path)
        else:
            yield entry.path