"""Commands started on behalf of an interaction."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

log = logging.getLogger("khutulun.interaction")

PODMAN = "/usr/bin/podman"
DEFAULT_SHELL = "/bin/bash"


class MalformedIdentifier(ValueError):
    """Raised when an interaction identifier does not have the expected shape."""


@dataclass
class TerminalSize:
    """The size of a pseudo-terminal."""

    width: int = 0
    height: int = 0


@dataclass
class Command:
    """A command line with its environment and optional pseudo-terminal."""

    name: str
    args: list[str] = field(default_factory=list)
    environment: dict[str, str] | None = None
    pseudo_terminal: TerminalSize | None = None

    def add_path(self, variable: str, path: str) -> None:
        """Append a path to a path-list environment variable unless already present."""
        if self.environment is None:
            self.environment = {}
        current = self.environment.get(variable)
        if current is None:
            current = os.environ.get(variable, "")
        entries = [entry for entry in current.split(os.pathsep) if entry]
        if path not in entries:
            entries.append(path)
        self.environment[variable] = os.pathsep.join(entries)


def new_command(
    command: Sequence[str] | None,
    environment: Mapping[str, str] | None,
    pseudo_terminal: bool,
    width: int | None = None,
    height: int | None = None,
) -> Command:
    """Build a command from an interaction start, defaulting to a bash shell."""
    size = None
    if pseudo_terminal:
        size = TerminalSize()
        if width is not None or height is not None:
            log.debug("pseudo-terminal size: %d, %d", width or 0, height or 0)
            size = TerminalSize(width or 0, height or 0)

    cmd = list(command or ())
    if not cmd:
        cmd = [DEFAULT_SHELL]
        if size is not None:
            # bash needs interactive mode forced
            cmd.append("-i")

    return Command(
        name=cmd[0],
        args=cmd[1:],
        environment=dict(environment) if environment is not None else None,
        pseudo_terminal=size,
    )


def podman_exec_command(command: Command, identifier: Sequence[str]) -> Command:
    """Wrap a command so that it runs inside the activity's container via podman exec."""
    if len(identifier) != 4:
        raise MalformedIdentifier(
            f"malformed identifier for activity: [{' '.join(identifier)}]"
        )
    resource_name = identifier[3]

    args = ["exec"]
    if command.pseudo_terminal is not None:
        args += ["--interactive", "--tty"]

    environment = None
    if command.environment is not None:
        args += [f"--env={key}={value}" for key, value in command.environment.items()]
        environment = {}

    wrapped = Command(
        name=PODMAN,
        args=args,
        environment=environment,
        pseudo_terminal=command.pseudo_terminal,
    )
    # podman needs to find "nsenter"
    wrapped.add_path("PATH", "/usr/bin")
    wrapped.args += [resource_name, command.name, *command.args]
    return wrapped