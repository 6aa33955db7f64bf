"""Systemd user services for processes and podman containers."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .systemd import SERVICE_PREFIX, create_user_systemd_file, enable_user_systemd

PODMAN = "/usr/bin/podman"

log = logging.getLogger("khutulun.units")

_PROCESS_UNIT = """
[Unit]
Wants=network-online.target
After=network-online.target

[Service]
Type=simple
Restart=always
ExecStart={command}

[Install]
WantedBy=default.target
"""

_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}

_PROTOCOLS = {"UDP": "udp", "SCTP": "sctp"}


class PodmanError(RuntimeError):
    """Raised when a podman command fails."""


@dataclass(frozen=True)
class MappedPort:
    """A container port published on a host address."""

    address: str = ""
    external: int = 0
    internal: int = 0
    protocol: str = ""


def _quote(text: str) -> str:
    """Quote a string with double quotes and backslash escapes."""
    parts = ['"']
    for char in text:
        if char in _ESCAPES:
            parts.append(_ESCAPES[char])
        elif char.isprintable():
            parts.append(char)
        else:
            code = ord(char)
            if code < 0x80:
                parts.append(f"\\x{code:02x}")
            elif code < 0x10000:
                parts.append(f"\\u{code:04x}")
            else:
                parts.append(f"\\U{code:08x}")
    parts.append('"')
    return "".join(parts)


def _join_quote(items: Iterable[str]) -> str:
    return " ".join(_quote(item) for item in items)


def _service_name(name: str) -> str:
    return f"{SERVICE_PREFIX}-{name}.service"


def render_process_unit(command: str, arguments: Sequence[str] | None) -> str:
    """The text of a systemd unit that keeps the command running."""
    exec_start = _quote(command)
    if arguments:
        exec_start = f"{exec_start} {_join_quote(arguments)}"
    return _PROCESS_UNIT.format(command=exec_start)


def podman_create_args(
    name: str,
    reference: str,
    create_arguments: Sequence[str] | None,
    ports: Iterable[MappedPort] | None,
) -> list[str]:
    """Arguments for "podman create" for a container."""
    args = ["create", f"--name={name}", "--replace", *(create_arguments or ())]
    for port in ports or ():
        if port.address and port.external and port.internal:
            protocol = _PROTOCOLS.get(port.protocol, "tcp")
            args.append(
                f"--publish={port.address}:{port.external}:{port.internal}/{protocol}"
            )
    args.append(reference)
    return args


def podman_generate_args(name: str) -> list[str]:
    """Arguments for "podman generate systemd" for a container."""
    return [
        "generate",
        "systemd",
        "--new",
        "--name",
        f"--container-prefix={SERVICE_PREFIX}",
        "--restart-policy=always",
        name,
    ]


def create_process_user_service(
    name: str, command: str, arguments: Sequence[str] | None
) -> None:
    """Write, enable and start a user unit that runs a process."""
    service_name = _service_name(name)
    with create_user_systemd_file(service_name) as file:
        file.write(render_process_unit(command, arguments))
    enable_user_systemd(service_name)


def _podman(args: list[str], what: str, stdout=subprocess.DEVNULL) -> None:
    log.info("podman %s", _join_quote(args))
    try:
        subprocess.run(
            [PODMAN, *args],
            check=True,
            stdin=subprocess.DEVNULL,
            stdout=stdout,
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.CalledProcessError) as error:
        raise PodmanError(f"{what}: {error}") from error


def create_container_user_service(
    name: str,
    reference: str,
    create_arguments: Sequence[str] | None,
    ports: Iterable[MappedPort] | None,
) -> None:
    """Create a podman container and install, enable and start a user unit for it."""
    service_name = _service_name(name)
    with create_user_systemd_file(service_name) as file:
        _podman(
            podman_create_args(name, reference, create_arguments, ports), "podman create"
        )
        file.flush()
        _podman(podman_generate_args(name), "podman generate systemd", stdout=file)
    enable_user_systemd(service_name)