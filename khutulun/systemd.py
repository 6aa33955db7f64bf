"""Managing systemd user units."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import TextIO

SERVICE_PREFIX = "khutulun"

_SYSTEMCTL = "/usr/bin/systemctl"
_LOGINCTL = "/usr/bin/loginctl"

log = logging.getLogger("khutulun.systemd")


class SystemdError(RuntimeError):
    """Raised when a systemd command fails."""


def user_systemd_path(name: str) -> str:
    """The path of a unit file in the current user's systemd directory."""
    return os.path.join(os.path.expanduser("~"), ".config", "systemd", "user", name)


def create_user_systemd_file(name: str) -> TextIO:
    """Create (or truncate) a user unit file and return it open for writing."""
    path = user_systemd_path(name)
    if os.path.exists(path):
        log.info("systemd unit already exists: %r", path)
    else:
        log.info("systemd unit: %r", path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return open(path, "w", encoding="utf-8")


def _run(args: list[str], what: str) -> None:
    try:
        subprocess.run(
            args,
            check=True,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.CalledProcessError) as error:
        raise SystemdError(f"{what}: {error}") from error


def enable_user_systemd(name: str) -> None:
    """Reload user units, enable and restart the named unit, and enable lingering."""
    _run([_SYSTEMCTL, "--user", "daemon-reload"], "systemctl daemon-reload")

    log.info("systemctl enable %r", name)
    _run([_SYSTEMCTL, "--user", "enable", name], "systemctl enable")

    log.info("systemctl restart %r", name)
    _run([_SYSTEMCTL, "--user", "--no-block", "restart", name], "systemctl start")

    log.info("loginctl enable-linger")
    _run([_LOGINCTL, "enable-linger"], "loginctl enable-linger")