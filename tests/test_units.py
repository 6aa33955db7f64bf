import os
import subprocess
from unittest import mock

import pytest

from khutulun.systemd import SystemdError
from khutulun.units import (
    MappedPort,
    PodmanError,
    create_container_user_service,
    create_process_user_service,
    podman_create_args,
    podman_generate_args,
    render_process_unit,
)


def _unit_path(home, name):
    return os.path.join(str(home), ".config", "systemd", "user", f"khutulun-{name}.service")


def test_render_process_unit_without_arguments():
    text = render_process_unit("/bin/app", None)
    assert 'ExecStart="/bin/app"\n' in text
    assert "Type=simple" in text
    assert "Restart=always" in text
    assert text.endswith("WantedBy=default.target\n")


def test_render_process_unit_with_arguments():
    text = render_process_unit("/bin/app", ["--flag", "two words"])
    assert 'ExecStart="/bin/app" "--flag" "two words"\n' in text


def test_render_process_unit_escapes_quotes():
    text = render_process_unit("/bin/app", ['say "hi"'])
    assert 'ExecStart="/bin/app" "say \\"hi\\""' in text


def test_podman_create_args_publishes_complete_ports():
    ports = [
        MappedPort("0.0.0.0", 8080, 80, "UDP"),
        MappedPort("127.0.0.1", 9000, 90, "SCTP"),
        MappedPort("127.0.0.1", 7000, 70, "TCP"),
        MappedPort("", 1, 2, "TCP"),
        MappedPort("127.0.0.1", 0, 2, "TCP"),
    ]
    args = podman_create_args("web", "docker.io/nginx:latest", ["--tty"], ports)
    assert args == [
        "create",
        "--name=web",
        "--replace",
        "--tty",
        "--publish=0.0.0.0:8080:80/udp",
        "--publish=127.0.0.1:9000:90/sctp",
        "--publish=127.0.0.1:7000:70/tcp",
        "docker.io/nginx:latest",
    ]


def test_podman_create_args_reference_is_last():
    args = podman_create_args("db", "registry/db:1", None, None)
    assert args[-1] == "registry/db:1"
    assert args[:3] == ["create", "--name=db", "--replace"]


def test_podman_generate_args():
    assert podman_generate_args("web") == [
        "generate",
        "systemd",
        "--new",
        "--name",
        "--container-prefix=khutulun",
        "--restart-policy=always",
        "web",
    ]


def test_create_process_user_service(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    with mock.patch("subprocess.run") as run:
        create_process_user_service("worker", "/bin/app", ["a"])
    path = _unit_path(tmp_path, "worker")
    with open(path, encoding="utf-8") as file:
        assert file.read() == render_process_unit("/bin/app", ["a"])
    commands = [call.args[0] for call in run.call_args_list]
    assert ["/usr/bin/systemctl", "--user", "enable", "khutulun-worker.service"] in commands
    assert commands[-1] == ["/usr/bin/loginctl", "enable-linger"]


def test_create_process_user_service_systemd_failure(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    error = subprocess.CalledProcessError(1, "systemctl")
    with mock.patch("subprocess.run", side_effect=error):
        with pytest.raises(SystemdError, match="daemon-reload"):
            create_process_user_service("worker", "/bin/app", None)


def test_create_container_user_service(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))

    def fake_run(args, **kwargs):
        if args[1] == "generate":
            kwargs["stdout"].write("[Unit]\nDescription=generated\n")
        return subprocess.CompletedProcess(args, 0)

    with mock.patch("subprocess.run", side_effect=fake_run) as run:
        create_container_user_service("web", "nginx", [], [])
    with open(_unit_path(tmp_path, "web"), encoding="utf-8") as file:
        assert file.read() == "[Unit]\nDescription=generated\n"
    commands = [call.args[0] for call in run.call_args_list]
    assert commands[0] == ["/usr/bin/podman", *podman_create_args("web", "nginx", [], [])]
    assert commands[1] == ["/usr/bin/podman", *podman_generate_args("web")]


def test_create_container_user_service_create_failure(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    error = subprocess.CalledProcessError(125, "podman")
    with mock.patch("subprocess.run", side_effect=error) as run:
        with pytest.raises(PodmanError, match="^podman create"):
            create_container_user_service("web", "nginx", [], [])
    assert run.call_count == 1