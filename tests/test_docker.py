import socket
import subprocess
from unittest import mock

import pytest

from dockerh.docker import (
    Address,
    DockerError,
    NetworkHashNotFoundError,
    PodHashNotFoundError,
    PodNotListeningError,
    PodStatus,
    create_bridge_network,
    exists,
    get_ips,
    remove,
    remove_bridge_network,
    run,
    wait_until_listening,
    wait_until_listening_and_get_pod_ip,
)

HASH = "a" * 32 + "0123456789abcdef" * 2


def _completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout=stdout, stderr=stderr
    )


def _shell_command(run_mock):
    args = run_mock.call_args.args[0]
    assert args[:2] == ["/bin/sh", "-c"]
    return args[2]


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def listener():
    server = socket.socket()
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server.bind(("127.0.0.1", 0))
    server.listen(16)
    yield server
    server.close()


def test_address_format():
    assert Address("localhost", 18123).address() == "localhost:18123"


@mock.patch("dockerh.docker.subprocess.run")
def test_run_builds_command(run_mock):
    run_mock.return_value = _completed(HASH + "\n")
    result = run("test-run-hello-world", "hello-world", "", "", "")
    assert result is None
    assert run_mock.call_count == 1
    assert (
        _shell_command(run_mock)
        == "docker run --name test-run-hello-world   -d hello-world "
    )


@mock.patch("dockerh.docker.subprocess.run")
def test_run_with_network(run_mock):
    run_mock.return_value = _completed(HASH + "\n")
    result = run("pod", "redis:latest", "net", "-p 1:2", "--flag")
    assert result is None
    assert run_mock.call_count == 1
    assert (
        _shell_command(run_mock)
        == "docker run --name pod --network net -p 1:2 -d redis:latest --flag"
    )


@mock.patch("dockerh.docker.subprocess.run")
def test_run_without_hash_raises(run_mock):
    run_mock.return_value = _completed("not a hash\n" + HASH)
    with pytest.raises(PodHashNotFoundError):
        run("pod", "image", "", "", "")


@mock.patch("dockerh.docker.subprocess.run")
def test_run_command_failure_raises(run_mock):
    run_mock.return_value = _completed("", returncode=125, stderr="conflict")
    with pytest.raises(DockerError, match="125"):
        run("pod", "image", "", "", "")


@mock.patch("dockerh.docker.subprocess.run")
def test_remove_command(run_mock):
    run_mock.return_value = _completed("pod\n")
    result = remove("test-rm-hello-world")
    assert result is None
    assert run_mock.call_count == 1
    assert _shell_command(run_mock) == "docker rm -f test-rm-hello-world"


@mock.patch("dockerh.docker.subprocess.run")
def test_remove_failure_raises(run_mock):
    run_mock.return_value = _completed("", returncode=1)
    with pytest.raises(DockerError):
        remove("pod")


@mock.patch("dockerh.docker.subprocess.run")
def test_get_ips_with_format(run_mock):
    run_mock.return_value = _completed("'172.17.0.2'\r\n")
    ips = get_ips(".NetworkSettings.Networks.bridge.IPAddress", "", "test-grafana")
    assert len(ips) == 3
    assert Address("172.17.0.2", 0, False) in ips
    assert ips[1:] == [Address("127.0.0.1", 0, True), Address("0.0.0.0", 0, True)]
    assert _shell_command(run_mock) == (
        "docker inspect --format='{{ .NetworkSettings.Networks.bridge.IPAddress }}'"
        " test-grafana"
    )


@mock.patch("dockerh.docker.subprocess.run")
def test_get_ips_default_format(run_mock):
    run_mock.return_value = _completed("10.0.0.5\n10.0.0.6\n")
    ips = get_ips("", "", "a", "b")
    assert [ip.host for ip in ips] == ["10.0.0.5", "10.0.0.6", "127.0.0.1", "0.0.0.0"]
    assert _shell_command(run_mock) == (
        "docker inspect --format='{{ (index .NetworkSettings.Networks \"bridge\")"
        ".IPAddress }}' a b"
    )


@mock.patch("dockerh.docker.subprocess.run")
def test_get_ips_custom_network(run_mock):
    run_mock.return_value = _completed("10.1.0.2\n")
    ips = get_ips("", "mynet", "pod")
    assert [ip.host for ip in ips] == ["10.1.0.2", "127.0.0.1", "0.0.0.0"]
    assert '"mynet"' in _shell_command(run_mock)


@mock.patch("dockerh.docker.subprocess.run")
def test_get_ips_skips_missing_values(run_mock):
    run_mock.return_value = _completed("<no value>\n")
    ips = get_ips("", "", "pod")
    assert ips == [Address("127.0.0.1", 0, True), Address("0.0.0.0", 0, True)]


@mock.patch("dockerh.docker.subprocess.run")
def test_exists_running(run_mock):
    run_mock.return_value = _completed('"test-exists"\n')
    assert exists("test-exists", PodStatus.RUNNING) is True
    assert _shell_command(run_mock) == (
        'docker ps -a -f name=test-exists -f status=running --format "{{.Names}}"'
    )


@mock.patch("dockerh.docker.subprocess.run")
def test_exists_accepts_status_string(run_mock):
    run_mock.return_value = _completed("pod\n")
    assert exists("pod", "exited") is True
    assert "-f status=exited" in _shell_command(run_mock)


@mock.patch("dockerh.docker.subprocess.run")
def test_exists_other_name_is_false(run_mock):
    run_mock.return_value = _completed("pod-2\n")
    assert exists("pod", PodStatus.RUNNING) is False


@mock.patch("dockerh.docker.subprocess.run")
def test_exists_not_found_with_no_output(run_mock):
    run_mock.return_value = _completed("")
    assert exists("pod", PodStatus.NOT_FOUND) is True
    assert _shell_command(run_mock) == 'docker ps -a -f name=pod --format "{{.Names}}"'


@mock.patch("dockerh.docker.subprocess.run")
def test_exists_running_with_no_output_is_false(run_mock):
    run_mock.return_value = _completed("")
    assert exists("pod", PodStatus.RUNNING) is False


def test_exists_rejects_unknown_status():
    with pytest.raises(ValueError):
        exists("pod", "sleeping")


def test_wait_until_listening(listener):
    port = listener.getsockname()[1]
    address = Address("localhost", port, False)
    connected = wait_until_listening(3, 1, address)
    assert len(connected) == 1
    assert connected[0].connected is True
    assert connected[0].fallback is False
    assert connected[0].host == "localhost"
    assert connected[0].port == port


def test_wait_until_listening_times_out():
    address = Address("127.0.0.1", _free_port(), False)
    assert wait_until_listening(1.5, 0, address) == []
    assert address.connected is False


@mock.patch("dockerh.docker.subprocess.run")
def test_wait_until_listening_and_get_pod_ip(run_mock, listener):
    run_mock.return_value = _completed("127.0.0.1\n")
    port = listener.getsockname()[1]
    ip = wait_until_listening_and_get_pod_ip("pod", "", "", port, 5, 0.2)
    assert ip == "127.0.0.1"


@mock.patch("dockerh.docker.subprocess.run")
def test_wait_until_listening_and_get_pod_ip_not_listening(run_mock):
    run_mock.return_value = _completed("<no value>\n")
    port = _free_port()
    with pytest.raises(PodNotListeningError, match=f"pod:{port}"):
        wait_until_listening_and_get_pod_ip("pod", "", "", port, 1.5, 0)


@mock.patch("dockerh.docker.subprocess.run")
def test_create_bridge_network(run_mock):
    run_mock.return_value = _completed(HASH + "\n")
    result = create_bridge_network("dockerh-network-test")
    assert result is None
    assert run_mock.call_count == 1
    assert _shell_command(run_mock) == "docker network create dockerh-network-test"


@mock.patch("dockerh.docker.subprocess.run")
def test_create_bridge_network_without_hash(run_mock):
    run_mock.return_value = _completed("something else\n")
    with pytest.raises(NetworkHashNotFoundError):
        create_bridge_network("net")


@mock.patch("dockerh.docker.subprocess.run")
def test_remove_bridge_network(run_mock):
    run_mock.return_value = _completed("net\n")
    result = remove_bridge_network("dockerh-network-test")
    assert result is None
    assert run_mock.call_count == 1
    assert _shell_command(run_mock) == "docker network rm dockerh-network-test"


@mock.patch("dockerh.docker.subprocess.run")
def test_remove_bridge_network_failure(run_mock):
    run_mock.return_value = _completed("", returncode=1, stderr="no such network")
    with pytest.raises(DockerError, match="no such network"):
        remove_bridge_network("net")