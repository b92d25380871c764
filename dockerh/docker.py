"""Run, inspect and remove docker containers and networks from the command line."""

from __future__ import annotations

import logging
import re
import socket
import subprocess
import threading
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_NETWORK_INSPECT_FORMAT = '(index .NetworkSettings.Networks "%s").IPAddress'
DEFAULT_NETWORK = "bridge"
DEFAULT_NO_CONN_TIMEOUT = 60.0
DEFAULT_AFTER_CONN_TIMEOUT = 3.0

FALLBACK_HOSTS = ("127.0.0.1", "0.0.0.0")

_HASH_PATTERN = re.compile(r"[a-f0-9]{64}")
_DIRT_CHARS = re.compile(r"[\"'\r]+")
_DIRT_CHARS_AND_LINE_BREAKS = re.compile(r"[\"'\r\n]+")

_RETRY_INTERVAL = 1.0
_DIAL_TIMEOUT = 1.0


class DockerError(Exception):
    """Raised when a docker command fails or returns unexpected output."""


class PodHashNotFoundError(DockerError):
    """The output of a run command did not hold a container hash."""


class NetworkHashNotFoundError(DockerError):
    """The output of a network create command did not hold a network hash."""


class PodIPNotFoundError(DockerError):
    """Inspecting the container gave no IP address."""


class PodNotListeningError(DockerError):
    """The container never accepted connections on the expected port."""


class PodStatus(str, Enum):
    """Container states usable as a filter."""

    RESTARTING = "restarting"
    RUNNING = "running"
    REMOVING = "removing"
    PAUSED = "paused"
    EXITED = "exited"
    DEAD = "dead"
    NOT_FOUND = "not found"


@dataclass
class Address:
    """A host and port of a container, with the outcome of connecting to it."""

    host: str
    port: int
    fallback: bool = False
    connected: bool = False

    def address(self) -> str:
        """Return the address in host:port form."""
        return f"{self.host}:{self.port}"


def _docker(command: str) -> str:
    """Run ``docker <command>`` through the shell and return its standard output."""
    result = subprocess.run(
        ["/bin/sh", "-c", f"docker {command}"],
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        detail = (result.stderr or "").strip()
        raise DockerError(
            f"docker {command} exited with status {result.returncode}"
            + (f": {detail}" if detail else "")
        )
    return result.stdout or ""


def run(name, image, network, docker_params, exec_params) -> None:
    """Start a detached container, raising if docker reports no container hash."""
    network_param = f"--network {network}" if network else ""
    output = _docker(
        f"run --name {name} {network_param} {docker_params} -d {image} {exec_params}"
    )
    if not _HASH_PATTERN.search(output.split("\n")[0]):
        raise PodHashNotFoundError("pod hash pattern was not found")


def remove(pod) -> None:
    """Forcibly remove a container."""
    _docker(f"rm -f {pod}")


def get_ips(network_inspect_format, network, *args) -> list[Address]:
    """Return the IP addresses of the given containers followed by the fallback hosts."""
    network = network or DEFAULT_NETWORK
    if not network_inspect_format:
        network_inspect_format = DEFAULT_NETWORK_INSPECT_FORMAT % network

    output = _docker(
        f"inspect --format='{{{{ {network_inspect_format} }}}}' {' '.join(args)}"
    )
    lines = _DIRT_CHARS.sub("", output).split("\n")[:-1]

    addresses = [Address(ip, 0, False) for ip in lines if "<no value>" not in ip]
    addresses.extend(Address(host, 0, True) for host in FALLBACK_HOSTS)
    return addresses


def exists(pod, status) -> bool:
    """Tell whether a container with the given name is in the given state.

    With ``PodStatus.NOT_FOUND`` the answer is True when no container of that
    name exists at all.
    """
    status = PodStatus(status)
    command = f"ps -a -f name={pod}"
    if status is not PodStatus.NOT_FOUND:
        command += f" -f status={status.value}"
    command += ' --format "{{.Names}}"'

    output = _docker(command)
    if not output and status is PodStatus.NOT_FOUND:
        return True
    return _DIRT_CHARS_AND_LINE_BREAKS.sub("", output) == pod


def wait_until_listening(no_conn_timeout, after_conn_timeout, *args) -> list[Address]:
    """Probe the addresses until one accepts a TCP connection or time runs out.

    Timeouts are in seconds; a ``no_conn_timeout`` of zero means one minute.
    Once an address connects, the others get ``after_conn_timeout`` seconds to
    connect too. The given addresses are marked as connected in place and the
    connected ones are returned in their original order.
    """
    if not no_conn_timeout:
        no_conn_timeout = DEFAULT_NO_CONN_TIMEOUT

    addresses: tuple[Address, ...] = args
    expected = len(addresses)
    done = threading.Event()
    lock = threading.Lock()
    connected_count = 0

    def probe(address: Address) -> None:
        nonlocal connected_count
        target = address.address()
        while not done.is_set():
            if done.wait(_RETRY_INTERVAL):
                return
            logger.info("trying: %s", target)
            try:
                conn = socket.create_connection(
                    (address.host, address.port), timeout=_DIAL_TIMEOUT
                )
            except OSError:
                continue
            with conn:
                with lock:
                    address.connected = True
                    connected_count += 1
                    now_connected = connected_count
                if now_connected != expected:
                    done.wait(after_conn_timeout)
                done.set()
            return

    threads = [
        threading.Thread(target=probe, args=(address,), daemon=True)
        for address in addresses
    ]
    for thread in threads:
        thread.start()

    done.wait(no_conn_timeout)
    done.set()

    with lock:
        return [address for address in addresses if address.connected]


def wait_until_listening_and_get_pod_ip(
    pod_name,
    network_inspect_format,
    network,
    port,
    no_conn_timeout,
    after_conn_timeout,
) -> str:
    """Wait for the container to listen on ``port`` and return the host that answered."""
    ips = get_ips(network_inspect_format, network, pod_name)
    if not ips:
        raise PodIPNotFoundError(f"pod ip not found: {pod_name}")

    for address in ips:
        address.port = port

    connected = wait_until_listening(no_conn_timeout, after_conn_timeout, *ips)
    if not connected:
        raise PodNotListeningError(f"pod is not listening: {pod_name}:{port}")
    return connected[0].host


def create_bridge_network(name) -> None:
    """Create a bridge network, raising if docker reports no network hash."""
    output = _docker(f"network create {name}")
    if not _HASH_PATTERN.search(output.split("\n")[0]):
        raise NetworkHashNotFoundError("network hash pattern was not found")


def remove_bridge_network(name) -> None:
    """Remove a network."""
    _docker(f"network rm {name}")