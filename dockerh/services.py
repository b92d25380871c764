"""Start containers of common services and wait until they accept connections."""

from __future__ import annotations

import contextlib
from dataclasses import dataclass

from dockerh.docker import (
    DEFAULT_AFTER_CONN_TIMEOUT,
    DEFAULT_NO_CONN_TIMEOUT,
    DockerError,
    remove,
    run,
    wait_until_listening_and_get_pod_ip,
)

_KAFKA_IMAGE = "confluentinc/cp-kafka:latest"
_KAFKA_WURSTMEISTER_IMAGE = "wurstmeister/kafka:latest"
_MEMCACHED_IMAGE = "memcached:latest"
_MYSQL_IMAGE = "mysql"
_POSTGRES_IMAGE = "postgres"
_REDIS_IMAGE = "redis:latest"
_RED_PANDA_IMAGE = "docker.redpanda.com/vectorized/redpanda:latest"
_SCYLLA_IMAGE = "scylladb/scylla"
_SCYLLA_PORT = 9042
_ZOOKEEPER_IMAGE = "confluentinc/cp-zookeeper:latest"
_ZOOKEEPER_WURSTMEISTER_IMAGE = "wurstmeister/zookeeper:latest"

_SIMPLE_NO_CONN_TIMEOUT = 60.0
_SIMPLE_AFTER_CONN_TIMEOUT = 3.0


def _start(
    pod_name,
    image,
    network,
    docker_args,
    exec_args,
    network_inspect_format,
    port,
    no_conn_timeout,
    after_conn_timeout,
) -> str:
    """Run the container and return the IP it answers on once it listens on ``port``."""
    run(pod_name, image, network, docker_args, exec_args)
    return wait_until_listening_and_get_pod_ip(
        pod_name, network_inspect_format, network, port, no_conn_timeout, after_conn_timeout
    )


@dataclass(frozen=True)
class Topic:
    """A kafka topic to be created when the broker starts."""

    name: str
    partitions: int
    replicas: int

    def __str__(self) -> str:
        return f"{self.name}:{self.partitions}:{self.replicas}"


def create_kafka(pod_name, kafka_port, zookeeper_host, zookeeper_port) -> str:
    """Start a kafka container with the default settings."""
    return create_custom_kafka(
        pod_name, "", "", kafka_port, zookeeper_host, zookeeper_port,
        DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT,
    )


def create_kafka_in_network(pod_name, network, kafka_port, zookeeper_host, zookeeper_port) -> str:
    """Start a kafka container attached to ``network``."""
    return create_custom_kafka(
        pod_name, "", network, kafka_port, zookeeper_host, zookeeper_port,
        DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT,
    )


def create_custom_kafka(
    pod_name,
    network_inspect_format,
    network,
    kafka_port,
    zookeeper_host,
    zookeeper_port,
    no_conn_timeout,
    after_conn_timeout,
) -> str:
    """Start a kafka container with custom inspection and timeout settings."""
    extra_args = (
        f"-p {kafka_port}:9092 -e KAFKA_BROKER_ID=1 "
        f"-e KAFKA_ZOOKEEPER_CONNECT={zookeeper_host}:{zookeeper_port} "
        f"-e KAFKA_ADVERTISED_LISTENERS='PLAINTEXT://localhost:2{kafka_port},"
        f"PLAINTEXT_HOST://localhost:{kafka_port}' "
        "-e KAFKA_LISTENER_SECURITY_PROTOCOL_MAP='PLAINTEXT:PLAINTEXT,PLAINTEXT_HOST:PLAINTEXT' "
        "-e KAFKA_INTER_BROKER_LISTENER_NAME=PLAINTEXT "
        "-e KAFKA_OFFSETS_TOPIC_REPLICATION_FACTOR=1"
    )
    return _start(
        pod_name, _KAFKA_IMAGE, network, extra_args, "",
        network_inspect_format, kafka_port, no_conn_timeout, after_conn_timeout,
    )


def create_kafka_wurstmeister(pod_name, kafka_port, zookeeper_host, zookeeper_port, *args) -> str:
    """Start a wurstmeister kafka container creating the given topics."""
    return create_custom_kafka_wurstmeister(
        pod_name, "", "", kafka_port, zookeeper_host, zookeeper_port,
        DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT, *args,
    )


def create_kafka_wurstmeister_in_network(
    pod_name, network, kafka_port, zookeeper_host, zookeeper_port, *args
) -> str:
    """Start a wurstmeister kafka container attached to ``network``."""
    return create_custom_kafka_wurstmeister(
        pod_name, "", network, kafka_port, zookeeper_host, zookeeper_port,
        DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT, *args,
    )


def create_custom_kafka_wurstmeister(
    pod_name,
    network_inspect_format,
    network,
    kafka_port,
    zookeeper_host,
    zookeeper_port,
    no_conn_timeout,
    after_conn_timeout,
    *args,
) -> str:
    """Start a wurstmeister kafka container with custom settings; ``args`` are topics."""
    topics = ",".join(str(topic) for topic in args)
    extra_args = (
        f"-p {kafka_port}:9092 -e KAFKA_ADVERTISED_HOST_NAME=localhost "
        f"-e KAFKA_ADVERTISED_PORT={kafka_port} "
        f"-e KAFKA_ZOOKEEPER_CONNECT={zookeeper_host}:{zookeeper_port} "
        f"-e KAFKA_CREATE_TOPICS={topics}"
    )
    return _start(
        pod_name, _KAFKA_WURSTMEISTER_IMAGE, network, extra_args, "",
        network_inspect_format, kafka_port, no_conn_timeout, after_conn_timeout,
    )


def create_memcached(pod_name, pod_port, memory_megabytes) -> str:
    """Replace any container of that name with a fresh memcached one.

    A positive ``memory_megabytes`` sets the cache size; otherwise the
    image default is kept.
    """
    with contextlib.suppress(DockerError):
        remove(pod_name)

    exec_params = f"memcached -m {memory_megabytes}" if memory_megabytes > 0 else ""
    return _start(
        pod_name, _MEMCACHED_IMAGE, "", f"-d -p {pod_port}:11211", exec_params,
        "", pod_port, _SIMPLE_NO_CONN_TIMEOUT, _SIMPLE_AFTER_CONN_TIMEOUT,
    )


def create_mysql(pod_name, password, database, port) -> str:
    """Start a mysql container with the given root password and database."""
    return create_custom_mysql(
        pod_name, "", "", password, database, port,
        DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT,
    )


def create_mysql_in_network(pod_name, network, password, database, port) -> str:
    """Start a mysql container attached to ``network``."""
    return create_custom_mysql(
        pod_name, "", network, password, database, port,
        DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT,
    )


def create_custom_mysql(
    pod_name,
    network_inspect_format,
    network,
    password,
    database,
    port,
    no_conn_timeout,
    after_conn_timeout,
) -> str:
    """Start a mysql container with custom inspection and timeout settings."""
    extra_args = f"-p {port}:3306 -e MYSQL_ROOT_PASSWORD={password} -e MYSQL_DATABASE={database}"
    return _start(
        pod_name, _MYSQL_IMAGE, network, extra_args, "",
        network_inspect_format, port, no_conn_timeout, after_conn_timeout,
    )


def create_postgres(pod_name, user, password, database, port) -> str:
    """Start a postgres container with the given credentials and database."""
    return create_custom_postgres(
        pod_name, "", "", user, password, database, port,
        DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT,
    )


def create_postgres_in_network(pod_name, network, user, password, database, port) -> str:
    """Start a postgres container attached to ``network``."""
    return create_custom_postgres(
        pod_name, "", network, user, password, database, port,
        DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT,
    )


def create_custom_postgres(
    pod_name,
    network_inspect_format,
    network,
    user,
    password,
    database,
    port,
    no_conn_timeout,
    after_conn_timeout,
) -> str:
    """Start a postgres container with custom inspection and timeout settings."""
    extra_args = (
        f"-p {port}:5432 -e POSTGRES_USER={user} "
        f"-e POSTGRES_PASSWORD={password} -e POSTGRES_DB={database}"
    )
    return _start(
        pod_name, _POSTGRES_IMAGE, network, extra_args, "",
        network_inspect_format, port, no_conn_timeout, after_conn_timeout,
    )


def create_redis(pod_name, pod_port, password) -> str:
    """Replace any container of that name with a fresh redis one.

    A non-empty ``password`` makes the server require it.
    """
    with contextlib.suppress(DockerError):
        remove(pod_name)

    exec_params = f"--requirepass {password}" if password else ""
    return _start(
        pod_name, _REDIS_IMAGE, "", f"-d -p {pod_port}:6379", exec_params,
        "", pod_port, _SIMPLE_NO_CONN_TIMEOUT, _SIMPLE_AFTER_CONN_TIMEOUT,
    )


def create_red_panda(pod_name, red_panda_port) -> str:
    """Start a redpanda container with the default settings."""
    return create_custom_red_panda(
        pod_name, "", "", red_panda_port,
        DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT,
    )


def create_red_panda_in_network(pod_name, network, red_panda_port) -> str:
    """Start a redpanda container attached to ``network``."""
    return create_custom_red_panda(
        pod_name, "", network, red_panda_port,
        DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT,
    )


def create_custom_red_panda(
    pod_name,
    network_inspect_format,
    network,
    red_panda_port,
    no_conn_timeout,
    after_conn_timeout,
) -> str:
    """Start a redpanda container with custom inspection and timeout settings."""
    host_name = pod_name.lower().replace("-", "_")

    docker_args = (
        "-p 8081:8081 -p 8082:8082 -p 9092:9092 -p 9644:9644 "
        f"-v '{host_name}:/var/lib/redpanda/data'"
    )
    exec_args = (
        "redpanda start --smp 1  --memory 1G  --reserve-memory 0M --overprovisioned "
        f"--set redpanda.empty_seed_starts_cluster=fals--seeds '{host_name}:33145' "
        "--check=false "
        "--pandaproxy-addr INSIDE://0.0.0.0:28082,OUTSIDE://0.0.0.0:8082 "
        f"--advertise-pandaproxy-addr INSIDE://{host_name}:28082,OUTSIDE://localhost:8082 "
        "--kafka-addr INSIDE://0.0.0.0:29092,OUTSIDE://0.0.0.0:9092 "
        f"--advertise-kafka-addr INSIDE://{host_name}:29092,OUTSIDE://localhost:9092 "
        f"--rpc-addr 0.0.0.0:33145 --advertise-rpc-addr {host_name}:33145"
    )
    return _start(
        pod_name, _RED_PANDA_IMAGE, network, docker_args, exec_args,
        network_inspect_format, red_panda_port, no_conn_timeout, after_conn_timeout,
    )


def create_scylla(pod_name, extra_commands) -> str:
    """Start a scylla container passing ``extra_commands`` to docker."""
    return create_custom_scylla(
        pod_name, "", "", extra_commands,
        DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT,
    )


def create_scylla_in_network(pod_name, network, extra_commands) -> str:
    """Start a scylla container attached to ``network``."""
    return create_custom_scylla(
        pod_name, "", network, extra_commands,
        DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT,
    )


def create_custom_scylla(
    pod_name,
    network_inspect_format,
    network,
    extra_commands,
    no_conn_timeout,
    after_conn_timeout,
) -> str:
    """Start a scylla container and wait for its CQL port."""
    return _start(
        pod_name, _SCYLLA_IMAGE, network, extra_commands, "",
        network_inspect_format, _SCYLLA_PORT, no_conn_timeout, after_conn_timeout,
    )


def create_zookeeper(pod_name, port) -> str:
    """Start a zookeeper container with the default settings."""
    return create_custom_zookeeper(
        pod_name, "", "", port, DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT
    )


def create_zookeeper_in_network(pod_name, network, port) -> str:
    """Start a zookeeper container attached to ``network``."""
    return create_custom_zookeeper(
        pod_name, "", network, port, DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT
    )


def create_custom_zookeeper(
    pod_name,
    network_inspect_format,
    network,
    port,
    no_conn_timeout,
    after_conn_timeout,
) -> str:
    """Start a zookeeper container with custom inspection and timeout settings."""
    args = f"-e ZOOKEEPER_CLIENT_PORT={port} -e ZOOKEEPER_TICK_TIME=2000"
    return _start(
        pod_name, _ZOOKEEPER_IMAGE, network, args, "",
        network_inspect_format, port, no_conn_timeout, after_conn_timeout,
    )


def create_zookeeper_wurstmeister(pod_name, port) -> str:
    """Start a wurstmeister zookeeper container with the default settings."""
    return create_custom_zookeeper_wurstmeister(
        pod_name, "", "", port, DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT
    )


def create_zookeeper_wurstmeister_in_network(pod_name, network, port) -> str:
    """Start a wurstmeister zookeeper container attached to ``network``."""
    return create_custom_zookeeper_wurstmeister(
        pod_name, "", network, port, DEFAULT_NO_CONN_TIMEOUT, DEFAULT_AFTER_CONN_TIMEOUT
    )


def create_custom_zookeeper_wurstmeister(
    pod_name,
    network_inspect_format,
    network,
    port,
    no_conn_timeout,
    after_conn_timeout,
) -> str:
    """Start a wurstmeister zookeeper container with custom settings."""
    return _start(
        pod_name, _ZOOKEEPER_WURSTMEISTER_IMAGE, network, f"-p {port}:2181", "",
        network_inspect_format, port, no_conn_timeout, after_conn_timeout,
    )