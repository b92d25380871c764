# dockerh

This package has small helpers for driving Docker from Python test suites. It
starts containers for common services and waits until they accept TCP
connections. It then gives back the host that answered. Every helper runs the
`docker` command line through `/bin/sh`, so Docker must be installed and on the
`PATH`.

## Installation

```
pip install dockerh
```

## Basic operations

The module `dockerh.docker` holds the basic operations:

```python
from dockerh.docker import (
    Address,
    PodStatus,
    create_bridge_network,
    exists,
    get_ips,
    remove,
    remove_bridge_network,
    run,
    wait_until_listening,
)

run("my-echo", "mendhak/http-https-echo", "", "", "")
assert exists("my-echo", PodStatus.RUNNING)

addresses = get_ips("", "", "my-echo")
remove("my-echo")
assert exists("my-echo", PodStatus.NOT_FOUND)

create_bridge_network("my-network")
remove_bridge_network("my-network")
```

- `run(name, image, network, docker_params, exec_params)` starts a detached
  container. Pass an empty `network` to use Docker's default network.
- `get_ips(network_inspect_format, network, *pods)` returns `Address` objects
  in this order:
  - the IPs that `docker inspect` reports for the containers, with
    `fallback=False`;
  - `127.0.0.1` and `0.0.0.0`, with `fallback=True`.

  The default network is `bridge`. The default inspect format reads that
  network's `IPAddress`.
- `exists(pod, status)` tells whether a container with that name is in the
  given `PodStatus`. With `PodStatus.NOT_FOUND` it is true when no container of
  that name exists.
- `Address(host, port, fallback=False, connected=False)` has an `address()`
  method that returns `"host:port"`.

`wait_until_listening(no_conn_timeout, after_conn_timeout, *addresses)` probes
every address once a second until one accepts a TCP connection. It gives up
when `no_conn_timeout` seconds pass; a value of zero means 60 seconds. After the
first connection, the other addresses get `after_conn_timeout` more seconds to
connect. The addresses that connected are marked `connected=True` in place and
returned in their original order. Each attempt is logged at INFO level through
the `dockerh.docker` logger.

```python
connected = wait_until_listening(3.0, 1.0, Address("localhost", 18123))
```

`wait_until_listening_and_get_pod_ip(pod_name, network_inspect_format, network, port, no_conn_timeout, after_conn_timeout)`
combines `get_ips` and `wait_until_listening`. It returns the host of the first
address that connected, and that host may be one of the fallback hosts.

A failed `docker` command raises `DockerError`. Unexpected output raises one of
its subclasses:

- `PodHashNotFoundError`
- `NetworkHashNotFoundError`
- `PodIPNotFoundError`
- `PodNotListeningError`

## Ready-made services

Each `create_*` function in `dockerh.services` starts a container and waits
until its port is listening. It returns the host that answered, as
`wait_until_listening_and_get_pod_ip` does.

```python
from dockerh.docker import create_bridge_network
from dockerh.services import (
    Topic,
    create_kafka_in_network,
    create_kafka_wurstmeister_in_network,
    create_memcached,
    create_mysql,
    create_postgres,
    create_red_panda,
    create_redis,
    create_scylla,
    create_zookeeper_in_network,
)

password = "password"

ip = create_redis("test-redis", 6379, password)
ip = create_memcached("test-memcached", 11211, 64)
ip = create_mysql("test-mysql", password, "db", 3306)
ip = create_postgres("test-postgres", "admin", password, "db", 5432)
ip = create_scylla("test-scylla", "")
ip = create_red_panda("test-redpanda", 9092)

create_bridge_network("kafka-net")
create_zookeeper_in_network("test-zk", "kafka-net", 2181)
create_kafka_in_network("test-kafka", "kafka-net", 9092, "test-zk", 2181)
```

- `create_redis` first removes any container with the same name.
- `create_memcached` first removes any container with the same name.
- An empty Redis password starts the server without one.
- A Memcached size of zero or less keeps the image default.

There are three forms for Kafka, Wurstmeister Kafka, MySQL, Postgres, Redpanda,
Scylla, Zookeeper and Wurstmeister Zookeeper:

- the plain functions;
- the `*_in_network` functions, which attach the container to a network;
- the `create_custom_*` functions, which also take an inspect format and the
  two timeouts in seconds.

The two timeouts have the same meaning as in `wait_until_listening`.

The Wurstmeister Kafka functions take `Topic(name, partitions, replicas)`
objects as extra arguments. The container creates these topics when it starts:

```python
create_kafka_wurstmeister_in_network(
    "test-kafka", "kafka-net", 9092, "test-zk", 2181,
    Topic("events", 1, 1),
)
```

## What it does not do

This is a library only, with no command-line tool of its own. It does not talk
to the Docker API directly and does not stop or clean up containers
automatically. Call `remove` and `remove_bridge_network` yourself when a test is
done.

## Running the tests

```
pip install -e ".[test]"
pytest
```