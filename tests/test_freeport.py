import socket
import sys

import pytest

from temporalkit.devserver.freeport import (
    check_port_free,
    get_free_port,
    maybe_escape_ipv6,
    must_get_free_port,
)


def try_listen_and_dial_on(host, port):
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    with socket.socket(family, socket.SOCK_STREAM) as listener:
        if not sys.platform.startswith("win"):
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        listener.bind((host, port))
        listener.listen(1)
        with socket.create_connection((host, port), timeout=5) as client:
            conn, _ = listener.accept()
            with conn:
                client.sendall(b"ping")
                return conn.recv(4)


def test_free_port_no_double():
    host = "127.0.0.1"
    seen = set()
    for _ in range(2000):
        port = get_free_port(host)
        assert port not in seen, f"port {port} has been assigned more than once"
        seen.add(port)
    assert len(seen) == 2000


def test_free_port_can_bind_immediately_same_process():
    host = "127.0.0.1"
    for _ in range(500):
        port = get_free_port(host)
        assert try_listen_and_dial_on(host, port) == b"ping"


def test_free_port_ipv4_unspecified():
    host = "0.0.0.0"
    port = get_free_port(host)
    assert try_listen_and_dial_on(host, port) == b"ping"


def test_free_port_ipv6_unspecified():
    host = "::"
    port = get_free_port(host)
    assert try_listen_and_dial_on(host, port) == b"ping"


def test_must_get_free_port_in_range():
    port = must_get_free_port("127.0.0.1")
    assert 0 < port < 65536


def test_must_get_free_port_raises_for_foreign_address():
    with pytest.raises(RuntimeError, match="failed assigning ephemeral port"):
        must_get_free_port("192.0.2.1")


def test_get_free_port_raises_for_foreign_address():
    with pytest.raises(OSError, match="failed to assign a free port"):
        get_free_port("192.0.2.1")


def test_check_port_free_rejects_port_in_use():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupied:
        occupied.bind(("127.0.0.1", 0))
        occupied.listen(1)
        port = occupied.getsockname()[1]
        with pytest.raises(OSError):
            check_port_free("127.0.0.1", port)


@pytest.mark.parametrize(
    ("host", "expected"),
    [
        ("::1", "[::1]"),
        ("::", "[::]"),
        ("127.0.0.1", "127.0.0.1"),
        ("0.0.0.0", "0.0.0.0"),
        ("localhost", "localhost"),
        ("::ffff:1.2.3.4", "::ffff:1.2.3.4"),
        ("[::1]", "[::1]"),
    ],
)
def test_maybe_escape_ipv6(host, expected):
    assert maybe_escape_ipv6(host) == expected