"""Finding and checking free TCP ports on a local host."""

from __future__ import annotations

import ipaddress
import socket
import sys

__all__ = ["get_free_port", "must_get_free_port", "check_port_free", "maybe_escape_ipv6"]

_IS_WINDOWS = sys.platform.startswith("win")
# These systems allocate ephemeral ports sequentially, so no reservation trick
# is needed there.
_SEQUENTIAL_EPHEMERAL_PORTS = _IS_WINDOWS or sys.platform == "darwin"


def maybe_escape_ipv6(host: str) -> str:
    """Wrap an IPv6 address in square brackets; other hosts are returned as is."""
    if "%" in host:
        return host
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return host
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is None:
        return f"[{host}]"
    return host


def _unbracket(host: str) -> str:
    if host.startswith("[") and host.endswith("]"):
        return host[1:-1]
    return host


def _listen(host: str, port: int) -> socket.socket:
    family, socktype, proto, _, address = socket.getaddrinfo(
        host or None, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
    )[0]
    listener = socket.socket(family, socktype, proto)
    try:
        if not _IS_WINDOWS:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        listener.bind(address)
        listener.listen(1)
    except BaseException:
        listener.close()
        raise
    return listener


def _reserve(listener: socket.socket, host: str, port: int) -> None:
    # Connect and close from the server side so the port sits in TIME_WAIT
    # and is not handed out again by the OS for a while.
    try:
        family, socktype, proto, _, address = socket.getaddrinfo(
            host or None, port, family=listener.family, type=socket.SOCK_STREAM
        )[0]
    except OSError as exc:
        raise OSError(f"error resolving address: {exc}") from exc
    try:
        with socket.socket(family, socktype, proto) as client:
            client.connect(address)
            accepted, _ = listener.accept()
            accepted.close()
    except OSError as exc:
        raise OSError(f"failed to assign a free port: {exc}") from exc


def get_free_port(host: str) -> int:
    """Return a TCP port that is currently free to listen on for ``host``.

    Binding to the returned port on Unix requires ``SO_REUSEADDR``.
    """
    host = _unbracket(host)
    try:
        listener = _listen(host, 0)
    except OSError as exc:
        raise OSError(f"failed to assign a free port: {exc}") from exc
    with listener:
        port = listener.getsockname()[1]
        if not _SEQUENTIAL_EPHEMERAL_PORTS:
            _reserve(listener, host, port)
    return port


def must_get_free_port(host: str) -> int:
    """Like :func:`get_free_port`, but raise ``RuntimeError`` on failure."""
    try:
        return get_free_port(host)
    except OSError as exc:
        raise RuntimeError(f"failed assigning ephemeral port: {exc}") from exc


def check_port_free(host: str, port: int) -> None:
    """Raise ``OSError`` if ``port`` cannot be listened on for ``host``."""
    _listen(_unbracket(host), port).close()