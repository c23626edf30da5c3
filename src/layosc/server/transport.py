# -*- coding: utf-8 -*-
"""UDP endpoints owned by the transport loops."""

from __future__ import annotations

import socket

from loguru import logger

from layosc.types import TransportError
from layosc.util.net import Addr, format_addr


def bind_udp(addr: Addr) -> socket.socket:
    """Create a non-blocking UDP socket bound to `addr`.

    Raises
    ------
    TransportError
        If the address cannot be bound. There is no retry: a bind failure is
        fatal at startup.
    """
    family = socket.AF_INET6 if ":" in addr[0] else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_DGRAM)
    sock.setblocking(False)
    try:
        sock.bind(addr)
    except OSError as e:
        sock.close()
        raise TransportError(
            f"Failed to bind UDP socket on {format_addr(addr)}: {e}"
        ) from e
    logger.debug("Bound UDP socket on {}", format_addr(sock.getsockname()[:2]))
    return sock
