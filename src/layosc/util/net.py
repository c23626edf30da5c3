# -*- coding: utf-8 -*-
"""Socket address helpers."""

from __future__ import annotations

Addr = tuple[str, int]


def parse_addr(addr: str | Addr) -> Addr:
    """Parse "host:port" (or "[v6host]:port") into a (host, port) tuple."""
    if isinstance(addr, tuple):
        host, port = addr
    else:
        host, sep, port = str(addr).rpartition(":")
        if not sep or not host:
            raise ValueError(f"Expected host:port, got {addr!r}")
        host = host.strip("[]")
    port = int(port)
    if not 0 <= port <= 65535:
        raise ValueError(f"Port {port} out of range")
    return host, port


def format_addr(addr: Addr) -> str:
    host, port = addr
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"
