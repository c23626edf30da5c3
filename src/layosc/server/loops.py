# -*- coding: utf-8 -*-
"""
Transport loops of the bridge server.

Each loop owns exactly one UDP socket and talks to the rest of the pipeline
through a `Channel`:

- `receiver_loop`: datagram -> `decode_request` -> request channel
- `sender_loop`: response channel -> `encode` -> datagram to a fixed address

Neither loop returns normally; they run until cancelled or until a fatal error
is raised to the supervising task.
"""

from __future__ import annotations

import asyncio
import socket
from typing import NoReturn

from loguru import logger

from layosc.codec import decode_request, encode
from layosc.types import (
    Channel,
    ChannelClosed,
    ContractError,
    DecodeError,
    PipelineTerminated,
    Request,
    Response,
    TransportError,
)
from layosc.util import OSC_BUF_LEN
from layosc.util.net import Addr, format_addr


async def receiver_loop(sock: socket.socket, chan_tx: Channel[Request]) -> NoReturn:
    """Loop for receiving requests from the client.

    Malformed or unrecognised packets are logged and dropped. Protocol contract
    violations (bad arity, bad bundles) and a closed channel end the loop.
    """
    loop = asyncio.get_running_loop()
    local = format_addr(sock.getsockname()[:2])
    try:
        while True:
            logger.trace("receiver_loop: Receiving on {}...", local)
            try:
                dgram = await loop.sock_recv(sock, OSC_BUF_LEN)
            except OSError as e:
                raise TransportError(f"receiver_loop: recv failed: {e}") from e
            logger.debug("receiver_loop: Received. len={}, bytes={!r}", len(dgram), dgram)

            try:
                msg = decode_request(dgram)
            except ContractError as e:
                logger.error("receiver_loop: Protocol violation: {}", e)
                raise
            except DecodeError as e:
                logger.warning("receiver_loop: Dropped packet: {}", e)
                continue

            logger.debug("receiver_loop: Message: {}", msg)
            await chan_tx.send(msg)
    finally:
        await chan_tx.close()


async def sender_loop(
    sock: socket.socket, dest: Addr, chan_rx: Channel[Response]
) -> NoReturn:
    """Loop for sending responses to the client at `dest`.

    A closed channel means the runner has gone away, which should never happen
    while the bridge is up, so it is raised as `PipelineTerminated`.
    """
    loop = asyncio.get_running_loop()
    while True:
        try:
            msg = await chan_rx.recv()
        except ChannelClosed:
            raise PipelineTerminated("sender_loop: unexpected finished") from None
        logger.debug("sender_loop: Received from channel: {}", msg)

        packet = encode(msg)
        logger.trace("sender_loop: Encoded packet (len={}): {!r}", len(packet), packet)
        try:
            await loop.sock_sendto(sock, packet, dest)
        except OSError as e:
            raise TransportError(
                f"sender_loop: send to {format_addr(dest)} failed: {e}"
            ) from e
        logger.debug("sender_loop: Sent to {}.", format_addr(dest))
