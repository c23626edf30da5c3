# -*- coding: utf-8 -*-
"""
Standalone bridge server.

The server is three asyncio tasks joined by two bounded channels:

1. `receiver_loop` reads request datagrams from the rx socket and pushes typed
   requests onto the ops channel,
2. `runner_loop` applies them to the backend and pushes measurement results
   onto the result channel,
3. `sender_loop` encodes results and sends them to the tx address.

`run_pipeline` supervises the three tasks as a unit: when the stop event is
set (Ctrl-C/SIGTERM in `start_server`), or when any task ends, all of them are
cancelled together and outstanding messages are discarded. A task that ended
with an error has that error re-raised from `run_pipeline`.
"""

from __future__ import annotations

import asyncio
import signal
from datetime import datetime
from typing import Optional

from loguru import logger
from setproctitle import setproctitle

import layosc.util
from layosc.backend import cast_y
from layosc.server.bg_killer import cleanup_stale_servers, register_server
from layosc.server.loops import receiver_loop, sender_loop
from layosc.server.runner import runner_loop
from layosc.server.transport import bind_udp
from layosc.system import BridgeConfig
from layosc.types import (
    Channel,
    Layer,
    MeasureResult,
    PipelineTerminated,
    QubitMap,
    Request,
)
from layosc.util import DEFAULT_LOGLEVEL, QUEUE_LEN
from layosc.util.net import Addr, format_addr

# ============================================================================


async def run_pipeline(
    tx: Addr,
    rx: Addr,
    backend: Layer,
    cast_q: QubitMap = cast_y,
    cast_s: QubitMap = cast_y,
    send_bind: Addr = ("0.0.0.0", 9999),
    queue_len: int = QUEUE_LEN,
    stop_event: Optional[asyncio.Event] = None,
    ready: Optional[asyncio.Event] = None,
) -> None:
    """Run the receive -> dispatch -> send pipeline until stopped.

    Parameters
    ----------
    tx : Addr
        Where responses are sent.
    rx : Addr
        Address the request socket binds to.
    backend : Layer
        Execution backend.
    cast_q, cast_s : QubitMap
        Coordinate -> qubit / slot mappings for the backend.
    send_bind : Addr
        Address the response socket binds to.
    queue_len : int
        Capacity of each channel.
    stop_event : asyncio.Event, optional
        Set it to shut the pipeline down.
    ready : asyncio.Event, optional
        Set once both sockets are bound and the tasks are running.

    Raises
    ------
    TransportError
        If a socket cannot be bound (before any task starts).
    BridgeError
        Whatever fatal error ended one of the tasks.
    """
    rx_sock = bind_udp(rx)
    try:
        tx_sock = bind_udp(send_bind)
    except Exception:
        rx_sock.close()
        raise

    ops_chan: Channel[Request] = Channel(queue_len)
    result_chan: Channel[MeasureResult] = Channel(queue_len)
    stop_event = stop_event or asyncio.Event()

    logger.info(
        "Starting bridge: rx {} -> backend {} -> tx {} (bound {})",
        format_addr(rx_sock.getsockname()[:2]),
        backend,
        format_addr(tx),
        format_addr(tx_sock.getsockname()[:2]),
    )
    tasks = [
        asyncio.create_task(sender_loop(tx_sock, tx, result_chan), name="sender"),
        asyncio.create_task(
            runner_loop(backend, ops_chan, result_chan, cast_q, cast_s),
            name="runner",
        ),
        asyncio.create_task(receiver_loop(rx_sock, ops_chan), name="receiver"),
    ]
    stop_task = asyncio.create_task(stop_event.wait(), name="stop")
    if ready is not None:
        ready.set()

    try:
        done, _ = await asyncio.wait(
            [*tasks, stop_task], return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for task in [*tasks, stop_task]:
            task.cancel()
        await asyncio.gather(*tasks, stop_task, return_exceptions=True)
        rx_sock.close()
        tx_sock.close()

    failed = [
        t for t in tasks if t in done and not t.cancelled() and t.exception()
    ]
    # a peer ending with PipelineTerminated is a consequence, report the cause
    failed.sort(key=lambda t: isinstance(t.exception(), PipelineTerminated))
    if failed:
        exc = failed[0].exception()
        logger.opt(exception=exc).error(
            "Bridge task '{}' died, pipeline aborted.", failed[0].get_name()
        )
        raise exc
    logger.info("Bridge stopped.")


# ============================================================================


async def start_server(
    config: BridgeConfig,
    log_to_file: bool = True,
    log_to_stdout: bool = False,
    log_path: str = "",
    clear_prev_log: bool = True,
    log_level: str = DEFAULT_LOGLEVEL,
) -> None:
    """Run a standalone bridge server until Ctrl-C / SIGTERM."""
    # Format: "layosc-server_2024-01-20_15:30:45"
    timestamp = datetime.now().strftime("%Y-%m-%d_%H:%M:%S")
    setproctitle(f"layosc-server_{timestamp}")

    layosc.util.start_server_log(
        log_to_file=log_to_file,
        log_to_stdout=log_to_stdout,
        log_path=log_path,
        clear_prev=clear_prev_log,
        log_level=log_level,
    )
    cleanup_stale_servers()

    logger.info("Using bridge config {}", config)
    backend = config.make_backend()
    cast = config.make_qubit_map()

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    handled = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
            handled.append(sig)
        except NotImplementedError:  # windows
            pass

    pid_file = register_server(config.tx_addr, config.rx_addr)
    try:
        await run_pipeline(
            config.tx,
            config.rx,
            backend,
            cast_q=cast,
            cast_s=cast,
            send_bind=config.send_bind,
            queue_len=config.queue_len,
            stop_event=stop,
        )
    finally:
        for sig in handled:
            loop.remove_signal_handler(sig)
        if pid_file.exists():
            pid_file.unlink()


def exec_server(tx: str, rx: str, **kwargs) -> None:
    """Blocking entry point: run a bridge between `tx` and `rx` with defaults."""
    config = BridgeConfig(tx_addr=tx, rx_addr=rx)
    asyncio.run(start_server(config, **kwargs))


__all__ = ["exec_server", "run_pipeline", "start_server"]
