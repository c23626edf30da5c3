# -*- coding: utf-8 -*-
"""
`Layer` implementation that forwards operations to a remote OSC device.

`OscLayer` lets synchronous code drive a device that speaks the bridge's OSC
vocabulary. It owns a private asyncio event loop running in a daemon thread,
where `device_comm_loop` relays requests to the device and collects its
measurement responses. The calling thread talks to the relay through two
bounded channels and blocks while they are full or empty.

Qubits and slots are `(x, y)` positions on a `width x height` grid.

Examples
--------
```python
from layosc.layer import OscLayer

with OscLayer.exec(
    (3, 3), "127.0.0.1:8861", "127.0.0.1:8860", client_log=True
) as layer:
    ops = layer.opsvec()
    ops.initialize()
    ops.x((0, 1))
    ops.measure((0, 1), (0, 1))
    buf = layer.make_buffer()
    layer.send_receive(ops, buf)
    assert buf.get((0, 1))
```
"""

from __future__ import annotations

import asyncio
import socket
import threading
from concurrent.futures import CancelledError as FutureCancelled
from concurrent.futures import Future
from typing import Hashable, NoReturn, Optional, Union

import numpy as np
from loguru import logger

from layosc.codec import decode_response, encode
from layosc.server.transport import bind_udp
from layosc.types import (
    SINGLE_QUBIT_OPS,
    Channel,
    ChannelClosed,
    ContractError,
    Coord,
    CXGate,
    DecodeError,
    InitZero,
    Layer,
    Measure,
    MeasureResult,
    OpId,
    Operation,
    OpShape,
    PipelineTerminated,
    REQUEST_BY_OPID,
    Request,
    Response,
    TransportError,
    check_measure_target,
)
from layosc.util import (
    DEFAULT_LOGLEVEL,
    DEVICE_QUEUE_LEN,
    OSC_BUF_LEN,
    shutdown_client_log,
    start_client_log,
)
from layosc.util.net import Addr, format_addr, parse_addr

# None terminates a batch in both directions
DeviceRequest = Optional[Request]
DeviceResult = Optional[tuple[Coord, bool]]


class GridBuffer:
    """Measurement results for a `width x height` grid of slots.

    Slot `(x, y)` is stored at index `x + y * width`.
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.bits = np.zeros(width * height, dtype=bool)

    def index(self, pos: Coord) -> int:
        x, y = pos
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"{pos} outside {self.width}x{self.height} grid")
        return x + y * self.width

    def get(self, slot: Coord) -> bool:
        return bool(self.bits[self.index(slot)])

    def __setitem__(self, slot: Coord, bit: bool):
        self.bits[self.index(slot)] = bit

    def __len__(self):
        return len(self.bits)

    def __eq__(self, other):
        if not isinstance(other, GridBuffer):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and np.array_equal(self.bits, other.bits)
        )

    __hash__ = None

    def __repr__(self):
        return f"GridBuffer({self.width}x{self.height}, ones={np.flatnonzero(self.bits).tolist()})"


# ============================================================================


async def receive_response(sock: socket.socket) -> Response:
    """Wait for the next valid response datagram from the device.

    Undecodable packets are logged and skipped. Envelope and arity violations
    are raised.
    """
    loop = asyncio.get_running_loop()
    while True:
        try:
            dgram = await loop.sock_recv(sock, OSC_BUF_LEN)
        except OSError as e:
            raise TransportError(f"receive_response: recv failed: {e}") from e
        try:
            return decode_response(dgram)
        except ContractError as e:
            logger.error("receive_response: Protocol violation: {}", e)
            raise
        except DecodeError as e:
            logger.warning("receive_response: Dropped packet: {}", e)


async def device_comm_loop(
    sock: socket.socket,
    tx_addr: Addr,
    req_rx: Channel[DeviceRequest],
    meas_tx: Channel[DeviceResult],
) -> NoReturn:
    """Relay requests to the device and measurement results back.

    Every request is sent to `tx_addr` from `sock`. After a `Measure` the loop
    waits for the device's response on the same socket before sending the
    next request, and pushes `((x, y), bit)` onto `meas_tx`. A `None` request
    is passed through as the end-of-batch marker.

    The loop owns `sock` and both channels, and closes all of them on exit.
    """
    loop = asyncio.get_running_loop()
    try:
        while True:
            try:
                msg = await req_rx.recv()
            except ChannelClosed:
                raise PipelineTerminated(
                    "device_comm_loop: unexpected finished"
                ) from None
            logger.info("device_comm_loop: Received from channel: {}", msg)

            if msg is None:
                await meas_tx.send(None)
                continue

            packet = encode(msg)
            try:
                await loop.sock_sendto(sock, packet, tx_addr)
            except OSError as e:
                raise TransportError(
                    f"device_comm_loop: send to {format_addr(tx_addr)} failed: {e}"
                ) from e

            if isinstance(msg, Measure):
                res = await receive_response(sock)
                logger.info("device_comm_loop: Received from device: {}", res)
                if not isinstance(res, MeasureResult):
                    raise ContractError(f"Unexpected response to {msg}: {res}")
                await meas_tx.send((msg.coord, res.bit))
    finally:
        sock.close()
        await req_rx.close()
        await meas_tx.close()


def _log_relay_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        logger.debug("device_comm_loop: cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.opt(exception=exc).error("device_comm_loop died: {}", exc)


async def _spawn_relay(
    sock: socket.socket,
    tx_addr: Addr,
    req_rx: Channel[DeviceRequest],
    meas_tx: Channel[DeviceResult],
) -> asyncio.Task:
    task = asyncio.create_task(
        device_comm_loop(sock, tx_addr, req_rx, meas_tx), name="device_comm_loop"
    )
    task.add_done_callback(_log_relay_exit)
    return task


async def _stop_relay(relay: asyncio.Task) -> None:
    relay.cancel()
    await asyncio.gather(relay, return_exceptions=True)
    # callers blocked in send/receive from other threads
    others = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
    for t in others:
        t.cancel()
    await asyncio.gather(*others, return_exceptions=True)


# ============================================================================


class OscLayer(Layer):
    """A `Layer` whose operations run on a remote device reached over OSC/UDP.

    Use `OscLayer.exec` to construct one. Call `close` (or use it as a context
    manager) to stop the relay; messages still in flight are discarded.
    """

    supported_ops = frozenset(OpId)

    def __init__(
        self,
        size: tuple[int, int],
        device_tx: Addr,
        loop: asyncio.AbstractEventLoop,
        thread: threading.Thread,
        relay: asyncio.Task,
        req_tx: Channel[DeviceRequest],
        meas_rx: Channel[DeviceResult],
        owns_log: bool = False,
    ):
        self.width, self.height = size
        self.device_tx = device_tx
        self._loop = loop
        self._thread = thread
        self._relay = relay
        self._req_tx = req_tx
        self._meas_rx = meas_rx
        self._closed = False
        self._owns_log = owns_log

    @classmethod
    def exec(
        cls,
        size: tuple[int, int],
        device_tx: Union[str, Addr],
        device_rx: Union[str, Addr],
        queue_len: int = DEVICE_QUEUE_LEN,
        client_log: bool = False,
        log_path: Optional[str] = None,
        log_level: str = DEFAULT_LOGLEVEL,
    ) -> OscLayer:
        """Start the device relay and return a layer connected to it.

        Parameters
        ----------
        size : tuple[int, int]
            Grid (width, height).
        device_tx : str or Addr
            Where requests are sent.
        device_rx : str or Addr
            Local address to bind; requests are sent from, and responses
            received on, this socket.
        queue_len : int
            Capacity of the request and result channels.
        client_log : bool
            Start a client log (`start_client_log`) for the lifetime of the
            layer; `close` shuts it down again.
        log_path : str, optional
            Client log file, default ~/.layosc/client.log.
        log_level : str
            Level of the client log.

        Raises
        ------
        TransportError
            If `device_rx` cannot be bound.
        """
        width, height = size
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid grid size {size}")
        tx_addr = parse_addr(device_tx)
        if client_log:
            start_client_log(log_path=log_path, log_level=log_level)
        try:
            sock = bind_udp(parse_addr(device_rx))
        except TransportError:
            logger.error("OscLayer: could not bind {}", device_rx)
            if client_log:
                shutdown_client_log()
            raise

        loop = asyncio.new_event_loop()
        thread = threading.Thread(
            target=loop.run_forever, name="layosc-device-relay", daemon=True
        )
        thread.start()

        req_chan: Channel[DeviceRequest] = Channel(queue_len)
        meas_chan: Channel[DeviceResult] = Channel(queue_len)
        relay = asyncio.run_coroutine_threadsafe(
            _spawn_relay(sock, tx_addr, req_chan, meas_chan), loop
        ).result()
        logger.info(
            "OscLayer: relaying {}x{} grid to {} from {}",
            width,
            height,
            format_addr(tx_addr),
            format_addr(sock.getsockname()[:2]),
        )
        return cls(
            (width, height),
            tx_addr,
            loop,
            thread,
            relay,
            req_chan,
            meas_chan,
            owns_log=client_log,
        )

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self):
        return f"OscLayer(size={self.size}, device_tx={format_addr(self.device_tx)})"

    # ------------------------------------------------------------------------

    def _position(self, qubit: Hashable) -> Coord:
        try:
            x, y = qubit
        except (TypeError, ValueError):
            raise ContractError(f"Qubit {qubit!r} is not an (x, y) position.") from None
        if type(x) is not int or type(y) is not int:
            raise ContractError(f"Qubit {qubit!r} is not an (x, y) position.")
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise ContractError(f"Qubit {qubit!r} outside {self.width}x{self.height} grid.")
        return (x, y)

    def translate(self, op: Operation) -> list[Request]:
        """Requests implementing a single operation.

        Raises
        ------
        ContractError
            For opcodes with an unexpected argument shape, unknown opcodes,
            positions off the grid, or a measurement into another slot.
        """
        if op.opid is OpId.INIT and op.shape is OpShape.EMPTY:
            return [InitZero(x, y) for y in range(self.height) for x in range(self.width)]
        if op.opid in SINGLE_QUBIT_OPS and op.shape is OpShape.Q and op.well_shaped:
            return [REQUEST_BY_OPID[op.opid](*self._position(op.args[0]))]
        if op.opid is OpId.MEAS and op.shape is OpShape.QS and op.well_shaped:
            qubit, slot = (self._position(a) for a in op.args)
            check_measure_target(qubit, slot)
            return [Measure(*qubit)]
        if op.opid is OpId.CX and op.shape is OpShape.QQ and op.well_shaped:
            control, target = (self._position(a) for a in op.args)
            return [CXGate(*control, *target)]
        raise ContractError(f"Unsupported operation {op}")

    def send(self, ops: list[Operation]) -> None:
        # translate everything first so a bad operation sends nothing
        requests = [req for op in ops for req in self.translate(op)]
        logger.debug("OscLayer: sending {} requests", len(requests))
        for req in requests:
            self._run(self._req_tx.send(req))
        self._run(self._req_tx.send(None))

    def receive(self, buf: GridBuffer) -> None:
        while True:
            item = self._run(self._meas_rx.recv())
            if item is None:
                return
            try:
                pos, bit = item
                buf[pos] = bit
            except (TypeError, ValueError, IndexError) as e:
                raise PipelineTerminated(
                    f"OscLayer: unexpected item from relay {item!r}"
                ) from e

    def make_buffer(self) -> GridBuffer:
        return GridBuffer(self.width, self.height)

    def _run(self, coro):
        if self._closed:
            coro.close()
            raise PipelineTerminated("OscLayer is closed")
        fut: Future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return fut.result()
        except (ChannelClosed, FutureCancelled):
            raise PipelineTerminated("OscLayer: device relay has stopped") from None

    # ------------------------------------------------------------------------

    def close(self) -> None:
        """Stop the relay task and its event loop thread."""
        if self._closed:
            return
        self._closed = True
        asyncio.run_coroutine_threadsafe(_stop_relay(self._relay), self._loop).result()
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()
        logger.info("OscLayer: closed")
        if self._owns_log:
            shutdown_client_log()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
