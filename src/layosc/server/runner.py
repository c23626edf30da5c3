# -*- coding: utf-8 -*-
"""
Dispatch of requests onto an execution backend.

Gate requests are buffered in the backend's `OpsVec`. A measurement request
appends the measurement, flushes the whole batch to the backend with
`send_receive`, and sends the resulting bit back as a `MeasureResult`. So a
measurement always reflects every gate received before it, in order, and the
backend is only called once per measurement.

`send_receive` blocks, so it runs in a worker thread: only the runner waits on
the backend, the transport loops keep going.
"""

from __future__ import annotations

import asyncio
from typing import NoReturn

from loguru import logger

from layosc.types import (
    Channel,
    ChannelClosed,
    ContractError,
    Coord,
    CXGate,
    Layer,
    Measure,
    MeasureResult,
    PipelineTerminated,
    QubitMap,
    Request,
    UnsupportedOperation,
    check_measure_target,
)


class Runner:
    """Holds the backend, its pending operations and its result buffer.

    Parameters
    ----------
    backend : Layer
        Execution backend.
    result_tx : Channel[MeasureResult]
        Where measurement results go.
    cast_q, cast_s : QubitMap
        Map a request's (x, y) coordinate onto the backend's qubit and slot
        identifiers.
    """

    def __init__(
        self,
        backend: Layer,
        result_tx: Channel[MeasureResult],
        cast_q: QubitMap,
        cast_s: QubitMap,
    ):
        self.backend = backend
        self.result_tx = result_tx
        self.cast_q = cast_q
        self.cast_s = cast_s
        self.ops = backend.opsvec()
        self.buf = backend.make_buffer()
        self.ops.initialize()

    async def dispatch(self, request: Request) -> None:
        opid = request.OPID
        if opid is None or not self.backend.supports(opid):
            raise UnsupportedOperation(
                f"runner: unimplemented operation {request} for {self.backend}"
            )
        if isinstance(request, Measure):
            await self.measure(request.coord, request.coord)
        elif isinstance(request, CXGate):
            self.ops.gate(
                opid, self.cast_q(*request.control), self.cast_q(*request.target)
            )
        else:
            self.ops.gate(opid, self.cast_q(*request.coord))

    async def measure(self, qubit_at: Coord, slot_at: Coord) -> None:
        """Flush the pending batch with a measurement of `qubit_at` into `slot_at`.

        Raises `ContractError` unless both are the same grid position.
        """
        check_measure_target(qubit_at, slot_at)
        qubit = self.cast_q(*qubit_at)
        slot = self.cast_s(*slot_at)
        self.ops.measure(qubit, slot)
        logger.debug("runner_loop: send_receive ({} ops): {}", len(self.ops), self.ops)
        try:
            await asyncio.to_thread(
                self.backend.send_receive, list(self.ops), self.buf
            )
        except ValueError as e:
            raise ContractError(f"runner: backend rejected batch: {e}") from e
        self.ops.clear()
        bit = self.buf.get(slot)
        logger.info("runner_loop: measurement {}: {}", qubit_at, bit)
        await self.result_tx.send(MeasureResult.from_bit(bit))


async def runner_loop(
    backend: Layer,
    ops_rx: Channel[Request],
    result_tx: Channel[MeasureResult],
    cast_q: QubitMap,
    cast_s: QubitMap,
) -> NoReturn:
    """Consume requests one at a time and drive the backend."""
    logger.info("runner_loop: Start with backend {}", backend)
    runner = Runner(backend, result_tx, cast_q, cast_s)
    try:
        while True:
            try:
                msg = await ops_rx.recv()
            except ChannelClosed:
                raise PipelineTerminated("runner_loop: unexpected exit") from None
            logger.debug("runner_loop: Message received from channel. {}", msg)
            await runner.dispatch(msg)
    finally:
        await result_tx.close()
