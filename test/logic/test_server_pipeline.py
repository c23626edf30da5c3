"""End-to-end tests of the bridge server over loopback UDP."""

import asyncio
import socket
from unittest.mock import patch

import pytest
import pytest_asyncio
from loguru import logger

from layosc.backend import StateVectorLayer
from layosc.codec import decode_response, encode
from layosc.server import exec_server, run_pipeline, start_server
from layosc.server.transport import bind_udp
from layosc.system import BridgeConfig
from layosc.types import (
    CXGate,
    ContractError,
    EnvelopeError,
    Hadamard,
    Measure,
    MeasureResult,
    PauliX,
    TransportError,
)
from layosc.util import OSC_BUF_LEN

SEND_BIND = ("127.0.0.1", 0)


def free_udp_addr():
    """Ask the OS for a currently unused loopback UDP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()


class Bridge:
    """A running pipeline plus the client socket talking to it."""

    def __init__(self, client, rx, task, stop):
        self.client = client
        self.rx = rx
        self.task = task
        self.stop = stop

    async def request(self, *messages):
        loop = asyncio.get_running_loop()
        for msg in messages:
            data = msg if isinstance(msg, bytes) else encode(msg, bundled=True)
            await loop.sock_sendto(self.client, data, self.rx)

    async def response(self, timeout=5):
        loop = asyncio.get_running_loop()
        dgram = await asyncio.wait_for(loop.sock_recv(self.client, OSC_BUF_LEN), timeout)
        return decode_response(dgram)


async def start_bridge(backend):
    client = bind_udp(("127.0.0.1", 0))
    rx = free_udp_addr()
    stop = asyncio.Event()
    ready = asyncio.Event()
    task = asyncio.create_task(
        run_pipeline(
            client.getsockname(),
            rx,
            backend,
            send_bind=SEND_BIND,
            stop_event=stop,
            ready=ready,
        )
    )
    await asyncio.wait_for(ready.wait(), 5)
    return Bridge(client, rx, task, stop)


@pytest_asyncio.fixture
async def bridge():
    logger.warning("STARTED bridge")
    bridge = await start_bridge(StateVectorLayer(10, seed=123))
    yield bridge
    bridge.stop.set()
    await asyncio.wait_for(asyncio.gather(bridge.task, return_exceptions=True), 5)
    bridge.client.close()
    logger.warning("COMPLETED bridge")


class TestPipeline:
    @pytest.mark.asyncio
    async def test_x_then_measure(self, bridge):
        await bridge.request(PauliX(0, 0), Measure(0, 0))
        assert await bridge.response() == MeasureResult(0, 1.0)

    @pytest.mark.asyncio
    async def test_response_wire_format(self, bridge):
        await bridge.request(PauliX(0, 0), Measure(0, 0))
        loop = asyncio.get_running_loop()
        dgram = await asyncio.wait_for(loop.sock_recv(bridge.client, OSC_BUF_LEN), 5)
        assert dgram == encode(MeasureResult(0, 1.0))

    @pytest.mark.asyncio
    async def test_responses_in_request_order(self, bridge):
        await bridge.request(
            PauliX(0, 3),
            Measure(0, 0),
            Measure(0, 3),
            Hadamard(0, 1),
            CXGate(0, 1, 0, 2),
            Measure(0, 1),
            Measure(0, 2),
        )
        bits = [(await bridge.response()).bit for _ in range(4)]
        assert bits[:2] == [False, True]
        # entangled pair
        assert bits[2] == bits[3]

    @pytest.mark.asyncio
    async def test_bad_packets_do_not_stop_the_bridge(self, bridge):
        await bridge.request(b"garbage", b"/Foo\x00\x00\x00\x00,\x00\x00\x00")
        await bridge.request(PauliX(0, 4), Measure(0, 4))
        assert await bridge.response() == MeasureResult(0, 1.0)
        assert not bridge.task.done()

    @pytest.mark.asyncio
    async def test_stop_event(self, bridge):
        bridge.stop.set()
        assert await asyncio.wait_for(bridge.task, 5) is None


class TestPipelineFailures:
    @pytest.mark.asyncio
    async def test_contract_violation_aborts(self):
        bridge = await start_bridge(StateVectorLayer(2, seed=1))
        try:
            await bridge.request(b"#bundle\x00" + b"\x00" * 7 + b"\x01")
            with pytest.raises(EnvelopeError):
                await asyncio.wait_for(bridge.task, 5)
        finally:
            bridge.client.close()

    @pytest.mark.asyncio
    async def test_runner_failure_aborts(self):
        bridge = await start_bridge(StateVectorLayer(2, seed=1))
        try:
            await bridge.request(PauliX(0, 7), Measure(0, 7))
            with pytest.raises(ContractError):
                await asyncio.wait_for(bridge.task, 5)
        finally:
            bridge.client.close()

    @pytest.mark.asyncio
    async def test_bind_failure(self):
        taken = bind_udp(("127.0.0.1", 0))
        try:
            with pytest.raises(TransportError):
                await run_pipeline(
                    ("127.0.0.1", 9),
                    taken.getsockname(),
                    StateVectorLayer(1),
                    send_bind=SEND_BIND,
                )
        finally:
            taken.close()


class TestStartServer:
    @pytest.mark.asyncio
    async def test_registers_and_runs_configured_pipeline(self, tmp_path):
        config = BridgeConfig(
            tx_addr="127.0.0.1:7000",
            rx_addr="127.0.0.1:7001",
            send_bind_addr="127.0.0.1:7002",
            n_qubits=3,
            seed=None,
            queue_len=7,
        )
        registered = []

        async def fake_pipeline(tx, rx, backend, **kwargs):
            registered.extend(tmp_path.glob("server_*.json"))
            assert tx == ("127.0.0.1", 7000)
            assert rx == ("127.0.0.1", 7001)
            assert backend.n_qubits == 3
            assert kwargs["send_bind"] == ("127.0.0.1", 7002)
            assert kwargs["queue_len"] == 7
            assert kwargs["cast_q"](5, 2) == 2

        with (
            patch("layosc.server.bg_killer.get_servers_dir", return_value=tmp_path),
            patch("layosc.server.server.run_pipeline", side_effect=fake_pipeline),
            patch("layosc.server.server.setproctitle") as mock_title,
            patch("layosc.util.start_server_log"),
        ):
            await start_server(config, log_to_file=False)

        mock_title.assert_called_once()
        assert mock_title.call_args.args[0].startswith("layosc-server_")
        assert len(registered) == 1
        assert not registered[0].exists()


def test_exec_server_blocks_on_start_server():
    with patch("layosc.server.server.start_server") as mock_start:
        exec_server("127.0.0.1:7000", "127.0.0.1:7001", log_to_file=False)
    config = mock_start.call_args.args[0]
    assert config.tx == ("127.0.0.1", 7000)
    assert config.rx == ("127.0.0.1", 7001)
    assert mock_start.call_args.kwargs == {"log_to_file": False}
