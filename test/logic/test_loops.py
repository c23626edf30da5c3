import asyncio

import pytest
import pytest_asyncio

from layosc.codec import decode_response, encode
from layosc.server.loops import receiver_loop, sender_loop
from layosc.server.transport import bind_udp
from layosc.types import (
    Channel,
    ChannelClosed,
    EnvelopeError,
    MeasureResult,
    PauliX,
    PipelineTerminated,
    TransportError,
)
from layosc.util import OSC_BUF_LEN

LOCALHOST = ("127.0.0.1", 0)


@pytest_asyncio.fixture
async def sock_pair():
    """Two bound non-blocking loopback sockets: (loop side, peer side)."""
    loop_sock = bind_udp(LOCALHOST)
    peer = bind_udp(LOCALHOST)
    yield loop_sock, peer
    loop_sock.close()
    peer.close()


def test_bind_failure():
    sock = bind_udp(LOCALHOST)
    try:
        with pytest.raises(TransportError, match="Failed to bind"):
            bind_udp(sock.getsockname())
    finally:
        sock.close()


class TestSenderLoop:
    @pytest.mark.asyncio
    async def test_channel_closed_while_waiting_terminates(self, sock_pair):
        loop_sock, peer = sock_pair
        chan = Channel(4)
        task = asyncio.create_task(sender_loop(loop_sock, peer.getsockname(), chan))
        await asyncio.sleep(0.05)
        assert not task.done()

        await chan.close()
        with pytest.raises(PipelineTerminated, match="sender_loop: unexpected finished"):
            await asyncio.wait_for(task, 2)

    @pytest.mark.asyncio
    async def test_channel_closed_after_results_drains_first(self, sock_pair):
        loop_sock, peer = sock_pair
        loop = asyncio.get_running_loop()
        chan = Channel(4)
        task = asyncio.create_task(sender_loop(loop_sock, peer.getsockname(), chan))

        await chan.send(MeasureResult.from_bit(True))
        await chan.close()
        dgram = await asyncio.wait_for(loop.sock_recv(peer, OSC_BUF_LEN), 2)
        assert decode_response(dgram) == MeasureResult(0, 1.0)
        with pytest.raises(PipelineTerminated):
            await asyncio.wait_for(task, 2)

    @pytest.mark.asyncio
    async def test_sends_encoded_results(self, sock_pair):
        loop_sock, peer = sock_pair
        loop = asyncio.get_running_loop()
        chan = Channel(4)
        task = asyncio.create_task(sender_loop(loop_sock, peer.getsockname(), chan))

        await chan.send(MeasureResult.from_bit(True))
        await chan.send(MeasureResult.from_bit(False))
        first = await asyncio.wait_for(loop.sock_recv(peer, OSC_BUF_LEN), 2)
        second = await asyncio.wait_for(loop.sock_recv(peer, OSC_BUF_LEN), 2)
        assert decode_response(first) == MeasureResult(0, 1.0)
        assert decode_response(second) == MeasureResult(0, 0.0)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


class TestReceiverLoop:
    @pytest.mark.asyncio
    async def test_drops_bad_packets(self, sock_pair, log_records):
        loop_sock, peer = sock_pair
        loop = asyncio.get_running_loop()
        chan = Channel(4)
        task = asyncio.create_task(receiver_loop(loop_sock, chan))

        dest = loop_sock.getsockname()
        await loop.sock_sendto(peer, b"garbage", dest)
        await loop.sock_sendto(peer, b"/Foo\x00\x00\x00\x00,\x00\x00\x00", dest)
        await loop.sock_sendto(peer, encode(PauliX(0, 1), bundled=True), dest)

        assert await asyncio.wait_for(chan.recv(), 2) == PauliX(0, 1)
        assert chan.qsize() == 0
        assert any("Invalid address `/Foo`" in r["message"] for r in log_records)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert chan.closed

    @pytest.mark.asyncio
    async def test_contract_violation_is_fatal(self, sock_pair):
        loop_sock, peer = sock_pair
        loop = asyncio.get_running_loop()
        chan = Channel(4)
        task = asyncio.create_task(receiver_loop(loop_sock, chan))

        empty_bundle = b"#bundle\x00" + b"\x00\x00\x00\x00\x00\x00\x00\x01"
        await loop.sock_sendto(peer, empty_bundle, loop_sock.getsockname())
        with pytest.raises(EnvelopeError, match="Received empty bundle."):
            await asyncio.wait_for(task, 2)
        with pytest.raises(ChannelClosed):
            await chan.recv()
