"""
Tests for frame reassembly and the status session.

Session tests talk to a real asyncio server on 127.0.0.1.
"""

import asyncio
import json

import pytest

from motdping.datatypes import String, UnsignedShort, VarInt
from motdping.errors import (
    AllProtocolsFailed,
    ConnectionTimeout,
    JsonParseFailure,
    MalformedVarint,
    ServerConnectionError,
    UnexpectedClose,
)
from motdping.net import (
    FrameAssembler,
    Packet,
    SessionState,
    StatusResponse,
    StatusSession,
    parse_status,
    ping,
)
from motdping.query import query_server

STATUS = {
    "version": {"name": "Paper 1.20.4", "protocol": 765},
    "players": {"online": 3, "max": 20},
    "description": {"text": "Hello", "extra": [{"text": " World", "color": "red"}]},
    "favicon": "data:image/png;base64,iVBORw0KGgo=",
}


def frame(packet_id: int, payload: bytes = b"") -> bytes:
    body = VarInt(packet_id) + payload
    return VarInt(len(body)) + body


def status_frame(data) -> bytes:
    return frame(0x00, String(json.dumps(data)))


async def read_request(reader) -> list[Packet]:
    """Read the handshake and status request the client sends"""
    assembler = FrameAssembler()
    packets: list[Packet] = []
    while len(packets) < 2:
        data = await reader.read(1024)
        if not data:
            break
        assembler.feed(data)
        packets.extend(assembler.frames())
    return packets


def responder(*chunks: bytes, received: list | None = None):
    """Server handler that answers the request with ``chunks`` and hangs up"""

    async def handle(reader, writer):
        packets = await read_request(reader)
        if received is not None:
            received.extend(packets)
        for chunk in chunks:
            writer.write(chunk)
            await writer.drain()
            await asyncio.sleep(0.01)
        writer.close()

    return handle


async def start(handler):
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    return server, server.sockets[0].getsockname()[1]


def run_session(handler, timeout: float = 5.0, protocol: int = 765):
    async def run():
        server, port = await start(handler)
        async with server:
            session = StatusSession("127.0.0.1", port, protocol, timeout=timeout)
            try:
                return session, await session.run(), port
            except Exception as e:
                return session, e, port

    return asyncio.run(run())


class TestFrameAssembler:
    def test_complete_frame(self):
        assembler = FrameAssembler()
        assembler.feed(frame(0x00, b"abc"))
        assert assembler.try_extract_frame() == Packet(0, b"abc")
        assert len(assembler) == 0

    def test_partial_frame_is_kept(self):
        data = frame(0x00, b"abcdef")
        assembler = FrameAssembler()
        assembler.feed(data[:4])
        assert assembler.try_extract_frame() is None
        assert len(assembler) == 4

        assembler.feed(data[4:])
        assert assembler.try_extract_frame() == Packet(0, b"abcdef")

    def test_byte_at_a_time(self):
        data = status_frame(STATUS)
        assembler = FrameAssembler()
        for i, byte in enumerate(data):
            assembler.feed(bytes([byte]))
            packet = assembler.try_extract_frame()
            if i < len(data) - 1:
                assert packet is None
        assert packet is not None
        assert parse_status(packet).description == STATUS["description"]

    def test_split_length_prefix(self):
        data = frame(0x00, b"x" * 200)  # two byte length prefix
        assembler = FrameAssembler()
        assembler.feed(data[:1])
        assert assembler.try_extract_frame() is None
        assembler.feed(data[1:])
        assert assembler.try_extract_frame() == Packet(0, b"x" * 200)

    def test_several_frames_and_leftover(self):
        leftover = frame(0x00, b"later")[:3]
        assembler = FrameAssembler()
        assembler.feed(frame(0x01, b"a") + frame(0x00, b"b") + leftover)

        assert list(assembler.frames()) == [Packet(1, b"a"), Packet(0, b"b")]
        assert len(assembler) == len(leftover)

    def test_frame_over_limit(self):
        assembler = FrameAssembler(max_frame_size=10)
        assembler.feed(VarInt(11))
        with pytest.raises(MalformedVarint) as exc:
            assembler.try_extract_frame()
        assert exc.value.code == "FRAME-LENGTH"

    def test_no_limit(self):
        assembler = FrameAssembler(max_frame_size=None)
        assembler.feed(frame(0x00, b"y" * 5000))
        assert assembler.try_extract_frame() == Packet(0, b"y" * 5000)

    def test_negative_length(self):
        assembler = FrameAssembler()
        assembler.feed(VarInt(-1))
        with pytest.raises(MalformedVarint):
            assembler.try_extract_frame()

    def test_overlong_length_prefix(self):
        assembler = FrameAssembler()
        assembler.feed(b"\xff" * 6)
        with pytest.raises(MalformedVarint):
            assembler.try_extract_frame()

    def test_empty_frame(self):
        assembler = FrameAssembler()
        assembler.feed(b"\x00")
        with pytest.raises(MalformedVarint):
            assembler.try_extract_frame()


class TestStatusResponse:
    def test_from_json(self):
        response = StatusResponse.from_json(STATUS)
        assert response.description == STATUS["description"]
        assert response.favicon == STATUS["favicon"]
        assert response.version_name == "Paper 1.20.4"
        assert response.protocol == 765
        assert response.players_online == 3
        assert response.players_max == 20
        assert response.raw is STATUS

    def test_missing_fields(self):
        response = StatusResponse.from_json({"description": "hi", "favicon": ""})
        assert response.description == "hi"
        assert response.favicon is None
        assert response.players_online is None

    def test_not_an_object(self):
        with pytest.raises(JsonParseFailure):
            StatusResponse.from_json(["description"])

    def test_parse_status_bad_json(self):
        with pytest.raises(JsonParseFailure) as exc:
            parse_status(Packet(0, String("{not json")))
        assert exc.value.code == "SLP-BAD-JSON"

    def test_parse_status_truncated_string(self):
        with pytest.raises(JsonParseFailure):
            parse_status(Packet(0, b"\x20{}"))

    def test_parse_status_deeply_nested(self):
        with pytest.raises(JsonParseFailure):
            parse_status(Packet(0, String("[" * 100000 + "]" * 100000)))


class TestStatusSession:
    def test_status_exchange(self):
        received: list[Packet] = []
        session, response, port = run_session(
            responder(status_frame(STATUS), received=received)
        )

        assert isinstance(response, StatusResponse)
        assert response.description == STATUS["description"]
        assert session.state is SessionState.COMPLETE

        handshake, request = received
        buff = handshake.buff
        assert handshake.id == 0x00
        assert buff.unpack(VarInt) == 765
        assert buff.unpack(String) == "127.0.0.1"
        assert buff.unpack(UnsignedShort) == port
        assert buff.unpack(VarInt) == 1
        assert request == Packet(0x00, b"")

    def test_chunked_response(self):
        data = status_frame(STATUS)
        chunks = [data[i : i + 7] for i in range(0, len(data), 7)]
        _, response, _ = run_session(responder(*chunks))
        assert isinstance(response, StatusResponse)
        assert response.favicon == STATUS["favicon"]

    def test_other_packets_ignored(self):
        _, response, _ = run_session(
            responder(frame(0x01, b"\x00" * 8) + status_frame({"description": "ok"}))
        )
        assert isinstance(response, StatusResponse)
        assert response.description == "ok"

    def test_timeout(self):
        async def silent(reader, writer):
            await reader.read()  # until the client gives up
            writer.close()

        session, error, _ = run_session(silent, timeout=0.2)
        assert isinstance(error, ConnectionTimeout)
        assert error.code == "SLP-TIMEOUT"
        assert session.state is SessionState.FAILED

    def test_close_before_response(self):
        session, error, _ = run_session(responder())
        assert isinstance(error, UnexpectedClose)
        assert session.state is SessionState.FAILED

    def test_close_mid_frame(self):
        _, error, _ = run_session(responder(status_frame(STATUS)[:10]))
        assert isinstance(error, UnexpectedClose)
        assert "10 bytes buffered" in str(error)

    def test_bad_json(self):
        _, error, _ = run_session(responder(frame(0x00, String("nope"))))
        assert isinstance(error, JsonParseFailure)

    def test_malformed_frame(self):
        session, error, _ = run_session(responder(b"\xff" * 6))
        assert isinstance(error, MalformedVarint)
        assert session.state is SessionState.FAILED

    def test_connection_refused(self):
        async def run():
            server, port = await start(responder())
            server.close()
            await server.wait_closed()

            session = StatusSession("127.0.0.1", port, 765, timeout=5)
            with pytest.raises(ServerConnectionError) as exc:
                await session.run()
            return session, exc.value

        session, error = asyncio.run(run())
        assert error.code == "SLP-CONNECT"
        assert session.state is SessionState.FAILED

    def test_invalid_hostname(self):
        session = StatusSession("a..example.com", 25565, 765, timeout=2)
        with pytest.raises(ServerConnectionError) as exc:
            asyncio.run(session.run())
        assert exc.value.code == "SLP-CONNECT"
        assert session.state is SessionState.FAILED

    def test_invalid_hostname_tries_every_candidate(self):
        with pytest.raises(AllProtocolsFailed) as exc:
            asyncio.run(
                query_server("a..example.com", candidates=["1.21.4", "1.8.9"])
            )
        assert [p for p, _ in exc.value.errors] == [769, 47]
        assert all(isinstance(e, ServerConnectionError) for _, e in exc.value.errors)

    def test_deeply_nested_payload_falls_back(self):
        nested = frame(0x00, String("[" * 100000 + "]" * 100000))

        async def run():
            server, port = await start(responder(nested))
            async with server:
                return await query_server(
                    "127.0.0.1", port, candidates=["1.21.4", "1.8.9"]
                )

        with pytest.raises(AllProtocolsFailed) as exc:
            asyncio.run(run())
        assert [p for p, _ in exc.value.errors] == [769, 47]
        assert all(isinstance(e, JsonParseFailure) for _, e in exc.value.errors)

    def test_runs_once(self):
        async def run():
            server, port = await start(responder(status_frame(STATUS)))
            async with server:
                session = StatusSession("127.0.0.1", port, 765, timeout=5)
                await session.run()
                with pytest.raises(RuntimeError):
                    await session.run()

        asyncio.run(run())

    def test_cancel_closes_socket(self):
        async def run():
            requested = asyncio.Event()
            closed = asyncio.Event()

            async def handle(reader, writer):
                await read_request(reader)
                requested.set()
                await reader.read()
                closed.set()
                writer.close()

            server, port = await start(handle)
            async with server:
                session = StatusSession("127.0.0.1", port, 765, timeout=30)
                task = asyncio.create_task(session.run())
                await requested.wait()
                task.cancel()
                with pytest.raises(asyncio.CancelledError):
                    await task
                await asyncio.wait_for(closed.wait(), 2)
                return session

        session = asyncio.run(run())
        assert session.state is SessionState.FAILED

    def test_ping(self):
        async def run():
            server, port = await start(responder(status_frame(STATUS)))
            async with server:
                return await ping("127.0.0.1", port, 47, timeout=5)

        assert asyncio.run(run()).players_max == 20
