from __future__ import annotations

import asyncio
import json
import logging
from asyncio import StreamReader, StreamWriter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from .datatypes import Buffer, String, UnsignedShort, VarInt
from .errors import (
    ConnectionTimeout,
    IncompleteVarint,
    JsonParseFailure,
    MalformedVarint,
    ProtocolError,
    ServerConnectionError,
    UnexpectedClose,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
# largest length a 3 byte varint can hold; the game rejects anything bigger
MAX_FRAME_SIZE = 2097151
READ_SIZE = 4096


class State(Enum):
    HANDSHAKING = 0
    STATUS = 1


class SessionState(Enum):
    CONNECTING = "connecting"
    HANDSHAKE_SENT = "handshake_sent"
    AWAITING_RESPONSE = "awaiting_response"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class Packet:
    id: int
    payload: bytes

    @property
    def buff(self) -> Buffer:
        return Buffer(self.payload)


@dataclass
class StatusResponse:
    description: Any
    favicon: str | None = None
    version_name: str | None = None
    protocol: int | None = None
    players_online: int | None = None
    players_max: int | None = None
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_json(cls, data: Any) -> StatusResponse:
        if not isinstance(data, dict):
            raise JsonParseFailure(
                "status response is not a JSON object",
                code="SLP-BAD-JSON",
                detail=json.dumps(data)[:200],
            )

        version = data.get("version") if isinstance(data.get("version"), dict) else {}
        players = data.get("players") if isinstance(data.get("players"), dict) else {}
        favicon = data.get("favicon")

        return cls(
            description=data.get("description", ""),
            favicon=favicon if isinstance(favicon, str) and favicon else None,
            version_name=version.get("name"),
            protocol=version.get("protocol"),
            players_online=players.get("online"),
            players_max=players.get("max"),
            raw=data,
        )


class FrameAssembler:
    """
    Collects chunks off the socket and cuts complete
    length-prefixed frames out of them
    """

    def __init__(self, max_frame_size: int | None = MAX_FRAME_SIZE):
        self.max_frame_size = max_frame_size
        self._buffer = bytearray()

    def __len__(self) -> int:
        return len(self._buffer)

    def feed(self, chunk: bytes) -> None:
        self._buffer += chunk

    def try_extract_frame(self) -> Packet | None:
        """Return the next complete packet, or None if more bytes are needed"""
        try:
            length, prefix = VarInt.decode(self._buffer)
        except IncompleteVarint:
            return None

        if length < 0 or (
            self.max_frame_size is not None and length > self.max_frame_size
        ):
            raise MalformedVarint(
                f"impossible frame length {length}", code="FRAME-LENGTH"
            )

        end = prefix + length
        if len(self._buffer) < end:
            return None

        frame = bytes(self._buffer[prefix:end])
        del self._buffer[:end]

        buff = Buffer(frame)
        try:
            packet_id = buff.unpack(VarInt)
        except IncompleteVarint:
            raise MalformedVarint(
                "frame too short to hold a packet id", code="FRAME-LENGTH"
            ) from None
        return Packet(packet_id, buff.read())

    def frames(self) -> Iterator[Packet]:
        while (packet := self.try_extract_frame()) is not None:
            yield packet


class Stream:
    """
    Wrapper for both StreamReader and StreamWriter
    also implements packet sending
    """

    def __init__(self, reader: StreamReader, writer: StreamWriter):
        self.reader = reader
        self.writer = writer
        self.open = True

    async def read(self, n=-1) -> bytes:
        return await self.reader.read(n)

    def write(self, data: bytes):
        if self.writer.transport.is_closing():
            return self.close()

        if self.open:
            return self.writer.write(data)

    async def drain(self):
        return await self.writer.drain()

    def close(self):
        self.open = False
        return self.writer.close()

    async def aclose(self):
        self.close()
        try:
            await asyncio.wait_for(self.writer.wait_closed(), timeout=0.5)
        except (asyncio.TimeoutError, OSError):
            pass

    # more minecraft specific stuff
    def send_packet(self, id: int, *data: bytes) -> None:
        packet = VarInt(id) + b"".join(data)
        self.write(VarInt(len(packet)) + packet)


def parse_status(packet: Packet) -> StatusResponse:
    try:
        payload = packet.buff.unpack(String)
        data = json.loads(payload)
    except (ProtocolError, UnicodeDecodeError, ValueError, RecursionError) as e:
        raise JsonParseFailure(
            f"status payload is not valid JSON: {e}",
            code="SLP-BAD-JSON",
            detail=packet.payload[:200].decode("utf-8", "replace"),
        ) from e
    return StatusResponse.from_json(data)


class StatusSession:
    """
    One status query against one server with one protocol version.
    Produces exactly one outcome: a StatusResponse or an exception.
    """

    def __init__(
        self,
        host: str,
        port: int,
        protocol: int,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_frame_size: int | None = MAX_FRAME_SIZE,
    ):
        self.host = host
        self.port = port
        self.protocol = protocol
        self.timeout = timeout

        self.state = SessionState.CONNECTING
        self.assembler = FrameAssembler(max_frame_size)

    def __repr__(self) -> str:
        return (
            f"StatusSession({self.host}:{self.port}, protocol={self.protocol}, "
            f"state={self.state.value})"
        )

    def handshake(self, stream: Stream):
        stream.send_packet(
            0x00,
            VarInt(self.protocol),
            String(self.host),
            UnsignedShort(self.port),
            VarInt(State.STATUS.value),
        )
        # status request
        stream.send_packet(0x00)

    async def run(self) -> StatusResponse:
        if self.state is not SessionState.CONNECTING:
            raise RuntimeError(f"{self!r} has already run")

        try:
            async with asyncio.timeout(self.timeout):
                response = await self._exchange()
        except TimeoutError:
            self.state = SessionState.FAILED
            raise ConnectionTimeout(
                f"no status response from {self.host}:{self.port} "
                f"within {self.timeout}s",
                code="SLP-TIMEOUT",
            ) from None
        except (OSError, UnicodeError) as e:
            self.state = SessionState.FAILED
            raise ServerConnectionError(
                f"could not talk to {self.host}:{self.port}: {e}",
                code="SLP-CONNECT",
            ) from e
        except BaseException:
            self.state = SessionState.FAILED
            raise

        self.state = SessionState.COMPLETE
        return response

    async def _exchange(self) -> StatusResponse:
        reader, writer = await asyncio.open_connection(self.host, self.port)
        stream = Stream(reader, writer)
        try:
            self.handshake(stream)
            self.state = SessionState.HANDSHAKE_SENT
            await stream.drain()
            self.state = SessionState.AWAITING_RESPONSE

            while chunk := await stream.read(READ_SIZE):
                self.assembler.feed(chunk)
                for packet in self.assembler.frames():
                    if packet.id == 0x00:
                        return parse_status(packet)
                    logger.debug(
                        "ignoring packet 0x%02x from %s:%s",
                        packet.id,
                        self.host,
                        self.port,
                    )

            raise UnexpectedClose(
                f"{self.host}:{self.port} closed the connection before responding "
                f"({len(self.assembler)} bytes buffered)",
                code="SLP-EOF",
            )
        finally:
            await stream.aclose()


async def ping(
    host: str,
    port: int,
    protocol: int,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    max_frame_size: int | None = MAX_FRAME_SIZE,
) -> StatusResponse:
    """Run a single status query"""
    session = StatusSession(
        host, port, protocol, timeout=timeout, max_frame_size=max_frame_size
    )
    return await session.run()
