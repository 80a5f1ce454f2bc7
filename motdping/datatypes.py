from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from io import BytesIO
from typing import Any, Generic, TypeVar

from .errors import IncompleteVarint, MalformedVarint, ProtocolError

VARINT_MAX_BYTES = 5

T = TypeVar("T")
PT = TypeVar("PT")
UT = TypeVar("UT")


class Buffer(BytesIO):
    def unpack(self, kind: type[DataType[Any, T]]) -> T:
        return kind.unpack(self)


class DataType(ABC, Generic[PT, UT]):  # UT: unpack type, PT: pack type
    value: PT | UT

    def __new__(cls, value: PT) -> bytes:
        return cls.pack(value)

    @staticmethod
    @abstractmethod
    def pack(value: PT) -> bytes:
        pass

    @staticmethod
    @abstractmethod
    def unpack(buff: Buffer) -> UT:
        pass


class VarInt(DataType[int, int]):
    def __repr__(self) -> str:
        return str(self.value)

    # https://gist.github.com/nickelpro/7312782
    @staticmethod
    def pack(value: int) -> bytes:
        if not -(1 << 31) <= value < (1 << 31):
            raise ValueError(f"{value} does not fit in a 32-bit varint")

        total = b""
        val = (1 << 32) + value if value < 0 else value

        while val >= 0x80:
            bits = val & 0x7F
            val >>= 7
            total += struct.pack("B", (0x80 | bits))

        bits = val & 0x7F
        total += struct.pack("B", bits)
        return total

    @staticmethod
    def decode(data: bytes | bytearray, offset: int = 0) -> tuple[int, int]:
        """
        Decode a varint starting at ``offset``.
        Returns ``(value, bytes consumed)``.
        """
        total = 0
        for i in range(VARINT_MAX_BYTES):
            if offset + i >= len(data):
                raise IncompleteVarint("input ends inside a varint")

            val = data[offset + i]
            total |= (val & 0x7F) << (7 * i)
            if not val & 0x80:
                value = total - (1 << 32) if total & (1 << 31) else total
                return value, i + 1

        raise MalformedVarint(
            f"varint is longer than {VARINT_MAX_BYTES} bytes",
            code="VARINT-TOO-LONG",
            detail=bytes(data[offset : offset + VARINT_MAX_BYTES]).hex(),
        )

    @staticmethod
    def unpack(buff) -> int:
        total = 0
        for shift in range(0, 7 * VARINT_MAX_BYTES, 7):
            data = buff.read(1)
            if not data:
                raise IncompleteVarint("buffer ends inside a varint")

            val = struct.unpack("B", data)[0]
            total |= (val & 0x7F) << shift
            if not val & 0x80:
                return total - (1 << 32) if total & (1 << 31) else total

        raise MalformedVarint(
            f"varint is longer than {VARINT_MAX_BYTES} bytes", code="VARINT-TOO-LONG"
        )


class UnsignedShort(DataType[int, int]):
    @staticmethod
    def pack(value: int) -> bytes:
        return struct.pack(">H", value)

    @staticmethod
    def unpack(buff) -> int:
        return struct.unpack(">H", buff.read(2))[0]


class String(DataType[str, str]):
    @staticmethod
    def pack(value: str) -> bytes:
        bvalue = str(value).encode("utf-8")
        return VarInt(len(bvalue)) + bvalue

    @staticmethod
    def unpack(buff) -> str:
        length = VarInt.unpack(buff)
        data = buff.read(length)
        if len(data) < length:
            raise ProtocolError(
                f"string declares {length} bytes but only {len(data)} are left",
                code="STRING-TRUNCATED",
            )
        return data.decode("utf-8")
