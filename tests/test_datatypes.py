"""
Unit tests for the varint and primitive codecs.
"""

import pytest

from motdping.datatypes import Buffer, String, UnsignedShort, VarInt
from motdping.errors import IncompleteVarint, MalformedVarint, ProtocolError

KNOWN_VARINTS = [
    (0, b"\x00"),
    (1, b"\x01"),
    (127, b"\x7f"),
    (128, b"\x80\x01"),
    (255, b"\xff\x01"),
    (25565, b"\xdd\xc7\x01"),
    (2097151, b"\xff\xff\x7f"),
    (2147483647, b"\xff\xff\xff\xff\x07"),
    (-1, b"\xff\xff\xff\xff\x0f"),
    (-2147483648, b"\x80\x80\x80\x80\x08"),
]


class TestVarInt:
    @pytest.mark.parametrize("value,encoded", KNOWN_VARINTS)
    def test_pack(self, value, encoded):
        assert VarInt(value) == encoded

    @pytest.mark.parametrize("value,encoded", KNOWN_VARINTS)
    def test_decode(self, value, encoded):
        assert VarInt.decode(encoded) == (value, len(encoded))

    @pytest.mark.parametrize("value,encoded", KNOWN_VARINTS)
    def test_unpack_from_buffer(self, value, encoded):
        buff = Buffer(encoded + b"rest")
        assert buff.unpack(VarInt) == value
        assert buff.read() == b"rest"

    def test_decode_at_offset(self):
        data = b"\x00\x00" + VarInt(300) + b"\x01"
        assert VarInt.decode(data, 2) == (300, 2)

    def test_decode_ignores_trailing_bytes(self):
        assert VarInt.decode(b"\x05hello") == (5, 1)

    @pytest.mark.parametrize("value", [1 << 31, -(1 << 31) - 1, 1 << 40])
    def test_pack_out_of_range(self, value):
        with pytest.raises(ValueError):
            VarInt(value)

    @pytest.mark.parametrize("data", [b"", b"\x80", b"\xff\xff", b"\x80\x80\x80\x80"])
    def test_decode_incomplete(self, data):
        with pytest.raises(IncompleteVarint):
            VarInt.decode(data)

    def test_unpack_incomplete(self):
        with pytest.raises(IncompleteVarint):
            Buffer(b"\x80\x80").unpack(VarInt)

    @pytest.mark.parametrize("data", [b"\xff" * 5, b"\xff" * 5 + b"\x01", b"\x80" * 6])
    def test_decode_too_long(self, data):
        with pytest.raises(MalformedVarint) as exc:
            VarInt.decode(data)
        assert exc.value.code == "VARINT-TOO-LONG"

    def test_unpack_too_long(self):
        with pytest.raises(MalformedVarint):
            Buffer(b"\xff" * 6).unpack(VarInt)

    def test_incomplete_is_a_protocol_error(self):
        assert issubclass(IncompleteVarint, ProtocolError)
        assert issubclass(MalformedVarint, ProtocolError)


class TestString:
    def test_pack_ascii(self):
        assert String("hello") == b"\x05hello"

    def test_pack_counts_utf8_bytes(self):
        assert String("§a") == b"\x03\xc2\xa7a"

    def test_pack_empty(self):
        assert String("") == b"\x00"

    def test_unpack(self):
        buff = Buffer(String("localhost") + b"\x63\xdd")
        assert buff.unpack(String) == "localhost"
        assert buff.unpack(UnsignedShort) == 25565

    def test_unpack_long_string(self):
        value = "x" * 300
        assert Buffer(String(value)).unpack(String) == value

    def test_unpack_truncated(self):
        with pytest.raises(ProtocolError) as exc:
            Buffer(b"\x0ahello").unpack(String)
        assert exc.value.code == "STRING-TRUNCATED"


class TestUnsignedShort:
    @pytest.mark.parametrize(
        "value,encoded",
        [(0, b"\x00\x00"), (25565, b"\x63\xdd"), (65535, b"\xff\xff")],
    )
    def test_pack(self, value, encoded):
        assert UnsignedShort(value) == encoded
        assert Buffer(encoded).unpack(UnsignedShort) == value
