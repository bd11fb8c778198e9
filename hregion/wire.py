"""Protocol buffer encoding of the RPC headers exchanged with a region server."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

__all__ = [
    "WireError",
    "ConnectionHeader",
    "RequestHeader",
    "ResponseHeader",
    "encode_varint",
    "decode_varint",
    "size_varint",
    "iter_fields",
    "encode_varint_field",
    "encode_bytes_field",
    "consume_length_prefixed",
    "parse_response_header",
]

KEY_VALUE_CODEC = "org.apache.hadoop.hbase.codec.KeyValueCodec"

_VARINT = 0
_FIXED64 = 1
_BYTES = 2
_FIXED32 = 5
_MAX_VARINT_LEN = 10


class WireError(ValueError):
    """Malformed protocol buffer data."""


def encode_varint(value: int) -> bytes:
    """Encode a non-negative integer as a base-128 varint."""
    if value < 0:
        raise ValueError(f"cannot encode negative value {value} as varint")
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def size_varint(value: int) -> int:
    """Return the number of bytes the varint encoding of value takes."""
    if value < 0:
        raise ValueError(f"cannot encode negative value {value} as varint")
    return max(1, (value.bit_length() + 6) // 7)


def decode_varint(data: bytes, pos: int = 0) -> tuple[int, int]:
    """Decode a varint at pos; return the value and the position after it."""
    result = 0
    for shift, offset in enumerate(range(pos, min(len(data), pos + _MAX_VARINT_LEN))):
        byte = data[offset]
        result |= (byte & 0x7F) << (7 * shift)
        if not byte & 0x80:
            return result & 0xFFFFFFFFFFFFFFFF, offset + 1
    if len(data) - pos >= _MAX_VARINT_LEN:
        raise WireError("variable length integer overflow")
    raise WireError("unexpected end of data in varint")


def _tag(number: int, wire_type: int) -> bytes:
    if number < 1:
        raise ValueError(f"invalid field number {number}")
    return encode_varint((number << 3) | wire_type)


def encode_varint_field(number: int, value: int) -> bytes:
    """Encode a varint field (booleans become 0 or 1)."""
    return _tag(number, _VARINT) + encode_varint(int(value))


def encode_bytes_field(number: int, value: bytes | str) -> bytes:
    """Encode a length-delimited field; strings are encoded as UTF-8."""
    if isinstance(value, str):
        value = value.encode("utf-8")
    return _tag(number, _BYTES) + encode_varint(len(value)) + bytes(value)


def consume_length_prefixed(data: bytes) -> tuple[bytes, int]:
    """Read a varint-length-prefixed payload; return it and the bytes consumed."""
    length, pos = decode_varint(data, 0)
    end = pos + length
    if end > len(data):
        raise WireError("unexpected end of data in length-delimited payload")
    return bytes(data[pos:end]), end


def iter_fields(data: bytes) -> Iterator[tuple[int, int, int | bytes]]:
    """Yield (field number, wire type, value) for each field of a message."""
    pos = 0
    end = len(data)
    while pos < end:
        tag, pos = decode_varint(data, pos)
        number, wire_type = tag >> 3, tag & 7
        if number < 1:
            raise WireError(f"invalid field number {number}")
        if wire_type == _VARINT:
            value, pos = decode_varint(data, pos)
            yield number, wire_type, value
        elif wire_type == _BYTES:
            payload, consumed = consume_length_prefixed(data[pos:])
            pos += consumed
            yield number, wire_type, payload
        elif wire_type in (_FIXED64, _FIXED32):
            size = 8 if wire_type == _FIXED64 else 4
            if pos + size > end:
                raise WireError("unexpected end of data in fixed-size field")
            yield number, wire_type, bytes(data[pos : pos + size])
            pos += size
        else:
            raise WireError(f"unsupported wire type {wire_type}")


@dataclass
class ConnectionHeader:
    """The header sent once when a connection to a server opens."""

    effective_user: str
    service_name: str
    cell_block_codec_class: str = KEY_VALUE_CODEC
    cell_block_compressor_class: str | None = None

    def encode(self) -> bytes:
        """Serialize the header as a protocol buffer message."""
        user_info = encode_bytes_field(1, self.effective_user)
        parts = [
            encode_bytes_field(1, user_info),
            encode_bytes_field(2, self.service_name),
            encode_bytes_field(3, self.cell_block_codec_class),
        ]
        if self.cell_block_compressor_class is not None:
            parts.append(encode_bytes_field(4, self.cell_block_compressor_class))
        return b"".join(parts)


@dataclass
class RequestHeader:
    """The header that precedes every RPC request."""

    call_id: int
    method_name: str
    request_param: bool = True
    cell_block_length: int | None = None
    priority: int | None = None

    def encode(self) -> bytes:
        """Serialize the header as a protocol buffer message."""
        parts = [
            encode_varint_field(1, self.call_id),
            encode_bytes_field(3, self.method_name),
            encode_varint_field(4, self.request_param),
        ]
        if self.cell_block_length:
            parts.append(encode_bytes_field(5, encode_varint_field(1, self.cell_block_length)))
        if self.priority is not None and self.priority > 0:
            parts.append(encode_varint_field(6, self.priority))
        return b"".join(parts)


@dataclass
class ResponseHeader:
    """The header that precedes every RPC response."""

    call_id: int | None = None
    exception_class_name: str | None = None
    stack_trace: str | None = None
    cell_block_length: int = 0

    @property
    def has_exception(self) -> bool:
        return self.exception_class_name is not None


def _expect(wire_type: int, expected: int, number: int) -> None:
    if wire_type != expected:
        raise WireError(f"field {number} has unexpected wire type {wire_type}")


def _text(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


def parse_response_header(data: bytes) -> ResponseHeader:
    """Parse a serialized response header."""
    header = ResponseHeader()
    for number, wire_type, value in iter_fields(data):
        if number == 1:
            _expect(wire_type, _VARINT, number)
            header.call_id = value & 0xFFFFFFFF
        elif number == 2:
            _expect(wire_type, _BYTES, number)
            header.exception_class_name = header.exception_class_name or ""
            header.stack_trace = header.stack_trace or ""
            for sub_number, sub_type, sub_value in iter_fields(value):
                if sub_number == 1:
                    _expect(sub_type, _BYTES, sub_number)
                    header.exception_class_name = _text(sub_value)
                elif sub_number == 2:
                    _expect(sub_type, _BYTES, sub_number)
                    header.stack_trace = _text(sub_value)
        elif number == 3:
            _expect(wire_type, _BYTES, number)
            for sub_number, sub_type, sub_value in iter_fields(value):
                if sub_number == 1:
                    _expect(sub_type, _VARINT, sub_number)
                    header.cell_block_length = sub_value & 0xFFFFFFFF
    return header