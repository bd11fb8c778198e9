"""Hadoop block-stream compression of cellblocks."""

from __future__ import annotations

import io
import struct
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

__all__ = ["Codec", "Compressor", "DecompressionError"]

_UINT32 = struct.Struct(">I")


class Codec(Protocol):
    """A compression codec for cellblock chunks."""

    chunk_len: int
    cell_block_compressor_class: str

    def encode(self, src: bytes) -> bytes:
        """Compress one chunk."""
        ...

    def decode(self, src: bytes) -> bytes:
        """Decompress one chunk."""
        ...


class DecompressionError(ValueError):
    """Compressed cellblocks could not be decoded."""


def _read_exact(stream: io.BytesIO, size: int, context: str) -> bytes:
    data = stream.read(size)
    if len(data) < size:
        raise DecompressionError(f"{context}: short read: want {size} bytes, got {len(data)}")
    return data


def _read_uint32(stream: io.BytesIO, context: str) -> int:
    return _UINT32.unpack(_read_exact(stream, 4, context))[0]


@dataclass
class Compressor:
    """Encodes and decodes cellblocks in the Hadoop block-stream format."""

    codec: Codec

    def compress_cellblocks(self, cellblocks: Iterable[bytes] | None, uncompressed_len: int) -> bytes:
        """Compress cellblocks as one block split into codec-sized chunks."""
        out = bytearray(_UINT32.pack(uncompressed_len))
        chunk_size = min(uncompressed_len, self.codec.chunk_len)
        if chunk_size == 0:
            return bytes(out)
        data = b"".join(cellblocks or ())
        for start in range(0, len(data), chunk_size):
            encoded = self.codec.encode(data[start : start + chunk_size])
            out += _UINT32.pack(len(encoded))
            out += encoded
        return bytes(out)

    def decompress_cellblocks(self, data: bytes | None) -> bytes:
        """Decode a block stream.

        The stream is a sequence of blocks, each an uncompressed length
        followed by length-prefixed compressed chunks that together
        decompress to that length.
        """
        data = bytes(data or b"")
        stream = io.BytesIO(data)
        out = bytearray()
        while stream.tell() < len(data):
            block_len = _read_uint32(stream, "failed to read uncompressed block length")
            so_far = 0
            while so_far < block_len:
                chunk_len = _read_uint32(stream, "failed to read compressed chunk block length")
                chunk = _read_exact(stream, chunk_len, "failed to read compressed chunk")
                try:
                    decoded = self.codec.decode(chunk)
                except Exception as exc:
                    raise DecompressionError(f"failed to decode compressed chunk: {exc}") from exc
                out += decoded
                so_far += len(decoded)
            if so_far > block_len:
                raise DecompressionError(
                    f"uncompressed more than expected: expected {block_len}, got {so_far} so far"
                )
        return bytes(out)