"""Descriptions of regions and parsing of rows from the meta table."""

from __future__ import annotations

import json
import struct
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from hregion.wire import WireError, iter_fields

__all__ = [
    "Cell",
    "OfflineRegionError",
    "RegionInfoError",
    "RegionInfo",
    "info_from_cell",
    "parse_region_info",
    "compare",
]

_DEFAULT_NAMESPACE = b"default"
_PBUF_MAGIC = 1346524486  # b"PBUF"
_COMMA = ord(",")

_VARINT = 0
_BYTES = 2

_SIMPLE_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    '"': '\\"',
    "\\": "\\\\",
}


def _utf8_length(lead: int) -> int:
    if 0xC2 <= lead <= 0xDF:
        return 2
    if 0xE0 <= lead <= 0xEF:
        return 3
    if 0xF0 <= lead <= 0xF4:
        return 4
    return 0


def _escape_rune(ch: str, ascii_only: bool) -> str:
    if ch in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[ch]
    code = ord(ch)
    if code < 0x80 and ch.isprintable():
        return ch
    if not ascii_only and ch.isprintable():
        return ch
    if code < 0x20 or code == 0x7F:
        return f"\\x{code:02x}"
    if code < 0x10000:
        return f"\\u{code:04x}"
    return f"\\U{code:08x}"


def _quote(data: bytes | None, ascii_only: bool = False) -> str:
    """Quote bytes as a double-quoted string with escapes for unprintable runes."""
    raw = bytes(data or b"")
    parts = ['"']
    pos = 0
    while pos < len(raw):
        lead = raw[pos]
        if lead < 0x80:
            parts.append(_escape_rune(chr(lead), ascii_only))
            pos += 1
            continue
        size = _utf8_length(lead)
        try:
            ch = raw[pos : pos + size].decode("utf-8") if size else ""
        except UnicodeDecodeError:
            ch = ""
        if len(ch) != 1:
            parts.append(f"\\x{lead:02x}")
            pos += 1
            continue
        parts.append(_escape_rune(ch, ascii_only))
        pos += size
    parts.append('"')
    return "".join(parts)


@dataclass
class Cell:
    """A single cell of a row."""

    row: bytes = b""
    family: bytes = b""
    qualifier: bytes = b""
    value: bytes = b""
    timestamp: int | None = None
    cell_type: int | None = None


class RegionInfoError(ValueError):
    """A region description could not be parsed or compared."""


class OfflineRegionError(RegionInfoError):
    """The region described in meta is offline."""

    def __init__(self, name: str) -> None:
        super().__init__(f"region {name} is offline")
        self.name = name


@dataclass(eq=False)
class RegionInfo:
    """Describes a region of a table and tracks its availability."""

    id: int
    namespace: bytes
    table: bytes
    name: bytes
    start_key: bytes
    stop_key: bytes
    client: Any = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _available: threading.Event | None = field(default=None, init=False, repr=False)
    _dead: threading.Event = field(default_factory=threading.Event, init=False, repr=False)

    def __post_init__(self) -> None:
        self.namespace = bytes(self.namespace or b"")
        self.table = bytes(self.table or b"")
        self.name = bytes(self.name or b"")
        self.start_key = bytes(self.start_key or b"")
        self.stop_key = bytes(self.stop_key or b"")

    def is_unavailable(self) -> bool:
        """Return True if the region has been marked unavailable."""
        with self._lock:
            return self._available is not None

    def availability_event(self) -> threading.Event | None:
        """Return the event set when the region becomes available again, or None."""
        with self._lock:
            return self._available

    def mark_unavailable(self) -> bool:
        """Mark the region unavailable; return True if it was available before."""
        with self._lock:
            if self._available is None:
                self._available = threading.Event()
                return True
            return False

    def mark_available(self) -> None:
        """Mark the region available again and wake everyone waiting on it."""
        with self._lock:
            event = self._available
            if event is None:
                raise RuntimeError("region is not marked unavailable")
            self._available = None
            event.set()

    def mark_dead(self) -> None:
        """Mark the region as no longer useful."""
        self._dead.set()

    def is_dead(self) -> bool:
        """Return True if the region has been marked dead."""
        return self._dead.is_set()

    def __str__(self) -> str:
        return (
            f"RegionInfo{{Name: {_quote(self.name)}, ID: {self.id}, "
            f"Namespace: {_quote(self.namespace)}, Table: {_quote(self.table)}, "
            f"StartKey: {_quote(self.start_key)}, StopKey: {_quote(self.stop_key)}}}"
        )

    def to_json(self) -> str:
        """Return a JSON description of the region's state."""
        client = self.client
        state = {
            "Id": self.id,
            "Namespace": _quote(self.namespace, ascii_only=True),
            "Table": _quote(self.table, ascii_only=True),
            "Name": _quote(self.name, ascii_only=True),
            "StartKey": _quote(self.start_key, ascii_only=True),
            "StopKey": _quote(self.stop_key, ascii_only=True),
            "ContextInstance": hex(id(self._dead)),
            "Err": "context canceled" if self.is_dead() else "<nil>",
            "ClientPtr": hex(id(client)) if client is not None else "0x0",
            "Client": str(client) if client is not None else "",
            "Available": not self.is_unavailable(),
        }
        return json.dumps(state)


def _expect(wire_type: int, expected: int, number: int) -> None:
    if wire_type != expected:
        raise WireError(f"field {number} has unexpected wire type {wire_type}")


def _decode_table_name(data: bytes) -> tuple[bytes, bytes]:
    namespace: bytes | None = None
    qualifier: bytes | None = None
    for number, wire_type, value in iter_fields(data):
        if number == 1:
            _expect(wire_type, _BYTES, number)
            namespace = value
        elif number == 2:
            _expect(wire_type, _BYTES, number)
            qualifier = value
    if namespace is None or qualifier is None:
        raise WireError("required field of table name not set")
    return namespace, qualifier


def _decode_region_info(data: bytes) -> dict[str, Any]:
    decoded: dict[str, Any] = {"start_key": b"", "end_key": b"", "offline": False}
    for number, wire_type, value in iter_fields(data):
        if number == 1:
            _expect(wire_type, _VARINT, number)
            decoded["region_id"] = value
        elif number == 2:
            _expect(wire_type, _BYTES, number)
            decoded["table_name"] = _decode_table_name(value)
        elif number == 3:
            _expect(wire_type, _BYTES, number)
            decoded["start_key"] = value
        elif number == 4:
            _expect(wire_type, _BYTES, number)
            decoded["end_key"] = value
        elif number == 5:
            _expect(wire_type, _VARINT, number)
            decoded["offline"] = value != 0
    if "region_id" not in decoded or "table_name" not in decoded:
        raise WireError("required field of region info not set")
    return decoded


def info_from_cell(cell: Cell) -> RegionInfo:
    """Build a region description from a 'regioninfo' cell of the meta table."""
    value = bytes(cell.value or b"")
    if not value:
        raise RegionInfoError(f"empty value in {cell!r}")
    if value[0] != ord("P"):
        raise RegionInfoError(f"unsupported region info version {value[0]} in {cell!r}")
    if len(value) < 4 or struct.unpack(">I", value[:4])[0] != _PBUF_MAGIC:
        raise RegionInfoError(f"invalid magic number in {cell!r}")
    try:
        decoded = _decode_region_info(value[4:])
    except WireError as exc:
        raise RegionInfoError(f"failed to decode {cell!r}: {exc}") from exc
    row = bytes(cell.row or b"")
    if decoded["offline"]:
        raise OfflineRegionError(row.decode("utf-8", errors="replace"))
    namespace, qualifier = decoded["table_name"]
    if namespace == _DEFAULT_NAMESPACE:
        namespace = b""
    return RegionInfo(
        decoded["region_id"],
        namespace,
        qualifier,
        row,
        decoded["start_key"],
        decoded["end_key"],
    )


def parse_region_info(cells: Iterable[Cell]) -> tuple[RegionInfo, str]:
    """Parse a meta row into its region description and server address."""
    cells = list(cells)
    region: RegionInfo | None = None
    addr = ""
    for cell in cells:
        qualifier = bytes(cell.qualifier or b"")
        if qualifier == b"regioninfo":
            region = info_from_cell(cell)
        elif qualifier == b"server":
            value = bytes(cell.value or b"")
            if value:  # empty while the region is not served
                addr = value.decode("utf-8", errors="replace")
    if region is None:
        raise RegionInfoError(f"meta seems to be broken, there was no region in {cells!r}")
    if not addr:
        raise RegionInfoError(f"meta doesn't have a server location in {cells!r}")
    return region, addr


def _last_comma(name: bytes, offset: int) -> int:
    index = name.rfind(b",", offset + 1)
    if index < 0:
        raise RegionInfoError(f"no comma found in {_quote(name)} after offset {offset}")
    return index


def compare(a: bytes, b: bytes) -> int:
    """Compare two region names of the form table,start_key,timestamp.

    Plain byte comparison misorders the first region of a table, whose start
    key is empty, so table names, keys and start codes are compared apart.
    """
    a = bytes(a)
    b = bytes(b)
    length = min(len(a), len(b))
    i = length
    for index, (ai, bi) in enumerate(zip(a, b)):
        if ai != bi:
            if ai == _COMMA:
                return -1001
            if bi == _COMMA:
                return 1001
            return ai - bi
        if ai == _COMMA:
            i = index
            break

    a_comma = _last_comma(a, i)
    b_comma = _last_comma(b, i)
    i += 1

    first_comma = min(a_comma, b_comma)
    for ai, bi in zip(a[i:first_comma], b[i:first_comma]):
        if ai != bi:
            return ai - bi
    if a_comma < b_comma:
        return -1002
    if b_comma < a_comma:
        return 1002

    for ai, bi in zip(a[first_comma:length], b[first_comma:length]):
        if ai != bi:
            return ai - bi
    return len(a) - len(b)