# hregion

Pure-Python building blocks for talking to HBase region servers: encoding
and decoding of the RPC headers, parsing of region rows from `hbase:meta`,
the ordering of region names that meta uses, and the Hadoop block stream
format for compressed cellblocks. It has no dependencies beyond the
standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

### `hregion.wire`

Protocol buffer helpers and the headers of the RPC protocol.

- `encode_varint(value)`, `decode_varint(data, pos)` and `size_varint(value)`
  work with base-128 varints. `decode_varint` returns the value and the
  position after it.
- `encode_varint_field(number, value)` and `encode_bytes_field(number, value)`
  encode single fields; strings are encoded as UTF-8.
- `iter_fields(data)` yields `(field number, wire type, value)` for each field
  of a message.
- `consume_length_prefixed(data)` reads a varint-length-prefixed payload and
  returns it together with the number of bytes consumed.
- `ConnectionHeader(effective_user, service_name, ...)` and
  `RequestHeader(call_id, method_name, ...)` serialize with `.encode()`.
  The connection header names the `KeyValueCodec` cellblock codec by default
  and may carry a cellblock compressor class. The request header carries the
  cellblock length and the priority only when they are positive.
- `parse_response_header(data)` returns a `ResponseHeader` with the call ID,
  the exception class name and stack trace, if any, and the cellblock length.
- Malformed data raises `WireError`, a `ValueError`.

### `hregion.info`

- `Cell` holds a row, family, qualifier, value, timestamp and cell type.
- `info_from_cell(cell)` builds a `RegionInfo` from a `regioninfo` cell of
  the meta table (a value starting with the `PBUF` magic). The `default`
  namespace is reported as an empty namespace. An offline region raises
  `OfflineRegionError`; any other problem raises `RegionInfoError`.
- `parse_region_info(cells)` returns `(RegionInfo, "host:port")` from the cells
  of a meta row, and raises `RegionInfoError` if the row lacks the region or
  the server location.
- `RegionInfo` keeps the region's ID, namespace, table, name and start and
  stop keys, plus an optional `client`. It tracks availability with
  `mark_unavailable()`, `mark_available()`, `is_unavailable()` and
  `availability_event()`, which returns a `threading.Event` that is set when
  the region becomes available again. `mark_dead()` and `is_dead()` flag a
  region that is no longer useful. `to_json()` describes its state.
- `compare(a, b)` orders region names of the form
  `table,start_key,timestamp` so that the first region of a table, whose start
  key is empty, sorts correctly. It returns a negative, zero or positive
  integer, and raises `RegionInfoError` for a name without the expected commas.

### `hregion.compressor`

`Compressor(codec)` wraps any object that follows the `Codec` protocol:
a `chunk_len` attribute, a `cell_block_compressor_class` name, and
`encode(src)` / `decode(src)` methods for one chunk.

- `compress_cellblocks(cellblocks, uncompressed_len)` writes one block: the
  uncompressed length, followed by length-prefixed compressed chunks of at most
  `chunk_len` bytes each.
- `decompress_cellblocks(data)` reads any number of such blocks and returns the
  uncompressed bytes. Short or inconsistent input raises `DecompressionError`.

### `hregion.errors`

- `ServerError`: the connection cannot recover and must be closed.
  `ClientClosedError` and `MissingCallIDError` are kinds of it.
- `RetryableError`: back off and resend to the same region.
- `NotServingRegionError`: look the region up again and retry, possibly on
  another server.
- `exception_to_error(class_name, stack)` maps a Java exception reported by the
  server to one of these. Exceptions it does not recognise become a plain
  `RuntimeError`.

## Example

```python
from hregion.compressor import Compressor
from hregion.info import compare
from hregion.wire import ConnectionHeader, RequestHeader


class IdentityCodec:
    chunk_len = 10
    cell_block_compressor_class = "identity"

    def encode(self, src):
        return bytes(src)

    def decode(self, src):
        return bytes(src)


compressor = Compressor(IdentityCodec())
packed = compressor.compress_cellblocks([b"123", b"456", b"789"], 9)
assert packed == b"\x00\x00\x00\t\x00\x00\x00\t123456789"
assert compressor.decompress_cellblocks(packed) == b"123456789"

hello = ConnectionHeader(effective_user="root", service_name="ClientService").encode()
request = RequestHeader(call_id=1, method_name="Get").encode()

assert compare(b"table,foo,1234567890", b"table,,1234567890") > 0
```

## What this package does not do

It does not open connections to region servers, send or receive RPCs,
queue or batch calls, or retry anything. It provides the encodings, the
region metadata and the error classification that such a client needs; the
networking and scheduling are left to the code that uses it.