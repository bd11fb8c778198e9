import pytest

from hregion.wire import (
    ConnectionHeader,
    RequestHeader,
    WireError,
    consume_length_prefixed,
    decode_varint,
    encode_bytes_field,
    encode_varint,
    encode_varint_field,
    iter_fields,
    parse_response_header,
    size_varint,
)

CODEC = b"org.apache.hadoop.hbase.codec.KeyValueCodec"


def test_connection_header_region_client():
    header = ConnectionHeader(effective_user="root", service_name="ClientService")
    assert header.encode() == b"\n\x06\n\x04root\x12\rClientService\x1a+" + CODEC


def test_connection_header_master_client():
    header = ConnectionHeader(effective_user="root", service_name="MasterService")
    assert header.encode() == b"\n\x06\n\x04root\x12\rMasterService\x1a+" + CODEC


def test_connection_header_with_compressor():
    header = ConnectionHeader(
        effective_user="root",
        service_name="ClientService",
        cell_block_compressor_class="mock",
    )
    encoded = header.encode()
    assert encoded == b"\n\x06\n\x04root\x12\rClientService\x1a+" + CODEC + b'"\x04mock'
    assert len(encoded) == 0x4A


def test_request_header_with_cellblocks():
    header = RequestHeader(call_id=1, method_name="Mutate", cell_block_length=58)
    assert header.encode() == b"\x08\x01\x1a\x06Mutate \x01*\x02\x08:"


def test_request_header_priority():
    header = RequestHeader(call_id=2, method_name="Get", priority=5)
    assert header.encode() == b"\x08\x02\x1a\x03Get \x01\x30\x05"


def test_request_header_zero_priority_omitted():
    header = RequestHeader(call_id=2, method_name="Get", priority=0)
    assert header.encode() == b"\x08\x02\x1a\x03Get \x01"


@pytest.mark.parametrize(
    "value, encoded",
    [(0, b"\x00"), (1, b"\x01"), (127, b"\x7f"), (128, b"\x80\x01"), (300, b"\xac\x02")],
)
def test_encode_varint(value, encoded):
    assert encode_varint(value) == encoded
    assert size_varint(value) == len(encoded)
    assert decode_varint(encoded, 0) == (value, len(encoded))


def test_size_varint_large():
    assert size_varint(2**63) == 10
    assert len(encode_varint(2**64 - 1)) == 10


def test_varint_round_trip_offset():
    data = b"xx" + encode_varint(123456789)
    assert decode_varint(data, 2) == (123456789, len(data))


def test_encode_negative_varint_rejected():
    with pytest.raises(ValueError):
        encode_varint(-1)


def test_decode_truncated_varint():
    with pytest.raises(WireError):
        decode_varint(b"\x80", 0)


def test_decode_overlong_varint():
    with pytest.raises(WireError):
        decode_varint(b"\xff" * 11, 0)


def test_iter_fields():
    data = encode_varint_field(1, 150) + encode_bytes_field(2, "hi")
    assert data == b"\x08\x96\x01\x12\x02hi"
    assert list(iter_fields(data)) == [(1, 0, 150), (2, 2, b"hi")]


def test_iter_fields_fixed():
    data = b"\x0d\x01\x02\x03\x04" + b"\x11" + bytes(range(8))
    assert list(iter_fields(data)) == [(1, 5, b"\x01\x02\x03\x04"), (2, 1, bytes(range(8)))]


@pytest.mark.parametrize("data", [b"\x0b", b"\x00\x00", b"\x12\x05ab", b"\x0d\x01"])
def test_iter_fields_malformed(data):
    with pytest.raises(WireError):
        list(iter_fields(data))


def test_consume_length_prefixed():
    payload, consumed = consume_length_prefixed(b"\x03abcrest")
    assert payload == b"abc"
    assert consumed == 4


def test_consume_length_prefixed_short():
    with pytest.raises(WireError):
        consume_length_prefixed(b"\x05ab")


def test_parse_response_header_cellblocks():
    header = parse_response_header(bytes([8, 1, 26, 2, 8, 38]))
    assert header.call_id == 1
    assert header.cell_block_length == 38
    assert not header.has_exception


def test_parse_response_header_exception():
    exception = encode_bytes_field(
        1, "org.apache.hadoop.hbase.regionserver.RegionServerAbortedException"
    ) + encode_bytes_field(2, "ooops")
    data = encode_varint_field(1, 1) + encode_bytes_field(2, exception)
    header = parse_response_header(data)
    assert header.call_id == 1
    assert header.has_exception
    assert header.exception_class_name == (
        "org.apache.hadoop.hbase.regionserver.RegionServerAbortedException"
    )
    assert header.stack_trace == "ooops"
    assert header.cell_block_length == 0


def test_parse_response_header_without_call_id():
    header = parse_response_header(b"")
    assert header.call_id is None


def test_parse_response_header_wrong_wire_type():
    with pytest.raises(WireError):
        parse_response_header(b"\x0a\x00")