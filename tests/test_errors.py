import pytest

from hregion.errors import (
    ClientClosedError,
    MissingCallIDError,
    NotServingRegionError,
    RetryableError,
    ServerError,
    exception_to_error,
)


def test_server_error_message():
    assert str(ServerError("oops")) == "ServerError: oops"


def test_server_error_without_cause():
    assert str(ServerError()) == "ServerError"


def test_wrapped_exception_cause():
    err = RetryableError(ValueError("bad"))
    assert str(err) == "RetryableError: bad"
    assert isinstance(err.cause, ValueError)


def test_client_closed_is_server_error():
    err = ClientClosedError()
    assert isinstance(err, ServerError)
    assert str(err) == "ClientClosedError: client is closed"


def test_missing_call_id_message():
    err = MissingCallIDError()
    assert isinstance(err, ServerError)
    assert str(err) == "MissingCallIDError: got a response with a nonsensical call ID"


@pytest.mark.parametrize(
    "class_name, stack, kind, message",
    [
        (
            "java.io.IOException",
            "ooops",
            RuntimeError,
            "HBase Java exception java.io.IOException:\nooops",
        ),
        (
            "java.io.IOException",
            "Cannot append; log is closed\nblahblah",
            NotServingRegionError,
            "HBase Java exception java.io.IOException:\n"
            "Cannot append; log is closed\nblahblah",
        ),
        (
            "org.apache.hadoop.hbase.CallQueueTooBigException",
            "blahblah",
            RetryableError,
            "HBase Java exception org.apache.hadoop.hbase.CallQueueTooBigException:\n"
            "blahblah",
        ),
    ],
)
def test_exception_to_error(class_name, stack, kind, message):
    err = exception_to_error(class_name, stack)
    assert type(err) is kind
    if kind is RuntimeError:
        assert str(err) == message
    else:
        assert err.cause == message


def test_exception_to_error_server():
    err = exception_to_error(
        "org.apache.hadoop.hbase.regionserver.RegionServerAbortedException", "ooops"
    )
    assert type(err) is ServerError
    assert str(err) == (
        "ServerError: HBase Java exception "
        "org.apache.hadoop.hbase.regionserver.RegionServerAbortedException:\nooops"
    )


def test_exception_to_error_not_serving_region():
    err = exception_to_error("org.apache.hadoop.hbase.NotServingRegionException", "YOLO")
    assert type(err) is NotServingRegionError
    assert err.cause == (
        "HBase Java exception org.apache.hadoop.hbase.NotServingRegionException:\nYOLO"
    )