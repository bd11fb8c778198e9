"""Errors raised and delivered by the region client."""

from __future__ import annotations

__all__ = [
    "ServerError",
    "RetryableError",
    "NotServingRegionError",
    "ClientClosedError",
    "MissingCallIDError",
    "exception_to_error",
]

# Java exceptions after which the region must be looked up again and the RPC
# resent, possibly through another region client. The value must appear in the
# stack trace for the mapping to apply.
_REGION_EXCEPTIONS: dict[str, str] = {
    "org.apache.hadoop.hbase.NotServingRegionException": "",
    "org.apache.hadoop.hbase.exceptions.RegionMovedException": "",
    "java.io.IOException": "Cannot append; log is closed",
}

# Java exceptions after which the RPC should be resent to the same region
# server after a backoff.
_RETRYABLE_EXCEPTIONS: dict[str, str] = {
    "org.apache.hadoop.hbase.CallQueueTooBigException": "",
    "org.apache.hadoop.hbase.exceptions.RegionOpeningException": "",
    "org.apache.hadoop.hbase.ipc.ServerNotRunningYetException": "",
    "org.apache.hadoop.hbase.quotas.RpcThrottlingException": "",
    "org.apache.hadoop.hbase.RetryImmediatelyException": "",
    "org.apache.hadoop.hbase.RegionTooBusyException": "",
}

# Java exceptions after which the region client must be closed and a new one
# established.
_SERVER_EXCEPTIONS: dict[str, str] = {
    "org.apache.hadoop.hbase.regionserver.RegionServerAbortedException": "",
    "org.apache.hadoop.hbase.regionserver.RegionServerStoppedException": "",
}


class _WrappedError(Exception):
    """An error that wraps an optional cause and prefixes it with its kind."""

    def __init__(self, cause: object = None) -> None:
        if cause is None:
            super().__init__()
        else:
            super().__init__(cause)
        self.cause = cause

    def __str__(self) -> str:
        name = type(self).__name__
        if self.cause is None:
            return name
        return f"{name}: {self.cause}"


class ServerError(_WrappedError):
    """An error the region client cannot recover from; the connection must close."""


class RetryableError(_WrappedError):
    """A transient error: the RPC should be retried after a backoff."""


class NotServingRegionError(_WrappedError):
    """The region must be looked up again and the RPC retried."""


class ClientClosedError(ServerError):
    """The region client has been closed or has died."""

    def __init__(self, cause: object = "client is closed") -> None:
        super().__init__(cause)


class MissingCallIDError(ServerError):
    """The server sent a response that carries no call ID."""

    def __init__(self, cause: object = "got a response with a nonsensical call ID") -> None:
        super().__init__(cause)


def _matches(table: dict[str, str], class_name: str, stack: str) -> bool:
    needle = table.get(class_name)
    return needle is not None and needle in stack


def exception_to_error(class_name: str, stack: str) -> Exception:
    """Map a Java exception reported by the server to the error to deliver."""
    message = f"HBase Java exception {class_name}:\n{stack}"
    if _matches(_RETRYABLE_EXCEPTIONS, class_name, stack):
        return RetryableError(message)
    if _matches(_REGION_EXCEPTIONS, class_name, stack):
        return NotServingRegionError(message)
    if _matches(_SERVER_EXCEPTIONS, class_name, stack):
        return ServerError(message)
    return RuntimeError(message)