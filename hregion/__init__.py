"""HBase region server building blocks: RPC headers, region metadata, errors and cellblock compression."""

__version__ = "0.1.0"

__all__ = ["compressor", "errors", "info", "wire"]