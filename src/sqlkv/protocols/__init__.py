"""Protocol interfaces for pluggable backends."""

from sqlkv.protocols.backend import KVBackend, Row

__all__ = [
    "KVBackend",
    "Row",
]
