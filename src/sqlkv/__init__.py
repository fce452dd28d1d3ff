"""sqlkv - An ordered, TTL-aware key-value store on top of SQL backends."""

from sqlkv.backends.cloudflare_d1 import CloudflareD1Backend
from sqlkv.backends.sqlite import SQLiteBackend
from sqlkv.config import BackendConfig, KVConfig, LoggingConfig
from sqlkv.exceptions import (
    BackendError,
    ConfigError,
    InvalidConfigError,
    InvalidKeyError,
    InvalidOptionError,
    KVError,
)
from sqlkv.keys import (
    Key,
    KeyPart,
    decode_key,
    encode_key,
    encode_prefix,
    encode_prefix_pattern,
)
from sqlkv.observability import (
    LogLevel,
    OperationContext,
    StructuredLogger,
    Timer,
    configure_logging,
    emit_counter,
    emit_metric,
    emit_timer,
    get_logger,
    register_metric_callback,
)
from sqlkv.protocols import KVBackend, Row
from sqlkv.queries import NEVER, SortOrder, SortTrait
from sqlkv.store import KV, KVResult, now_seconds

__version__ = "0.1.0"
__all__ = [
    # Core
    "KV",
    "KVResult",
    "Key",
    "KeyPart",
    "NEVER",
    "SortOrder",
    "SortTrait",
    "decode_key",
    "encode_key",
    "encode_prefix",
    "encode_prefix_pattern",
    "now_seconds",
    # Backends
    "CloudflareD1Backend",
    "KVBackend",
    "Row",
    "SQLiteBackend",
    # Configuration
    "BackendConfig",
    "KVConfig",
    "LoggingConfig",
    # Errors
    "BackendError",
    "ConfigError",
    "InvalidConfigError",
    "InvalidKeyError",
    "InvalidOptionError",
    "KVError",
    # Observability
    "LogLevel",
    "OperationContext",
    "StructuredLogger",
    "Timer",
    "configure_logging",
    "emit_counter",
    "emit_metric",
    "emit_timer",
    "get_logger",
    "register_metric_callback",
]
