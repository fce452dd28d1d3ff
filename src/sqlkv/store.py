"""Ordered, TTL-aware key-value store on top of a SQL backend.

Every record lives in one table addressed by its encoded composite key.
Expired records stay in the table until a reap runs: before each point
lookup a weighted coin is flipped and, when it lands, every expired record
is deleted. Reads filter expired records on their own, so reaping only
bounds table growth.

The ``nx`` and ``get`` modifiers read the record and then write it in a
separate statement. Concurrent writers can interleave between the two, so
``nx`` does not guarantee exclusivity and the previous value returned by
``get`` may be stale relative to the final write order. ``list`` paginates
by offset and may skip or repeat records when the table changes between
pages.
"""

import json
import random
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlkv.config import KVConfig
from sqlkv.exceptions import InvalidConfigError, InvalidOptionError
from sqlkv.keys import (
    Key,
    KeyPart,
    decode_key,
    encode_key,
    encode_prefix,
    encode_prefix_pattern,
)
from sqlkv.observability import (
    OperationContext,
    Timer,
    configure_logging,
    emit_counter,
    emit_timer,
    get_logger,
)
from sqlkv.plugins import create_backend
from sqlkv.protocols.backend import KVBackend, Row
from sqlkv.queries import (
    NEVER,
    SortOrder,
    SortTrait,
    create_table_statements,
    sql_clear_expired,
    sql_del,
    sql_get,
    sql_list,
    sql_set,
    validate_table_name,
)

logger = get_logger(__name__)


def now_seconds() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


@dataclass
class KVResult:
    """Outcome of a store operation.

    ``key`` is always set. The remaining fields are only set when a live
    record existed; use ``found`` to tell a missing record apart from a
    record whose value is ``None``.
    """

    key: list[KeyPart]
    value: Any = None
    created_at: int | None = None
    updated_at: int | None = None
    expires_at: int | None = None

    @property
    def found(self) -> bool:
        """Whether a live record backed this result."""
        return self.created_at is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, leaving out fields of a missing record."""
        if not self.found:
            return {"key": self.key}
        return {
            "key": self.key,
            "value": self.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "expires_at": self.expires_at,
        }


def _to_result(encoded_key: str, row: Row | None) -> KVResult:
    if row is None:
        return KVResult(key=decode_key(encoded_key))
    return KVResult(
        key=decode_key(encoded_key),
        value=json.loads(row.value),
        created_at=row.created_at,
        updated_at=row.updated_at,
        expires_at=row.expires_at,
    )


def _check_ex(ex: int | None, conditional: bool) -> None:
    if ex is None:
        return
    if isinstance(ex, bool) or not isinstance(ex, int):
        raise InvalidOptionError(f"ex must be an integer number of seconds, got {ex!r}")
    if conditional and ex <= 0:
        raise InvalidOptionError("ex must be greater than 0")
    if ex < 0:
        raise InvalidOptionError("ex must not be negative")


def _check_page(limit: int, offset: int) -> None:
    for name, value in (("limit", limit), ("offset", offset)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidOptionError(f"{name} must be a non-negative integer, got {value!r}")


class KV:
    """Key-value store backed by one SQL table.

    Example:
        backend = SQLiteBackend(path=":memory:")
        kv = KV("kv", backend)
        await kv.migrate()
        await kv.set(["users", 42], {"name": "Ada"}, ex=3600)
        result = await kv.get(["users", 42])
    """

    def __init__(
        self,
        table_name: str,
        backend: KVBackend,
        clear_expired_threshold: float = 0.1,
        time_provider: Callable[[], int] = now_seconds,
        random_source: Callable[[], float] = random.random,
    ) -> None:
        """Initialize the store.

        Args:
            table_name: Table holding the records (trusted, not user input)
            backend: SQL backend executing the statements
            clear_expired_threshold: Probability in [0, 1] that a lookup
                first deletes every expired record
            time_provider: Returns the current unix time in seconds
            random_source: Returns a float in [0, 1) for the reap coin flip

        Raises:
            InvalidConfigError: If the table name or threshold is invalid
        """
        if isinstance(clear_expired_threshold, bool) or not isinstance(
            clear_expired_threshold, (int, float)
        ):
            raise InvalidConfigError("clear_expired_threshold must be a number")
        if not 0 <= clear_expired_threshold <= 1:
            raise InvalidConfigError(
                f"clear_expired_threshold must be between 0 and 1, but was {clear_expired_threshold}"
            )

        self.table_name = validate_table_name(table_name)
        self.backend = backend
        self.clear_expired_threshold = clear_expired_threshold
        self.time_provider = time_provider
        self.random_source = random_source

    @classmethod
    def from_config(cls, config: KVConfig, backend: KVBackend | None = None) -> "KV":
        """Create a store from configuration.

        Args:
            config: Store configuration
            backend: Backend to use instead of the configured one
        """
        if backend is None:
            backend = create_backend(config.backend.backend, **config.backend.backend_kwargs())
        return cls(
            config.table_name,
            backend,
            clear_expired_threshold=config.clear_expired_threshold,
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "KV":
        """Create a store from a YAML or JSON configuration file.

        Also configures the ``sqlkv`` loggers from the file's logging section.
        """
        config = KVConfig.from_file(path)
        configure_logging(config.logging.level, config.logging.format)
        return cls.from_config(config)

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        """Bind log context and time the wrapped store call."""
        with OperationContext(self.table_name, name):
            status = "ok"
            timer = Timer()
            try:
                with timer:
                    yield
            except Exception:
                status = "error"
                raise
            finally:
                emit_timer(
                    "sqlkv.operation.duration_ms",
                    timer.duration_ms,
                    {"status": status},
                )

    async def migrate(self, drop_existing: bool = False) -> None:
        """Create the table and its indexes if they do not exist."""
        with self._operation("migrate"):
            for statement in create_table_statements(self.table_name, drop_existing):
                await self.backend.run(statement)
            logger.info("Table ready", context={"drop_existing": drop_existing})

    async def get(self, key: Key) -> KVResult:
        """Get the live record stored under ``key``."""
        with self._operation("get"):
            return await self._get(key)

    async def set(
        self,
        key: Key,
        value: Any,
        *,
        ex: int | None = None,
        nx: bool = False,
        get: bool = False,
    ) -> KVResult:
        """Store ``value`` under ``key``.

        Args:
            key: Composite key
            value: JSON-serializable value
            ex: Seconds until the record expires; without it the record
                never expires, even if an earlier write set an expiry
            nx: Only write if no live record exists
            get: Return the record as it was before this call

        Returns:
            The previous record when ``get`` is set, otherwise a result
            carrying only the key.

        Raises:
            InvalidOptionError: If ``ex`` is not positive while ``nx`` or
                ``get`` is set, or negative otherwise
        """
        with self._operation("set"):
            if nx or get:
                _check_ex(ex, conditional=True)
                stored = await self._get(key)
                if not nx or not stored.found:
                    await self._set(key, value, ex)
                if get:
                    return stored
                return KVResult(key=stored.key)

            _check_ex(ex, conditional=False)
            encoded = await self._set(key, value, ex)
            return KVResult(key=decode_key(encoded))

    async def delete(self, key: Key, *, get: bool = False) -> KVResult:
        """Delete the record stored under ``key``.

        Args:
            key: Composite key
            get: Return the record as it was before deletion

        Returns:
            The deleted record when ``get`` is set, otherwise a result
            carrying only the key. Deleting a missing key is not an error.
        """
        with self._operation("delete"):
            if get:
                stored = await self._get(key)
                await self._delete(key)
                return stored
            encoded = await self._delete(key)
            return KVResult(key=decode_key(encoded))

    async def clear_expired(self) -> None:
        """Delete every expired record now, regardless of the threshold."""
        with self._operation("clear_expired"):
            await self._clear_expired()

    async def _get(self, key: Key) -> KVResult:
        encoded = encode_key(key)
        await self._maybe_clear_expired()
        row = await self.backend.first(sql_get(self.table_name), encoded, self.time_provider())
        return _to_result(encoded, row)

    async def _set(self, key: Key, value: Any, ex: int | None) -> str:
        encoded = encode_key(key)
        serialized = json.dumps(value, ensure_ascii=False)
        ts = self.time_provider()
        expires_at = ts + ex if ex else NEVER
        await self.backend.run(
            sql_set(self.table_name),
            encoded,
            serialized,
            ts,
            ts,
            expires_at,
            serialized,
            ts,
            expires_at,
        )
        return encoded

    async def _delete(self, key: Key) -> str:
        encoded = encode_key(key)
        await self.backend.run(sql_del(self.table_name), encoded)
        return encoded

    async def _maybe_clear_expired(self) -> None:
        if self.random_source() < self.clear_expired_threshold:
            await self._clear_expired()

    async def _clear_expired(self) -> None:
        now = self.time_provider()
        await self.backend.run(sql_clear_expired(self.table_name), now)
        emit_counter("sqlkv.reap")
        logger.debug("Cleared expired records", context={"now": now})

    # Defined last: the method name shadows the builtin in the class body.
    async def list(
        self,
        prefix: Key,
        *,
        limit: int,
        offset: int = 0,
        sort_trait: SortTrait = "key",
        order: SortOrder = "asc",
    ) -> list[KVResult]:
        """List live records whose key extends ``prefix``.

        Keys compare as their encoded strings, so ``sort_trait="key"`` puts
        ``[..., 10]`` before ``[..., 2]``. Never reaps.

        Args:
            prefix: Non-empty partial key; matches keys with more parts only
            limit: Maximum number of records to return
            offset: Number of matching records to skip
            sort_trait: Column to order by (key, created_at, updated_at)
            order: Sort direction (asc, desc)

        Returns:
            Matching records, empty when nothing matches
        """
        with self._operation("list"):
            _check_page(limit, offset)
            query = sql_list(self.table_name, sort_trait, order)
            pattern = encode_prefix_pattern(prefix)
            raw_prefix = encode_prefix(prefix)
            rows = await self.backend.all(
                query,
                pattern,
                raw_prefix,
                raw_prefix,
                self.time_provider(),
                limit,
                offset,
            )
            return [_to_result(row.key, row) for row in rows]
