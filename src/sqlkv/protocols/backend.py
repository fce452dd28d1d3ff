"""Backend protocol for SQL engines that store the key-value table."""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class Row:
    """Result row with attribute-style column access."""

    _data: dict[str, Any] = field(repr=False)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            return object.__getattribute__(self, name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"Row has no column '{name}'") from None

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> list[str]:
        """Return column names."""
        return list(self._data.keys())

    def values(self) -> list[Any]:
        """Return column values."""
        return list(self._data.values())

    def to_dict(self) -> dict[str, Any]:
        """Convert row to dictionary."""
        return dict(self._data)


@runtime_checkable
class KVBackend(Protocol):
    """Protocol for SQL backends (SQLite, Cloudflare D1).

    Statements use ``?`` placeholders bound positionally. Every method must
    raise :class:`sqlkv.exceptions.BackendError` when the driver fails.
    """

    async def first(self, query: str, *params: Any) -> Row | None:
        """Execute a query expected to return at most one row."""
        ...

    async def all(self, query: str, *params: Any) -> list[Row]:
        """Execute a query and return every row."""
        ...

    async def run(self, query: str, *params: Any) -> None:
        """Execute a mutating statement."""
        ...
