"""Backend discovery via Python entry points."""

from importlib.metadata import entry_points
from typing import Any

from sqlkv.backends.cloudflare_d1 import CloudflareD1Backend
from sqlkv.backends.sqlite import SQLiteBackend
from sqlkv.exceptions import ConfigError
from sqlkv.protocols import KVBackend

BACKEND_GROUP = "sqlkv.backends"

BUILTIN_BACKENDS: dict[str, Any] = {
    "sqlite": SQLiteBackend,
    "cloudflare_d1": CloudflareD1Backend,
}


def discover_backends() -> dict[str, Any]:
    """Discover all available backends.

    Returns:
        Dictionary mapping backend names to their classes. Entry points
        registered under ``sqlkv.backends`` override built-in names.
    """
    backends = dict(BUILTIN_BACKENDS)
    for ep in entry_points(group=BACKEND_GROUP):
        backends[ep.name] = ep.load()
    return backends


def get_backend(name: str) -> Any:
    """Get a backend class by name.

    Raises:
        ConfigError: If the backend is not found
    """
    backends = discover_backends()
    if name not in backends:
        available = ", ".join(sorted(backends.keys())) or "(none)"
        raise ConfigError(f"Backend '{name}' not found. Available: {available}")
    return backends[name]


def create_backend(name: str, **kwargs: Any) -> KVBackend:
    """Create a backend instance.

    Args:
        name: The backend name (e.g., "sqlite", "cloudflare_d1")
        **kwargs: Backend-specific configuration

    Returns:
        A KVBackend implementation
    """
    cls = get_backend(name)
    try:
        return cls(**kwargs)
    except ValueError as e:
        raise ConfigError(str(e)) from e
