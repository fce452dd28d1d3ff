"""Composite key encoding.

Keys are ordered sequences of scalar parts. They are stored as compact JSON
arrays, so the binary collation of the encoded string defines the ``key``
sort order and a truncated encoding works as a ``LIKE`` prefix pattern.
"""

import json
import math
from collections.abc import Sequence

from sqlkv.exceptions import InvalidKeyError

KeyPart = str | int | float | bool
Key = Sequence[KeyPart]

LIKE_ESCAPE = "\\"


def _check_part(part: object) -> None:
    # bool is a subclass of int, so it passes the numeric check as well
    if isinstance(part, float) and not math.isfinite(part):
        raise InvalidKeyError(f"Key part must be a finite number, got {part!r}")
    if not isinstance(part, (str, int, float)):
        raise InvalidKeyError(
            f"Key part must be str, int, float or bool, got {type(part).__name__}"
        )


def _normalize_part(part: KeyPart) -> KeyPart:
    # 1.0 == 1 in Python, so both must encode to the same string
    if isinstance(part, float) and part.is_integer():
        return int(part)
    return part


def encode_key(key: Key) -> str:
    """Serialize a key into its stored form.

    Integral floats are written as integers, so keys that compare equal
    (``["a", 1]`` and ``["a", 1.0]``) address the same record.

    Raises:
        InvalidKeyError: If the key is empty or holds an unsupported part
    """
    if isinstance(key, (str, bytes)) or not isinstance(key, Sequence):
        raise InvalidKeyError(f"Key must be a sequence of parts, got {type(key).__name__}")
    if len(key) == 0:
        raise InvalidKeyError("Key must not be empty")
    for part in key:
        _check_part(part)
    parts = [_normalize_part(part) for part in key]
    return json.dumps(parts, separators=(",", ":"), ensure_ascii=False)


def encode_prefix(key: Key) -> str:
    """Encoded partial key with its closing bracket replaced by a comma.

    Every key that extends ``key`` by at least one part starts with this
    string, so ``["foo"]`` gives ``["foo",`` which matches ``["foo","bar"]``
    but not ``["foo"]`` itself or ``["foobar"]``.
    """
    return encode_key(key)[:-1] + ","


def escape_like(text: str) -> str:
    """Escape LIKE metacharacters so they match literally."""
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def encode_prefix_pattern(key: Key) -> str:
    """Build a LIKE pattern matching every key that extends ``key``.

    The closing bracket of the encoded partial key is replaced with ``,%``.
    SQLite's ``LIKE`` ignores ASCII case, so the list statement pairs this
    pattern with an exact comparison against :func:`encode_prefix`.
    """
    return escape_like(encode_prefix(key)) + "%"


def decode_key(encoded: str) -> list[KeyPart]:
    """Inverse of :func:`encode_key`."""
    try:
        parts = json.loads(encoded)
    except (TypeError, ValueError) as e:
        raise InvalidKeyError(f"Stored key is not valid JSON: {encoded!r}") from e

    if not isinstance(parts, list) or not parts:
        raise InvalidKeyError(f"Stored key is not a non-empty array: {encoded!r}")
    for part in parts:
        _check_part(part)
    return parts
