"""SQL statement templates for the key-value table.

Table names are trusted configuration and are interpolated directly.
Sort traits and orders are structural too, so they are checked against
their enumerations before substitution instead of being bound.
"""

from typing import Literal, get_args

from sqlkv.exceptions import InvalidConfigError, InvalidOptionError

SortTrait = Literal["key", "created_at", "updated_at"]
SortOrder = Literal["asc", "desc"]

SORT_TRAITS: tuple[str, ...] = get_args(SortTrait)
SORT_ORDERS: tuple[str, ...] = get_args(SortOrder)

# expires_at value for records that never expire
NEVER = -1


def validate_table_name(table_name: str) -> str:
    """Check that a table name can be safely double-quoted."""
    if not isinstance(table_name, str) or not table_name:
        raise InvalidConfigError("Table name must be a non-empty string")
    if '"' in table_name or "\x00" in table_name:
        raise InvalidConfigError(f"Table name contains forbidden characters: {table_name!r}")
    return table_name


def validate_sort(trait: str, order: str) -> tuple[str, str]:
    """Check sort trait and order against their allowed values."""
    if trait not in SORT_TRAITS:
        raise InvalidOptionError(
            f"Sort trait must be one of {', '.join(SORT_TRAITS)}, got {trait!r}"
        )
    if order not in SORT_ORDERS:
        raise InvalidOptionError(
            f"Sort order must be one of {', '.join(SORT_ORDERS)}, got {order!r}"
        )
    return trait, order


def sql_get(table_name: str) -> str:
    """Select one live record. Params: key, now."""
    return (
        f'select * from "{table_name}" where "key" = ? '
        f'and ("expires_at" = {NEVER} or "expires_at" > ?)'
    )


def sql_set(table_name: str) -> str:
    """Insert or update a record.

    Params: key, value, created_at, updated_at, expires_at, then value,
    updated_at, expires_at again for the conflict branch. ``created_at`` is
    only written on insert.
    """
    return (
        f'insert into "{table_name}" ("key", "value", "created_at", "updated_at", "expires_at") '
        "values (?, ?, ?, ?, ?) "
        'on conflict ("key") do update set "value" = ?, "updated_at" = ?, "expires_at" = ?'
    )


def sql_del(table_name: str) -> str:
    """Delete one record. Params: key."""
    return f'delete from "{table_name}" where "key" = ?'


def sql_list(table_name: str, trait: str = "key", order: str = "asc") -> str:
    """Select live records by key prefix.

    Params: pattern, prefix, prefix, now, limit, offset. ``LIKE`` ignores
    ASCII case in SQLite, so the raw prefix is also compared byte for byte.
    """
    trait, order = validate_sort(trait, order)
    return (
        f'select * from "{table_name}" where "key" like ? escape \'\\\' '
        'and substr("key", 1, length(?)) = ? '
        f'and ("expires_at" = {NEVER} or "expires_at" > ?) '
        f'order by "{trait}" {order} limit ? offset ?'
    )


def sql_clear_expired(table_name: str) -> str:
    """Delete every expired record. Params: now."""
    return f'delete from "{table_name}" where "expires_at" != {NEVER} and "expires_at" < ?'


def create_table_statements(table_name: str, drop_existing: bool = False) -> list[str]:
    """DDL for the key-value table and its secondary indexes."""
    validate_table_name(table_name)
    statements = []
    if drop_existing:
        statements.append(f'drop table if exists "{table_name}"')
    statements.append(
        f'create table if not exists "{table_name}" ('
        '"key" text not null primary key, '
        '"value" text not null, '
        '"created_at" integer not null, '
        '"updated_at" integer not null, '
        '"expires_at" integer not null)'
    )
    for column in ("created_at", "updated_at", "expires_at"):
        statements.append(
            f'create index if not exists "{table_name}_{column}_idx" '
            f'on "{table_name}" ("{column}")'
        )
    return statements
