"""Idempotent insert-or-update of single rows, keyed on a merge column."""

import logging
from typing import Any, Mapping, Union

from sqlalchemy import Table, bindparam, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class UpsertError(Exception):
    """A row could not be written."""

    def __init__(self, table: str, key_value: Any, message: str):
        self.table = table
        self.key_value = key_value
        super().__init__(f"Upsert into {table} (key={key_value!r}) failed: {message}")


class UnsupportedDialectError(UpsertError):
    """The bound database has no atomic merge statement we know how to build."""
    pass


def _resolve_table(target) -> Table:
    if isinstance(target, Table):
        return target
    return target.__table__


def row_values(table: Table, row: Union[Mapping[str, Any], Any]) -> dict[str, Any]:
    """
    Build a column -> value dict from a mapping or an ORM instance.

    For ORM instances, unset columns that carry a default are left out so the
    insert applies the default.
    """
    if isinstance(row, Mapping):
        unknown = set(row) - set(table.columns.keys())
        if unknown:
            raise ValueError(f"Unknown columns for {table.name}: {sorted(unknown)}")
        return dict(row)

    data = {}
    for col in table.columns:
        value = getattr(row, col.key, None)
        if value is None and col.default is not None:
            continue
        data[col.name] = value
    return data


def _on_conflict_statement(insert_fn, table: Table, data: dict, key: str):
    stmt = insert_fn(table).values(**data)
    updates = {k: stmt.excluded[k] for k in data if k != key}
    if not updates:
        return stmt.on_conflict_do_nothing(index_elements=[key])
    return stmt.on_conflict_do_update(index_elements=[key], set_=updates)


def build_merge_statement(table: Table, data: dict, key: str, dialect):
    """
    Build a T-SQL MERGE ... WITH (HOLDLOCK) statement for one row.

    HOLDLOCK keeps the match range locked so two overlapping merges of the
    same key cannot both take the insert branch.
    """
    preparer = dialect.identifier_preparer
    columns = list(data)
    quoted = {c: preparer.quote(c) for c in columns}
    params = {c: f"p{i}" for i, c in enumerate(columns)}

    source_cols = ", ".join(f":{params[c]} AS {quoted[c]}" for c in columns)
    updates = ", ".join(
        f"target.{quoted[c]} = source.{quoted[c]}" for c in columns if c != key
    )
    insert_cols = ", ".join(quoted[c] for c in columns)
    insert_vals = ", ".join(f"source.{quoted[c]}" for c in columns)

    sql = (
        f"MERGE INTO {preparer.format_table(table)} WITH (HOLDLOCK) AS target "
        f"USING (SELECT {source_cols}) AS source "
        f"ON target.{quoted[key]} = source.{quoted[key]} "
    )
    if updates:
        sql += f"WHEN MATCHED THEN UPDATE SET {updates} "
    sql += f"WHEN NOT MATCHED THEN INSERT ({insert_cols}) VALUES ({insert_vals});"

    binds = [
        bindparam(params[c], value=data[c], type_=table.columns[c].type)
        for c in columns
    ]
    return text(sql).bindparams(*binds)


def build_upsert_statement(table: Table, data: dict, key: str, dialect):
    """Pick the atomic insert-or-update form for the bound dialect."""
    if dialect.name == "sqlite":
        return _on_conflict_statement(sqlite_insert, table, data, key)
    if dialect.name == "postgresql":
        return _on_conflict_statement(pg_insert, table, data, key)
    if dialect.name == "mssql":
        return build_merge_statement(table, data, key, dialect)
    raise UnsupportedDialectError(table.name, data.get(key), f"no upsert support for dialect '{dialect.name}'")


async def upsert_row(
    session: AsyncSession,
    target,
    row: Union[Mapping[str, Any], Any],
    key: str = "id",
    commit: bool = True,
) -> None:
    """
    Insert `row` into `target`, or overwrite every non-key column if a row
    with the same `key` already exists.

    Each call is its own unit of work: the statement is committed on success
    and rolled back on failure. Errors surface as UpsertError, with no retry.

    Args:
        session: Database session
        target: ORM model class or Table
        row: ORM instance or column -> value mapping
        key: Merge key column name
        commit: Commit after the statement (default True)
    """
    table = _resolve_table(target)
    data = row_values(table, row)
    key_value = data.get(key)
    if key_value is None:
        raise UpsertError(table.name, None, f"row has no value for merge key '{key}'")

    dialect = session.get_bind().dialect
    stmt = build_upsert_statement(table, data, key, dialect)

    try:
        await session.execute(stmt)
        if commit:
            await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Upsert into {table.name} failed for {key}={key_value}: {e}")
        raise UpsertError(table.name, key_value, str(e)) from e
