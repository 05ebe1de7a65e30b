"""Dialect-aware SQL helpers — upsert and counter increment."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession


def get_dialect(engine: Engine | AsyncEngine) -> str:
    """Return 'sqlite', 'postgresql', or 'mssql'."""
    # AsyncEngine wraps a sync engine
    sync_engine = getattr(engine, "sync_engine", engine)
    name = sync_engine.dialect.name
    if name == "sqlite":
        return "sqlite"
    if name in ("postgresql", "postgres"):
        return "postgresql"
    if name in ("mssql", "pyodbc"):
        return "mssql"
    return name


async def upsert(
    session: AsyncSession,
    dialect: str,
    model: type,
    values: dict[str, Any],
    conflict_keys: list[str],
    update_keys: list[str] | None = None,
) -> int:
    """Insert *values* into *model*'s table, replacing the conflicting row. Returns rowcount.

    Columns named in *update_keys* (default: every column not in
    *conflict_keys*) are overwritten on conflict; nothing is merged.

    - SQLite/PostgreSQL: INSERT ... ON CONFLICT DO UPDATE
    - MSSQL: MERGE INTO ... WITH (HOLDLOCK)
    """
    if update_keys is None:
        update_keys = [k for k in values if k not in conflict_keys]

    if dialect == "mssql":
        table_name: str = model.__tablename__  # type: ignore[attr-defined]
        update_set = ", ".join(f"target.{k} = :{k}" for k in update_keys)
        return await _merge_mssql(session, table_name, values, conflict_keys, update_set)

    stmt = _insert_for(dialect, model).values(**values)
    update_cols = {k: v for k, v in values.items() if k in update_keys}
    if update_cols:
        stmt = stmt.on_conflict_do_update(index_elements=conflict_keys, set_=update_cols)
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=conflict_keys)

    result = await session.execute(stmt)
    return result.rowcount  # type: ignore[return-value]


async def increment(
    session: AsyncSession,
    dialect: str,
    model: type,
    keys: dict[str, Any],
    counter: str,
) -> int:
    """Create the row identified by *keys* with ``counter = 1`` or add 1 to it.

    The increment is a single statement, so concurrent callers never
    lose an update. Returns rowcount.
    """
    if dialect == "mssql":
        table_name: str = model.__tablename__  # type: ignore[attr-defined]
        values = {**keys, counter: 1}
        update_set = f"target.{counter} = target.{counter} + 1"
        return await _merge_mssql(session, table_name, values, list(keys), update_set)

    column = getattr(model, counter)
    stmt = (
        _insert_for(dialect, model)
        .values(**keys, **{counter: 1})
        .on_conflict_do_update(
            index_elements=list(keys),
            set_={counter: column + 1},
        )
    )
    result = await session.execute(stmt)
    return result.rowcount  # type: ignore[return-value]


def _insert_for(dialect: str, model: type) -> Any:
    """Return a dialect ``insert()`` construct supporting ON CONFLICT."""
    if dialect == "postgresql":
        from sqlalchemy.dialects import postgresql as pg_dialect

        return pg_dialect.insert(model)

    from sqlalchemy.dialects import sqlite as sqlite_dialect

    return sqlite_dialect.insert(model)


async def _merge_mssql(
    session: AsyncSession,
    table_name: str,
    values: dict[str, Any],
    conflict_keys: list[str],
    update_set: str,
) -> int:
    """MSSQL upsert using MERGE INTO ... WITH (HOLDLOCK)."""
    on_clause = " AND ".join(f"target.{k} = source.{k}" for k in conflict_keys)
    insert_cols = ", ".join(values.keys())
    insert_vals = ", ".join(f":{k}" for k in values)

    merge_sql = f"""
        MERGE INTO {table_name} WITH (HOLDLOCK) AS target
        USING (SELECT {", ".join(f":{k} AS {k}" for k in conflict_keys)}) AS source
        ON {on_clause}
        WHEN NOT MATCHED THEN
            INSERT ({insert_cols})
            VALUES ({insert_vals})
    """
    if update_set:
        merge_sql += f"""
        WHEN MATCHED THEN
            UPDATE SET {update_set}
        """
    merge_sql += ";"

    result = await session.execute(text(merge_sql), values)
    return result.rowcount  # type: ignore[return-value]
