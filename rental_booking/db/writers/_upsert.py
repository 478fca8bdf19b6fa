"""
Dialect-aware upsert helper.

PostgreSQL and SQLite both support ``INSERT ... ON CONFLICT DO UPDATE`` but
through different SQLAlchemy insert constructs; this picks the right one for
the connection so writers work against production Postgres and the SQLite
databases used in development and tests.
"""

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection


def upsert_rows(
    conn: Connection,
    table: type,
    rows: list[dict[str, Any]],
    conflict_column: str,
    update_columns: list[str],
) -> None:
    """
    Insert rows, updating ``update_columns`` when ``conflict_column`` already exists.

    Only rows whose values actually differ are rewritten, so ``updated_at``
    does not move on no-op upserts.

    Args:
        conn: Active database connection (within transaction)
        table: SQLAlchemy ORM table class (e.g., Item)
        rows: List of row dicts to upsert
        conflict_column: Column name for ON CONFLICT (usually "id")
        update_columns: Columns to overwrite on conflict

    Raises:
        NotImplementedError: For dialects other than postgresql and sqlite
    """
    if not rows:
        return

    dialect = conn.dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(table).values(rows)
    elif dialect == "sqlite":
        stmt = sqlite.insert(table).values(rows)
    else:
        raise NotImplementedError(f"Upsert not supported for dialect {dialect}")

    changed = None
    for col in update_columns:
        check = getattr(table, col).is_distinct_from(getattr(stmt.excluded, col))
        changed = check if changed is None else changed | check

    set_dict = {col: getattr(stmt.excluded, col) for col in update_columns}
    if hasattr(table, "updated_at"):
        set_dict["updated_at"] = getattr(stmt.excluded, "updated_at")

    stmt = stmt.on_conflict_do_update(
        index_elements=[conflict_column],
        set_=set_dict,
        where=changed,
    )
    conn.execute(stmt)
