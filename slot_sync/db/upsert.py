"""
Atomic conditional insert (INSERT ... ON CONFLICT DO NOTHING) for find-or-create rows.

Read-then-write is racy when two cadences reconcile at once; these helpers let the
database arbitrate and then re-read the winner.
"""
from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def insert_ignore_conflict(db: Session, model: Any, index_elements: list[str], **values: Any) -> None:
    """Insert one row unless a row with the same index_elements already exists (first writer wins)."""
    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Conditional insert not supported for dialect {dialect!r}")
    stmt = insert(model).values(**values).on_conflict_do_nothing(index_elements=index_elements)
    db.execute(stmt)
