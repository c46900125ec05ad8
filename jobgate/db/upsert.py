"""
Insert-if-absent for rows guarded by a unique index.

Used to create ledger rows (usage counters, credit balances, the lazily
provisioned free subscription) without a read-then-insert race and without
committing the caller's transaction.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session


def insert_ignore(
    db: Session,
    model: Any,
    values: Dict[str, Any],
    index_elements: List[str],
    index_where: Optional[Any] = None,
) -> None:
    """
    INSERT ... ON CONFLICT DO NOTHING.

    Postgres and SQLite get a single statement; other dialects fall back to
    a savepoint around a plain insert.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        insert = None

    if insert is not None:
        stmt = insert(model.__table__).values(**values).on_conflict_do_nothing(
            index_elements=index_elements,
            index_where=index_where,
        )
        db.execute(stmt)
        return

    try:
        with db.begin_nested():
            db.add(model(**values))
    except IntegrityError:
        pass
