"""
Database Helper Utilities for Concurrency Control

Provides:
- Database dialect detection (PostgreSQL vs SQLite)
- Row locking helpers
- Conditional insert guarded by a count subquery
"""

import logging
from typing import Optional, TypeVar, Type, Dict, Any
from sqlalchemy.orm import Session
from sqlalchemy import insert, select, literal

logger = logging.getLogger(__name__)

T = TypeVar('T')


def is_postgres(db: Session) -> bool:
    """Check if the database is PostgreSQL"""
    try:
        dialect = db.bind.dialect.name
        return dialect == 'postgresql'
    except Exception:
        return False


def is_sqlite(db: Session) -> bool:
    """Check if the database is SQLite"""
    try:
        dialect = db.bind.dialect.name
        return dialect == 'sqlite'
    except Exception:
        return True  # Default to SQLite for safety


def acquire_row_lock(
    db: Session,
    model: Type[T],
    filter_condition,
    nowait: bool = False,
    skip_locked: bool = False
) -> Optional[T]:
    """
    Acquire a row-level lock on a database record.

    Args:
        db: Database session
        model: SQLAlchemy model class
        filter_condition: Filter to find the row
        nowait: If True, raise error immediately if lock unavailable (PostgreSQL only)
        skip_locked: If True, skip locked rows (PostgreSQL only)

    Returns:
        The locked model instance, or None if not found

    Example:
        room = acquire_row_lock(db, Room, Room.id == room_id)
    """
    query = db.query(model).filter(filter_condition)

    # Only apply locking on PostgreSQL
    if is_postgres(db):
        if skip_locked:
            query = query.with_for_update(skip_locked=True)
        elif nowait:
            query = query.with_for_update(nowait=True)
        else:
            query = query.with_for_update()

    return query.first()


def conditional_insert(
    db: Session,
    model: Type[T],
    values: Dict[str, Any],
    guard,
) -> None:
    """
    Insert one row only if `guard` holds, as a single statement:

        INSERT INTO <table> (...) SELECT :v1, :v2, ... WHERE <guard>

    The guard is evaluated by the database inside the INSERT, so there is
    no gap between reading the guard's inputs and writing the row. Callers
    detect the outcome by looking the row up by primary key afterwards.

    Example:
        conditional_insert(db, Reservation, record, overlapping_count < capacity)
    """
    table = model.__table__
    columns = list(values.keys())
    source = select(
        *[literal(values[name], type_=table.c[name].type).label(name) for name in columns]
    ).where(guard)

    db.execute(insert(table).from_select(columns, source, include_defaults=False))
