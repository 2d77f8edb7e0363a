"""
Dialect helpers for conflict-aware inserts.

PostgreSQL runs production; SQLite backs the test-suite. Both support
``INSERT ... ON CONFLICT DO NOTHING`` through their dialect-specific
``insert`` constructs.
"""
from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def dialect_name(session: AsyncSession) -> str:
    return session.get_bind().dialect.name


def insert_or_do_nothing(session: AsyncSession, model: Any, index_elements: Iterable[str]):
    """Build ``INSERT ... ON CONFLICT (index_elements) DO NOTHING`` for the session's dialect."""
    name = dialect_name(session)
    if name == "postgresql":
        stmt = postgresql.insert(model)
    elif name == "sqlite":
        stmt = sqlite.insert(model)
    else:
        raise NotImplementedError(f"ON CONFLICT DO NOTHING is not supported on {name}")
    return stmt.on_conflict_do_nothing(index_elements=list(index_elements))
