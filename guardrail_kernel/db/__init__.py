"""Database layer - engine, base classes and session scope for the period store."""

from guardrail_kernel.db.base import Base, TrackedBase, UUIDString
from guardrail_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "Base",
    "TrackedBase",
    "UUIDString",
]
