"""SQLAlchemy adapter package for load-run persistence."""

from __future__ import annotations

from .mappings import create_all_tables, load_error_table, load_run_table, mapper_registry
from .repositories import SqlAlchemyLoadRunRepository
from .unit_of_work import SqlAlchemyLoadRunUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyLoadRunRepository",
    "SqlAlchemyLoadRunUnitOfWork",
    "StartupError",
    "create_all_tables",
    "load_error_table",
    "load_run_table",
    "mapper_registry",
    "shutdown",
    "startup",
]
