"""Ledger persistence on async SQLAlchemy."""

from zdd_engine.state.database import get_engine, normalize_url
from zdd_engine.state.provider import SQLAlchemyDatabaseProvider
from zdd_engine.state.tables import LEDGER_SCHEMA, LEDGER_TABLE, AppliedDeploymentTable, Base

__all__ = [
    "LEDGER_SCHEMA",
    "LEDGER_TABLE",
    "AppliedDeploymentTable",
    "Base",
    "SQLAlchemyDatabaseProvider",
    "get_engine",
    "normalize_url",
]
