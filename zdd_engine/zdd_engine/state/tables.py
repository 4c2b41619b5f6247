"""SQLAlchemy 2.0 table definition for the applied-deployments ledger.

The ledger lives in its own schema on PostgreSQL.  SQLite has no schemas,
so engines created for SQLite translate :data:`LEDGER_SCHEMA` to ``None``.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

LEDGER_SCHEMA = "zdd_deployments"
LEDGER_TABLE = "applied_deployments"


def _utcnow() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base for ledger tables."""


class AppliedDeploymentTable(Base):
    """One row per fully applied deployment.  Rows are never updated."""

    __tablename__ = LEDGER_TABLE
    __table_args__ = (
        Index("idx_applied_deployments_applied_at", "applied_at"),
        {"schema": LEDGER_SCHEMA},
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )
    checksum: Mapped[str] = mapped_column(Text, nullable=False, default="")
