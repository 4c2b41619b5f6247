"""SQLAlchemy implementation of the :class:`DatabaseProvider` capability."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from types import TracebackType

from sqlalchemy import inspect, insert, select
from sqlalchemy.engine import Connection, Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.schema import CreateSchema

from zdd_engine.errors import DatabaseError
from zdd_engine.models.deployment import AppliedDeploymentRecord, Deployment
from zdd_engine.parser.sql_text import split_statements
from zdd_engine.state.database import get_engine
from zdd_engine.state.tables import LEDGER_SCHEMA, LEDGER_TABLE, AppliedDeploymentTable, Base, _utcnow

logger = logging.getLogger(__name__)

_SYSTEM_SCHEMAS = frozenset({"information_schema", "pg_catalog", "pg_toast"})


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive timestamps.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _to_record(row: Row) -> AppliedDeploymentRecord:
    return AppliedDeploymentRecord(
        id=row.id,
        name=row.name,
        applied_at=_as_utc(row.applied_at),
        checksum=row.checksum or "",
    )


class SQLAlchemyDatabaseProvider:
    """Ledger storage and SQL execution on an async SQLAlchemy engine.

    Usable as an async context manager; the engine is disposed on exit.

    Parameters
    ----------
    engine:
        A configured engine, normally from :func:`~zdd_engine.state.database.get_engine`.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @classmethod
    def from_url(
        cls,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 5,
    ) -> SQLAlchemyDatabaseProvider:
        """Build a provider on a new engine; pool options apply to PostgreSQL only."""
        return cls(get_engine(database_url, pool_size=pool_size, max_overflow=max_overflow))

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def is_sqlite(self) -> bool:
        return self._engine.dialect.name == "sqlite"

    async def __aenter__(self) -> SQLAlchemyDatabaseProvider:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    async def init_schema(self) -> None:
        """Create the ledger schema, table and index if absent."""
        try:
            async with self._engine.begin() as conn:
                if not self.is_sqlite:
                    await conn.execute(CreateSchema(LEDGER_SCHEMA, if_not_exists=True))
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            raise DatabaseError(f"Failed to initialize ledger schema: {exc}") from exc
        logger.debug("Ledger schema ready")

    async def get_applied_deployments(self) -> list[AppliedDeploymentRecord]:
        """Return all ledger rows ordered by ``applied_at`` then ``id``."""
        stmt = select(AppliedDeploymentTable).order_by(
            AppliedDeploymentTable.applied_at,
            AppliedDeploymentTable.id,
        )
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to read applied deployments: {exc}") from exc
        return [_to_record(row) for row in rows]

    async def get_last_applied_deployment(self) -> AppliedDeploymentRecord | None:
        """Return the most recently applied ledger row, or ``None``."""
        stmt = (
            select(AppliedDeploymentTable)
            .order_by(AppliedDeploymentTable.applied_at.desc(), AppliedDeploymentTable.id.desc())
            .limit(1)
        )
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                row = result.first()
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to read last applied deployment: {exc}") from exc
        return _to_record(row) if row is not None else None

    async def record_deployment(self, deployment: Deployment, checksum: str) -> None:
        """Insert the ledger row for *deployment*."""
        stmt = insert(AppliedDeploymentTable).values(
            id=deployment.id,
            name=deployment.name,
            applied_at=_utcnow(),
            checksum=checksum,
        )
        try:
            async with self._engine.begin() as conn:
                await conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to record deployment {deployment.id}: {exc}") from exc

    # ------------------------------------------------------------------
    # SQL execution
    # ------------------------------------------------------------------

    async def execute_sql_in_transaction(self, *sql: str) -> None:
        """Run every statement of every batch in one transaction.

        Statements are sent through ``exec_driver_sql`` so their text reaches
        the driver unmodified.

        Raises
        ------
        DatabaseError
            On the first failing statement; the transaction is rolled back.
        """
        statements = [stmt for batch in sql for stmt in split_statements(batch)]
        if not statements:
            logger.debug("No statements to execute")
            return

        try:
            async with self._engine.begin() as conn:
                for statement in statements:
                    logger.debug("Executing statement: %s", statement)
                    await conn.exec_driver_sql(statement)
        except SQLAlchemyError as exc:
            detail = getattr(exc, "orig", None) or exc
            raise DatabaseError(f"SQL execution failed: {detail}") from exc

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    async def dump_schema(self, include_ledger: bool = True) -> str:
        """Describe every user table and its columns, one line per column.

        Parameters
        ----------
        include_ledger:
            When ``False``, the ledger table is left out.
        """

        def _describe(sync_conn: Connection) -> str:
            inspector = inspect(sync_conn)
            if self.is_sqlite:
                schemas: list[str | None] = [None]
            else:
                schemas = [
                    name
                    for name in inspector.get_schema_names()
                    if name not in _SYSTEM_SCHEMAS and not name.startswith("pg_")
                ]

            lines: list[str] = []
            for schema in sorted(schemas, key=lambda s: s or ""):
                for table in sorted(inspector.get_table_names(schema=schema)):
                    is_ledger = table == LEDGER_TABLE and schema in (None, LEDGER_SCHEMA)
                    if is_ledger and not include_ledger:
                        continue
                    qualified = f"{schema}.{table}" if schema else table
                    lines.append(f"TABLE {qualified}")
                    for column in inspector.get_columns(table, schema=schema):
                        col_type = column["type"].compile(dialect=sync_conn.dialect)
                        nullable = "" if column.get("nullable", True) else " NOT NULL"
                        lines.append(f"  {column['name']} {col_type}{nullable}")
            return "\n".join(lines)

        try:
            async with self._engine.connect() as conn:
                return await conn.run_sync(_describe)
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to dump schema: {exc}") from exc

    def connection_url(self) -> str:
        """Return the URL without the async driver suffix, password included."""
        url = self._engine.url
        return url.set(drivername=url.get_backend_name()).render_as_string(hide_password=False)

    async def close(self) -> None:
        await self._engine.dispose()
