"""Executors for post-sync SQL operations.

Two ways to run the statements the sanitize hook registers:

- ``RunnerQueryExecutor`` sends each statement through
  ``drush @alias sql:query``, so it works for remote sites drush can reach.
- ``EngineQueryExecutor`` connects directly with an async SQLAlchemy engine
  (``asyncpg``, ``aiomysql`` or ``aiosqlite``), for databases reachable
  from this machine.

Usage:
    from drupal_sync.sql.executor import RunnerQueryExecutor, apply_operations

    executor = RunnerQueryExecutor(runner, alias)
    await apply_operations(queue.drain(), executor)
"""

import logging
from typing import Any, Protocol

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from drupal_sync.config.models import SiteAlias
from drupal_sync.exceptions import CommandError, QueryError, StepFailedError
from drupal_sync.runner.base import CommandRunner
from drupal_sync.sql.models import STEP_SANITIZE, PostSyncOperation

logger = logging.getLogger(__name__)


class QueryExecutor(Protocol):
    """Runs one SQL statement against the destination database."""

    async def execute(self, sql: str) -> None:
        """Execute ``sql``.

        Raises:
            QueryError: If the statement fails.
        """
        ...

    async def close(self) -> None:
        """Release any connections held by the executor."""
        ...


class RunnerQueryExecutor:
    """Executes statements with ``drush sql:query`` on the alias."""

    def __init__(self, runner: CommandRunner, alias: SiteAlias) -> None:
        self.runner = runner
        self.alias = alias

    async def execute(self, sql: str) -> None:
        try:
            result = await self.runner.invoke(self.alias.name, "sql:query", args=[sql])
        except CommandError as e:
            raise QueryError(f"sql:query failed on @{self.alias.name}: {e}") from e
        if not result.ok:
            raise QueryError(
                f"sql:query failed on @{self.alias.name}: {result.error_message()}"
            )

    async def close(self) -> None:
        return None


class EngineQueryExecutor:
    """Executes statements over a direct async SQLAlchemy connection.

    Args:
        url: Async SQLAlchemy URL (see ``drupal_sync.factory.resolve_url``).
        **engine_kwargs: Forwarded to ``create_async_engine``.
    """

    def __init__(self, url: URL | str, **engine_kwargs: Any) -> None:
        defaults: dict[str, Any] = {"pool_pre_ping": True, "echo": False}
        self._engine: AsyncEngine = create_async_engine(url, **{**defaults, **engine_kwargs})

    async def execute(self, sql: str) -> None:
        """Run one statement in its own transaction (commit on success)."""
        try:
            async with self._engine.begin() as conn:
                await conn.execute(text(sql))
        except SQLAlchemyError as e:
            raise QueryError(f"Query failed: {e}") from e

    async def close(self) -> None:
        """Dispose of the connection pool."""
        await self._engine.dispose()


async def apply_operations(
    operations: list[PostSyncOperation],
    executor: QueryExecutor,
) -> list[PostSyncOperation]:
    """Execute post-sync operations in order, stopping at the first failure.

    Returns:
        The operations that were executed.

    Raises:
        StepFailedError: Tagged ``sql-sanitize``, naming the failed operation.
    """
    done: list[PostSyncOperation] = []
    for operation in operations:
        logger.info("%s", operation.description)
        logger.debug("SQL: %s", operation.sql)
        try:
            await executor.execute(operation.sql)
        except QueryError as e:
            raise StepFailedError(
                STEP_SANITIZE, f"Post-sync operation '{operation.id}' failed: {e}"
            ) from e
        done.append(operation)
    return done
