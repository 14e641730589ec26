"""Database sync, sanitize hook, and post-sync execution.

Provides the sql-sync pipeline (``validate_sync``, ``sql_sync``,
``run_sync``), the sanitize hook (``collect_sanitize_operations``), and
executors for the SQL it registers.

Usage:
    from drupal_sync.sql import run_sync, SyncOptions
    from drupal_sync.sql import collect_sanitize_operations, apply_operations
"""

from drupal_sync.sql.executor import (
    EngineQueryExecutor,
    QueryExecutor,
    RunnerQueryExecutor,
    apply_operations,
)
from drupal_sync.sql.models import (
    PostSyncOperation,
    PostSyncQueue,
    SyncJob,
    SyncOptions,
    SyncResult,
    SyncValidation,
)
from drupal_sync.sql.sanitize import (
    collect_sanitize_operations,
    drupal_password_hash,
    get_dialect,
    resolve_settings,
)
from drupal_sync.sql.sync import (
    resolve_temp_dir,
    run_sync,
    sanitize_site,
    sql_sync,
    validate_sync,
)

__all__ = [
    "EngineQueryExecutor",
    "QueryExecutor",
    "RunnerQueryExecutor",
    "apply_operations",
    "PostSyncOperation",
    "PostSyncQueue",
    "SyncJob",
    "SyncOptions",
    "SyncResult",
    "SyncValidation",
    "collect_sanitize_operations",
    "drupal_password_hash",
    "get_dialect",
    "resolve_settings",
    "resolve_temp_dir",
    "run_sync",
    "sanitize_site",
    "sql_sync",
    "validate_sync",
]
