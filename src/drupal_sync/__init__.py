"""drupal-sync: copy and sanitize Drupal databases between site aliases.

Orchestrates drush on the source and destination sites (dump, rsync,
import, sanitize) and offers a version-agnostic surface over a site's
extensions and hooks.

Usage:
    from drupal_sync import run_sync, SyncOptions, DrushRunner, load_alias_config
    from drupal_sync import collect_sanitize_operations, ExtensionShim
"""

__version__ = "0.1.0"

# Config
from drupal_sync.config.loader import load_alias_config
from drupal_sync.config.models import AliasConfig, DatabaseSpec, SanitizeSettings, SiteAlias

# Errors
from drupal_sync.exceptions import (
    AliasNotFoundError,
    DatabaseNotFoundError,
    DrupalSyncError,
    SameDatabaseError,
    StepFailedError,
)

# Factory
from drupal_sync.factory import get_runner, resolve_alias, resolve_url

# Runners
from drupal_sync.runner import CommandResult, CommandRunner, DrushRunner

# Sync
from drupal_sync.sql import (
    PostSyncQueue,
    SyncOptions,
    SyncResult,
    collect_sanitize_operations,
    run_sync,
    sql_sync,
    validate_sync,
)

# Extension shim
from drupal_sync.extensions import ExtensionShim

__all__ = [
    # Config
    "load_alias_config",
    "AliasConfig",
    "DatabaseSpec",
    "SanitizeSettings",
    "SiteAlias",
    # Errors
    "DrupalSyncError",
    "AliasNotFoundError",
    "DatabaseNotFoundError",
    "SameDatabaseError",
    "StepFailedError",
    # Factory
    "get_runner",
    "resolve_alias",
    "resolve_url",
    # Runners
    "CommandResult",
    "CommandRunner",
    "DrushRunner",
    # Sync
    "PostSyncQueue",
    "SyncOptions",
    "SyncResult",
    "collect_sanitize_operations",
    "run_sync",
    "sql_sync",
    "validate_sync",
    # Extension shim
    "ExtensionShim",
]
