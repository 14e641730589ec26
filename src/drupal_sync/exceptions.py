"""Exceptions raised by alias resolution, validation, and the sync pipeline.

Every error carries a ``kind`` string so result models can report it
without holding on to the exception object.
"""


class DrupalSyncError(Exception):
    """Base class for all drupal-sync errors."""

    kind = "error"


class AliasNotFoundError(DrupalSyncError):
    """Raised when a site alias is not defined in the alias file."""

    kind = "alias-not-found"

    def __init__(self, alias: str, side: str = "", available: list[str] | None = None) -> None:
        self.alias = alias
        self.side = side
        self.available = available or []
        label = f"{side.capitalize()} alias" if side else "Alias"
        message = f"{label} '@{alias}' not found."
        if self.available:
            message += f" Available: {', '.join(self.available)}"
        super().__init__(message)


class DatabaseNotFoundError(DrupalSyncError):
    """Raised when an alias resolves but carries no database record."""

    kind = "database-not-found"

    def __init__(self, alias: str, side: str = "") -> None:
        self.alias = alias
        self.side = side
        label = f"{side} alias" if side else "alias"
        super().__init__(
            f"No database record found for {label} '@{alias}'. "
            f"Add a db_url or a [aliases.{alias}.database] table."
        )


class SameDatabaseError(DrupalSyncError):
    """Raised when source and destination point at the same database."""

    kind = "same-database"

    def __init__(self, source: str, destination: str) -> None:
        self.source = source
        self.destination = destination
        super().__init__(
            f"Source '@{source}' and destination '@{destination}' resolve to the "
            "same database; please select different source and destination aliases."
        )


class CommandError(DrupalSyncError):
    """Raised when a drush command cannot be started at all."""

    kind = "command-error"


class StepFailedError(DrupalSyncError):
    """Raised when one step of the sync pipeline fails."""

    kind = "step-failed"

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(message)


class ExtensionError(DrupalSyncError):
    """Raised when a module/theme command fails on the site."""

    kind = "extension-error"


class QueryError(DrupalSyncError):
    """Raised when an SQL statement fails on the target database."""

    kind = "query-failed"
