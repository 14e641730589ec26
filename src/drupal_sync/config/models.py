"""Pydantic models for site alias configuration."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


DriverName = Literal["mysql", "pgsql", "sqlite"]


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseSpec(BaseModel):
    """Database connection descriptor for a site alias."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    driver: DriverName = "mysql"
    database: str
    username: str | None = None
    password: str | None = None
    host: str | None = None
    port: int | None = None
    prefix: str = ""  # Drupal table prefix, applied to every sanitize table


class SanitizeSettings(BaseModel):
    """Sanitize options, from the alias file or the command line.

    ``"no"`` disables the password or email operation.  A ``None`` password
    means a random one is generated.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    password: str | None = None
    email: str = "user+%uid@localhost.localdomain"
    hash_format: Literal["drupal", "md5"] = "drupal"
    user_table: str = "users"
    sessions_table: str = "sessions"

    def merged(self, **overrides: object) -> "SanitizeSettings":
        """Return a copy with every non-``None`` override applied."""
        updates = {k: v for k, v in overrides.items() if v is not None}
        return self.model_copy(update=updates)


class SiteAlias(BaseModel):
    """A resolved site alias from aliases.toml."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    host: str | None = None  # None for a site on this machine
    user: str | None = None
    root: str | None = None
    uri: str | None = None
    description: str = ""
    temp_dir: str | None = None
    database: DatabaseSpec | None = None
    sanitize: SanitizeSettings | None = None

    @property
    def is_remote(self) -> bool:
        return self.host is not None

    @property
    def target(self) -> str:
        """Alias reference as drush expects it (``@name``)."""
        return f"@{self.name}"


class AliasConfig(BaseModel):
    """Complete alias configuration from aliases.toml."""

    aliases: dict[str, SiteAlias] = Field(default_factory=dict)
    sanitize: SanitizeSettings = Field(default_factory=SanitizeSettings)
    drush: str = "drush"
