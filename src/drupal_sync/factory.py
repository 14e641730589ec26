"""Alias resolution and runner/engine factory.

Resolves alias names from aliases.toml to ``SiteAlias`` records and their
``DatabaseSpec``, and builds the collaborators the pipeline needs
(a ``DrushRunner`` and, for direct SQL execution, a SQLAlchemy URL).
"""

from sqlalchemy.engine import URL

from drupal_sync.config.models import AliasConfig, DatabaseSpec, SiteAlias
from drupal_sync.exceptions import AliasNotFoundError, DatabaseNotFoundError
from drupal_sync.runner.drush import DrushRunner

# Drupal driver -> async SQLAlchemy dialect+driver
_ASYNC_DRIVERS = {
    "mysql": "mysql+aiomysql",
    "pgsql": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}

_LOCAL_HOSTS = {None, "", "localhost", "127.0.0.1", "::1"}

_DEFAULT_PORTS = {"mysql": 3306, "pgsql": 5432}


# ============================================================================
# Alias Resolution
# ============================================================================


def normalize_alias_name(name: str) -> str:
    """Strip the leading ``@`` drush users type in front of alias names."""
    return name[1:] if name.startswith("@") else name


def resolve_alias(config: AliasConfig, name: str, side: str = "") -> SiteAlias:
    """Look up an alias by name.

    Args:
        config: Loaded alias configuration
        name: Alias name, with or without a leading ``@``
        side: ``"source"``/``"destination"``, used in error messages

    Raises:
        AliasNotFoundError: If the alias is not defined
    """
    key = normalize_alias_name(name)
    if key not in config.aliases:
        raise AliasNotFoundError(key, side=side, available=list(config.aliases.keys()))
    return config.aliases[key]


def get_db_spec(alias: SiteAlias, side: str = "") -> DatabaseSpec:
    """Return the alias's database record.

    Raises:
        DatabaseNotFoundError: If the alias has no database configured
    """
    if alias.database is None or not alias.database.database:
        raise DatabaseNotFoundError(alias.name, side=side)
    return alias.database


def db_identity(alias: SiteAlias) -> tuple[str, int | None, str]:
    """Identify the physical database an alias points at.

    Returns ``(server, port, database)``.  A remote database host is its
    own server, whichever web host reaches it.  A loopback host (or a
    sqlite file) lives on the alias's own machine, so the alias host is
    used instead.  A missing port means the driver's default.
    """
    spec = get_db_spec(alias)
    if spec.driver == "sqlite" or spec.host in _LOCAL_HOSTS:
        server = alias.host or "localhost"
    else:
        server = spec.host
    port = spec.port if spec.port is not None else _DEFAULT_PORTS.get(spec.driver)
    return (server.lower(), port, spec.database)


# ============================================================================
# Collaborator Factory
# ============================================================================


def resolve_url(spec: DatabaseSpec) -> URL:
    """Build an async SQLAlchemy URL for a database record.

    Example:
        >>> resolve_url(DatabaseSpec(driver="pgsql", database="d", host="h"))
        postgresql+asyncpg://h/d
    """
    if spec.driver == "sqlite":
        return URL.create(_ASYNC_DRIVERS["sqlite"], database=spec.database)
    return URL.create(
        _ASYNC_DRIVERS[spec.driver],
        username=spec.username,
        password=spec.password,
        host=spec.host,
        port=spec.port,
        database=spec.database,
    )


def get_runner(config: AliasConfig, simulate: bool = False, cwd: str | None = None) -> DrushRunner:
    """Create the drush runner configured by the alias file."""
    return DrushRunner(drush=config.drush, simulate=simulate, cwd=cwd)
