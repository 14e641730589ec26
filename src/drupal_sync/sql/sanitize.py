"""Sanitize hook: registers SQL that scrubs sensitive data after a sync.

Nothing here touches a database.  ``collect_sanitize_operations`` inspects
the destination alias and the sanitize settings and registers deferred
statements on a ``PostSyncQueue``; the caller executes them after import.

SQL fragments differ per database driver, so each driver gets a small
``SqlDialect`` object:

- pgsql and sqlite concatenate strings with ``||``
- mysql needs ``concat(...)``
- sqlite has no ``MD5()`` and no ``TRUNCATE``

Usage:
    from drupal_sync.sql.sanitize import collect_sanitize_operations

    queue = collect_sanitize_operations(alias, settings)
    for operation in queue.drain():
        await executor.execute(operation.sql)
"""

import hashlib
import secrets

from drupal_sync.config.models import DatabaseSpec, SanitizeSettings, SiteAlias
from drupal_sync.factory import get_db_spec
from drupal_sync.sql.models import PostSyncQueue

DISABLED = "no"

# Placeholder -> SQL expression producing the per-row value
EMAIL_PLACEHOLDERS = {
    "%uid": "uid",
    "%mail": "replace(mail, '@', '_')",
    "%name": "replace(name, ' ', '_')",
}


# ============================================================================
# Driver dialects
# ============================================================================


def quote_literal(value: str) -> str:
    """Quote a string as an SQL literal, doubling embedded quotes."""
    return "'" + value.replace("'", "''") + "'"


class SqlDialect:
    """SQL fragment builder for one driver family."""

    truncate_supported = True
    md5_function = True

    def concat(self, parts: list[str]) -> str:
        return " || ".join(parts)

    def build_email_expr(self, pattern: str) -> str:
        """Build the SQL expression for an email pattern.

        Literal runs become quoted strings and placeholders become column
        expressions, joined by the dialect's concatenation.  A pattern
        without placeholders is a plain literal.

        Example:
            >>> SqlDialect().build_email_expr("user+%uid@test.com")
            "'user+' || uid || '@test.com'"
        """
        parts: list[str] = []
        literal = ""
        i = 0
        while i < len(pattern):
            for token, column in EMAIL_PLACEHOLDERS.items():
                if pattern.startswith(token, i):
                    if literal:
                        parts.append(quote_literal(literal))
                        literal = ""
                    parts.append(column)
                    i += len(token)
                    break
            else:
                literal += pattern[i]
                i += 1
        if literal or not parts:
            parts.append(quote_literal(literal))

        if len(parts) == 1 and parts[0].startswith("'"):
            return parts[0]
        return self.concat(parts)

    def build_md5_expr(self, password: str) -> str:
        if self.md5_function:
            return f"MD5({quote_literal(password)})"
        return quote_literal(hashlib.md5(password.encode()).hexdigest())

    def clear_table(self, table: str) -> str:
        if self.truncate_supported:
            return f"TRUNCATE {table}"
        return f"DELETE FROM {table}"


class MySqlDialect(SqlDialect):
    """MySQL/MariaDB: string concatenation needs ``concat()``."""

    def concat(self, parts: list[str]) -> str:
        return f"concat({', '.join(parts)})"


class PgsqlDialect(SqlDialect):
    """PostgreSQL: ``||`` concatenation; ``uid`` is an integer so the
    operator's implicit text cast applies."""


class SqliteDialect(SqlDialect):
    """SQLite: ``||`` concatenation, no ``MD5()``, no ``TRUNCATE``."""

    truncate_supported = False
    md5_function = False


DIALECTS: dict[str, SqlDialect] = {
    "mysql": MySqlDialect(),
    "pgsql": PgsqlDialect(),
    "sqlite": SqliteDialect(),
}


def get_dialect(spec: DatabaseSpec) -> SqlDialect:
    return DIALECTS[spec.driver]


# ============================================================================
# Drupal password hashing (portable phpass, "$S$" SHA-512 variant)
# ============================================================================

ITOA64 = "./0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
HASH_COUNT_LOG2 = 16
HASH_LENGTH = 55


def _base64_encode(data: bytes, count: int) -> str:
    output = []
    i = 0
    while True:
        value = data[i]
        i += 1
        output.append(ITOA64[value & 0x3F])
        if i < count:
            value |= data[i] << 8
        output.append(ITOA64[(value >> 6) & 0x3F])
        if i >= count:
            break
        i += 1
        if i < count:
            value |= data[i] << 16
        output.append(ITOA64[(value >> 12) & 0x3F])
        if i >= count:
            break
        i += 1
        output.append(ITOA64[(value >> 18) & 0x3F])
        if i >= count:
            break
    return "".join(output)


_PHPASS_ALGORITHMS = {"$S$": "sha512", "$P$": "md5", "$H$": "md5"}


def password_crypt(password: str, setting: str) -> str:
    """Hash ``password`` with a phpass setting string (``$S$``, ``$P$``, ``$H$``).

    ``setting`` is the first 12 characters of a stored hash: the
    identifier, the iteration count character and the 8-character salt.
    Passing a stored hash re-creates it when the password matches.

    Raises:
        ValueError: If the setting is malformed.
    """
    setting = setting[:12]
    algorithm = _PHPASS_ALGORITHMS.get(setting[:3])
    if algorithm is None:
        raise ValueError(f"Unsupported hash identifier: {setting[:3]!r}")
    count_log2 = ITOA64.find(setting[3:4])
    if not 7 <= count_log2 <= 30:
        raise ValueError("count_log2 must be between 7 and 30")
    salt = setting[4:12]
    if len(salt) != 8:
        raise ValueError("salt must be 8 characters")

    secret = password.encode()
    digest = hashlib.new(algorithm, salt.encode() + secret).digest()
    for _ in range(1 << count_log2):
        digest = hashlib.new(algorithm, digest + secret).digest()

    return (setting + _base64_encode(digest, len(digest)))[:HASH_LENGTH]


def drupal_password_hash(password: str, salt: str | None = None, count_log2: int = HASH_COUNT_LOG2) -> str:
    """Hash a password the way Drupal's ``PhpassHashedPassword`` does.

    Args:
        password: Clear-text password.
        salt: 8-character salt from the phpass alphabet.  Random when omitted.
        count_log2: Base-2 log of the iteration count (7..30).

    Returns:
        A 55-character ``$S$`` hash Drupal 7+ accepts at login.
    """
    if not 7 <= count_log2 <= 30:
        raise ValueError("count_log2 must be between 7 and 30")
    if salt is None:
        salt = _base64_encode(secrets.token_bytes(6), 6)
    if len(salt) != 8:
        raise ValueError("salt must be 8 characters")
    return password_crypt(password, "$S$" + ITOA64[count_log2] + salt)


def build_password_expr(password: str, spec: DatabaseSpec, hash_format: str = "drupal") -> str:
    """SQL expression storing ``password`` in the users table."""
    if hash_format == "md5":
        return get_dialect(spec).build_md5_expr(password)
    return quote_literal(drupal_password_hash(password))


# ============================================================================
# Hook
# ============================================================================


def resolve_settings(
    alias: SiteAlias,
    defaults: SanitizeSettings | None = None,
    password: str | None = None,
    email: str | None = None,
) -> SanitizeSettings:
    """Merge sanitize settings: command line over alias over file defaults."""
    settings = defaults or SanitizeSettings()
    if alias.sanitize is not None:
        settings = settings.merged(**alias.sanitize.model_dump(exclude_unset=True))
    return settings.merged(password=password, email=email)


def collect_sanitize_operations(
    alias: SiteAlias,
    settings: SanitizeSettings | None = None,
    queue: PostSyncQueue | None = None,
) -> PostSyncQueue:
    """Register the sanitize operations for a destination alias.

    Args:
        alias: Resolved destination alias; its database driver and table
            prefix shape the SQL.
        settings: Sanitize settings (see ``resolve_settings``).
        queue: Queue to register on.  A new one is created when omitted.

    Returns:
        The queue holding the registered operations, in execution order.

    Raises:
        DatabaseNotFoundError: If the alias has no database record.
    """
    settings = settings or SanitizeSettings()
    queue = queue if queue is not None else PostSyncQueue()
    spec = get_db_spec(alias, side="destination")
    dialect = get_dialect(spec)
    users = f"{spec.prefix}{settings.user_table}"

    if settings.password != DISABLED:
        password = settings.password or secrets.token_urlsafe(12)
        expr = build_password_expr(password, spec, settings.hash_format)
        queue.register(
            "password",
            "Reset user passwords.",
            f"UPDATE {users} SET pass = {expr} WHERE uid > 0",
        )

    if settings.email and settings.email != DISABLED:
        expr = dialect.build_email_expr(settings.email)
        queue.register(
            "email",
            f"Replace user emails with {settings.email}.",
            f"UPDATE {users} SET mail = {expr}, init = {expr} WHERE uid > 0",
        )

    queue.register(
        "sessions",
        "Truncate the sessions table.",
        dialect.clear_table(f"{spec.prefix}{settings.sessions_table}"),
    )
    return queue
