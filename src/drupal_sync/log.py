"""Logging setup and the RFC 5424 severity table.

Drupal and drush report messages with RFC 5424 severities (0 = emergency
through 7 = debug).  ``severity_to_logging`` maps them onto the standard
``logging`` levels so drush output can be re-logged faithfully.
"""

import logging
import re

from rich.console import Console
from rich.logging import RichHandler

# RFC 5424 severity -> name, as used by Drupal's RfcLogLevel
LOG_LEVELS: dict[int, str] = {
    0: "emergency",
    1: "alert",
    2: "critical",
    3: "error",
    4: "warning",
    5: "notice",
    6: "info",
    7: "debug",
}

_SEVERITY_LOGGING = {
    0: logging.CRITICAL,
    1: logging.CRITICAL,
    2: logging.CRITICAL,
    3: logging.ERROR,
    4: logging.WARNING,
    5: logging.INFO,
    6: logging.INFO,
    7: logging.DEBUG,
}

# Drush-only message types
_DRUSH_TYPES = {
    "success": logging.INFO,
    "ok": logging.INFO,
    "failed": logging.ERROR,
    "cancel": logging.WARNING,
}

_DRUSH_LINE = re.compile(r"^\s*\[(?P<type>[a-z]+)\]\s*(?P<message>.*)$")


def severity_to_logging(severity: int | str) -> int:
    """Map an RFC 5424 severity (number or name) or a drush message type
    onto a ``logging`` level.  Unknown values map to ``INFO``."""
    if isinstance(severity, int):
        return _SEVERITY_LOGGING.get(severity, logging.INFO)

    name = severity.strip().lower()
    if name.isdigit():
        return _SEVERITY_LOGGING.get(int(name), logging.INFO)
    if name in _DRUSH_TYPES:
        return _DRUSH_TYPES[name]
    for number, level_name in LOG_LEVELS.items():
        if level_name == name:
            return _SEVERITY_LOGGING[number]
    return logging.INFO


def parse_drush_line(line: str) -> tuple[int, str]:
    """Split a drush stderr line like ``" [warning] Foo"`` into
    ``(logging level, message)``.  Lines without a tag are DEBUG."""
    match = _DRUSH_LINE.match(line)
    if match is None:
        return logging.DEBUG, line.strip()
    return severity_to_logging(match.group("type")), match.group("message")


def configure_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Install a ``RichHandler`` on the ``drupal_sync`` logger.

    INFO by default, DEBUG when ``verbose``.  Calling it again replaces the
    handler instead of stacking another one.
    """
    logger = logging.getLogger("drupal_sync")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.propagate = False
