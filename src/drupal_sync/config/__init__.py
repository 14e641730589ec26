"""Configuration management: site aliases, TOML loading, and config models.

Usage:
    >>> from drupal_sync.config import load_alias_config, SiteAlias, DatabaseSpec
"""

from drupal_sync.config.loader import load_alias_config, parse_db_url
from drupal_sync.config.models import AliasConfig, DatabaseSpec, SanitizeSettings, SiteAlias

__all__ = [
    "load_alias_config",
    "parse_db_url",
    "AliasConfig",
    "DatabaseSpec",
    "SanitizeSettings",
    "SiteAlias",
]
