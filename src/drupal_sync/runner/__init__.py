"""Command runners package.

Provides the ``CommandRunner`` Protocol, the ``CommandResult`` model, and
``DrushRunner``, which shells out to the drush executable.

Usage:
    from drupal_sync.runner import CommandRunner, DrushRunner
"""

from drupal_sync.runner.base import CommandResult, CommandRunner
from drupal_sync.runner.drush import DrushRunner, build_argv

__all__ = [
    "CommandResult",
    "CommandRunner",
    "DrushRunner",
    "build_argv",
]
