"""Drush command runner.

Provides ``DrushRunner``, an implementation of the ``CommandRunner``
protocol that spawns the ``drush`` executable for each invocation and
waits for it to exit.

Usage:
    from drupal_sync.runner.drush import DrushRunner

    runner = DrushRunner(drush="/usr/local/bin/drush")
    result = await runner.invoke("prod", "sql:dump", options={"gzip": True})
    if result.ok:
        print(result.output())
"""

import asyncio
import logging
import shlex
from typing import Any

from drupal_sync.exceptions import CommandError
from drupal_sync.log import parse_drush_line
from drupal_sync.runner.base import CommandResult

logger = logging.getLogger(__name__)


def build_argv(
    drush: str,
    target: str | None,
    command: str,
    args: list[str] | None = None,
    options: dict[str, Any] | None = None,
) -> list[str]:
    """Build the argv list for one drush call.

    Options render as ``--name=value``; ``True`` renders a bare ``--name``
    flag and ``False``/``None`` are dropped.  Positional arguments follow
    the options so values beginning with ``-`` are not mistaken for flags.

    Example:
        >>> build_argv("drush", "prod", "sql:dump", options={"gzip": True})
        ['drush', '@prod', 'sql:dump', '--gzip']
    """
    argv = [drush]
    if target:
        argv.append(target if target.startswith("@") else f"@{target}")
    argv.append(command)

    for name, value in (options or {}).items():
        if value is None or value is False:
            continue
        if value is True:
            argv.append(f"--{name}")
        else:
            argv.append(f"--{name}={value}")

    argv.extend(str(a) for a in (args or []))
    return argv


class DrushRunner:
    """``CommandRunner`` that executes drush as a subprocess.

    Args:
        drush: Path or name of the drush executable.
        simulate: When ``True``, commands are logged and reported as
            successful without being executed.
        cwd: Working directory for drush (usually the local Drupal root).
        timeout: Seconds to wait for a single command, ``None`` for no limit.
    """

    def __init__(
        self,
        drush: str = "drush",
        simulate: bool = False,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.drush = drush
        self.simulate = simulate
        self.cwd = cwd
        self.timeout = timeout

    async def invoke(
        self,
        target: str | None,
        command: str,
        args: list[str] | None = None,
        options: dict[str, Any] | None = None,
    ) -> CommandResult:
        """Run one drush command and capture its output."""
        argv = build_argv(self.drush, target, command, args, options)
        printable = shlex.join(argv)

        if self.simulate:
            logger.info("Simulating: %s", printable)
            return CommandResult(
                target=target, command=command, argv=argv, simulated=True
            )

        logger.debug("Running: %s", printable)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
            )
        except OSError as e:
            raise CommandError(f"Could not start {argv[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return CommandResult(
                target=target,
                command=command,
                argv=argv,
                returncode=-1,
                stderr=f"Timed out after {self.timeout}s",
            )

        stderr_text = stderr.decode(errors="replace")
        self._relog(stderr_text)

        return CommandResult(
            target=target,
            command=command,
            argv=argv,
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr_text,
        )

    def _relog(self, stderr_text: str) -> None:
        for line in stderr_text.splitlines():
            if not line.strip():
                continue
            level, message = parse_drush_line(line)
            logger.log(level, "drush: %s", message)
