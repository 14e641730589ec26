"""Command runner protocol definition.

Defines the ``CommandRunner`` Protocol every runner implements, and the
``CommandResult`` model returned by each invocation.  All calls are
``async def`` but the pipeline awaits them one at a time: every step is a
full round trip before the next one starts.

Usage:
    from drupal_sync.runner.base import CommandRunner

    async def dump(runner: CommandRunner) -> str:
        result = await runner.invoke("prod", "sql:dump", options={"gzip": True})
        return result.output()
"""

import json
from typing import Any, Protocol

from pydantic import BaseModel, Field


class CommandResult(BaseModel):
    """Outcome of a single drush invocation."""

    target: str | None = None
    command: str
    argv: list[str] = Field(default_factory=list)
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    simulated: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def output(self) -> Any:
        """Return stdout decoded as JSON, or stripped text if it is not JSON."""
        text = self.stdout.strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text

    def error_message(self) -> str:
        """Short description of a failure for user-facing messages."""
        detail = self.stderr.strip() or self.stdout.strip()
        if detail:
            return f"exit={self.returncode}: {detail.splitlines()[-1]}"
        return f"exit={self.returncode}"


class CommandRunner(Protocol):
    """Interface for invoking a drush command against a site alias.

    Runners never raise for a non-zero exit status; callers inspect
    ``CommandResult.ok``.  A runner that cannot start the command at all
    raises ``CommandError``.
    """

    async def invoke(
        self,
        target: str | None,
        command: str,
        args: list[str] | None = None,
        options: dict[str, Any] | None = None,
    ) -> CommandResult:
        """Run ``command`` against ``target``.

        Args:
            target: Alias name (without ``@``), or ``None`` for the local
                drush context.
            command: Drush command name (e.g., ``"sql:dump"``).
            args: Positional arguments.
            options: ``--name=value`` options.  ``True`` renders a bare
                ``--name`` flag; ``False`` and ``None`` are dropped.

        Returns:
            ``CommandResult`` with exit status and captured output.

        Example:
            result = await runner.invoke(
                "prod", "sql:dump", options={"gzip": True, "result-file": "auto"}
            )
        """
        ...
