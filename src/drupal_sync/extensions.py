"""Version-agnostic access to a site's modules, themes, hooks and log levels.

``ExtensionShim`` forwards each call to drush on the site, so callers use
one surface regardless of the Drupal version underneath.  Dependency and
hook queries go through ``php:eval`` against the site's own services.

Usage:
    from drupal_sync.extensions import ExtensionShim

    shim = ExtensionShim(runner, alias)
    enabled = await shim.list_modules(status="enabled")
    await shim.enable(["devel"])
    results = await shim.invoke_hook("cron")
"""

import json
import re
from typing import Any, Literal

from pydantic import BaseModel

from drupal_sync.config.models import SiteAlias
from drupal_sync.exceptions import ExtensionError
from drupal_sync.log import LOG_LEVELS, severity_to_logging
from drupal_sync.runner.base import CommandResult, CommandRunner

ExtensionKind = Literal["module", "theme"]

_MACHINE_NAME = re.compile(r"^[a-z][a-z0-9_]*$")


class Extension(BaseModel):
    """One row of ``pm:list``."""

    name: str
    type: str = "module"
    status: str = ""
    display_name: str = ""
    package: str = ""
    version: str | None = None
    path: str = ""

    @property
    def enabled(self) -> bool:
        return self.status.lower() == "enabled"


def _check_name(name: str) -> str:
    if not _MACHINE_NAME.match(name):
        raise ValueError(f"Invalid machine name: {name!r}")
    return name


def _php_string(value: str) -> str:
    """Quote ``value`` as a single-quoted PHP string literal."""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


class ExtensionShim:
    """Forwarding surface over one site's extension APIs.

    Args:
        runner: Runner used for every drush call.
        alias: Site the calls are made against.
    """

    def __init__(self, runner: CommandRunner, alias: SiteAlias) -> None:
        self.runner = runner
        self.alias = alias

    async def _call(
        self,
        command: str,
        args: list[str] | None = None,
        options: dict[str, Any] | None = None,
    ) -> CommandResult:
        result = await self.runner.invoke(self.alias.name, command, args=args, options=options)
        if not result.ok:
            raise ExtensionError(
                f"{command} failed on @{self.alias.name}: {result.error_message()}"
            )
        return result

    async def _eval_json(self, php: str) -> Any:
        result = await self._call("php:eval", args=[php])
        return result.output()

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list_extensions(
        self,
        kind: ExtensionKind = "module",
        status: str | None = None,
    ) -> list[Extension]:
        """List modules or themes, optionally filtered by status."""
        result = await self._call(
            "pm:list",
            options={"type": kind, "status": status, "format": "json"},
        )
        rows = result.output() or {}
        if isinstance(rows, dict):
            rows = [dict(row, name=row.get("name", key)) for key, row in rows.items()]
        return [Extension(**row) for row in rows]

    async def list_modules(self, status: str | None = None) -> list[Extension]:
        return await self.list_extensions("module", status)

    async def list_themes(self, status: str | None = None) -> list[Extension]:
        return await self.list_extensions("theme", status)

    async def extension_exists(self, name: str, kind: ExtensionKind = "module") -> bool:
        """Whether ``name`` is installed (enabled)."""
        _check_name(name)
        enabled = await self.list_extensions(kind, status="enabled")
        return any(ext.name == name for ext in enabled)

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    async def dependency_graph(self, names: list[str]) -> dict[str, dict[str, list[str]]]:
        """``requires``/``required_by`` for each module in ``names``."""
        if not names:
            return {}
        php_names = ", ".join(_php_string(_check_name(n)) for n in names)
        php = (
            "$list = \\Drupal::service('extension.list.module'); $out = [];"
            f" foreach ([{php_names}] as $n) {{ $e = $list->get($n);"
            " $out[$n] = ['requires' => array_keys($e->requires ?? []),"
            " 'required_by' => array_keys($e->required_by ?? [])]; }"
            " echo json_encode($out);"
        )
        graph = await self._eval_json(php)
        if not isinstance(graph, dict):
            raise ExtensionError(f"Unexpected dependency output from @{self.alias.name}")
        return graph

    async def dependencies(self, name: str) -> list[str]:
        """Modules ``name`` requires."""
        graph = await self.dependency_graph([name])
        return graph.get(name, {}).get("requires", [])

    async def dependents(self, name: str) -> list[str]:
        """Modules that require ``name``."""
        graph = await self.dependency_graph([name])
        return graph.get(name, {}).get("required_by", [])

    # ------------------------------------------------------------------
    # Install / uninstall
    # ------------------------------------------------------------------

    async def enable(self, names: list[str]) -> None:
        await self._call("pm:enable", args=[_check_name(n) for n in names], options={"yes": True})

    async def uninstall(self, names: list[str]) -> None:
        await self._call("pm:uninstall", args=[_check_name(n) for n in names], options={"yes": True})

    async def enable_themes(self, names: list[str]) -> None:
        await self._call("theme:enable", args=[_check_name(n) for n in names], options={"yes": True})

    # ------------------------------------------------------------------
    # Hooks and logging
    # ------------------------------------------------------------------

    async def invoke_hook(self, hook: str, args: list[Any] | None = None) -> Any:
        """Call ``hook`` in every module implementing it; returns the
        merged result decoded from JSON."""
        payload = _php_string(json.dumps(args or []))
        php = (
            f"echo json_encode(\\Drupal::moduleHandler()->invokeAll("
            f"{_php_string(_check_name(hook))}, json_decode({payload}, TRUE)));"
        )
        return await self._eval_json(php)

    @staticmethod
    def log_levels() -> dict[int, str]:
        """RFC 5424 severity table (0 = emergency ... 7 = debug)."""
        return dict(LOG_LEVELS)

    @staticmethod
    def severity_to_logging(severity: int | str) -> int:
        return severity_to_logging(severity)
