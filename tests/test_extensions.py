"""Tests for the extension shim.

The shim only forwards to drush, so each test checks the command it
sends and how it reads the reply.
"""

import json
import logging
from unittest.mock import AsyncMock

import pytest

from drupal_sync.config.models import SiteAlias
from drupal_sync.exceptions import ExtensionError
from drupal_sync.extensions import Extension, ExtensionShim
from drupal_sync.runner.base import CommandResult


def _shim(stdout: str = "", returncode: int = 0) -> tuple[ExtensionShim, AsyncMock]:
    runner = AsyncMock()
    runner.invoke = AsyncMock(
        return_value=CommandResult(command="x", returncode=returncode, stdout=stdout, stderr="nope" if returncode else "")
    )
    return ExtensionShim(runner, SiteAlias(name="local")), runner


PM_LIST = json.dumps(
    {
        "node": {"package": "Core", "display_name": "Node (node)", "status": "Enabled", "version": "10.2.0"},
        "devel": {"package": "Development", "display_name": "Devel (devel)", "status": "Disabled", "version": None},
    }
)


class TestListing:
    """Verify pm:list forwarding and parsing."""

    @pytest.mark.asyncio
    async def test_list_modules(self) -> None:
        shim, runner = _shim(PM_LIST)
        modules = await shim.list_modules()
        assert [m.name for m in modules] == ["node", "devel"]
        assert modules[0].enabled is True
        assert modules[1].enabled is False
        call = runner.invoke.call_args
        assert call.args == ("local", "pm:list")
        assert call.kwargs["options"] == {"type": "module", "status": None, "format": "json"}

    @pytest.mark.asyncio
    async def test_list_themes_with_status(self) -> None:
        shim, runner = _shim("[]")
        assert await shim.list_themes(status="enabled") == []
        assert runner.invoke.call_args.kwargs["options"]["type"] == "theme"
        assert runner.invoke.call_args.kwargs["options"]["status"] == "enabled"

    @pytest.mark.asyncio
    async def test_list_accepts_rows(self) -> None:
        shim, _ = _shim(json.dumps([{"name": "olivero", "type": "theme", "status": "Enabled"}]))
        themes = await shim.list_themes()
        assert themes == [Extension(name="olivero", type="theme", status="Enabled")]

    @pytest.mark.asyncio
    async def test_extension_exists(self) -> None:
        shim, runner = _shim(json.dumps({"node": {"status": "Enabled"}}))
        assert await shim.extension_exists("node") is True
        assert await shim.extension_exists("devel") is False
        assert runner.invoke.call_args.kwargs["options"]["status"] == "enabled"

    @pytest.mark.asyncio
    async def test_failure_raises(self) -> None:
        shim, _ = _shim(returncode=1)
        with pytest.raises(ExtensionError, match="pm:list failed on @local"):
            await shim.list_modules()


class TestInstall:
    """Verify enable/uninstall forwarding."""

    @pytest.mark.asyncio
    async def test_enable(self) -> None:
        shim, runner = _shim()
        await shim.enable(["devel", "views_ui"])
        runner.invoke.assert_awaited_once_with(
            "local", "pm:enable", args=["devel", "views_ui"], options={"yes": True}
        )

    @pytest.mark.asyncio
    async def test_uninstall(self) -> None:
        shim, runner = _shim()
        await shim.uninstall(["devel"])
        assert runner.invoke.call_args.args[1] == "pm:uninstall"

    @pytest.mark.asyncio
    async def test_enable_themes(self) -> None:
        shim, runner = _shim()
        await shim.enable_themes(["claro"])
        assert runner.invoke.call_args.args[1] == "theme:enable"

    @pytest.mark.asyncio
    async def test_invalid_name_rejected(self) -> None:
        """Names that are not machine names never reach drush."""
        shim, runner = _shim()
        with pytest.raises(ValueError, match="Invalid machine name"):
            await shim.enable(["devel; rm -rf /"])
        runner.invoke.assert_not_called()


class TestDependenciesAndHooks:
    """Verify php:eval based queries."""

    @pytest.mark.asyncio
    async def test_dependencies(self) -> None:
        graph = {"views_ui": {"requires": ["views"], "required_by": []}}
        shim, runner = _shim(json.dumps(graph))
        assert await shim.dependencies("views_ui") == ["views"]
        call = runner.invoke.call_args
        assert call.args[1] == "php:eval"
        assert "'views_ui'" in call.kwargs["args"][0]

    @pytest.mark.asyncio
    async def test_dependents(self) -> None:
        graph = {"views": {"requires": [], "required_by": ["views_ui"]}}
        shim, _ = _shim(json.dumps(graph))
        assert await shim.dependents("views") == ["views_ui"]

    @pytest.mark.asyncio
    async def test_empty_graph(self) -> None:
        shim, runner = _shim()
        assert await shim.dependency_graph([]) == {}
        runner.invoke.assert_not_called()

    @pytest.mark.asyncio
    async def test_unexpected_graph_output(self) -> None:
        shim, _ = _shim("not json")
        with pytest.raises(ExtensionError, match="Unexpected dependency output"):
            await shim.dependency_graph(["node"])

    @pytest.mark.asyncio
    async def test_invoke_hook(self) -> None:
        shim, runner = _shim(json.dumps(["a", "b"]))
        assert await shim.invoke_hook("cron", args=[1, "x"]) == ["a", "b"]
        php = runner.invoke.call_args.kwargs["args"][0]
        assert "invokeAll('cron'" in php
        assert '[1, "x"]' in php

    def test_log_levels(self) -> None:
        levels = ExtensionShim.log_levels()
        assert levels[0] == "emergency"
        assert levels[7] == "debug"
        assert ExtensionShim.severity_to_logging("error") == logging.ERROR
