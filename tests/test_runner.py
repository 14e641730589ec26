"""Tests for the drush runner and command results.

Subprocess calls are patched; no drush binary is needed.
"""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from drupal_sync.exceptions import CommandError
from drupal_sync.runner import CommandResult, DrushRunner, build_argv


def _mock_process(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.wait = AsyncMock()
    return proc


# ==================================================================
# build_argv
# ==================================================================


class TestBuildArgv:
    """Verify argv rendering."""

    def test_target_gets_at_prefix(self) -> None:
        """Bare alias names are rendered as @name."""
        assert build_argv("drush", "prod", "status") == ["drush", "@prod", "status"]
        assert build_argv("drush", "@prod", "status") == ["drush", "@prod", "status"]

    def test_no_target(self) -> None:
        """A None target runs in the local drush context."""
        assert build_argv("drush", None, "core:rsync") == ["drush", "core:rsync"]

    def test_option_rendering(self) -> None:
        """True is a bare flag, values use =, False and None are dropped."""
        argv = build_argv(
            "drush",
            "prod",
            "sql:dump",
            options={"gzip": True, "result-file": "auto", "strict": 0, "a": False, "b": None},
        )
        assert argv == ["drush", "@prod", "sql:dump", "--gzip", "--result-file=auto", "--strict=0"]

    def test_args_follow_options(self) -> None:
        """Positional arguments come after the options."""
        argv = build_argv("drush", None, "core:rsync", args=["@a:/x", "@b:/y"], options={"yes": True})
        assert argv == ["drush", "core:rsync", "--yes", "@a:/x", "@b:/y"]


# ==================================================================
# CommandResult
# ==================================================================


class TestCommandResult:
    """Verify result helpers."""

    def test_ok(self) -> None:
        assert CommandResult(command="x").ok is True
        assert CommandResult(command="x", returncode=1).ok is False

    def test_output_json(self) -> None:
        """JSON stdout is decoded."""
        result = CommandResult(command="x", stdout='{"drush-temp": "/tmp"}\n')
        assert result.output() == {"drush-temp": "/tmp"}

    def test_output_text(self) -> None:
        """Non-JSON stdout is returned stripped."""
        assert CommandResult(command="x", stdout=" /tmp/dump.sql.gz\n").output() == "/tmp/dump.sql.gz"

    def test_output_empty(self) -> None:
        """Empty stdout returns None."""
        assert CommandResult(command="x", stdout="  ").output() is None

    def test_error_message_uses_last_stderr_line(self) -> None:
        """error_message() reports the exit code and last stderr line."""
        result = CommandResult(command="x", returncode=2, stderr="first\nAccess denied\n")
        assert result.error_message() == "exit=2: Access denied"

    def test_error_message_without_output(self) -> None:
        assert CommandResult(command="x", returncode=3).error_message() == "exit=3"


# ==================================================================
# DrushRunner
# ==================================================================


class TestDrushRunner:
    """Verify subprocess invocation."""

    @pytest.mark.asyncio
    async def test_simulate_does_not_spawn(self) -> None:
        """Simulate mode reports success without starting a process."""
        runner = DrushRunner(simulate=True)
        with patch("asyncio.create_subprocess_exec", new=AsyncMock()) as spawn:
            result = await runner.invoke("prod", "sql:dump", options={"gzip": True})
        spawn.assert_not_called()
        assert result.ok is True
        assert result.simulated is True
        assert result.argv == ["drush", "@prod", "sql:dump", "--gzip"]

    @pytest.mark.asyncio
    async def test_invoke_captures_output(self) -> None:
        """stdout, stderr and the exit code are captured."""
        proc = _mock_process(0, b'"/tmp/x.sql.gz"', b"")
        runner = DrushRunner(drush="/bin/drush", cwd="/srv/drupal")
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)) as spawn:
            result = await runner.invoke("prod", "sql:dump")
        assert spawn.call_args.args == ("/bin/drush", "@prod", "sql:dump")
        assert spawn.call_args.kwargs["cwd"] == "/srv/drupal"
        assert result.ok is True
        assert result.output() == "/tmp/x.sql.gz"

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_not_raised(self) -> None:
        """A failing command returns a result with ok False."""
        proc = _mock_process(1, b"", b"[error] Boom\n")
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)):
            result = await DrushRunner().invoke("prod", "sql:dump")
        assert result.ok is False
        assert result.returncode == 1
        assert result.error_message() == "exit=1: [error] Boom"

    @pytest.mark.asyncio
    async def test_spawn_failure_raises_command_error(self) -> None:
        """A missing executable raises CommandError."""
        spawn = AsyncMock(side_effect=FileNotFoundError("no such file"))
        with patch("asyncio.create_subprocess_exec", new=spawn):
            with pytest.raises(CommandError, match="Could not start drush"):
                await DrushRunner().invoke("prod", "status")

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self) -> None:
        """A timed-out command is killed and reported with exit -1."""
        proc = _mock_process()
        proc.communicate = AsyncMock(side_effect=TimeoutError)
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)):
            result = await DrushRunner(timeout=1).invoke("prod", "sql:dump")
        proc.kill.assert_called_once()
        assert result.returncode == -1
        assert "Timed out" in result.stderr

    @pytest.mark.asyncio
    async def test_stderr_is_relogged(self, caplog, monkeypatch) -> None:
        """Tagged drush stderr lines are re-logged at the mapped level."""
        proc = _mock_process(0, b"", b" [warning] Disk almost full\n")
        logger = logging.getLogger("drupal_sync")
        monkeypatch.setattr(logger, "propagate", True)
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)):
            with caplog.at_level(logging.DEBUG, logger="drupal_sync"):
                await DrushRunner().invoke("prod", "status")
        records = [r for r in caplog.records if "Disk almost full" in r.getMessage()]
        assert records
        assert records[0].levelno == logging.WARNING
