"""Database copy between site aliases (sql-sync).

Copies the database of a source alias onto a destination alias by
delegating every step to drush on the right site:

1. ``sql:create`` on the destination (``create_db`` only)
2. ``sql:dump`` on the source (skipped with ``no_dump``)
3. resolve the destination temp directory (falls back to ``/tmp``)
4. ``core:rsync`` the dump from source to destination
5. ``sql:query --file`` on the destination to import it
6. sanitize the destination (``sanitize`` only)

Each step runs to completion before the next begins.  The first failure
stops the pipeline; nothing is retried.

Temp file cleanup: a dump the pipeline created on the source is removed by
rsync (``--remove-source-files``) or, when rsync fails, with ``rm -f`` over
``site:ssh``.  The destination copy is removed by ``sql:query
--file-delete`` or, when the import fails, with ``rm -f``.  Paths the user
supplied are never removed.  Cleanup runs once; failures become warnings.

Usage:
    from drupal_sync.sql.sync import run_sync

    result = await run_sync(
        "@prod", "@local",
        config=load_alias_config(),
        options=SyncOptions(sanitize=True, yes=True),
        runner=DrushRunner(),
    )
"""

import logging
import posixpath
import shlex
from collections.abc import Callable

from drupal_sync.config.models import AliasConfig, SanitizeSettings, SiteAlias
from drupal_sync.exceptions import (
    CommandError,
    DrupalSyncError,
    SameDatabaseError,
    StepFailedError,
)
from drupal_sync.factory import db_identity, get_db_spec, resolve_alias
from drupal_sync.runner.base import CommandResult, CommandRunner
from drupal_sync.sql.executor import QueryExecutor, RunnerQueryExecutor, apply_operations
from drupal_sync.sql.models import (
    FALLBACK_TEMP_DIR,
    SIMULATED_DUMP_PATH,
    STEP_CREATE,
    STEP_DUMP,
    STEP_IMPORT,
    STEP_RSYNC,
    STEP_SANITIZE,
    STEP_TEMP_DIR,
    PostSyncOperation,
    SyncJob,
    SyncOptions,
    SyncResult,
    SyncValidation,
)
from drupal_sync.sql.sanitize import collect_sanitize_operations, resolve_settings

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def confirmation_message(job: SyncJob) -> str:
    """Text shown before the destination database is overwritten."""
    source_db = get_db_spec(job.source).database
    dest_db = get_db_spec(job.destination).database
    lines = [
        f"You will destroy data in {dest_db} on @{job.destination.name} "
        f"and replace it with data from {source_db} on @{job.source.name}.",
    ]
    if job.options.sanitize:
        lines.append("The destination will be sanitized after import.")
    lines.append("Do you really want to continue?")
    return "\n".join(lines)


def validate_sync(
    source: str,
    destination: str,
    config: AliasConfig,
    options: SyncOptions | None = None,
    confirm: ConfirmCallback | None = None,
) -> SyncValidation:
    """Resolve and check both aliases before any data moves.

    Args:
        source: Source alias name (``@`` optional).
        destination: Destination alias name (``@`` optional).
        config: Loaded alias configuration.
        options: Sync options; ``simulate`` permits identical databases and
            ``yes`` skips the confirmation.
        confirm: Called with the confirmation message; returning ``False``
            aborts.  When ``None`` and ``yes`` is unset, the sync is treated
            as confirmed.

    Returns:
        ``SyncValidation`` carrying the ``SyncJob`` on success, the error
        kind and message on failure, or ``aborted=True`` when declined.

    Example:
        >>> validation = validate_sync("@prod", "@local", config)
        >>> validation.error_kind
        'same-database'
    """
    options = options or SyncOptions()

    try:
        source_alias = resolve_alias(config, source, side="source")
        get_db_spec(source_alias, side="source")
        dest_alias = resolve_alias(config, destination, side="destination")
        get_db_spec(dest_alias, side="destination")

        if db_identity(source_alias) == db_identity(dest_alias) and not options.simulate:
            raise SameDatabaseError(source_alias.name, dest_alias.name)
    except DrupalSyncError as e:
        return SyncValidation(success=False, error_kind=e.kind, error=str(e))

    job = SyncJob(source=source_alias, destination=dest_alias, options=options)

    if not options.yes and confirm is not None:
        if not confirm(confirmation_message(job)):
            return SyncValidation(success=False, aborted=True, job=job)

    return SyncValidation(success=True, job=job)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def _run_step(
    job: SyncJob,
    runner: CommandRunner,
    step: str,
    what: str,
    target: str | None,
    command: str,
    args: list[str] | None = None,
    options: dict[str, object] | None = None,
) -> CommandResult:
    """Invoke one drush command, raising ``StepFailedError`` tagged with
    ``step`` if it cannot start or exits non-zero."""
    route = f"@{job.source.name} -> @{job.destination.name}"
    try:
        result = await runner.invoke(target, command, args=args, options=options)
    except CommandError as e:
        raise StepFailedError(step, f"{what} failed ({step}, {route}): {e}") from e
    if not result.ok:
        raise StepFailedError(
            step, f"{what} failed ({step}, {route}): {result.error_message()}"
        )
    return result


def _parse_path(output: object) -> str | None:
    if isinstance(output, str) and output:
        return output
    if isinstance(output, list) and output and isinstance(output[0], str):
        return output[0]
    if isinstance(output, dict):
        for key in ("path", "result-file", "object"):
            if isinstance(output.get(key), str):
                return output[key]
    return None


async def _create_database(job: SyncJob, runner: CommandRunner) -> None:
    await _run_step(
        job, runner, STEP_CREATE,
        f"Creating the database on @{job.destination.name}",
        job.destination.name, "sql:create", options={"yes": True},
    )


async def _dump_source(job: SyncJob, runner: CommandRunner) -> str:
    result = await _run_step(
        job, runner, STEP_DUMP,
        f"Dumping the database on @{job.source.name}",
        job.source.name, "sql:dump", options=job.options.dump_options(),
    )
    if result.simulated:
        return SIMULATED_DUMP_PATH

    path = _parse_path(result.output())
    if path is None:
        raise StepFailedError(
            STEP_DUMP,
            f"sql:dump on @{job.source.name} did not report a result file.",
        )
    return path


async def resolve_temp_dir(alias: SiteAlias, runner: CommandRunner) -> str:
    """Temp directory on a site; ``/tmp`` when it cannot be determined."""
    if alias.temp_dir:
        return alias.temp_dir
    try:
        result = await runner.invoke(
            alias.name,
            "core:status",
            options={"fields": "drush-temp", "format": "json"},
        )
    except DrupalSyncError as e:
        logger.warning("Could not read drush-temp on @%s: %s", alias.name, e)
        return FALLBACK_TEMP_DIR

    output = result.output() if result.ok else None
    if isinstance(output, dict) and isinstance(output.get("drush-temp"), str):
        return output["drush-temp"]
    logger.debug("Falling back to %s on @%s", FALLBACK_TEMP_DIR, alias.name)
    return FALLBACK_TEMP_DIR


async def _remove_file(
    alias: SiteAlias,
    path: str,
    runner: CommandRunner,
    result: SyncResult,
) -> None:
    """Best-effort ``rm -f`` on a site; failures become warnings."""
    try:
        outcome = await runner.invoke(
            alias.name, "site:ssh", args=[f"rm -f {shlex.quote(path)}"]
        )
        ok = outcome.ok
        detail = outcome.error_message()
    except DrupalSyncError as e:
        ok = False
        detail = str(e)
    if not ok:
        message = f"Could not remove {path} on @{alias.name}: {detail}"
        logger.warning(message)
        result.warnings.append(message)


async def sanitize_site(
    alias: SiteAlias,
    runner: CommandRunner,
    settings: SanitizeSettings | None = None,
    executor: QueryExecutor | None = None,
) -> list[PostSyncOperation]:
    """Register and execute the sanitize operations on ``alias``.

    A caller-supplied ``executor`` stays open; the caller closes it.

    Returns:
        The operations executed, in order.

    Raises:
        StepFailedError: Tagged ``sql-sanitize`` if any operation fails.
    """
    queue = collect_sanitize_operations(alias, settings)
    if executor is not None:
        return await apply_operations(queue.drain(), executor)

    own_executor = RunnerQueryExecutor(runner, alias)
    try:
        return await apply_operations(queue.drain(), own_executor)
    finally:
        await own_executor.close()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def sql_sync(
    job: SyncJob,
    runner: CommandRunner,
    executor: QueryExecutor | None = None,
    sanitize_defaults: SanitizeSettings | None = None,
) -> SyncResult:
    """Copy the source database onto the destination.

    Args:
        job: Validated job from ``validate_sync``.
        runner: Runner used for every drush call.
        executor: Executor for sanitize SQL; defaults to ``sql:query``
            through ``runner``.
        sanitize_defaults: File-level sanitize defaults (``[sanitize]``).

    Returns:
        ``SyncResult``; on failure ``failed_step`` names the step that
        stopped the run.
    """
    options = job.options
    source, destination = job.source, job.destination
    result = SyncResult(source=source.name, destination=destination.name)

    remove_source_dump = False
    remove_target_dump = False
    imported = False

    try:
        if options.create_db:
            await _create_database(job, runner)
            result.steps.append(STEP_CREATE)

        if options.no_dump:
            source_dump = options.source_dump or SIMULATED_DUMP_PATH
        else:
            source_dump = await _dump_source(job, runner)
            remove_source_dump = options.source_dump is None and not options.simulate
            result.steps.append(STEP_DUMP)
        result.source_dump = source_dump

        if options.target_dump:
            target_dump = options.target_dump
        else:
            temp_dir = await resolve_temp_dir(destination, runner)
            target_dump = posixpath.join(temp_dir, posixpath.basename(source_dump))
            remove_target_dump = not options.simulate
        result.steps.append(STEP_TEMP_DIR)
        result.target_dump = target_dump

        rsync_args = [f"{source.target}:{source_dump}", f"{destination.target}:{target_dump}"]
        if remove_source_dump:
            rsync_args += ["--", "--remove-source-files"]
        await _run_step(
            job, runner, STEP_RSYNC, "Copying the dump",
            None, "core:rsync", args=rsync_args, options={"yes": True},
        )
        remove_source_dump = False
        result.steps.append(STEP_RSYNC)

        await _run_step(
            job, runner, STEP_IMPORT,
            f"Importing the dump on @{destination.name}",
            destination.name, "sql:query",
            options={
                "file": target_dump,
                "file-delete": remove_target_dump,
                "strict": options.strict,
            },
        )
        imported = True
        result.steps.append(STEP_IMPORT)

        if options.sanitize:
            settings = resolve_settings(
                destination,
                sanitize_defaults,
                password=options.sanitize_password,
                email=options.sanitize_email,
            )
            result.operations = await sanitize_site(destination, runner, settings, executor)
            result.steps.append(STEP_SANITIZE)

        result.success = True

    except StepFailedError as e:
        logger.error("%s", e)
        result.failed_step = e.step
        result.error_kind = e.kind
        result.error = str(e)

    except DrupalSyncError as e:
        logger.error("%s", e)
        result.error_kind = e.kind
        result.error = str(e)

    finally:
        if remove_source_dump:
            await _remove_file(source, result.source_dump, runner, result)
        if remove_target_dump and not imported and STEP_RSYNC in result.steps:
            await _remove_file(destination, result.target_dump, runner, result)

    return result


async def run_sync(
    source: str,
    destination: str,
    config: AliasConfig,
    options: SyncOptions,
    runner: CommandRunner,
    confirm: ConfirmCallback | None = None,
    executor: QueryExecutor | None = None,
) -> SyncResult:
    """Validate then sync; the whole sql-sync command in one call.

    Example:
        >>> result = await run_sync("@prod", "@local", config,
        ...                         SyncOptions(yes=True), DrushRunner())
        >>> result.success
        True
    """
    validation = validate_sync(source, destination, config, options, confirm)
    if not validation.success:
        return SyncResult(
            source=source,
            destination=destination,
            aborted=validation.aborted,
            error_kind=validation.error_kind,
            error=validation.error,
        )
    return await sql_sync(validation.job, runner, executor, config.sanitize)
