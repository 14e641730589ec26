"""Pydantic models for sync jobs, post-sync operations, and results."""

from pydantic import BaseModel, Field, model_validator

from drupal_sync.config.models import SiteAlias


# Pipeline step names, in execution order
STEP_CREATE = "sql-create"
STEP_DUMP = "sql-dump"
STEP_TEMP_DIR = "temp-dir"
STEP_RSYNC = "core-rsync"
STEP_IMPORT = "sql-query"
STEP_SANITIZE = "sql-sanitize"

SIMULATED_DUMP_PATH = "/simulated/path/to/dump.sql.gz"
FALLBACK_TEMP_DIR = "/tmp"


# ============================================================================
# Sync Job
# ============================================================================


class SyncOptions(BaseModel):
    """Options controlling a single sql-sync run."""

    create_db: bool = False
    no_dump: bool = False
    sanitize: bool = False
    sanitize_password: str | None = None
    sanitize_email: str | None = None
    strict: int | None = None
    gzip: bool = True
    simulate: bool = False
    yes: bool = False
    source_dump: str | None = None  # existing dump on the source (with no_dump) or dump destination
    target_dump: str | None = None  # path on the destination; default is its temp dir
    structure_tables_key: str | None = None
    skip_tables_key: str | None = None
    tables_list: str | None = None
    extra_dump: str | None = None

    @model_validator(mode="after")
    def _no_dump_needs_path(self) -> "SyncOptions":
        if self.no_dump and not self.source_dump and not self.simulate:
            raise ValueError("--no-dump requires --source-dump=<path to an existing dump>")
        return self

    def dump_options(self) -> dict[str, object]:
        """Options forwarded to ``sql:dump``."""
        return {
            "gzip": self.gzip,
            "result-file": self.source_dump or "auto",
            "format": "json",
            "structure-tables-key": self.structure_tables_key,
            "skip-tables-key": self.skip_tables_key,
            "tables-list": self.tables_list,
            "extra-dump": self.extra_dump,
        }


class SyncJob(BaseModel):
    """A validated sync request: resolved aliases plus options."""

    source: SiteAlias
    destination: SiteAlias
    options: SyncOptions = Field(default_factory=SyncOptions)


# ============================================================================
# Post-sync Operations
# ============================================================================


class PostSyncOperation(BaseModel):
    """A deferred SQL statement registered by the sanitize hook."""

    id: str
    description: str
    sql: str


class PostSyncQueue:
    """Operations registered during one sanitize run.

    Registering an id twice replaces the earlier statement but keeps its
    position.  ``drain()`` hands the operations over exactly once.
    """

    def __init__(self) -> None:
        self._operations: dict[str, PostSyncOperation] = {}

    def register(self, op_id: str, description: str, sql: str) -> PostSyncOperation:
        operation = PostSyncOperation(id=op_id, description=description, sql=sql)
        self._operations[op_id] = operation
        return operation

    def drain(self) -> list[PostSyncOperation]:
        operations = list(self._operations.values())
        self._operations.clear()
        return operations

    def descriptions(self) -> list[str]:
        return [op.description for op in self._operations.values()]

    def __len__(self) -> int:
        return len(self._operations)

    def __contains__(self, op_id: object) -> bool:
        return op_id in self._operations


# ============================================================================
# Results
# ============================================================================


class SyncValidation(BaseModel):
    """Result of validate_sync()."""

    success: bool = False
    aborted: bool = False
    job: SyncJob | None = None
    error_kind: str | None = None
    error: str | None = None


class SyncResult(BaseModel):
    """Result of sql_sync().

    Attributes:
        success: Whether every step completed.
        aborted: The user declined the confirmation prompt (not an error).
        steps: Names of the steps that completed, in order.
        failed_step: Name of the step that failed, if any.
        error_kind: ``kind`` of the error that stopped the run.
        operations: Post-sync operations executed by the sanitize step.
        warnings: Non-fatal problems, e.g. failed temp file cleanup.
    """

    success: bool = False
    aborted: bool = False
    source: str = ""
    destination: str = ""
    steps: list[str] = Field(default_factory=list)
    failed_step: str | None = None
    error_kind: str | None = None
    error: str | None = None
    source_dump: str | None = None
    target_dump: str | None = None
    operations: list[PostSyncOperation] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
