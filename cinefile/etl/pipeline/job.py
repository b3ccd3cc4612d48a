"""Import job state.

One ImportJob tracks a single list import through its lifecycle:
IDLE -> RUNNING -> COMPLETED | CANCELLED | FAILED.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class ImportState(StrEnum):
    """Lifecycle states of a list import."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether the job has finished."""
        return self in {ImportState.COMPLETED, ImportState.CANCELLED, ImportState.FAILED}


class ImportInProgressError(RuntimeError):
    """Raised when a list import is started while one is running for it."""

    pass


@dataclass
class ImportJob:
    """Progress and outcome of one list import.

    Attributes:
        list_id: List being imported.
        total: Rows in the list.
        state: Lifecycle state.
        completed: Rows resolved so far (matched or not).
        matched: Rows that produced a movie.
        dispatched: Rows handed to the search client.
        failed_rows: Ranks whose search raised.
        status_message: Human readable outcome.
        cancel_requested: Cooperative cancellation flag.
        started_at: Start timestamp.
        finished_at: End timestamp.
    """

    list_id: str
    total: int = 0
    state: ImportState = ImportState.IDLE
    completed: int = 0
    matched: int = 0
    dispatched: int = 0
    failed_rows: list[int] = field(default_factory=list)
    status_message: str = ""
    cancel_requested: bool = False
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def progress(self) -> float:
        """Completed fraction; terminal jobs and empty lists report 1.0."""
        if self.state.is_terminal or self.total == 0:
            return 1.0
        return self.completed / self.total

    @property
    def duration_seconds(self) -> float:
        """Elapsed seconds between start and finish (or now)."""
        if self.started_at is None:
            return 0.0
        end = self.finished_at or datetime.now()
        return (end - self.started_at).total_seconds()

    def start(self, total: int) -> None:
        """Move to RUNNING for a list of `total` rows."""
        self.total = total
        self.state = ImportState.RUNNING
        self.completed = 0
        self.matched = 0
        self.dispatched = 0
        self.failed_rows = []
        self.cancel_requested = False
        self.status_message = f"Importing {total} rows"
        self.started_at = datetime.now()
        self.finished_at = None

    def finish(self, state: ImportState, message: str) -> None:
        """Move to a terminal state with a status message."""
        self.state = state
        self.status_message = message
        self.finished_at = datetime.now()


@dataclass
class PreloadReport:
    """Outcome of a startup preload.

    Attributes:
        jobs: Import job per preloaded list, in manifest order.
        status_message: Summary or abort reason.
        aborted: Whether the preload stopped before its last list.
    """

    jobs: list[ImportJob] = field(default_factory=list)
    status_message: str = ""
    aborted: bool = False

    @property
    def total_matched(self) -> int:
        """Movies matched across all lists."""
        return sum(job.matched for job in self.jobs)

    @property
    def failed_lists(self) -> list[str]:
        """Lists whose import failed."""
        return [job.list_id for job in self.jobs if job.state == ImportState.FAILED]


@dataclass
class SearchOutcome:
    """Result of an interactive search.

    Attributes:
        query: Searched text.
        results: Candidates found.
        error_message: User-visible failure message, None on success.
    """

    query: str
    results: list = field(default_factory=list)
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the search succeeded."""
        return self.error_message is None
