"""Import orchestration - list imports, startup preload and interactive search.

Provides the ImportOrchestrator which drives a ranked list through:
    1. Row search (bounded async worker pool)
    2. Match scoring
    3. Catalog merge (on the event loop, after the pool drains)
"""

import asyncio
from collections.abc import Callable

from cinefile.catalog.schemas import ImportRow, Movie
from cinefile.catalog.store import CatalogEvent, CatalogStore
from cinefile.etl.extractors.csv.parser import NotFoundError, load_rows
from cinefile.etl.extractors.tmdb.client import (
    AuthError,
    DecodeError,
    NetworkError,
    TMDBClient,
    TMDBClientError,
)
from cinefile.etl.matching.scorer import pick_best_match
from cinefile.etl.pipeline.job import (
    ImportInProgressError,
    ImportJob,
    ImportState,
    PreloadReport,
    SearchOutcome,
)
from cinefile.etl.pipeline.manifest import CatalogManifest, ManifestEntry
from cinefile.etl.utils import setup_logger
from cinefile.settings import ImportSettings, settings

logger = setup_logger("cinefile.pipeline.orchestrator")

ProgressCallback = Callable[[float], None]


# =============================================================================
# ORCHESTRATOR
# =============================================================================


class ImportOrchestrator:
    """Imports ranked lists into a catalog store.

    At most one import is expected to run at a time; callers enforce it.
    Catalog mutations happen only on the event loop running the import.

    Attributes:
        store: Catalog receiving imported movies.
        client: Metadata search client (already entered).
        jobs: Last import job per list id.
    """

    def __init__(
        self,
        store: CatalogStore,
        client: TMDBClient,
        import_settings: ImportSettings | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            store: Catalog store to merge into.
            client: Search client.
            import_settings: Import configuration (defaults to global settings).
        """
        self.store = store
        self.client = client
        self.jobs: dict[str, ImportJob] = {}
        self._settings = import_settings or settings.importer
        self._preload_cancelled = False

    # -------------------------------------------------------------------------
    # Job Control
    # -------------------------------------------------------------------------

    def get_job(self, list_id: str) -> ImportJob:
        """Return the job for a list, IDLE when it never ran."""
        return self.jobs.setdefault(list_id, ImportJob(list_id=list_id))

    def cancel(self, list_id: str) -> bool:
        """Request cancellation of a running import.

        Args:
            list_id: List whose import to cancel.

        Returns:
            True if a running job was flagged.
        """
        job = self.jobs.get(list_id)
        if job is None or job.state != ImportState.RUNNING:
            return False
        job.cancel_requested = True
        logger.info(f"Cancellation requested for '{list_id}'")
        return True

    def cancel_all(self) -> None:
        """Cancel every running import and stop an ongoing preload."""
        self._preload_cancelled = True
        for list_id in list(self.jobs):
            self.cancel(list_id)

    # -------------------------------------------------------------------------
    # List Import
    # -------------------------------------------------------------------------

    async def import_list(
        self,
        rows: list[ImportRow],
        list_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> ImportJob:
        """Resolve every row of a list and merge the matches.

        Re-running an import converges to the same catalog.

        Args:
            rows: Parsed list rows.
            list_id: Target list id.
            on_progress: Called with completed/total after each row.

        Returns:
            Finished import job.

        Raises:
            ImportInProgressError: If the list is already importing.
            AuthError: If no valid API key is configured.

        Any other error, including task cancellation, ends the job in a
        terminal state before propagating.
        """
        current = self.jobs.get(list_id)
        if current is not None and current.state == ImportState.RUNNING:
            raise ImportInProgressError(f"Import already running for '{list_id}'")

        job = ImportJob(list_id=list_id)
        self.jobs[list_id] = job
        job.start(len(rows))
        self._emit_state(job)
        logger.info(f"Import started: '{list_id}' ({job.total} rows)")

        if not rows:
            self._finish(job, ImportState.COMPLETED, "No rows to import")
            return job

        try:
            self.client.ensure_credentials()
        except AuthError as e:
            self._finish(job, ImportState.FAILED, str(e))
            raise

        try:
            resolved = await self._run_pool(job, rows, on_progress)
            batch = [resolved[index] for index in sorted(resolved)]
            if batch:
                self.store.apply_batch(batch, list_id)
        except asyncio.CancelledError:
            self._finish(job, ImportState.CANCELLED, f"Interrupted after {job.completed}/{job.total} rows")
            raise
        except Exception as e:
            logger.exception(f"Import of '{list_id}' aborted")
            self._finish(job, ImportState.FAILED, str(e))
            raise

        if job.cancel_requested:
            message = f"Cancelled after {job.completed}/{job.total} rows ({job.matched} matched)"
            self._finish(job, ImportState.CANCELLED, message)
        else:
            message = f"Imported {job.matched}/{job.total} movies"
            self._finish(job, ImportState.COMPLETED, message)
        return job

    async def _run_pool(
        self,
        job: ImportJob,
        rows: list[ImportRow],
        on_progress: ProgressCallback | None,
    ) -> dict[int, Movie]:
        """Search rows with at most max_concurrency requests in flight.

        Args:
            job: Running job (progress and cancel flag).
            rows: Rows to resolve.
            on_progress: Progress callback.

        Returns:
            Movies to merge, keyed by row position.
        """
        include_adult = self.store.preferences.show_adult_content
        limit = self._settings.max_concurrency
        queue = iter(enumerate(rows))
        in_flight: dict[asyncio.Task[Movie | None], int] = {}
        resolved: dict[int, Movie] = {}

        try:
            while True:
                while len(in_flight) < limit and not job.cancel_requested:
                    item = next(queue, None)
                    if item is None:
                        break
                    index, row = item
                    task = asyncio.create_task(self._resolve_row(row, include_adult))
                    in_flight[task] = index
                    job.dispatched += 1

                if not in_flight:
                    break

                done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    index = in_flight.pop(task)
                    movie = self._collect(job, rows[index], task)
                    job.completed += 1
                    if not job.cancel_requested:
                        movie = movie or self._placeholder(rows[index], job.list_id)
                        if movie is not None:
                            resolved[index] = movie
                    self._report_progress(job, on_progress)
        finally:
            for task in in_flight:
                task.cancel()

        return resolved

    async def _resolve_row(self, row: ImportRow, include_adult: bool) -> Movie | None:
        """Search one row and pick its best candidate."""
        candidates = await self.client.search(
            row.title,
            year=row.year or None,
            include_details=False,
            include_adult=include_adult,
        )
        return pick_best_match(candidates, row)

    def _collect(self, job: ImportJob, row: ImportRow, task: asyncio.Task[Movie | None]) -> Movie | None:
        """Turn a finished row task into a ranked movie, or None for no match."""
        try:
            match = task.result()
        except TMDBClientError as e:
            logger.warning(f"Row #{row.rank} '{row.title}' failed: {e}")
            job.failed_rows.append(row.rank)
            return None
        except Exception:
            logger.exception(f"Row #{row.rank} '{row.title}' raised unexpectedly")
            job.failed_rows.append(row.rank)
            return None

        if match is None:
            logger.debug(f"No candidate for #{row.rank} '{row.title}' ({row.year})")
            return None

        if job.cancel_requested:
            return None

        job.matched += 1
        update: dict = {"list_rankings": {job.list_id: row.rank}}
        if not match.director and row.director:
            update["director"] = row.director
        if not match.runtime_minutes and row.runtime_minutes:
            update["runtime_minutes"] = row.runtime_minutes
        return match.model_copy(update=update, deep=True)

    def _placeholder(self, row: ImportRow, list_id: str) -> Movie | None:
        """Build a local-only movie for an unmatched row when configured."""
        if not self._settings.keep_unmatched:
            return None
        return Movie(
            id=f"csv:{list_id}:{row.rank}",
            title=row.title,
            year=row.year,
            director=row.director or "",
            runtime_minutes=row.runtime_minutes or 0,
            list_rankings={list_id: row.rank},
        )

    # -------------------------------------------------------------------------
    # Manifest Imports
    # -------------------------------------------------------------------------

    async def import_manifest_list(
        self,
        manifest: CatalogManifest,
        list_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> ImportJob:
        """Import one manifest list on demand, preload flag ignored.

        Args:
            manifest: Parsed manifest.
            list_id: Declared list id.
            on_progress: Progress callback.

        Returns:
            Finished import job (FAILED when the resource is missing).

        Raises:
            KeyError: If the manifest does not declare the list.
            AuthError: If no valid API key is configured.
        """
        entry = manifest.get(list_id)
        self.store.register_system_lists([entry.to_movie_list()])
        try:
            rows = load_rows(manifest.resource_path(entry), entry.type)
        except NotFoundError as e:
            return self._fail_missing(entry, e)
        return await self.import_list(rows, list_id, on_progress)

    async def preload(
        self,
        manifest: CatalogManifest,
        on_progress: ProgressCallback | None = None,
    ) -> PreloadReport:
        """Register every manifest list and import the preload ones in order.

        Progress is blended across lists: rows done over rows in all
        preloaded lists. A missing resource fails that list only; a missing
        API key stops the preload.

        Args:
            manifest: Parsed manifest.
            on_progress: Blended progress callback.

        Returns:
            Preload report.
        """
        self._preload_cancelled = False
        self.store.register_system_lists(manifest.movie_lists())
        report = PreloadReport()

        loaded: list[tuple[ManifestEntry, list[ImportRow]]] = []
        for entry in manifest.preload_entries:
            try:
                loaded.append((entry, load_rows(manifest.resource_path(entry), entry.type)))
            except NotFoundError as e:
                report.jobs.append(self._fail_missing(entry, e))

        grand_total = sum(len(rows) for _, rows in loaded)
        blended = _BlendedProgress(grand_total, on_progress)
        logger.info(f"Preload started: {len(loaded)} lists, {grand_total} rows")

        for entry, rows in loaded:
            if self._preload_cancelled:
                report.aborted = True
                report.status_message = f"Preload cancelled before '{entry.id}'"
                break
            try:
                job = await self.import_list(rows, entry.id, blended.for_list(len(rows)))
            except AuthError as e:
                report.jobs.append(self.jobs[entry.id])
                report.aborted = True
                report.status_message = f"Preload aborted: {e}"
                logger.error(f"❌ {report.status_message}")
                break
            report.jobs.append(job)
            blended.close_list()

        blended.finish()
        if not report.status_message:
            report.status_message = f"Preloaded {len(loaded)} lists ({report.total_matched} movies matched)"
            if report.failed_lists:
                report.status_message += f"; failed: {', '.join(report.failed_lists)}"
        logger.info(report.status_message)
        return report

    # -------------------------------------------------------------------------
    # Interactive Search
    # -------------------------------------------------------------------------

    async def search_interactive(self, query: str, year: int | None = None) -> SearchOutcome:
        """Search with full details, turning failures into a message.

        Args:
            query: Free-text title.
            year: Optional release year.

        Returns:
            Search outcome with results or an error message.
        """
        query = query.strip()
        if not query:
            return SearchOutcome(query=query)

        include_adult = self.store.preferences.show_adult_content
        try:
            results = await self.client.search(query, year=year, include_details=True, include_adult=include_adult)
        except AuthError as e:
            return SearchOutcome(query=query, error_message=str(e))
        except NetworkError as e:
            return SearchOutcome(query=query, error_message=f"Network error: {e}")
        except DecodeError as e:
            return SearchOutcome(query=query, error_message=f"Unexpected response from TMDB: {e}")

        return SearchOutcome(query=query, results=results)

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    def _report_progress(self, job: ImportJob, on_progress: ProgressCallback | None) -> None:
        progress = job.completed / job.total
        if on_progress is not None:
            on_progress(progress)
        self.store.notify(
            CatalogEvent.IMPORT_PROGRESS,
            list_id=job.list_id,
            progress=progress,
            completed=job.completed,
            total=job.total,
        )
        if job.completed % self._settings.progress_log_interval == 0 or job.completed == job.total:
            logger.info(f"[{job.list_id}] {job.completed}/{job.total} rows ({job.matched} matched)")

    def _emit_state(self, job: ImportJob) -> None:
        self.store.notify(
            CatalogEvent.IMPORT_STATE,
            list_id=job.list_id,
            state=job.state,
            message=job.status_message,
        )

    def _finish(self, job: ImportJob, state: ImportState, message: str) -> None:
        job.finish(state, message)
        self._emit_state(job)
        log = logger.error if state == ImportState.FAILED else logger.info
        log(f"Import {state.value}: '{job.list_id}' - {message} ({job.duration_seconds:.1f}s)")

    def _fail_missing(self, entry: ManifestEntry, error: NotFoundError) -> ImportJob:
        job = ImportJob(list_id=entry.id)
        self.jobs[entry.id] = job
        job.start(0)
        self._finish(job, ImportState.FAILED, f"Missing resource for '{entry.name}': {error}")
        return job


# =============================================================================
# BLENDED PROGRESS
# =============================================================================


class _BlendedProgress:
    """Maps per-list progress onto one 0..1 value across a preload."""

    def __init__(self, grand_total: int, callback: ProgressCallback | None) -> None:
        self._grand_total = grand_total
        self._callback = callback
        self._done_rows = 0
        self._current_rows = 0
        self._last = 0.0

    def for_list(self, rows: int) -> ProgressCallback:
        self._current_rows = rows

        def report(fraction: float) -> None:
            self._emit((self._done_rows + fraction * rows) / self._grand_total)

        return report

    def close_list(self) -> None:
        self._done_rows += self._current_rows
        self._current_rows = 0

    def finish(self) -> None:
        if self._last < 1.0:
            self._emit(1.0)

    def _emit(self, value: float) -> None:
        value = max(self._last, min(value, 1.0))
        self._last = value
        if self._callback is not None:
            self._callback(value)
