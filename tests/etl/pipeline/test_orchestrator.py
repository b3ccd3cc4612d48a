"""Tests for the import orchestrator (worker pool, cancellation, preload)."""

import asyncio
import json
from pathlib import Path

import pytest

from cinefile.catalog import CatalogEvent, CatalogStore, ImportRow, Movie, Notification
from cinefile.etl.extractors.tmdb.client import AuthError, DecodeError, NetworkError
from cinefile.etl.pipeline.job import ImportInProgressError, ImportJob, ImportState
from cinefile.etl.pipeline.manifest import load_manifest
from cinefile.etl.pipeline.orchestrator import ImportOrchestrator
from cinefile.settings import ImportSettings
from cinefile.storage.preferences import InMemoryPreferencesStore

NYT = "nytimes-100-21st-century"


class FakeSearchClient:
    """Stands in for TMDBClient: canned results, injected failures and an in-flight counter."""

    def __init__(
        self,
        results: dict[str, list[Movie]] | None = None,
        failures: set[str] | None = None,
        configured: bool = True,
    ) -> None:
        self.results = results or {}
        self.failures = failures or set()
        self.configured = configured
        self.calls: list[dict] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def ensure_credentials(self) -> str:
        if not self.configured:
            raise AuthError("Missing TMDB API key")
        return "key"

    async def search(
        self,
        query: str,
        year: int | None = None,
        include_details: bool = True,
        include_adult: bool = False,
    ) -> list[Movie]:
        self.calls.append(
            {"query": query, "year": year, "include_details": include_details, "include_adult": include_adult}
        )
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            if query in self.failures:
                raise NetworkError(f"TMDB API error 503: {query}", status_code=503)
            return [movie.model_copy(deep=True) for movie in self.results.get(query, [])]
        finally:
            self.in_flight -= 1


def _rows(count: int) -> list[ImportRow]:
    return [ImportRow(rank=i, title=f"Film {i}", year=2000 + i % 20) for i in range(1, count + 1)]


def _results_for(rows: list[ImportRow]) -> dict[str, list[Movie]]:
    return {row.title: [Movie(id=f"tmdb-{row.rank}", title=row.title, year=row.year)] for row in rows}


def _settings(**overrides) -> ImportSettings:
    values = {"IMPORT_MAX_CONCURRENCY": 6, "IMPORT_KEEP_UNMATCHED": False}
    values.update(overrides)
    return ImportSettings(_env_file=None, **values)


@pytest.fixture
def store() -> CatalogStore:
    return CatalogStore(persistence=InMemoryPreferencesStore())


# -------------------------------------------------------------------------
# Worker pool
# -------------------------------------------------------------------------


@pytest.mark.unit
class TestImportList:
    @staticmethod
    @pytest.mark.asyncio
    async def test_matches_merged_with_rank(store: CatalogStore, sample_rows: list[ImportRow]) -> None:
        client = FakeSearchClient(_results_for(sample_rows))
        orchestrator = ImportOrchestrator(store, client, _settings())

        job = await orchestrator.import_list(sample_rows, NYT)

        assert job.state == ImportState.COMPLETED
        assert job.matched == 10
        assert len(store.movies) == 10
        assert store.get_movie("tmdb-3").list_rankings == {NYT: 3}
        assert [movie.id for movie in store.movies] == [f"tmdb-{i}" for i in range(1, 11)]

    @staticmethod
    @pytest.mark.asyncio
    async def test_search_uses_summary_fast_path(store: CatalogStore, sample_rows: list[ImportRow]) -> None:
        client = FakeSearchClient(_results_for(sample_rows))
        store.set_show_adult_content(True)

        await ImportOrchestrator(store, client, _settings()).import_list(sample_rows[:1], NYT)

        assert client.calls == [
            {"query": "Parasite", "year": 2019, "include_details": False, "include_adult": True}
        ]

    @staticmethod
    @pytest.mark.asyncio
    async def test_progress_monotonic_and_complete(store: CatalogStore) -> None:
        rows = _rows(23)
        results = _results_for(rows)
        for rank in (2, 9, 17):
            results.pop(f"Film {rank}")
        client = FakeSearchClient(results, failures={"Film 4", "Film 11", "Film 23"})
        progress: list[float] = []

        job = await ImportOrchestrator(store, client, _settings()).import_list(rows, NYT, progress.append)

        assert len(progress) == 23
        assert progress == sorted(progress)
        assert progress[-1] == 1.0
        assert job.matched == 17
        assert sorted(job.failed_rows) == [4, 11, 23]
        assert job.state == ImportState.COMPLETED

    @staticmethod
    @pytest.mark.asyncio
    async def test_concurrency_capped(store: CatalogStore) -> None:
        rows = _rows(30)
        client = FakeSearchClient(_results_for(rows))

        await ImportOrchestrator(store, client, _settings()).import_list(rows, NYT)

        assert client.max_in_flight == 6
        assert len(client.calls) == 30

    @staticmethod
    @pytest.mark.asyncio
    async def test_custom_concurrency(store: CatalogStore) -> None:
        rows = _rows(10)
        client = FakeSearchClient(_results_for(rows))
        await ImportOrchestrator(store, client, _settings(IMPORT_MAX_CONCURRENCY=2)).import_list(rows, NYT)
        assert client.max_in_flight == 2

    @staticmethod
    @pytest.mark.asyncio
    async def test_decode_failure_is_no_match(store: CatalogStore) -> None:
        class BrokenClient(FakeSearchClient):
            async def search(self, query: str, **kwargs) -> list[Movie]:
                raise DecodeError("Unexpected payload")

        job = await ImportOrchestrator(store, BrokenClient(), _settings()).import_list(_rows(3), NYT)

        assert job.state == ImportState.COMPLETED
        assert job.matched == 0
        assert store.movies == []

    @staticmethod
    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(store: CatalogStore, sample_rows: list[ImportRow]) -> None:
        client = FakeSearchClient(_results_for(sample_rows))
        orchestrator = ImportOrchestrator(store, client, _settings())

        await orchestrator.import_list(sample_rows, NYT)
        first = [movie.model_dump() for movie in store.movies]
        await orchestrator.import_list(sample_rows, NYT)

        assert [movie.model_dump() for movie in store.movies] == first

    @staticmethod
    @pytest.mark.asyncio
    async def test_user_state_survives_reimport(store: CatalogStore, sample_rows: list[ImportRow]) -> None:
        client = FakeSearchClient(_results_for(sample_rows))
        orchestrator = ImportOrchestrator(store, client, _settings())
        await orchestrator.import_list(sample_rows, NYT)
        store.toggle_watched("tmdb-1")
        store.set_user_rating("tmdb-1", 8.5)

        await orchestrator.import_list(sample_rows, NYT)

        assert store.get_movie("tmdb-1").watched is True
        assert store.get_movie("tmdb-1").user_rating == 8.5

    @staticmethod
    @pytest.mark.asyncio
    async def test_row_director_fills_missing(store: CatalogStore) -> None:
        row = ImportRow(rank=1, title="Vertigo", year=1958, director="Alfred Hitchcock", runtime_minutes=128)
        client = FakeSearchClient({"Vertigo": [Movie(id="426", title="Vertigo", year=1958)]})

        await ImportOrchestrator(store, client, _settings()).import_list([row], "tspdt")

        movie = store.get_movie("426")
        assert movie.director == "Alfred Hitchcock"
        assert movie.runtime_minutes == 128

    @staticmethod
    @pytest.mark.asyncio
    async def test_keep_unmatched_placeholders(store: CatalogStore) -> None:
        rows = [ImportRow(rank=7, title="Lost Film", year=1927, director="Someone")]
        orchestrator = ImportOrchestrator(store, FakeSearchClient(), _settings(IMPORT_KEEP_UNMATCHED=True))

        job = await orchestrator.import_list(rows, NYT)

        placeholder = store.get_movie(f"csv:{NYT}:7")
        assert placeholder.title == "Lost Film"
        assert placeholder.director == "Someone"
        assert placeholder.list_rankings == {NYT: 7}
        assert job.matched == 0

    @staticmethod
    @pytest.mark.asyncio
    async def test_empty_rows(store: CatalogStore) -> None:
        client = FakeSearchClient()
        progress: list[float] = []

        job = await ImportOrchestrator(store, client, _settings()).import_list([], NYT, progress.append)

        assert job.state == ImportState.COMPLETED
        assert job.progress == 1.0
        assert progress == []
        assert client.calls == []


# -------------------------------------------------------------------------
# Failure and cancellation
# -------------------------------------------------------------------------


@pytest.mark.unit
class TestImportControl:
    @staticmethod
    @pytest.mark.asyncio
    async def test_auth_error_fails_job(store: CatalogStore) -> None:
        client = FakeSearchClient(configured=False)
        orchestrator = ImportOrchestrator(store, client, _settings())

        with pytest.raises(AuthError):
            await orchestrator.import_list(_rows(3), NYT)

        job = orchestrator.get_job(NYT)
        assert job.state == ImportState.FAILED
        assert "API key" in job.status_message
        assert client.calls == []

    @staticmethod
    @pytest.mark.asyncio
    async def test_running_import_rejected(store: CatalogStore) -> None:
        orchestrator = ImportOrchestrator(store, FakeSearchClient(), _settings())
        orchestrator.jobs[NYT] = ImportJob(list_id=NYT, state=ImportState.RUNNING)

        with pytest.raises(ImportInProgressError):
            await orchestrator.import_list(_rows(1), NYT)

    @staticmethod
    @pytest.mark.asyncio
    async def test_cancel_stops_admission_and_drains(store: CatalogStore) -> None:
        rows = _rows(20)
        client = FakeSearchClient(_results_for(rows))
        orchestrator = ImportOrchestrator(store, client, _settings())
        progress: list[float] = []

        def on_progress(value: float) -> None:
            progress.append(value)
            if len(progress) == 1:
                orchestrator.cancel(NYT)

        job = await orchestrator.import_list(rows, NYT, on_progress)

        # The first window of 6 was in flight when the flag was raised
        assert len(client.calls) == 6
        assert job.dispatched == 6
        assert len(progress) == 6
        assert progress == sorted(progress)
        assert job.state == ImportState.CANCELLED
        assert job.progress == 1.0
        # Only the row completed before cancellation is merged
        assert len(store.movies) == 1

    @staticmethod
    @pytest.mark.asyncio
    async def test_callback_error_fails_job_and_allows_rerun(store: CatalogStore) -> None:
        rows = _rows(4)
        orchestrator = ImportOrchestrator(store, FakeSearchClient(_results_for(rows)), _settings())

        def on_progress(value: float) -> None:
            raise RuntimeError("progress bar closed")

        with pytest.raises(RuntimeError):
            await orchestrator.import_list(rows, NYT, on_progress)

        failed = orchestrator.get_job(NYT)
        assert failed.state == ImportState.FAILED
        assert failed.status_message == "progress bar closed"
        assert store.movies == []

        job = await orchestrator.import_list(rows, NYT)
        assert job.state == ImportState.COMPLETED
        assert len(store.movies) == 4

    @staticmethod
    @pytest.mark.asyncio
    async def test_task_cancellation_ends_job(store: CatalogStore) -> None:
        rows = _rows(10)
        orchestrator = ImportOrchestrator(store, FakeSearchClient(_results_for(rows)), _settings())

        task = asyncio.create_task(orchestrator.import_list(rows, NYT))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert orchestrator.get_job(NYT).state == ImportState.CANCELLED

        job = await orchestrator.import_list(rows, NYT)
        assert job.state == ImportState.COMPLETED

    @staticmethod
    def test_cancel_idle_job(store: CatalogStore) -> None:
        orchestrator = ImportOrchestrator(store, FakeSearchClient(), _settings())
        assert orchestrator.cancel(NYT) is False
        assert orchestrator.get_job(NYT).state == ImportState.IDLE

    @staticmethod
    @pytest.mark.asyncio
    async def test_notifications(store: CatalogStore) -> None:
        received: list[Notification] = []
        store.subscribe(received.append)
        rows = _rows(2)

        await ImportOrchestrator(store, FakeSearchClient(_results_for(rows)), _settings()).import_list(rows, NYT)

        states = [n.payload["state"] for n in received if n.event == CatalogEvent.IMPORT_STATE]
        assert states == [ImportState.RUNNING, ImportState.COMPLETED]
        ticks = [n.payload["progress"] for n in received if n.event == CatalogEvent.IMPORT_PROGRESS]
        assert ticks == [0.5, 1.0]


# -------------------------------------------------------------------------
# Preload
# -------------------------------------------------------------------------


@pytest.fixture
def manifest_dir(tmp_path: Path) -> Path:
    (tmp_path / "first.csv").write_text("Rank,Title,Year\n1,Film A,2001\n2,Film B,2002\n3,Film C,2003\n",
                                        encoding="utf-8")
    (tmp_path / "second.csv").write_text("Edition,Rank,Title,Year\nx,1,Film D,1990\n", encoding="utf-8")
    (tmp_path / "later.csv").write_text("Pos,Title,Director,Year,Mins\n1,Film E,Jane Doe,1980,90\n",
                                        encoding="utf-8")
    lists = [
        {"id": "first", "name": "First", "type": "csv-nyt21", "resource": "first"},
        {"id": "missing", "name": "Missing", "type": "csv-nyt21", "resource": "nowhere.csv"},
        {"id": "second", "name": "Second", "type": "csv-afi", "resource": "second.csv"},
        {"id": "later", "name": "Later", "type": "csv-tspdt", "resource": "later.csv", "preload": False},
    ]
    (tmp_path / "manifest.json").write_text(json.dumps({"lists": lists}), encoding="utf-8")
    return tmp_path


def _manifest_results() -> dict[str, list[Movie]]:
    return {
        title: [Movie(id=title.lower().replace(" ", "-"), title=title, year=year)]
        for title, year in [("Film A", 2001), ("Film B", 2002), ("Film C", 2003), ("Film D", 1990), ("Film E", 1980)]
    }


@pytest.mark.integration
class TestPreload:
    @staticmethod
    @pytest.mark.asyncio
    async def test_blended_progress(store: CatalogStore, manifest_dir: Path) -> None:
        manifest = load_manifest(manifest_dir / "manifest.json")
        orchestrator = ImportOrchestrator(store, FakeSearchClient(_manifest_results()), _settings())
        progress: list[float] = []

        report = await orchestrator.preload(manifest, progress.append)

        assert progress == [0.25, 0.5, 0.75, 1.0]
        assert [movie_list.id for movie_list in store.lists] == ["first", "missing", "second", "later"]
        assert report.failed_lists == ["missing"]
        assert report.total_matched == 4
        assert report.aborted is False
        assert "later" not in orchestrator.jobs
        assert store.get_movie("film-d").list_rankings == {"second": 1}

    @staticmethod
    @pytest.mark.asyncio
    async def test_missing_resource_status(store: CatalogStore, manifest_dir: Path) -> None:
        manifest = load_manifest(manifest_dir / "manifest.json")
        orchestrator = ImportOrchestrator(store, FakeSearchClient(_manifest_results()), _settings())

        await orchestrator.preload(manifest)

        job = orchestrator.get_job("missing")
        assert job.state == ImportState.FAILED
        assert "Missing resource" in job.status_message

    @staticmethod
    @pytest.mark.asyncio
    async def test_auth_error_aborts(store: CatalogStore, manifest_dir: Path) -> None:
        manifest = load_manifest(manifest_dir / "manifest.json")
        client = FakeSearchClient(_manifest_results(), configured=False)
        orchestrator = ImportOrchestrator(store, client, _settings())
        progress: list[float] = []

        report = await orchestrator.preload(manifest, progress.append)

        assert report.aborted is True
        assert "API key" in report.status_message
        assert orchestrator.get_job("first").state == ImportState.FAILED
        assert orchestrator.get_job("second").state == ImportState.IDLE
        assert client.calls == []
        assert progress == [1.0]

    @staticmethod
    @pytest.mark.asyncio
    async def test_cancel_all_stops_after_current_list(store: CatalogStore, manifest_dir: Path) -> None:
        manifest = load_manifest(manifest_dir / "manifest.json")
        orchestrator = ImportOrchestrator(store, FakeSearchClient(_manifest_results()), _settings())

        def on_progress(value: float) -> None:
            if value >= 0.75:
                orchestrator.cancel_all()

        report = await orchestrator.preload(manifest, on_progress)

        assert report.aborted is True
        assert "second" in report.status_message
        # The running list is flagged too; all its rows had already completed
        first = orchestrator.get_job("first")
        assert first.state == ImportState.CANCELLED
        assert first.completed == 3
        assert orchestrator.get_job("second").state == ImportState.IDLE

    @staticmethod
    @pytest.mark.asyncio
    async def test_on_demand_list(store: CatalogStore, manifest_dir: Path) -> None:
        manifest = load_manifest(manifest_dir / "manifest.json")
        orchestrator = ImportOrchestrator(store, FakeSearchClient(_manifest_results()), _settings())

        job = await orchestrator.import_manifest_list(manifest, "later")

        assert job.state == ImportState.COMPLETED
        assert store.get_list("later").name == "Later"
        assert store.get_movie("film-e").director == "Jane Doe"

    @staticmethod
    @pytest.mark.asyncio
    async def test_on_demand_missing_resource(store: CatalogStore, manifest_dir: Path) -> None:
        manifest = load_manifest(manifest_dir / "manifest.json")
        orchestrator = ImportOrchestrator(store, FakeSearchClient(), _settings())
        job = await orchestrator.import_manifest_list(manifest, "missing")
        assert job.state == ImportState.FAILED


# -------------------------------------------------------------------------
# Interactive search
# -------------------------------------------------------------------------


@pytest.mark.unit
class TestSearchInteractive:
    @staticmethod
    @pytest.mark.asyncio
    async def test_success_uses_details(store: CatalogStore) -> None:
        client = FakeSearchClient({"Heat": [Movie(id="949", title="Heat", year=1995)]})
        outcome = await ImportOrchestrator(store, client, _settings()).search_interactive(" Heat ", year=1995)
        assert outcome.ok is True
        assert [movie.id for movie in outcome.results] == ["949"]
        assert client.calls[0]["include_details"] is True

    @staticmethod
    @pytest.mark.asyncio
    async def test_network_error_becomes_message(store: CatalogStore) -> None:
        client = FakeSearchClient(failures={"Heat"})
        outcome = await ImportOrchestrator(store, client, _settings()).search_interactive("Heat")
        assert outcome.ok is False
        assert outcome.error_message.startswith("Network error")

    @staticmethod
    @pytest.mark.asyncio
    async def test_auth_error_becomes_message(store: CatalogStore) -> None:
        class Unconfigured(FakeSearchClient):
            async def search(self, query: str, **kwargs) -> list[Movie]:
                raise AuthError("Missing TMDB API key")

        outcome = await ImportOrchestrator(store, Unconfigured(), _settings()).search_interactive("Heat")
        assert outcome.error_message == "Missing TMDB API key"

    @staticmethod
    @pytest.mark.asyncio
    async def test_blank_query(store: CatalogStore) -> None:
        client = FakeSearchClient()
        outcome = await ImportOrchestrator(store, client, _settings()).search_interactive("   ")
        assert outcome.ok is True
        assert outcome.results == []
        assert client.calls == []
