"""Shared pytest fixtures for catalog and import tests."""

from pathlib import Path
from typing import Any

import pytest

from cinefile.catalog import ImportRow, Movie
from cinefile.settings import ImportSettings, TMDBSettings


@pytest.fixture(autouse=True, scope="function")
def mock_env_for_tests(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Mock env variables for reproducible tests."""
    monkeypatch.setenv("TMDB_API_KEY", "test_api_key_12345678901234567890")
    monkeypatch.setenv("TMDB_BASE_URL", "https://api.themoviedb.org/3")
    monkeypatch.setenv("TMDB_IMAGE_BASE_URL", "https://image.tmdb.org/t/p/w500")
    monkeypatch.setenv("TMDB_LANGUAGE", "en-US")

    monkeypatch.setenv("IMPORT_MAX_CONCURRENCY", "6")
    monkeypatch.setenv("IMPORT_KEEP_UNMATCHED", "false")

    monkeypatch.setenv("CINEFILE_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("LOG_LEVEL", "INFO")


@pytest.fixture
def tmdb_settings() -> TMDBSettings:
    """TMDB settings with a usable test key."""
    return TMDBSettings(
        _env_file=None,
        TMDB_API_KEY="test_api_key_12345678901234567890",
        TMDB_BASE_URL="https://api.themoviedb.org/3",
        TMDB_IMAGE_BASE_URL="https://image.tmdb.org/t/p/w500",
    )


@pytest.fixture
def import_settings() -> ImportSettings:
    """Import settings with the default pool size."""
    return ImportSettings(_env_file=None, IMPORT_MAX_CONCURRENCY=6, IMPORT_KEEP_UNMATCHED=False)


@pytest.fixture
def sample_search_result() -> dict[str, Any]:
    """One /search/movie result."""
    return {
        "id": 949,
        "title": "Heat",
        "release_date": "1995-12-15",
        "overview": "Obsessive master thief Neil McCauley leads a top-notch crew...",
        "poster_path": "/umSVjVdbVwtx5ryCA2QXL44Durm.jpg",
        "vote_average": 7.9,
    }


@pytest.fixture
def sample_details() -> dict[str, Any]:
    """A /movie/{id} payload."""
    return {
        "id": 949,
        "runtime": 170,
        "genres": [{"id": 28, "name": "Action"}, {"id": 80, "name": "Crime"}],
    }


@pytest.fixture
def sample_credits() -> dict[str, Any]:
    """A /movie/{id}/credits payload."""
    return {
        "cast": [
            {"name": "Al Pacino"},
            {"name": "Robert De Niro"},
            {"name": "Val Kilmer"},
            {"name": "Jon Voight"},
            {"name": "Tom Sizemore"},
            {"name": "Diane Venora"},
        ],
        "crew": [
            {"job": "Producer", "name": "Art Linson"},
            {"job": "Director", "name": "Michael Mann"},
        ],
    }


@pytest.fixture
def sample_movie() -> Movie:
    """A catalog entry ranked in one list."""
    return Movie(
        id="949",
        title="Heat",
        year=1995,
        director="Michael Mann",
        critic_rating=7.9,
        runtime_minutes=170,
        list_rankings={"nytimes-100-21st-century": 5},
    )


@pytest.fixture
def sample_rows() -> list[ImportRow]:
    """Rows of a small ranked list."""
    titles = [
        ("Parasite", 2019),
        ("There Will Be Blood", 2007),
        ("Spirited Away", 2001),
        ("In the Mood for Love", 2000),
        ("Get Out", 2017),
        ("Moonlight", 2016),
        ("The Social Network", 2010),
        ("WALL·E", 2008),
        ("Mulholland Drive", 2001),
        ("The Master", 2012),
    ]
    return [ImportRow(rank=i, title=title, year=year) for i, (title, year) in enumerate(titles, start=1)]
