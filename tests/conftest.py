"""Shared fixtures."""

from pathlib import Path

import pytest

from papercrawler.config import Settings
from papercrawler.crawlers.throttle import RetryPolicy
from papercrawler.database.repository import PaperRepository
from papercrawler.models.paper import Paper


@pytest.fixture
def repo(tmp_path: Path) -> PaperRepository:
    return PaperRepository(tmp_path / "papers.db")


@pytest.fixture
def fast_retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=2, base_delay=0)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    metadata_dir = tmp_path / ".metadata"
    metadata_dir.mkdir()
    return Settings(
        db_path=tmp_path / "papers.db",
        metadata_dir=metadata_dir,
        feeds_path=metadata_dir / "feeds.yaml",
        crawler_path=metadata_dir / "crawler.yaml",
        retry_base_delay=0,
        default_keywords=[],
        exclude_keywords=[],
        min_year=None,
    )


@pytest.fixture
def make_paper():
    def _make(doi: str = "10.1000/test.1", title: str = "Test paper", **kwargs) -> Paper:
        kwargs.setdefault("url", f"https://example.org/{doi}")
        kwargs.setdefault("source", "Test")
        return Paper(doi=doi, title=title, **kwargs)

    return _make
