"""Tests for the HTTP API."""

import asyncio
import time

import pytest
from fastapi.testclient import TestClient
from stubs import html_config

from papercrawler.api.app import create_app
from papercrawler.api.state import AppState
from papercrawler.crawlers.context import CrawlContext
from papercrawler.crawlers.registry import CrawlerRegistry
from papercrawler.crawlers.strategies.base import SourceStrategy
from papercrawler.services.crawl_service import CrawlService


class WaitForStop(SourceStrategy):
    async def _run(self, context: CrawlContext) -> None:
        while not context.should_stop:
            await asyncio.sleep(0.01)


@pytest.fixture
def client(settings, repo):
    registry = CrawlerRegistry()
    registry.register(lambda config, deps: WaitForStop(config, deps.store), html_config("Slow"))
    service = CrawlService(settings, store=repo, registry=registry)
    app = create_app(AppState(settings=settings, repo=repo, service=service))
    with TestClient(app) as test_client:
        yield test_client


def wait_until_idle(client: TestClient, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        status = client.get("/api/crawler/status").json()
        if not status["is_running"] or time.monotonic() > deadline:
            return status
        time.sleep(0.02)


class TestCrawler:
    def test_status_when_idle(self, client):
        response = client.get("/api/crawler/status")
        assert response.status_code == 200
        body = response.json()
        assert body["is_running"] is False
        assert body["papers_found"] == 0

    def test_start_stop_cycle(self, client):
        response = client.post("/api/crawler/start", json={"max_papers": 5})
        assert response.status_code == 200
        assert response.json()["status"]["is_running"] is True

        busy = client.post("/api/crawler/start", json={})
        assert busy.status_code == 400

        assert client.post("/api/crawler/stop").status_code == 200
        assert wait_until_idle(client)["is_running"] is False

    def test_start_validates_body(self, client):
        response = client.post("/api/crawler/start", json={"max_papers": 0})
        assert response.status_code == 422

    def test_reset_refused_while_running(self, client):
        client.post("/api/crawler/start", json={})
        assert client.post("/api/crawler/reset").status_code == 400
        client.post("/api/crawler/stop")
        wait_until_idle(client)
        response = client.post("/api/crawler/reset")
        assert response.status_code == 200
        assert response.json() == {"deleted": 0}

    def test_events(self, client):
        client.post("/api/crawler/start", json={})
        client.post("/api/crawler/stop")
        wait_until_idle(client)
        events = client.get("/api/crawler/events").json()
        assert any(e["message"].startswith("Starting crawl") for e in events)

    def test_start_without_target_uses_configured_one(self, client, settings):
        settings.max_papers = 7
        client.post("/api/crawler/start", json={})
        client.post("/api/crawler/stop")
        wait_until_idle(client)
        events = client.get("/api/crawler/events").json()
        assert any("target=7" in e["message"] for e in events)


class TestFeeds:
    def test_feed_crud(self, client):
        created = client.post(
            "/api/crawler/feeds/add", json={"url": "journal.test/rss", "name": "Journal"}
        )
        assert created.status_code == 201
        assert created.json()["url"] == "https://journal.test/rss"

        listed = client.get("/api/crawler/feeds").json()
        assert [f["name"] for f in listed] == ["Journal"]

        duplicate = client.post(
            "/api/crawler/feeds/add", json={"url": "https://journal.test/rss", "name": "Again"}
        )
        assert duplicate.status_code == 400

        removed = client.post("/api/crawler/feeds/remove", json={"url": "https://journal.test/rss"})
        assert removed.status_code == 200
        assert client.get("/api/crawler/feeds").json() == []

    def test_remove_unknown_feed(self, client):
        response = client.post("/api/crawler/feeds/remove", json={"url": "https://missing.test/rss"})
        assert response.status_code == 404


class TestPapers:
    def test_list_and_get(self, client, repo, make_paper):
        saved = repo.save(make_paper(doi="pubmed-1", title="CRISPR screens", source="PubMed"))
        repo.save(make_paper(doi="rss-abc", title="Feed item", source="RSS"))

        body = client.get("/api/papers").json()
        assert body["total"] == 2
        assert [p["doi"] for p in body["papers"]] == ["rss-abc", "pubmed-1"]

        only_pubmed = client.get("/api/papers", params={"source": "PubMed"}).json()
        assert [p["doi"] for p in only_pubmed["papers"]] == ["pubmed-1"]

        paper = client.get(f"/api/papers/{saved.id}").json()
        assert paper["title"] == "CRISPR screens"

    def test_search(self, client, repo, make_paper):
        repo.save(make_paper(doi="a", title="CRISPR screens"))
        repo.save(make_paper(doi="b", title="Pasta"))
        body = client.get("/api/papers/search", params={"q": "crispr"}).json()
        assert [p["doi"] for p in body["papers"]] == ["a"]

    def test_missing_paper(self, client):
        assert client.get("/api/papers/999").status_code == 404
