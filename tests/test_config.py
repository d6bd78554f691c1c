"""Tests for settings and feed list loading."""

from pathlib import Path

from papercrawler.config import Settings, load_feeds, save_feeds
from papercrawler.models.feed import Feed

CRAWLER_YAML = """
db_path: data/papers.db
browser:
  headless: false
  settle_delay: 2
retry:
  max_attempts: 5
  base_delay: 1.5
crawl:
  max_papers: 20
  sources: [PubMed, RSS]
  keywords: [genomics]
  min_year: 2015
sources:
  PubMed:
    max_pages: 3
    selectors: ignored
server:
  port: 9000
"""


def write_metadata(base: Path, name: str, text: str) -> None:
    metadata = base / ".metadata"
    metadata.mkdir(exist_ok=True)
    (metadata / name).write_text(text, encoding="utf-8")


def test_load_from_yaml(tmp_path, monkeypatch):
    monkeypatch.delenv("PAPERCRAWLER_HEADLESS", raising=False)
    monkeypatch.delenv("PAPERCRAWLER_SETTLE_DELAY", raising=False)
    write_metadata(tmp_path, "crawler.yaml", CRAWLER_YAML)

    settings = Settings.load(tmp_path)

    assert settings.db_path == tmp_path / "data" / "papers.db"
    assert settings.browser.headless is False
    assert settings.browser.settle_delay == 2.0
    assert settings.retry_policy().max_attempts == 5
    assert settings.retry_policy().base_delay == 1.5
    assert settings.max_papers == 20
    assert settings.default_sources == ["PubMed", "RSS"]
    assert settings.default_keywords == ["genomics"]
    assert settings.min_year == 2015
    assert settings.source_overrides == {"pubmed": {"max_pages": 3}}
    assert settings.port == 9000


def test_defaults_without_files(tmp_path, monkeypatch):
    monkeypatch.delenv("PAPERCRAWLER_HEADLESS", raising=False)
    settings = Settings.load(tmp_path)

    assert (tmp_path / ".metadata").is_dir()
    assert settings.db_path == tmp_path / "papers.db"
    assert settings.browser.headless is True
    assert settings.min_year == 2000
    assert "synthetic biology" in settings.default_keywords
    assert settings.feeds == []


def test_invalid_yaml_falls_back_to_defaults(tmp_path):
    write_metadata(tmp_path, "crawler.yaml", "crawl: [unclosed\n")
    settings = Settings.load(tmp_path)
    assert settings.max_papers == 50


def test_environment_overrides_browser(tmp_path, monkeypatch):
    write_metadata(tmp_path, "crawler.yaml", CRAWLER_YAML)
    monkeypatch.setenv("PAPERCRAWLER_HEADLESS", "true")
    monkeypatch.setenv("PAPERCRAWLER_SETTLE_DELAY", "0.5")

    settings = Settings.load(tmp_path)

    assert settings.browser.headless is True
    assert settings.browser.settle_delay == 0.5


def test_example_files_are_copied(tmp_path):
    example = tmp_path / ".metadata.example"
    example.mkdir()
    (example / "feeds.yaml").write_text(
        "feeds:\n  - name: Journal\n    url: https://journal.test/rss\n", encoding="utf-8"
    )

    settings = Settings.load(tmp_path)

    assert (tmp_path / ".metadata" / "feeds.yaml").exists()
    assert [f.name for f in settings.feeds] == ["Journal"]


def test_load_feeds_skips_incomplete_entries(tmp_path):
    path = tmp_path / "feeds.yaml"
    path.write_text(
        "feeds:\n"
        "  - name: Good\n    url: https://good.test/rss\n"
        "  - name: No url\n"
        "  - url: https://nameless.test/rss\n"
        "  - name: Paused\n    url: https://paused.test/rss\n    status: inactive\n",
        encoding="utf-8",
    )
    feeds = load_feeds(path)
    assert [(f.name, f.status) for f in feeds] == [("Good", "active"), ("Paused", "inactive")]


def test_save_feeds_writes_loadable_file(tmp_path):
    path = tmp_path / "nested" / "feeds.yaml"
    save_feeds(path, [Feed("One", "https://one.test/rss"), Feed("Two", "https://two.test/rss", status="inactive")])

    feeds = load_feeds(path)
    assert [(f.name, f.url, f.status) for f in feeds] == [
        ("One", "https://one.test/rss", "active"),
        ("Two", "https://two.test/rss", "inactive"),
    ]
