"""Tests for feed retrieval and the RSS source."""

import hashlib
from types import SimpleNamespace
from typing import get_type_hints

import httpx
import pytest

from papercrawler.crawlers.context import CrawlContext
from papercrawler.crawlers.errors import FeedFetchError
from papercrawler.crawlers.feeds import FeedReader, FeedRegistry, normalize_feed_url
from papercrawler.crawlers.strategies.rss import RSS_CONFIG, FeedItem, RssFeedStrategy
from papercrawler.models.crawl import CrawlFilters
from papercrawler.models.feed import Feed
from papercrawler.models.paper import ABSTRACT_PLACEHOLDER

FEED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Good Journal</title>
    <link>https://good.test/</link>
    <description>Latest research</description>
    <item>
      <title>CRISPR screens in &lt;i&gt;E. coli&lt;/i&gt;</title>
      <link>https://good.test/articles/1</link>
      <guid>https://good.test/articles/1</guid>
      <description>Abstract: We performed genome-wide CRISPR screens to map essential genes in bacteria.</description>
      <pubDate>Fri, 05 Jan 2024 10:00:00 GMT</pubDate>
      <category>Genetics</category>
      <dc:creator>Ada Lovelace</dc:creator>
    </item>
    <item>
      <title>Pasta at altitude</title>
      <link>https://good.test/articles/2</link>
      <guid>https://good.test/articles/2</guid>
      <description>How boiling point changes the way dried pasta cooks in the mountains.</description>
    </item>
  </channel>
</rss>
"""


def feed_transport(routes: dict[str, httpx.Response]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url not in routes:
            raise httpx.ConnectError("unreachable", request=request)
        return routes[url]

    return httpx.MockTransport(handler)


def rss_reader(routes: dict[str, httpx.Response]) -> FeedReader:
    return FeedReader(client=httpx.AsyncClient(transport=feed_transport(routes)))


def good(body: str = FEED_XML) -> httpx.Response:
    return httpx.Response(200, content=body.encode("utf-8"))


def guid_identity(guid: str) -> str:
    return "rss-" + hashlib.md5(guid.encode("utf-8")).hexdigest()[:12]


def context_for(repo, fast_retry, keywords=()):
    return CrawlContext(
        store=repo,
        filters=CrawlFilters(keywords=tuple(keywords)),
        target=50,
        retry_policy=fast_retry,
    )


async def run(strategy, context):
    await strategy.initialize(context)
    try:
        await strategy.crawl(context)
    finally:
        await strategy.cleanup()
    return strategy.get_status()


def test_normalize_feed_url():
    assert normalize_feed_url(" example.org/rss ") == "https://example.org/rss"
    assert normalize_feed_url("http://example.org/rss") == "http://example.org/rss"


class TestFeedRegistry:
    def test_add_and_duplicate(self):
        registry = FeedRegistry()
        registry.add("example.org/rss", "Example")
        assert registry.get("https://example.org/rss").name == "Example"
        with pytest.raises(ValueError):
            registry.add("https://example.org/rss", "Again")

    def test_add_requires_name_and_url(self):
        with pytest.raises(ValueError):
            FeedRegistry().add("", "Name")
        with pytest.raises(ValueError):
            FeedRegistry().add("https://x.test/rss", "  ")

    def test_remove_unknown(self):
        with pytest.raises(KeyError):
            FeedRegistry().remove("https://missing.test/rss")

    def test_inactive_feeds_are_skipped(self):
        registry = FeedRegistry(
            [Feed("On", "https://on.test/rss"), Feed("Off", "https://off.test/rss", status="inactive")]
        )
        assert [f.name for f in registry.active()] == ["On"]
        assert len(registry) == 2

    def test_listing_returns_copies(self):
        registry = FeedRegistry([Feed("On", "https://on.test/rss")])
        registry.list()[0].status = "error"
        assert registry.get("https://on.test/rss").status == "active"

    def test_return_annotations_resolve(self):
        # the list() method must not shadow the builtin in later annotations
        assert get_type_hints(FeedRegistry.active) == {"return": list[Feed]}
        assert get_type_hints(FeedRegistry.list) == {"return": list[Feed]}


class TestFeedReader:
    @pytest.mark.asyncio
    async def test_parses_entries(self):
        reader = rss_reader({"https://good.test/rss": good()})
        parsed = await reader.fetch("good.test/rss")
        assert len(parsed.entries) == 2

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        reader = rss_reader({"https://bad.test/rss": httpx.Response(503)})
        with pytest.raises(FeedFetchError, match="503"):
            await reader.fetch("https://bad.test/rss")

    @pytest.mark.asyncio
    async def test_contact_email_in_user_agent(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["User-Agent"])
            return good()

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        reader = FeedReader(client=client, contact_email="lab@example.org")
        await reader.fetch("https://good.test/rss")
        assert seen[0].endswith("; mailto:lab@example.org)")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        reader = rss_reader({})
        with pytest.raises(FeedFetchError) as excinfo:
            await reader.fetch("https://down.test/rss")
        assert excinfo.value.url == "https://down.test/rss"


class TestNormalize:
    def _strategy(self, repo):
        return RssFeedStrategy(RSS_CONFIG, repo, FeedRegistry(), FeedReader())

    def test_entry_fields(self, repo):
        feed = Feed("Good Journal", "https://good.test/rss")
        entry = {
            "title": "CRISPR screens in <i>E. coli</i>",
            "link": "https://good.test/articles/1",
            "id": "guid-1",
            "summary": "Abstract: We performed genome-wide CRISPR screens in bacteria.",
            "tags": [{"term": "Genetics"}],
            "author": "Ada Lovelace",
            "dc_identifier": "doi:10.1000/good.1",
        }
        paper = self._strategy(repo).normalize(FeedItem(feed, entry))

        assert paper.doi == guid_identity("guid-1")
        assert paper.title == "CRISPR screens in E. coli"
        assert paper.abstract == "We performed genome-wide CRISPR screens in bacteria."
        assert paper.authors == ["Ada Lovelace"]
        assert paper.source == "RSS"
        assert paper.categories == ["Genetics", "Good Journal"]
        assert "crispr" in paper.keywords
        assert "RSS Feed" in paper.keywords
        assert "Source: Good Journal" in paper.keywords
        assert paper.metadata["journal"] == "Good Journal"
        assert paper.metadata["feed_url"] == "https://good.test/rss"

    def test_link_used_when_guid_missing(self, repo):
        feed = Feed("Good Journal", "https://good.test/rss")
        entry = {"title": "Title", "link": "https://good.test/a"}
        paper = self._strategy(repo).normalize(FeedItem(feed, entry))
        assert paper.doi == guid_identity("https://good.test/a")
        assert paper.authors == ["Good Journal Publisher"]
        assert paper.abstract == ABSTRACT_PLACEHOLDER

    def test_entry_without_title_dropped(self, repo):
        feed = Feed("Good Journal", "https://good.test/rss")
        assert self._strategy(repo).normalize(FeedItem(feed, {"link": "https://x"})) is None


@pytest.mark.asyncio
async def test_failed_feed_does_not_stop_the_others(repo, fast_retry):
    feeds = FeedRegistry(
        [
            Feed("Good Journal", "https://good.test/rss"),
            Feed("Broken", "https://bad.test/rss"),
            Feed("Other Journal", "https://other.test/rss"),
        ]
    )
    reader = rss_reader(
        {
            "https://good.test/rss": good(),
            "https://bad.test/rss": httpx.Response(200, content=b"this is not a feed"),
            "https://other.test/rss": good(FEED_XML.replace("good.test", "other.test")),
        }
    )
    strategy = RssFeedStrategy(
        RSS_CONFIG.with_overrides(requests_per_minute=0), repo, feeds, reader
    )

    status = await run(strategy, context_for(repo, fast_retry, keywords=["synthetic biology"]))

    # only the CRISPR entries match, via related terms
    assert status.papers_found == 2
    assert repo.find_by_doi(guid_identity("https://good.test/articles/1")) is not None
    assert repo.find_by_doi(guid_identity("https://other.test/articles/1")) is not None
    assert status.total_pages == 3

    broken = feeds.get("https://bad.test/rss")
    assert broken.status == "error"
    assert broken.name == "Broken"
    assert "could not be parsed" in broken.error_message
    assert "Broken" in status.last_error

    healthy = feeds.get("https://good.test/rss")
    assert healthy.status == "active"
    assert healthy.last_fetched is not None


@pytest.mark.asyncio
async def test_max_pages_caps_feed_count(repo, fast_retry):
    feeds = FeedRegistry([Feed(f"F{i}", f"https://f{i}.test/rss") for i in range(4)])
    routes = {
        f"https://f{i}.test/rss": good(FEED_XML.replace("good.test", f"f{i}.test")) for i in range(4)
    }
    strategy = RssFeedStrategy(
        RSS_CONFIG.with_overrides(requests_per_minute=0, max_pages=2), repo, feeds, rss_reader(routes)
    )

    status = await run(strategy, context_for(repo, fast_retry))

    assert status.papers_found == 4
    assert feeds.get("https://f3.test/rss").last_fetched is None


@pytest.mark.asyncio
async def test_no_feeds_is_a_clean_run(repo, fast_retry):
    strategy = RssFeedStrategy(RSS_CONFIG, repo, FeedRegistry(), FeedReader())
    status = await run(strategy, context_for(repo, fast_retry))
    assert status.papers_found == 0
    assert status.last_error == ""


class EntriesReader:
    """Feed reader that returns fixed entries without any HTTP."""

    def __init__(self, entries):
        self.entries = entries

    async def fetch(self, url: str):
        return SimpleNamespace(entries=self.entries)


@pytest.mark.asyncio
async def test_bad_entry_does_not_stop_its_siblings(repo, fast_retry):
    feeds = FeedRegistry([Feed("Good Journal", "https://good.test/rss")])
    entries = [
        {"title": "First", "link": "https://good.test/1"},
        {"title": "Broken", "link": "https://good.test/2", "tags": [None]},
        {"title": "Third", "link": "https://good.test/3"},
    ]
    strategy = RssFeedStrategy(RSS_CONFIG, repo, feeds, EntriesReader(entries))

    status = await run(strategy, context_for(repo, fast_retry))

    assert status.papers_found == 2
    assert repo.find_by_doi(guid_identity("https://good.test/1")) is not None
    assert repo.find_by_doi(guid_identity("https://good.test/2")) is None
    assert repo.find_by_doi(guid_identity("https://good.test/3")) is not None
