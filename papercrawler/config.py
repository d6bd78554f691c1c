"""Configuration management.

``Settings`` is a plain dataclass built by the host (API lifespan or CLI)
with ``Settings.load()`` and passed to whatever needs it.

All user-editable configuration lives under ``.metadata/``:

* ``crawler.yaml``  – database path, browser, retry policy, default filters,
  per-source overrides
* ``feeds.yaml``    – RSS/Atom feeds

On first run, missing files are copied from ``.metadata.example/``.
Browser settings can be overridden with ``PAPERCRAWLER_HEADLESS`` and
``PAPERCRAWLER_SETTLE_DELAY``.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from papercrawler.crawlers.browser.playwright_adapter import BrowserSettings
from papercrawler.crawlers.filters import DEFAULT_EXCLUDE_KEYWORDS
from papercrawler.crawlers.throttle import RetryPolicy
from papercrawler.models.feed import Feed

logger = logging.getLogger(__name__)

DEFAULT_KEYWORDS = [
    "synthetic biology",
    "machine learning",
    "bioinformatics",
    "computational biology",
]

# Per-source keys that may be overridden from crawler.yaml
SOURCE_OVERRIDE_KEYS = ("max_pages", "requests_per_minute", "detail_fetch_limit")


@dataclass
class Settings:
    """Application settings."""

    contact_email: Optional[str] = None
    db_path: Path = Path("papers.db")
    metadata_dir: Path = Path(".metadata")
    feeds_path: Path = Path(".metadata/feeds.yaml")
    crawler_path: Path = Path(".metadata/crawler.yaml")

    browser: BrowserSettings = field(default_factory=BrowserSettings)
    retry_max_attempts: int = 3
    retry_base_delay: float = 10.0
    retry_jitter: float = 0.0

    max_papers: int = 50
    default_sources: list[str] = field(default_factory=list)
    default_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_KEYWORDS))
    default_categories: list[str] = field(default_factory=list)
    exclude_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_KEYWORDS))
    min_year: Optional[int] = 2000
    source_overrides: dict[str, dict[str, Any]] = field(default_factory=dict)

    feeds: list[Feed] = field(default_factory=list)

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            base_delay=self.retry_base_delay,
            jitter=self.retry_jitter,
        )

    # ── Factory ───────────────────────────────────────────────────────

    @classmethod
    def load(cls, base_dir: Optional[Path] = None) -> "Settings":
        """Read settings from ``<base_dir>/.metadata``.

        *base_dir* defaults to the current working directory.
        """
        if base_dir is None:
            base_dir = Path.cwd()

        metadata_dir = base_dir / ".metadata"
        cls._ensure_default_files(base_dir, metadata_dir)

        crawler_path = metadata_dir / "crawler.yaml"
        feeds_path = metadata_dir / "feeds.yaml"
        data = _load_yaml(crawler_path)

        settings = cls(
            metadata_dir=metadata_dir,
            feeds_path=feeds_path,
            crawler_path=crawler_path,
            feeds=load_feeds(feeds_path),
        )
        settings._apply(data, base_dir)
        settings.browser = _apply_env(settings.browser)
        return settings

    def _apply(self, data: dict[str, Any], base_dir: Path) -> None:
        self.contact_email = data.get("contact_email") or None
        db_path = Path(data.get("db_path") or "papers.db")
        self.db_path = db_path if db_path.is_absolute() else base_dir / db_path

        browser = data.get("browser") or {}
        self.browser = BrowserSettings(
            headless=bool(browser.get("headless", True)),
            navigation_timeout=float(browser.get("navigation_timeout", 60.0)),
            selector_timeout=float(browser.get("selector_timeout", 10.0)),
            settle_delay=float(browser.get("settle_delay", 10.0)),
        )

        retry = data.get("retry") or {}
        self.retry_max_attempts = int(retry.get("max_attempts", 3))
        self.retry_base_delay = float(retry.get("base_delay", 10.0))
        self.retry_jitter = float(retry.get("jitter", 0.0))

        crawl = data.get("crawl") or {}
        self.max_papers = int(crawl.get("max_papers", 50))
        self.default_sources = _str_list(crawl.get("sources"))
        self.default_keywords = _str_list(crawl.get("keywords", DEFAULT_KEYWORDS))
        self.default_categories = _str_list(crawl.get("categories"))
        self.exclude_keywords = _str_list(crawl.get("exclude_keywords", DEFAULT_EXCLUDE_KEYWORDS))
        min_year = crawl.get("min_year", 2000)
        self.min_year = int(min_year) if min_year else None

        overrides = data.get("sources") or {}
        self.source_overrides = {
            str(name).lower(): {k: v for k, v in (values or {}).items() if k in SOURCE_OVERRIDE_KEYS}
            for name, values in overrides.items()
        }

        server = data.get("server") or {}
        self.host = str(server.get("host", "127.0.0.1"))
        self.port = int(server.get("port", 8000))
        self.log_level = str(data.get("log_level", "INFO")).upper()

    # ── Private ───────────────────────────────────────────────────────

    @staticmethod
    def _ensure_default_files(base_dir: Path, metadata_dir: Path) -> None:
        """Copy ``.metadata.example/`` templates when real files are missing."""
        metadata_dir.mkdir(parents=True, exist_ok=True)

        example_dir = base_dir / ".metadata.example"
        if not example_dir.exists():
            return

        for example_file in example_dir.iterdir():
            if example_file.is_file():
                target = metadata_dir / example_file.name
                if not target.exists():
                    shutil.copy2(example_file, target)
                    logger.info("Created .metadata/%s from template", example_file.name)


# ---------------------------------------------------------------------------
# YAML loaders
# ---------------------------------------------------------------------------

def _str_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v]


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _apply_env(browser: BrowserSettings) -> BrowserSettings:
    """Environment overrides for the browser settings."""
    headless = os.environ.get("PAPERCRAWLER_HEADLESS")
    if headless is not None:
        browser.headless = headless.lower() in ("1", "true", "yes")
    settle = os.environ.get("PAPERCRAWLER_SETTLE_DELAY")
    if settle:
        try:
            browser.settle_delay = float(settle)
        except ValueError:
            logger.warning("Ignoring invalid PAPERCRAWLER_SETTLE_DELAY=%r", settle)
    return browser


def load_feeds(path: Path) -> list[Feed]:
    """Load RSS feeds from ``feeds.yaml``; entries missing a name or url are skipped."""
    data = _load_yaml(path)
    feeds: list[Feed] = []
    for entry in data.get("feeds") or []:
        if isinstance(entry, dict) and entry.get("name") and entry.get("url"):
            status = entry.get("status", "active")
            feeds.append(
                Feed(
                    name=str(entry["name"]),
                    url=str(entry["url"]),
                    status=status if status in ("active", "inactive") else "active",
                )
            )
    return feeds


def save_feeds(path: Path, feeds: list[Feed]) -> None:
    """Persist RSS feeds to ``feeds.yaml``."""
    data: dict[str, Any] = {
        "feeds": [
            {"name": f.name, "url": f.url}
            if f.status != "inactive"
            else {"name": f.name, "url": f.url, "status": "inactive"}
            for f in feeds
        ],
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write("# RSS/Atom feeds crawled by the RSS source\n")
        yaml.dump(
            data,
            f,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )
