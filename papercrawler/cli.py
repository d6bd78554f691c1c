"""Command-line interface handlers."""

import argparse
import asyncio
from datetime import date
from typing import Optional, Sequence

from rich.progress import Progress, SpinnerColumn, TextColumn

from papercrawler.config import Settings
from papercrawler.console import ConsoleUI
from papercrawler.database.repository import PaperRepository
from papercrawler.logging_setup import configure_logging
from papercrawler.models.crawl import CrawlRequest, CrawlStatus, DateRange
from papercrawler.services.crawl_service import CrawlerBusyError, CrawlService


class PaperCrawlerCLI:
    """CLI application for PaperCrawler."""

    def __init__(self, settings: Optional[Settings] = None, ui: Optional[ConsoleUI] = None):
        """Initialize CLI with settings.

        Args:
            settings: Application settings (loaded from .metadata if not provided)
            ui: Console UI (a default Rich console if not provided)
        """
        self.settings = settings or Settings.load()
        self.ui = ui or ConsoleUI()
        self.repo = PaperRepository(self.settings.db_path)
        self.service = CrawlService(self.settings, store=self.repo)

    def cmd_crawl(self, request: CrawlRequest) -> CrawlStatus:
        """Run one crawl in the foreground with a progress spinner."""
        self.ui.info(f"Target: [bold]{request.max_papers}[/bold] new papers")
        status = asyncio.run(self._crawl(request))
        self.ui.crawl_complete(status)
        return status

    async def _crawl(self, request: CrawlRequest) -> CrawlStatus:
        async def echo_saved() -> None:
            async for paper in self.service.subscribe(until_finished=True):
                self.ui.saved(paper)

        echo = asyncio.create_task(echo_saved())
        await asyncio.sleep(0)
        await self.service.start(request)
        with Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            console=self.ui.console,
        ) as progress:
            task = progress.add_task("Starting crawl...", total=None)
            while self.service.is_running:
                status = self.service.get_status()
                progress.update(
                    task,
                    description=(
                        f"{status.current_source or 'Preparing'} "
                        f"page {status.current_page}: {status.papers_found} saved"
                    ),
                )
                await asyncio.sleep(0.5)
        status = await self.service.wait()
        await echo
        return status

    def cmd_feeds_list(self) -> None:
        self.ui.display_feeds(self.service.list_feeds())

    def cmd_feeds_add(self, url: str, name: str) -> None:
        try:
            feed = self.service.add_feed(url, name)
        except ValueError as e:
            self.ui.error(str(e))
            return
        self.ui.success(f"Added feed: {feed.name} ({feed.url})")

    def cmd_feeds_remove(self, url: str) -> None:
        try:
            feed = self.service.remove_feed(url)
        except KeyError:
            self.ui.error(f"Feed not registered: {url}")
            return
        self.ui.success(f"Removed feed: {feed.name}")

    def cmd_list(self, limit: int = 50, source: Optional[str] = None) -> None:
        """List the most recently stored papers.

        Args:
            limit: Maximum papers to display
            source: Only papers from this source
        """
        papers = self.repo.find_all(limit=limit, source=source)
        self.ui.display_papers(papers, title=f"Papers ({self.repo.count()} stored)")

    def cmd_search(self, query: str, limit: int = 50) -> None:
        papers = self.repo.search(query, limit=limit)
        self.ui.display_papers(papers, title=f"Search: {query}")

    def cmd_reset(self) -> None:
        """Delete every stored paper."""
        try:
            deleted = self.service.reset_store()
        except CrawlerBusyError as e:
            self.ui.error(str(e))
            return
        self.ui.success(f"Deleted {deleted} papers")


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date (YYYY-MM-DD): {value}") from e


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="papercrawler",
        description="PubMed / bioRxiv / RSS → SQLite paper crawler",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: from config)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # crawl command
    crawl_parser = subparsers.add_parser("crawl", help="Crawl sources and store new papers")
    crawl_parser.add_argument(
        "--max-papers", type=int, default=None, help="Stop after this many new papers"
    )
    crawl_parser.add_argument(
        "--source",
        action="append",
        default=[],
        dest="sources",
        help="Source to crawl (repeatable; default: from config)",
    )
    crawl_parser.add_argument(
        "--keyword", action="append", default=[], dest="keywords", help="Keyword filter (repeatable)"
    )
    crawl_parser.add_argument(
        "--category", action="append", default=[], dest="categories", help="Category filter (repeatable)"
    )
    crawl_parser.add_argument(
        "--exclude", action="append", default=[], dest="exclude_keywords", help="Reject papers mentioning this"
    )
    crawl_parser.add_argument("--from", type=_iso_date, default=None, dest="date_from")
    crawl_parser.add_argument("--to", type=_iso_date, default=None, dest="date_to")
    crawl_parser.add_argument("--min-year", type=int, default=None)

    # feeds command
    feeds_parser = subparsers.add_parser("feeds", help="Manage RSS feeds")
    feeds_sub = feeds_parser.add_subparsers(dest="feeds_command", required=True)
    feeds_sub.add_parser("list", help="List feeds and their health")
    add_parser = feeds_sub.add_parser("add", help="Register a feed")
    add_parser.add_argument("url")
    add_parser.add_argument("name")
    remove_parser = feeds_sub.add_parser("remove", help="Unregister a feed")
    remove_parser.add_argument("url")

    # list command
    list_parser = subparsers.add_parser("list", help="List stored papers")
    list_parser.add_argument(
        "--limit", type=int, default=50, help="Maximum papers to display (default: 50)"
    )
    list_parser.add_argument("--source", default=None, help="Only papers from this source")

    # search command
    search_parser = subparsers.add_parser("search", help="Search stored papers")
    search_parser.add_argument("query")
    search_parser.add_argument("--limit", type=int, default=50)

    # reset command
    subparsers.add_parser("reset", help="Delete every stored paper")

    return parser


def build_request(args: argparse.Namespace, settings: Settings) -> CrawlRequest:
    date_range = None
    if args.date_from or args.date_to:
        date_range = DateRange(start=args.date_from, end=args.date_to)
    return CrawlRequest(
        max_papers=args.max_papers or settings.max_papers,
        sources=args.sources,
        keywords=args.keywords,
        categories=args.categories,
        date_range=date_range,
        exclude_keywords=args.exclude_keywords,
        min_year=args.min_year,
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = Settings.load()
    cli = PaperCrawlerCLI(settings)
    configure_logging(args.log_level or settings.log_level, console=cli.ui.console)

    try:
        if args.command == "crawl":
            cli.cmd_crawl(build_request(args, settings))
        elif args.command == "feeds":
            if args.feeds_command == "list":
                cli.cmd_feeds_list()
            elif args.feeds_command == "add":
                cli.cmd_feeds_add(args.url, args.name)
            elif args.feeds_command == "remove":
                cli.cmd_feeds_remove(args.url)
        elif args.command == "list":
            cli.cmd_list(args.limit, args.source)
        elif args.command == "search":
            cli.cmd_search(args.query, args.limit)
        elif args.command == "reset":
            cli.cmd_reset()
    finally:
        cli.service.close()
