"""Console UI for terminal output using Rich."""

from typing import Optional

from rich.console import Console
from rich.table import Table

from papercrawler.models.crawl import CrawlStatus
from papercrawler.models.feed import Feed
from papercrawler.models.paper import Paper

_FEED_STATUS_STYLE = {"active": "green", "error": "red", "inactive": "dim"}


class ConsoleUI:
    """Rich-based console UI for papers, feeds and crawl progress."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        return self._console

    def info(self, message: str) -> None:
        self._console.print(message)

    def success(self, message: str) -> None:
        """Print a success message in green."""
        self._console.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        self._console.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Print an error message in red."""
        self._console.print(f"[red]Error:[/red] {message}")

    def saved(self, paper: Paper) -> None:
        self._console.print(f"[green]+[/green] [dim]{paper.source}[/dim] {paper.title}")

    def crawl_complete(self, status: CrawlStatus) -> None:
        """Print crawl completion summary."""
        self._console.print(
            f"\n[green]Done.[/green] New papers saved: [bold]{status.papers_found}[/bold]"
        )
        if status.last_error:
            self.warning(status.last_error)

    def display_papers(self, papers: list[Paper], title: str = "Papers") -> None:
        """Display papers in a formatted table.

        Args:
            papers: Papers to display
            title: Table title
        """
        if not papers:
            self._console.print("No papers found.")
            return

        table = Table(title=title)
        table.add_column("ID", justify="right")
        table.add_column("Date", width=10)
        table.add_column("Source")
        table.add_column("Title", overflow="fold")
        table.add_column("Identifier", overflow="fold")

        for paper in papers:
            table.add_row(
                str(paper.id) if paper.id else "-",
                paper.publication_date.isoformat() if paper.publication_date else "-",
                paper.source,
                paper.title,
                paper.doi,
            )
        self._console.print(table)

    def display_feeds(self, feeds: list[Feed]) -> None:
        if not feeds:
            self._console.print("No feeds registered.")
            return

        table = Table(title="RSS feeds")
        table.add_column("Name")
        table.add_column("URL", overflow="fold")
        table.add_column("Status")
        table.add_column("Last fetched")
        table.add_column("Error", overflow="fold")

        for feed in feeds:
            style = _FEED_STATUS_STYLE.get(feed.status, "white")
            table.add_row(
                feed.name,
                feed.url,
                f"[{style}]{feed.status}[/{style}]",
                feed.last_fetched.strftime("%Y-%m-%d %H:%M") if feed.last_fetched else "-",
                feed.error_message or "",
            )
        self._console.print(table)
