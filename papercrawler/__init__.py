"""PaperCrawler - scholarly paper acquisition pipeline.

Crawls PubMed and bioRxiv search results through a real browser and
RSS/Atom journal feeds, normalizes everything into one paper record and
stores new papers in SQLite.
"""

__version__ = "0.1.0"

from papercrawler.config import Settings
from papercrawler.models.paper import Paper

__all__ = ["Paper", "Settings", "__version__"]
