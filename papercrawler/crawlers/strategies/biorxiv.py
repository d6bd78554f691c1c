"""bioRxiv search-result crawler."""

from typing import Any, Optional

from papercrawler.crawlers.browser.base import RawItem
from papercrawler.crawlers.strategies.html import HtmlSourceStrategy
from papercrawler.models.crawl import ExtractionPatterns, SelectorMap, SourceConfig
from papercrawler.utils.text import DOI_RE, normalize_doi

BIORXIV_CONFIG = SourceConfig(
    name="bioRxiv",
    url="https://www.biorxiv.org/search/{terms}",
    selectors=SelectorMap(
        article_container=".highwire-list-wrapper article",
        title=".highwire-cite-title a",
        url=".highwire-cite-title a",
        identifier=".highwire-cite-metadata-doi",
        authors=".highwire-citation-authors",
        abstract=".highwire-cite-snippet",
        date=".highwire-cite-metadata-doi",
        keywords=".highwire-keywords-wrapper",
        categories=".highwire-citation-categories",
        next_page="li.pager-next a",
    ),
    # bioRxiv DOIs embed the posting date: 10.1101/2024.01.05.574321
    patterns=ExtractionPatterns(date=r"10\.1101/(\d{4}\.\d{2}\.\d{2})"),
    requests_per_minute=1.0,
    max_pages=5,
)


class BioRxivStrategy(HtmlSourceStrategy):
    """bioRxiv listing; identity is the DOI from the citation metadata."""

    priority = 10

    def identity_for(self, raw: RawItem) -> Optional[str]:
        """The DOI when the citation carries one, else the raw identifier text or the url."""
        identifier = (raw.identifier or "").strip()
        match = DOI_RE.search(identifier)
        if match:
            return normalize_doi(match.group(0))
        return identifier or (raw.url or "").strip() or None

    def metadata_for(self, raw: RawItem, identity: str) -> dict[str, Any]:
        metadata = {"journal": "bioRxiv", "publisher": "Cold Spring Harbor Laboratory"}
        if DOI_RE.fullmatch(identity):
            metadata["doi"] = identity
        return metadata
