"""PubMed search-result crawler."""

import re
from typing import Any, Optional

from papercrawler.crawlers.browser.base import RawItem
from papercrawler.crawlers.strategies.html import HtmlSourceStrategy
from papercrawler.models.crawl import (
    DetailSelectors,
    ExtractionPatterns,
    SelectorMap,
    SourceConfig,
)
from papercrawler.utils.text import apply_pattern

PUBMED_CONFIG = SourceConfig(
    name="PubMed",
    url="https://pubmed.ncbi.nlm.nih.gov/?term={terms}&sort=date&size=100",
    selectors=SelectorMap(
        article_container="article.full-docsum",
        title="a.docsum-title",
        url="a.docsum-title",
        identifier="span.docsum-pmid",
        authors="span.docsum-authors",
        abstract="div.full-view-snippet, div.full-view-abstract",
        date="span.docsum-journal-citation",
        keywords="div.keywords",
        categories="div.docsum-subjects",
        next_page="a.next-page",
    ),
    detail=DetailSelectors(
        container="main",
        abstract=".abstract-content p, .abstract, #abstract, .abstract-section p",
        identifier='.identifiers .doi, .identifier.doi, a[href*="doi.org"]',
    ),
    patterns=ExtractionPatterns(
        identifier=r"PMID:\s*(\d+)",
        date=r"(\d{4})\s+[A-Za-z]+",
        detail_doi=r"(10\.\d{4,}[\/\.]\S+)",
    ),
    requests_per_minute=2.0,
    max_pages=10,
    allowed_asset_hosts=("pubmed.ncbi.nlm.nih.gov",),
    detail_fetch_limit=5,
    page_param="page",
)

PMID_RE = re.compile(r"\d+")


class PubMedStrategy(HtmlSourceStrategy):
    """PubMed listing; identity is ``pubmed-<PMID>``, the real DOI goes to metadata."""

    priority = 0

    def identity_for(self, raw: RawItem) -> Optional[str]:
        """``pubmed-<PMID>`` when the identifier yields a PMID, else the raw token."""
        token = apply_pattern(raw.identifier, self.config.patterns.identifier)
        if PMID_RE.fullmatch(token):
            return f"pubmed-{token}"
        return token or None

    def metadata_for(self, raw: RawItem, identity: str) -> dict[str, Any]:
        metadata = {"journal": "PubMed", "citation": raw.date}
        if identity.startswith("pubmed-"):
            metadata["pmid"] = identity.removeprefix("pubmed-")
        return metadata
