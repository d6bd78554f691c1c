"""Paper data model."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

ABSTRACT_PLACEHOLDER = "Abstract not available"


@dataclass
class Paper:
    """Represents a research paper with metadata.

    ``doi`` is the natural key. It may be a real DOI, a site-specific
    identifier (``pubmed-38012345``) or a content hash for feed items
    (``rss-1a2b3c4d5e6f``).
    """

    doi: str
    title: str
    url: str
    source: str
    abstract: str = ABSTRACT_PLACEHOLDER
    authors: list[str] = field(default_factory=list)
    publication_date: Optional[date] = None
    keywords: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    # Database fields (set after persistence)
    id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    is_processed: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-safe dict representation."""
        return {
            "id": self.id,
            "doi": self.doi,
            "title": self.title,
            "abstract": self.abstract,
            "authors": list(self.authors),
            "url": self.url,
            "source": self.source,
            "publication_date": (
                self.publication_date.isoformat() if self.publication_date else None
            ),
            "keywords": list(self.keywords),
            "categories": list(self.categories),
            "metadata": dict(self.metadata),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "is_processed": self.is_processed,
        }
