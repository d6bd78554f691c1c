"""Inclusion filters applied to every candidate paper before it is saved."""

from typing import Iterable, Mapping, Optional, Sequence

from papercrawler.models.crawl import CrawlFilters, DateRange
from papercrawler.models.paper import Paper

# Keyword -> terms that also count as a hit for that keyword (RSS only).
DEFAULT_RELATED_TERMS: dict[str, tuple[str, ...]] = {
    "bioinformatics": (
        "genomics", "proteomics", "computational biology", "genome", "sequencing",
        "dna", "rna", "protein", "gene", "genetic", "sequence", "alignment",
        "phylogenetic",
    ),
    "machine learning": (
        "neural network", "deep learning", "artificial intelligence", "ai", "model",
        "prediction", "classification", "regression", "algorithm", "training",
        "supervised", "unsupervised", "reinforcement", "data mining",
    ),
    "synthetic biology": (
        "gene editing", "crispr", "genetic engineering", "genetic circuit",
        "metabolic engineering", "bioengineering", "biosynthesis", "recombinant",
        "plasmid", "vector", "expression system", "chassis organism",
    ),
    "xenobiology": (
        "artificial life", "synthetic cell", "unnatural", "xna",
        "alternative biochemistry", "expanded genetic code", "non-standard amino acid",
    ),
}

# Terms tagged onto feed entries when they appear in the title or abstract.
DOMAIN_VOCABULARY: tuple[str, ...] = (
    "biology", "genomics", "bioinformatics", "machine learning",
    "artificial intelligence", "neural network", "algorithm", "computational",
    "synthetic", "data science", "gene", "protein", "DNA", "RNA", "sequence",
    "genetics", "genetic", "engineering", "crispr", "sequencing", "genome",
    "metabolic", "systems biology", "molecular", "cell", "phylogenetic",
    "evolution", "structural", "predictive", "model", "deep learning",
    "classification", "regression", "clustering", "big data", "data mining",
    "analysis", "bioengineering",
)

DEFAULT_EXCLUDE_KEYWORDS: tuple[str, ...] = ("retracted", "retraction", "withdrawn")


def vocabulary_hits(text: str, vocabulary: Iterable[str] = DOMAIN_VOCABULARY) -> list[str]:
    """Return the vocabulary terms that occur in *text* (case-insensitive)."""
    lowered = text.lower()
    return [term for term in vocabulary if term.lower() in lowered]


def searchable_text(paper: Paper) -> str:
    """Lower-cased title + abstract + keywords + categories."""
    parts = [paper.title, paper.abstract, *paper.keywords, *paper.categories]
    return " ".join(p for p in parts if p).lower()


class KeywordMatcher:
    """Case-insensitive keyword matcher.

    With a related-term table, a keyword also matches through any of its
    related terms. With ``partial`` set, a multi-word keyword longer than
    10 characters also matches when any of its words longer than 4
    characters is present.
    """

    def __init__(
        self,
        related_terms: Optional[Mapping[str, Sequence[str]]] = None,
        partial: bool = False,
    ):
        self.related_terms = {k.lower(): tuple(v) for k, v in (related_terms or {}).items()}
        self.partial = partial

    def matches_keyword(self, text: str, keyword: str) -> bool:
        keyword = keyword.strip().lower()
        if not keyword:
            return False
        if keyword in text:
            return True
        if any(term.lower() in text for term in self.related_terms.get(keyword, ())):
            return True
        if self.partial and " " in keyword and len(keyword) > 10:
            return any(part in text for part in keyword.split() if len(part) > 4)
        return False

    def matches(self, text: str, keywords: Sequence[str]) -> bool:
        """True when no keywords are configured or any keyword matches *text*."""
        if not keywords:
            return True
        text = text.lower()
        return any(self.matches_keyword(text, k) for k in keywords)


PLAIN_MATCHER = KeywordMatcher()


def matches_categories(paper: Paper, categories: Sequence[str]) -> bool:
    """Any configured category is a substring of any candidate category.

    A candidate without categories fails a non-empty category filter.
    """
    if not categories:
        return True
    wanted = [c.lower() for c in categories]
    return any(w in have.lower() for have in paper.categories for w in wanted)


def matches_date_range(paper: Paper, date_range: Optional[DateRange]) -> bool:
    """Inclusive range check; skipped when the candidate has no date."""
    if date_range is None or paper.publication_date is None:
        return True
    return date_range.contains(paper.publication_date)


def is_excluded(paper: Paper, exclude_keywords: Sequence[str]) -> bool:
    """True when any exclude keyword appears in the title or abstract."""
    if not exclude_keywords:
        return False
    text = f"{paper.title} {paper.abstract}".lower()
    return any(k.lower() in text for k in exclude_keywords)


def matches_min_year(paper: Paper, min_year: Optional[int]) -> bool:
    if min_year is None or paper.publication_date is None:
        return True
    return paper.publication_date.year >= min_year


def passes_filters(
    paper: Paper,
    filters: CrawlFilters,
    matcher: KeywordMatcher = PLAIN_MATCHER,
) -> bool:
    """AND-combination of every configured filter."""
    return (
        matches_date_range(paper, filters.date_range)
        and matches_min_year(paper, filters.min_year)
        and not is_excluded(paper, filters.exclude_keywords)
        and matcher.matches(searchable_text(paper), filters.keywords)
        and matches_categories(paper, filters.categories)
    )
