"""Text processing utilities for identifier extraction and markup cleaning."""

import hashlib
import re
from datetime import date, datetime
from typing import Any, Optional

from bs4 import BeautifulSoup
from dateutil import parser as dtparser

# DOI regex pattern: 10.XXXX/... format
DOI_RE = re.compile(r"\b10\.\d{4,9}/[-._;()/:A-Z0-9]+\b", re.IGNORECASE)

_YEAR_RE = re.compile(r"\b(1[89]\d{2}|2\d{3})\b")

_SUPERSCRIPTS = str.maketrans("0123456789+-=()n", "⁰¹²³⁴⁵⁶⁷⁸⁹⁺⁻⁼⁽⁾ⁿ")
_SUBSCRIPTS = str.maketrans("0123456789+-=()", "₀₁₂₃₄₅₆₇₈₉₊₋₌₍₎")
_SUPERSCRIPT_CHARS = set("0123456789+-=()n")
_SUBSCRIPT_CHARS = set("0123456789+-=()")

_BLOCK_TAGS = ["p", "div", "li", "br", "tr", "h1", "h2", "h3", "h4"]


def normalize_doi(doi: str) -> str:
    """Normalize DOI by removing URL prefixes and converting to lowercase."""
    doi = doi.strip()
    doi = doi.replace("https://doi.org/", "").replace("http://doi.org/", "")
    doi = doi.replace("https://dx.doi.org/", "").replace("http://dx.doi.org/", "")
    return doi.strip().lower()


def extract_doi(entry: dict[str, Any]) -> Optional[str]:
    """Extract DOI from an RSS feed entry.

    Searches the dedicated identifier fields first, then link, summary and
    title text.

    Args:
        entry: Parsed RSS feed entry dictionary

    Returns:
        Normalized DOI string if found, None otherwise
    """
    for key in ["doi", "prism_doi", "dc_identifier", "id", "guid", "link", "summary", "title"]:
        val = entry.get(key)
        if isinstance(val, str):
            match = DOI_RE.search(val)
            if match:
                return normalize_doi(match.group(0))
    return None


def short_hash(value: str, length: int = 12) -> str:
    """Return a short, stable hex token for *value*."""
    return hashlib.md5(value.encode("utf-8")).hexdigest()[:length]


def _script(text: str, chars: set[str], table: dict[int, int], marker: str) -> str:
    text = text.strip()
    if text and set(text) <= chars:
        return text.translate(table)
    return f"{marker}({text})" if text else ""


def clean_markup(text: Optional[str]) -> str:
    """Convert inline HTML to readable plain text.

    Italic and bold are unwrapped, sub/superscripts become Unicode
    characters where every character has one (``H<sub>2</sub>O`` -> ``H₂O``)
    and ``_(x)`` / ``^(x)`` otherwise. MathML blocks are dropped, entities
    decoded and whitespace collapsed.
    """
    if not text:
        return ""
    if "<" in text or "&" in text:
        soup = BeautifulSoup(text, "html.parser")
        for math_tag in soup.find_all(["math", "mml:math"]):
            math_tag.decompose()
        for tag in soup.find_all("sup"):
            tag.replace_with(_script(tag.get_text(), _SUPERSCRIPT_CHARS, _SUPERSCRIPTS, "^"))
        for tag in soup.find_all("sub"):
            tag.replace_with(_script(tag.get_text(), _SUBSCRIPT_CHARS, _SUBSCRIPTS, "_"))
        for tag in soup.find_all(_BLOCK_TAGS):
            tag.insert_after(" ")
        text = soup.get_text()
    return " ".join(text.split()).strip()


def clean_title(text: Optional[str]) -> str:
    """Clean a title; returns an empty string when nothing usable is left."""
    return clean_markup(text)


def clean_abstract(text: Optional[str], source_name: str = "") -> str:
    """Clean feed/listing abstract text.

    1. Strip markup (see :func:`clean_markup`).
    2. Strip a leading "Abstract" label.
    3. Drop publisher boilerplate such as "Nature, Published online: ...; doi:..."
       and a trailing ``doi:`` reference.
    4. Return an empty string for metadata-only snippets.
    """
    cleaned = clean_markup(text)
    if not cleaned:
        return ""

    cleaned = re.sub(r"^\s*abstract\b[\s.:;—–-]*", "", cleaned, flags=re.IGNORECASE)

    if "nature" in source_name.lower():
        cleaned = re.sub(
            r"Nature, Published online:.*?doi:[\d.]+/[^;\s]+;?", "", cleaned, flags=re.IGNORECASE
        )

    cleaned = re.sub(r"\s*doi:\s*[\d.]+/[\w\-.]+\s*$", "", cleaned, flags=re.IGNORECASE)
    cleaned = cleaned.strip()

    if len(cleaned) < 50 and (
        "doi:" in cleaned
        or "Published online" in cleaned
        or "http" in cleaned
        or cleaned.isdigit()
    ):
        return ""
    return cleaned


def split_list(text: Optional[str], separator: str = ",") -> list[str]:
    """Split *text* on *separator*, trimming items and dropping empties."""
    if not text:
        return []
    return [part.strip() for part in text.split(separator) if part.strip()]


def apply_pattern(text: str, pattern: Optional[str]) -> str:
    """Return the first capture group of *pattern* in *text*.

    The raw (stripped) text is returned when there is no pattern, no match or
    the pattern is invalid.
    """
    text = (text or "").strip()
    if not text or not pattern:
        return text
    try:
        match = re.search(pattern, text)
    except re.error:
        return text
    if match and match.groups() and match.group(1):
        return match.group(1).strip()
    return text


def parse_date_text(text: Optional[str], pattern: Optional[str] = None) -> Optional[date]:
    """Opportunistically parse a publication date from free text.

    When *pattern* is given, its first group (or whole match) is parsed.
    A bare year becomes January 1st of that year. Returns None when no
    4-digit year can be found or parsing fails.
    """
    if not text:
        return None
    candidate = text.strip()
    if pattern:
        try:
            match = re.search(pattern, candidate)
        except re.error:
            match = None
        if match is None:
            return None
        candidate = (match.group(1) if match.groups() else match.group(0)) or ""

    year_match = _YEAR_RE.search(candidate)
    if not year_match:
        return None
    if candidate.strip() == year_match.group(1):
        return date(int(year_match.group(1)), 1, 1)
    try:
        parsed = dtparser.parse(
            candidate, fuzzy=True, default=datetime(int(year_match.group(1)), 1, 1)
        )
        return parsed.date()
    except (ValueError, OverflowError):
        return date(int(year_match.group(1)), 1, 1)


def parse_published(entry: dict[str, Any]) -> Optional[date]:
    """Parse publication date from RSS entry.

    Args:
        entry: Parsed RSS feed entry dictionary

    Returns:
        Publication date if found, None otherwise
    """
    for field in ["published", "updated", "dc_date"]:
        val = entry.get(field)
        if val:
            try:
                return dtparser.parse(val).date()
            except (ValueError, OverflowError):
                continue
    return None
