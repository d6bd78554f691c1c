"""Utility functions."""

from papercrawler.utils.text import (
    apply_pattern,
    clean_abstract,
    clean_markup,
    clean_title,
    extract_doi,
    normalize_doi,
    parse_date_text,
    parse_published,
    short_hash,
    split_list,
)

__all__ = [
    "apply_pattern",
    "clean_abstract",
    "clean_markup",
    "clean_title",
    "extract_doi",
    "normalize_doi",
    "parse_date_text",
    "parse_published",
    "short_hash",
    "split_list",
]
