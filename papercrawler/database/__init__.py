"""Persistence layer."""

from papercrawler.database.repository import DuplicateKeyError, PaperRepository, PaperStore

__all__ = ["DuplicateKeyError", "PaperRepository", "PaperStore"]
