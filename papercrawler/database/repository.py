"""Paper repository for database operations."""

import json
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Protocol

from papercrawler.models.paper import Paper

_COLUMNS = (
    "id, created_at, updated_at, source, doi, title, abstract, authors, url, "
    "publication_date, keywords, categories, metadata, is_processed"
)


class DuplicateKeyError(Exception):
    """Raised when a paper with the same natural key is already stored."""

    def __init__(self, doi: str):
        self.doi = doi
        super().__init__(f"Paper already stored: {doi}")


class PaperStore(Protocol):
    """Persistence contract consumed by the crawlers."""

    def find_by_doi(self, doi: str) -> Optional[Paper]: ...

    def save(self, paper: Paper) -> Paper: ...

    def clear(self) -> int: ...


class PaperRepository:
    """Repository for paper CRUD operations using SQLite."""

    def __init__(self, db_path: Path):
        """Initialize repository with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._init_db()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS papers (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    source TEXT NOT NULL,
                    doi TEXT NOT NULL,
                    title TEXT NOT NULL,
                    abstract TEXT NOT NULL DEFAULT '',
                    authors TEXT NOT NULL DEFAULT '[]',
                    url TEXT NOT NULL DEFAULT '',
                    publication_date TEXT,
                    keywords TEXT NOT NULL DEFAULT '[]',
                    categories TEXT NOT NULL DEFAULT '[]',
                    metadata TEXT NOT NULL DEFAULT '{}',
                    is_processed INTEGER NOT NULL DEFAULT 0,
                    UNIQUE(doi)
                );
            """)
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_title ON papers(title);")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_source ON papers(source);")
            conn.commit()

    def save(self, paper: Paper) -> Paper:
        """Insert a new paper.

        Args:
            paper: Paper object to insert (its ``doi`` must be non-empty)

        Returns:
            The same paper with ``id`` and timestamps populated

        Raises:
            DuplicateKeyError: If a paper with the same DOI already exists
            ValueError: If the paper has no usable identity or title
        """
        if not paper.doi or not paper.doi.strip():
            raise ValueError("Paper has no identity")
        if not paper.title or not paper.title.strip():
            raise ValueError("Paper has no title")

        now = datetime.now(timezone.utc).isoformat()
        with self._connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    """
                    INSERT INTO papers
                    (created_at, updated_at, source, doi, title, abstract, authors, url,
                     publication_date, keywords, categories, metadata, is_processed)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        now,
                        now,
                        paper.source,
                        paper.doi,
                        paper.title,
                        paper.abstract or "",
                        json.dumps(paper.authors, ensure_ascii=False),
                        paper.url or "",
                        paper.publication_date.isoformat() if paper.publication_date else None,
                        json.dumps(paper.keywords, ensure_ascii=False),
                        json.dumps(paper.categories, ensure_ascii=False),
                        json.dumps(paper.metadata, ensure_ascii=False, default=str),
                        int(paper.is_processed),
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateKeyError(paper.doi) from e
            conn.commit()
            paper.id = cursor.lastrowid

        paper.created_at = now
        paper.updated_at = now
        return paper

    def find_by_doi(self, doi: str) -> Optional[Paper]:
        """Find a single paper by its natural key.

        Args:
            doi: Identity to look up

        Returns:
            Paper object if found, None otherwise
        """
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM papers WHERE doi = ?", (doi,)
            ).fetchone()
        return _row_to_paper(row) if row else None

    def find_by_id(self, paper_id: int) -> Optional[Paper]:
        """Find a single paper by ID."""
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM papers WHERE id = ?", (paper_id,)
            ).fetchone()
        return _row_to_paper(row) if row else None

    def find_all(
        self,
        limit: int = 50,
        offset: int = 0,
        source: Optional[str] = None,
    ) -> list[Paper]:
        """Find the most recently stored papers.

        Args:
            limit: Maximum number of papers to return
            offset: Number of papers to skip
            source: If set, only papers from this source

        Returns:
            List of Paper objects, newest first
        """
        where_clause = "" if source is None else "WHERE source = ?"
        params: tuple = (limit, offset) if source is None else (source, limit, offset)
        with self._connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM papers
                {where_clause}
                ORDER BY id DESC
                LIMIT ? OFFSET ?
                """,
                params,
            ).fetchall()
        return [_row_to_paper(row) for row in rows]

    def search(self, query: str, limit: int = 50) -> list[Paper]:
        """Case-insensitive substring search over title, abstract and keywords."""
        pattern = f"%{query.strip().lower()}%"
        with self._connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM papers
                WHERE LOWER(title) LIKE ? OR LOWER(abstract) LIKE ? OR LOWER(keywords) LIKE ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (pattern, pattern, pattern, limit),
            ).fetchall()
        return [_row_to_paper(row) for row in rows]

    def count(self) -> int:
        """Return the number of stored papers."""
        with self._connection() as conn:
            return conn.execute("SELECT COUNT(*) AS cnt FROM papers").fetchone()["cnt"]

    def clear(self) -> int:
        """Delete every stored paper.

        Returns:
            Number of papers deleted
        """
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM papers")
            conn.commit()
            return cursor.rowcount


def _row_to_paper(row: sqlite3.Row) -> Paper:
    published = row["publication_date"]
    return Paper(
        id=row["id"],
        doi=row["doi"],
        title=row["title"],
        abstract=row["abstract"],
        authors=json.loads(row["authors"]),
        url=row["url"],
        source=row["source"],
        publication_date=date.fromisoformat(published) if published else None,
        keywords=json.loads(row["keywords"]),
        categories=json.loads(row["categories"]),
        metadata=json.loads(row["metadata"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        is_processed=bool(row["is_processed"]),
    )
