"""
SQLite Repository - Researcher storage for extracted CVs.

Features:
- Async operations via aiosqlite
- Person record plus eight child collections, cascaded on delete
- Unique (optional) email for duplicate detection
- Processing log of every extraction run
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import aiosqlite

from academiq.config.errors import DuplicateError, ErrorCode, StorageError
from academiq.domains.extraction.models import SECTION_MODELS, StructuredCV
from academiq.domains.extraction.normalization import normalize_name

logger = logging.getLogger(__name__)

__all__ = ["CVRepository", "normalize_email"]

SCHEMA = """
    -- Researchers
    CREATE TABLE IF NOT EXISTS persons (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        email TEXT UNIQUE,
        birth_year INTEGER,
        birth_country TEXT,
        pdf_filename TEXT,
        metadata TEXT,
        imported_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS education (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        person_id INTEGER NOT NULL REFERENCES persons(id) ON DELETE CASCADE,
        institution TEXT NOT NULL,
        degree_type TEXT,
        department TEXT,
        subject TEXT,
        specialization TEXT,
        award_date TEXT,
        honors TEXT,
        country TEXT
    );

    CREATE TABLE IF NOT EXISTS publications (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        person_id INTEGER NOT NULL REFERENCES persons(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        publication_year INTEGER NOT NULL,
        publication_type TEXT,
        venue_name TEXT,
        volume TEXT,
        issue TEXT,
        pages TEXT,
        co_authors TEXT,
        citation_count INTEGER,
        url TEXT
    );

    CREATE TABLE IF NOT EXISTS experience (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        person_id INTEGER NOT NULL REFERENCES persons(id) ON DELETE CASCADE,
        institution TEXT NOT NULL,
        position_title TEXT NOT NULL,
        department TEXT,
        start_date TEXT,
        end_date TEXT,
        description TEXT,
        employment_type TEXT
    );

    CREATE TABLE IF NOT EXISTS grants (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        person_id INTEGER NOT NULL REFERENCES persons(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        funding_institution TEXT NOT NULL,
        amount REAL,
        currency_code TEXT,
        award_year INTEGER,
        duration TEXT,
        role TEXT
    );

    CREATE TABLE IF NOT EXISTS teaching (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        person_id INTEGER NOT NULL REFERENCES persons(id) ON DELETE CASCADE,
        course_title TEXT NOT NULL,
        education_level TEXT,
        institution TEXT,
        teaching_period TEXT
    );

    CREATE TABLE IF NOT EXISTS supervision (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        person_id INTEGER NOT NULL REFERENCES persons(id) ON DELETE CASCADE,
        student_name TEXT NOT NULL,
        degree_level TEXT,
        thesis_title TEXT,
        completion_year INTEGER,
        role TEXT
    );

    CREATE TABLE IF NOT EXISTS memberships (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        person_id INTEGER NOT NULL REFERENCES persons(id) ON DELETE CASCADE,
        organization TEXT NOT NULL,
        start_year INTEGER,
        end_year INTEGER
    );

    CREATE TABLE IF NOT EXISTS awards (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        person_id INTEGER NOT NULL REFERENCES persons(id) ON DELETE CASCADE,
        award_name TEXT NOT NULL,
        awarding_institution TEXT,
        award_year INTEGER,
        description TEXT
    );

    -- Extraction runs
    CREATE TABLE IF NOT EXISTS processing_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        filename TEXT NOT NULL,
        model TEXT,
        status TEXT NOT NULL,
        total_chunks INTEGER DEFAULT 0,
        events TEXT,
        result_summary TEXT,
        error TEXT,
        started_at TIMESTAMP,
        completed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    -- Indexes
    CREATE INDEX IF NOT EXISTS idx_persons_name ON persons(last_name, first_name);
    CREATE INDEX IF NOT EXISTS idx_publications_person ON publications(person_id);
    CREATE INDEX IF NOT EXISTS idx_publications_year ON publications(publication_year);
    CREATE INDEX IF NOT EXISTS idx_education_person ON education(person_id);
    CREATE INDEX IF NOT EXISTS idx_experience_person ON experience(person_id);
"""

# API sort key -> ORDER BY expression
SORT_COLUMNS = {
    "name": "p.last_name COLLATE NOCASE, p.first_name COLLATE NOCASE",
    "imported_at": "p.imported_at",
    "birth_year": "p.birth_year",
    "publications": "publication_count",
}

# Columns holding JSON-encoded values
JSON_COLUMNS = {"co_authors", "metadata", "events", "result_summary", "error"}


def normalize_email(email: str | None) -> str | None:
    """Trim and lower-case; blank becomes None."""
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


def _decode(row: aiosqlite.Row) -> dict[str, Any]:
    data = dict(row)
    for key in JSON_COLUMNS & data.keys():
        if data[key] is not None:
            data[key] = json.loads(data[key])
    return data


class CVRepository:
    """
    SQLite repository for researcher records.

    Example:
        >>> repo = CVRepository("data/academiq.db")
        >>> await repo.initialize()
        >>> person_id = await repo.save_cv(cv, pdf_filename="jane_doe.pdf")
        >>> person = await repo.get_person(person_id)
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize repository.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection: aiosqlite.Connection | None = None
        # One shared connection; each write transaction holds this until commit/rollback
        self._write_lock = asyncio.Lock()

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._connection is None:
            try:
                self._connection = await aiosqlite.connect(str(self.db_path))
            except aiosqlite.Error as e:
                raise StorageError(
                    f"Cannot open database: {self.db_path}",
                    {"error": str(e)},
                    code=ErrorCode.STORAGE_CONNECTION_FAILED,
                ) from e
            self._connection.row_factory = aiosqlite.Row
            await self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    async def initialize(self) -> None:
        """Initialize database schema."""
        conn = await self._get_connection()
        async with self._write_lock:
            await conn.executescript(SCHEMA)
            await conn.commit()
        logger.info("Database initialized: %s", self.db_path)

    async def save_cv(
        self,
        cv: StructuredCV,
        pdf_filename: str | None = None,
        email: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> int:
        """
        Persist a person and every child collection in one transaction.

        Args:
            cv: Normalized record
            pdf_filename: Source file name
            email: Contact email (stored normalized, must be unique)
            metadata: Extra data kept with the person

        Returns:
            Person ID

        Raises:
            DuplicateError: If the email is already stored
            StorageError: On any other database failure
        """
        conn = await self._get_connection()
        email = normalize_email(email)

        async with self._write_lock:
            try:
                person_id = await self._insert_cv(conn, cv, pdf_filename, email, metadata)
                await conn.commit()
            except aiosqlite.IntegrityError as e:
                await conn.rollback()
                if "persons.email" in str(e):
                    raise DuplicateError(
                        f'This CV has already been processed. A person with email "{email}" already exists.',
                        {"email": email},
                    ) from e
                raise StorageError("Failed to save CV", {"error": str(e)}) from e
            except aiosqlite.Error as e:
                await conn.rollback()
                raise StorageError("Failed to save CV", {"error": str(e)}) from e

        logger.info(
            "Saved person %d: %s %s (%d publications)",
            person_id,
            cv.personal.first_name,
            cv.personal.last_name,
            len(cv.publications),
        )
        return person_id

    async def _insert_cv(
        self,
        conn: aiosqlite.Connection,
        cv: StructuredCV,
        pdf_filename: str | None,
        email: str | None,
        metadata: dict[str, Any] | None,
    ) -> int:
        cursor = await conn.execute(
            """
            INSERT INTO persons
            (first_name, last_name, email, birth_year, birth_country, pdf_filename, metadata)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                cv.personal.first_name,
                cv.personal.last_name,
                email,
                cv.personal.birth_year,
                cv.personal.birth_country,
                pdf_filename,
                json.dumps(metadata) if metadata else None,
            ),
        )
        person_id = cursor.lastrowid

        for table, model in SECTION_MODELS.items():
            records = getattr(cv, table)
            if not records:
                continue
            columns = list(model.model_fields)
            placeholders = ", ".join("?" for _ in range(len(columns) + 1))
            await conn.executemany(
                f"INSERT INTO {table} (person_id, {', '.join(columns)}) VALUES ({placeholders})",
                [
                    (person_id, *self._row_values(record.model_dump(), columns))
                    for record in records
                ],
            )
        return person_id

    @staticmethod
    def _row_values(data: dict[str, Any], columns: list[str]) -> list[Any]:
        return [
            json.dumps(data[c]) if c in JSON_COLUMNS else data[c]
            for c in columns
        ]

    async def find_person_by_email(self, email: str) -> dict[str, Any] | None:
        """Get person by normalized email."""
        normalized = normalize_email(email)
        if normalized is None:
            return None
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT * FROM persons WHERE email = ?", (normalized,))
        row = await cursor.fetchone()
        return _decode(row) if row else None

    async def find_person_by_name(self, first_name: str, last_name: str) -> dict[str, Any] | None:
        """Get the earliest person with the same normalized name."""
        conn = await self._get_connection()
        cursor = await conn.execute(
            """
            SELECT * FROM persons
            WHERE first_name = ? COLLATE NOCASE AND last_name = ? COLLATE NOCASE
            ORDER BY id
            LIMIT 1
            """,
            (normalize_name(first_name), normalize_name(last_name)),
        )
        row = await cursor.fetchone()
        return _decode(row) if row else None

    async def get_person(self, person_id: int) -> dict[str, Any] | None:
        """Get person by ID with every child collection."""
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT * FROM persons WHERE id = ?", (person_id,))
        row = await cursor.fetchone()
        if not row:
            return None

        person = _decode(row)
        for table in SECTION_MODELS:
            cursor = await conn.execute(
                f"SELECT * FROM {table} WHERE person_id = ? ORDER BY id", (person_id,)
            )
            person[table] = [_decode(r) for r in await cursor.fetchall()]
        return person

    async def list_persons(
        self,
        search: str | None = None,
        sort_by: str = "imported_at",
        descending: bool = True,
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """
        List people with per-person collection counts.

        Args:
            search: Case-insensitive match on name or email
            sort_by: One of name, imported_at, birth_year, publications
            descending: Sort direction
            limit: Maximum results
            offset: Rows to skip

        Returns:
            Person rows with publication_count and education_count
        """
        if sort_by not in SORT_COLUMNS:
            raise ValueError(f"Unknown sort key: {sort_by}")
        direction = "DESC" if descending else "ASC"
        order = ", ".join(f"{column} {direction}" for column in SORT_COLUMNS[sort_by].split(", "))

        where = ""
        params: list[Any] = []
        if search:
            where = """
                WHERE (p.first_name || ' ' || p.last_name) LIKE ?
                   OR p.email LIKE ?
            """
            pattern = f"%{search.strip()}%"
            params.extend([pattern, pattern])

        conn = await self._get_connection()
        cursor = await conn.execute(
            f"""
            SELECT p.*,
                (SELECT COUNT(*) FROM publications WHERE person_id = p.id) AS publication_count,
                (SELECT COUNT(*) FROM education WHERE person_id = p.id) AS education_count
            FROM persons p
            {where}
            ORDER BY {order}, p.id {direction}
            LIMIT ? OFFSET ?
            """,
            (*params, limit, offset),
        )
        rows = await cursor.fetchall()
        return [_decode(row) for row in rows]

    async def count_persons(self) -> int:
        """Get total person count."""
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT COUNT(*) FROM persons")
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def delete_person(self, person_id: int) -> bool:
        """Delete a person and, by cascade, every child record."""
        conn = await self._get_connection()
        async with self._write_lock:
            cursor = await conn.execute("DELETE FROM persons WHERE id = ?", (person_id,))
            await conn.commit()
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted person %d", person_id)
        return deleted

    async def record_processing_log(
        self,
        filename: str,
        status: str,
        events: list[dict[str, Any]],
        model: str | None = None,
        total_chunks: int = 0,
        result_summary: dict[str, Any] | None = None,
        error: dict[str, Any] | None = None,
        started_at: str | None = None,
    ) -> int:
        """
        Store the stage history of one extraction run.

        Returns:
            Log ID
        """
        conn = await self._get_connection()
        async with self._write_lock:
            cursor = await conn.execute(
                """
                INSERT INTO processing_logs
                (filename, model, status, total_chunks, events, result_summary, error, started_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    filename,
                    model,
                    status,
                    total_chunks,
                    json.dumps(events),
                    json.dumps(result_summary) if result_summary else None,
                    json.dumps(error) if error else None,
                    started_at,
                ),
            )
            await conn.commit()
        return cursor.lastrowid

    async def list_processing_logs(self, limit: int = 20) -> list[dict[str, Any]]:
        """Most recent extraction runs first."""
        conn = await self._get_connection()
        cursor = await conn.execute(
            "SELECT * FROM processing_logs ORDER BY id DESC LIMIT ?", (limit,)
        )
        rows = await cursor.fetchall()
        return [_decode(row) for row in rows]

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
