"""Tests for SQLite Repository."""

import asyncio
from pathlib import Path

import pytest

from academiq.config.errors import DuplicateError
from academiq.domains.extraction.models import (
    Award,
    Education,
    PersonalInfo,
    Publication,
    StructuredCV,
)

from .repository import CVRepository, normalize_email


def make_cv(first: str = "Jane", last: str = "Doe", publications: int = 1) -> StructuredCV:
    return StructuredCV(
        personal=PersonalInfo(first_name=first, last_name=last, birth_year=1980),
        education=[Education(institution="MIT", degree_type="PhD", award_date="2010-01-01")],
        publications=[
            Publication(
                title=f"Paper {i}",
                publication_year=2020 + i,
                co_authors=["A. Smith", "B. Jones"],
            )
            for i in range(publications)
        ],
        awards=[Award(award_name="Best Paper")],
    )


@pytest.fixture
async def repo(tmp_path: Path):
    """Create a test repository with temporary database."""
    db_path = tmp_path / "test.db"
    repo = CVRepository(db_path)
    await repo.initialize()
    yield repo
    await repo.close()


async def test_initialize_creates_tables(repo: CVRepository):
    """Test that initialize creates all required tables."""
    conn = await repo._get_connection()
    cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    tables = {row[0] for row in await cursor.fetchall()}

    assert {
        "persons",
        "education",
        "publications",
        "experience",
        "grants",
        "teaching",
        "supervision",
        "memberships",
        "awards",
        "processing_logs",
    } <= tables


def test_normalize_email():
    assert normalize_email("  Jane.Doe@Uni.EDU ") == "jane.doe@uni.edu"
    assert normalize_email("   ") is None
    assert normalize_email(None) is None


async def test_save_and_get_person(repo: CVRepository):
    """Test saving a record and reading it back with children."""
    person_id = await repo.save_cv(make_cv(), pdf_filename="jane.pdf", email="Jane@Uni.edu")

    person = await repo.get_person(person_id)
    assert person is not None
    assert person["first_name"] == "Jane"
    assert person["email"] == "jane@uni.edu"
    assert person["pdf_filename"] == "jane.pdf"
    assert person["education"][0]["institution"] == "MIT"
    assert person["publications"][0]["co_authors"] == ["A. Smith", "B. Jones"]
    assert person["awards"][0]["award_name"] == "Best Paper"
    assert person["grants"] == []


async def test_get_missing_person(repo: CVRepository):
    assert await repo.get_person(999) is None


async def test_duplicate_email_rejected(repo: CVRepository):
    """Test that a second save with the same email fails and writes nothing."""
    await repo.save_cv(make_cv(), email="jane@uni.edu")

    with pytest.raises(DuplicateError) as exc_info:
        await repo.save_cv(make_cv(first="Other"), email=" JANE@uni.edu")

    assert exc_info.value.details["email"] == "jane@uni.edu"
    assert await repo.count_persons() == 1
    conn = await repo._get_connection()
    cursor = await conn.execute("SELECT COUNT(*) FROM publications")
    assert (await cursor.fetchone())[0] == 1


async def test_concurrent_duplicate_does_not_roll_back_other_save(repo: CVRepository):
    """Test a failed duplicate save racing a valid one leaves the valid one intact."""
    await repo.save_cv(make_cv(), email="dup@x.org")

    saved, duplicate, log_id = await asyncio.gather(
        repo.save_cv(make_cv(first="Second", publications=3), email="new@x.org"),
        repo.save_cv(make_cv(first="Dupe"), email="dup@x.org"),
        repo.record_processing_log(filename="c.pdf", status="completed", events=[]),
        return_exceptions=True,
    )

    assert isinstance(duplicate, DuplicateError)
    assert isinstance(saved, int)
    assert isinstance(log_id, int)

    person = await repo.get_person(saved)
    assert person["first_name"] == "Second"
    assert len(person["publications"]) == 3
    assert await repo.count_persons() == 2
    assert len(await repo.list_processing_logs()) == 1


async def test_records_without_email_never_conflict(repo: CVRepository):
    await repo.save_cv(make_cv())
    await repo.save_cv(make_cv())

    assert await repo.count_persons() == 2


async def test_find_person(repo: CVRepository):
    person_id = await repo.save_cv(make_cv("Jean-Pierre", "Dupont"), email="jp@uni.fr")

    by_email = await repo.find_person_by_email("JP@uni.fr")
    by_name = await repo.find_person_by_name("JEAN-PIERRE", "dupont")

    assert by_email["id"] == person_id
    assert by_name["id"] == person_id
    assert await repo.find_person_by_name("Jane", "Doe") is None


async def test_list_persons_search_and_sort(repo: CVRepository):
    """Test listing with search, sorting and pagination."""
    await repo.save_cv(make_cv("Alice", "Zimmer", publications=3))
    await repo.save_cv(make_cv("Bob", "Adams", publications=1))
    await repo.save_cv(make_cv("Carol", "Meyer", publications=2), email="carol@lab.org")

    by_name = await repo.list_persons(sort_by="name", descending=False)
    assert [p["last_name"] for p in by_name] == ["Adams", "Meyer", "Zimmer"]

    by_pubs = await repo.list_persons(sort_by="publications", descending=True)
    assert [p["publication_count"] for p in by_pubs] == [3, 2, 1]
    assert all(p["education_count"] == 1 for p in by_pubs)

    assert [p["first_name"] for p in await repo.list_persons(search="carol@")] == ["Carol"]
    assert [p["first_name"] for p in await repo.list_persons(search="bob adams")] == ["Bob"]

    page = await repo.list_persons(sort_by="name", descending=False, limit=1, offset=1)
    assert [p["last_name"] for p in page] == ["Meyer"]


async def test_list_persons_rejects_unknown_sort(repo: CVRepository):
    with pytest.raises(ValueError):
        await repo.list_persons(sort_by="salary")


async def test_delete_cascades(repo: CVRepository):
    """Test that deleting a person removes every child record."""
    person_id = await repo.save_cv(make_cv(publications=2))

    assert await repo.delete_person(person_id) is True
    assert await repo.delete_person(person_id) is False

    conn = await repo._get_connection()
    for table in ("publications", "education", "awards"):
        cursor = await conn.execute(f"SELECT COUNT(*) FROM {table}")
        assert (await cursor.fetchone())[0] == 0


async def test_processing_logs(repo: CVRepository):
    """Test storing and listing extraction run logs."""
    await repo.record_processing_log(
        filename="a.pdf",
        status="failed",
        events=[{"stage": "uploading", "message": "Received a.pdf", "timestamp": 1}],
        error={"code": "EXTRACTION_NO_TEXT"},
    )
    await repo.record_processing_log(
        filename="b.pdf",
        status="completed",
        events=[],
        model="gpt-5",
        total_chunks=2,
        result_summary={"publications": 4},
    )

    logs = await repo.list_processing_logs()

    assert [log["filename"] for log in logs] == ["b.pdf", "a.pdf"]
    assert logs[0]["result_summary"] == {"publications": 4}
    assert logs[0]["total_chunks"] == 2
    assert logs[1]["events"][0]["stage"] == "uploading"
    assert logs[1]["error"] == {"code": "EXTRACTION_NO_TEXT"}
