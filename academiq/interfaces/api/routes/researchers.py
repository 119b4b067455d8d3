"""
Researcher Routes - Store, browse and delete extracted CV records.
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile
from pydantic import Field

from academiq.adapters.sqlite.repository import CVRepository
from academiq.config import NotFoundError
from academiq.domains.extraction.models import CVRecord, StructuredCV
from academiq.domains.extraction.normalization import normalize_cv
from academiq.domains.orchestration import NameIdentifier
from academiq.interfaces.api.deps import get_name_identifier, get_repository

router = APIRouter()


class SaveRequest(CVRecord):
    """Save request body."""

    cv: StructuredCV
    pdf_filename: str | None = None
    email: str | None = None


class DuplicateCheckRequest(CVRecord):
    """Duplicate check request body."""

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str | None = None


@router.post("", status_code=201)
async def save_researcher(
    request: SaveRequest,
    repo: CVRepository = Depends(get_repository),
) -> dict[str, int]:
    """
    Store an extracted record.

    Responds 409 when a person with the same email already exists.
    """
    person_id = await repo.save_cv(
        normalize_cv(request.cv),
        pdf_filename=request.pdf_filename,
        email=request.email,
    )
    return {"id": person_id}


@router.post("/check-duplicate")
async def check_duplicate(
    request: DuplicateCheckRequest,
    repo: CVRepository = Depends(get_repository),
) -> dict[str, Any]:
    """Look for an existing person by email, then by name."""
    if request.email:
        existing = await repo.find_person_by_email(request.email)
        if existing:
            return {"duplicate": True, "reason": "email", "existingPerson": existing}

    existing = await repo.find_person_by_name(request.first_name, request.last_name)
    if existing:
        return {"duplicate": True, "reason": "name", "existingPerson": existing}

    return {"duplicate": False, "reason": None, "existingPerson": None}


@router.post("/check-duplicate/pdf")
async def check_duplicate_pdf(
    file: UploadFile = File(...),
    identifier: NameIdentifier = Depends(get_name_identifier),
    repo: CVRepository = Depends(get_repository),
) -> dict[str, Any]:
    """
    Look for an existing person by the name at the top of an uploaded CV.

    Only the first lines of page one are read and sent to the model, so this
    is meant to run before a full parse.
    """
    if not file.filename or not file.filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="File must be a PDF")

    name = await identifier.identify(await file.read())
    existing = await repo.find_person_by_name(name.first_name, name.last_name)
    return {
        "duplicate": existing is not None,
        "reason": "name" if existing else None,
        "existingPerson": existing,
        "name": {"firstName": name.first_name, "lastName": name.last_name},
    }


@router.get("")
async def list_researchers(
    search: str | None = Query(default=None, max_length=200),
    sort_by: Literal["name", "imported_at", "birth_year", "publications"] = "imported_at",
    order: Literal["asc", "desc"] = "desc",
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    repo: CVRepository = Depends(get_repository),
) -> dict[str, Any]:
    """
    List stored researchers.

    - **search**: Match on name or email
    - **sort_by**: name, imported_at, birth_year or publications
    - **order**: asc or desc
    """
    items = await repo.list_persons(
        search=search,
        sort_by=sort_by,
        descending=order == "desc",
        limit=limit,
        offset=offset,
    )
    return {"items": items, "total": await repo.count_persons()}


@router.get("/{person_id}")
async def get_researcher(
    person_id: int,
    repo: CVRepository = Depends(get_repository),
) -> dict[str, Any]:
    """Get one researcher with every child collection."""
    person = await repo.get_person(person_id)
    if person is None:
        raise NotFoundError(f"Researcher {person_id} not found", {"id": person_id})
    return person


@router.delete("/{person_id}", status_code=204)
async def delete_researcher(
    person_id: int,
    repo: CVRepository = Depends(get_repository),
) -> Response:
    """Delete a researcher and all their records."""
    if not await repo.delete_person(person_id):
        raise NotFoundError(f"Researcher {person_id} not found", {"id": person_id})
    return Response(status_code=204)
