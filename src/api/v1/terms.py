# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic term management API endpoints.

- GET / - List terms
- POST / - Create a term
- GET /active - Get the active term
- PUT /{term_id} - Update a term
- DELETE /{term_id} - Delete a term
- POST /{term_id}/activate - Make a term the active one

Reads are open to teachers; changes require admin access.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import (
    get_db,
    get_performance_cache,
    require_admin,
    require_teacher_or_admin,
)
from src.api.middleware.auth import CurrentUser
from src.domains.performance.cache import PerformanceCache
from src.domains.term.service import (
    ActiveTermDeleteError,
    TermNotFoundError,
    TermService,
    TermValidationError,
)
from src.models.term import (
    TermCreateRequest,
    TermListResponse,
    TermResponse,
    TermUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> TermService:
    return TermService(db=db)


@router.get("", response_model=TermListResponse, summary="List terms")
async def list_terms(
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> TermListResponse:
    items, total = await _get_service(db).list_terms()
    return TermListResponse(items=items, total=total)


@router.post(
    "",
    response_model=TermResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create term",
    description="Create an academic term. Requires admin access.",
)
async def create_term(
    data: TermCreateRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TermResponse:
    logger.info(
        "Creating term: %s (%s to %s) by %s",
        data.name,
        data.start_date,
        data.end_date,
        current_user.id,
    )
    return await _get_service(db).create_term(data, created_by=current_user.id)


@router.get("/active", response_model=TermResponse, summary="Get active term")
async def get_active_term(
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> TermResponse:
    term = await _get_service(db).get_active_term()
    if term is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active term",
        )
    return term


@router.put("/{term_id}", response_model=TermResponse, summary="Update term")
async def update_term(
    term_id: str,
    data: TermUpdateRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TermResponse:
    try:
        return await _get_service(db).update_term(term_id, data)
    except TermNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except TermValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete(
    "/{term_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete term",
    description="Delete an inactive term together with its grades and parent contacts.",
)
async def delete_term(
    term_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> None:
    try:
        await _get_service(db).delete_term(term_id)
    except TermNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ActiveTermDeleteError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    await cache.invalidate_term(term_id)


@router.post("/{term_id}/activate", response_model=TermResponse, summary="Activate term")
async def activate_term(
    term_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TermResponse:
    try:
        return await _get_service(db).set_active_term(term_id)
    except TermNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
