# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade entry API endpoints.

- POST / - Record a grade
- PUT /{grade_id} - Correct a grade
- POST /{grade_id}/retake - Record a retake of a grade
- DELETE /{grade_id} - Remove a grade

Each drops the cached performance aggregates of the affected term.
Teachers are limited to their own classes and the grades they entered.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import (
    get_db,
    get_performance_cache,
    require_teacher_or_admin,
    term_or_404,
)
from src.api.middleware.auth import CurrentUser
from src.domains.grade.service import (
    GradeAccessDeniedError,
    GradeClassNotFoundError,
    GradeNotFoundError,
    GradeService,
    GradeServiceError,
    GradeValidationError,
    StudentNotEnrolledError,
)
from src.domains.performance.cache import PerformanceCache
from src.models.grade import (
    GradeCreateRequest,
    GradeResponse,
    GradeRetakeRequest,
    GradeUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> GradeService:
    return GradeService(db=db)


def _http_error(e: GradeServiceError) -> HTTPException:
    if isinstance(e, GradeValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(e, GradeAccessDeniedError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(e, (GradeNotFoundError, GradeClassNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, StudentNotEnrolledError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(e))


@router.post(
    "",
    response_model=GradeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record grade",
    description="Record a mark for an enrolled student. Scores under 80% count as low points.",
)
async def record_grade(
    data: GradeCreateRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> GradeResponse:
    term_id = await term_or_404(db, data.term_id)
    try:
        grade = await _get_service(db).record_grade(
            data,
            term_id,
            entered_by=current_user.id,
            teacher_id=current_user.scope_id,
        )
    except GradeServiceError as e:
        raise _http_error(e)

    await cache.invalidate_term(term_id)
    return grade


@router.put(
    "/{grade_id}",
    response_model=GradeResponse,
    summary="Update grade",
    description="Correct marks or details of a grade. The percentage and low-point flag are recomputed.",
)
async def update_grade(
    grade_id: str,
    data: GradeUpdateRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> GradeResponse:
    try:
        grade = await _get_service(db).update_grade(
            grade_id, data, teacher_id=current_user.scope_id
        )
    except GradeServiceError as e:
        raise _http_error(e)

    await cache.invalidate_term(grade.term_id)
    return grade


@router.post(
    "/{grade_id}/retake",
    response_model=GradeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record retake",
    description="Record another attempt at the same assessment as an existing grade.",
)
async def add_retake(
    grade_id: str,
    data: GradeRetakeRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> GradeResponse:
    try:
        grade = await _get_service(db).add_retake(
            grade_id,
            data,
            entered_by=current_user.id,
            teacher_id=current_user.scope_id,
        )
    except GradeServiceError as e:
        raise _http_error(e)

    await cache.invalidate_term(grade.term_id)
    return grade


@router.delete("/{grade_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete grade")
async def delete_grade(
    grade_id: str,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> None:
    try:
        term_id = await _get_service(db).delete_grade(grade_id, teacher_id=current_user.scope_id)
    except GradeServiceError as e:
        raise _http_error(e)

    await cache.invalidate_term(term_id)
