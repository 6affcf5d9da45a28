# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Term performance API endpoints.

- GET /dashboard - Headline numbers and per-class rollup
- GET /classes - Per-class rollup
- GET /classes/{class_id}/students - Per-student summary within one class
- GET /students/{student_id} - One student's summary across classes
- GET /flags - Flagged students with required parent contact
- PUT /flags/contacts - Record parent contact progress

Teachers see their own classes; admins see the whole school. Every read
reports on the term resolved from the ``term_id`` query parameter.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import (
    get_db,
    get_performance_cache,
    require_teacher_or_admin,
    resolve_term,
    term_or_404,
)
from src.api.middleware.auth import CurrentUser
from src.core.config import get_settings
from src.domains.performance.cache import PerformanceCache
from src.domains.performance.service import (
    ClassAccessDeniedError,
    ClassNotFoundError,
    PerformanceService,
    StudentAccessDeniedError,
    StudentNotFoundError,
)
from src.models.performance import (
    ClassPerformance,
    ContactStatusUpdate,
    FlaggedStudent,
    ParentContactEntry,
    StudentSummary,
    TeacherDashboard,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession, cache: PerformanceCache) -> PerformanceService:
    return PerformanceService(
        db=db,
        cache=cache,
        max_page_size=get_settings().performance.max_page_size,
    )


@router.get("/dashboard", response_model=TeacherDashboard, summary="Performance dashboard")
async def get_dashboard(
    term_id: str = Depends(resolve_term),
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> TeacherDashboard:
    return await _get_service(db, cache).get_teacher_dashboard(current_user.scope_id, term_id)


@router.get("/classes", response_model=list[ClassPerformance], summary="Class performance")
async def get_class_performance(
    term_id: str = Depends(resolve_term),
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> list[ClassPerformance]:
    return await _get_service(db, cache).get_class_performance_summary(
        current_user.scope_id, term_id
    )


@router.get(
    "/classes/{class_id}/students",
    response_model=list[StudentSummary],
    summary="Class student progress",
    description="One summary per enrolled student, counting only grades from this class.",
)
async def get_class_students(
    class_id: str,
    term_id: str = Depends(resolve_term),
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> list[StudentSummary]:
    try:
        return await _get_service(db, cache).get_student_progress_summary(
            class_id, term_id, teacher_id=current_user.scope_id
        )
    except ClassNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ClassAccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.get(
    "/students/{student_id}",
    response_model=StudentSummary,
    summary="Student summary",
)
async def get_student_summary(
    student_id: str,
    term_id: str = Depends(resolve_term),
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> StudentSummary:
    try:
        return await _get_service(db, cache).get_student_summary(
            student_id, term_id, teacher_id=current_user.scope_id
        )
    except StudentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StudentAccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.get(
    "/flags",
    response_model=list[FlaggedStudent],
    summary="Flagged students",
    description="Students with one or more flags, most flags first.",
)
async def get_flagged_students(
    term_id: str = Depends(resolve_term),
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> list[FlaggedStudent]:
    return await _get_service(db, cache).get_flagged_students(
        term_id, teacher_id=current_user.scope_id
    )


@router.put(
    "/flags/contacts",
    response_model=ParentContactEntry,
    summary="Update parent contact",
    description="Create or update the contact entry for a student, term and contact type.",
)
async def update_contact_status(
    data: ContactStatusUpdate,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> ParentContactEntry:
    term_id = await term_or_404(db, data.term_id)
    try:
        return await _get_service(db, cache).update_contact_status(
            data, term_id, teacher_id=current_user.scope_id
        )
    except StudentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StudentAccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
