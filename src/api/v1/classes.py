# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class and enrollment API endpoints.

- GET / - List classes
- POST / - Create a class with an optional roster
- GET /{class_id} - Get a class with its roster
- PUT /{class_id} - Rename a class or reassign its teacher
- DELETE /{class_id} - Delete a class
- POST /{class_id}/students - Enroll a student
- DELETE /{class_id}/students/{student_id} - Remove a student

Teachers read their own classes; changes require admin access. Roster
changes drop every cached performance aggregate.
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
from src.domains.class_.service import (
    ClassAccessDeniedError,
    ClassNotFoundError,
    ClassService,
    StudentNotFoundError,
    TeacherNotFoundError,
)
from src.domains.enrollment import service as enrollment
from src.domains.performance.cache import PerformanceCache
from src.models.class_ import (
    ClassCreateRequest,
    ClassDetail,
    ClassSummary,
    ClassUpdateRequest,
    EnrollmentRequest,
    EnrollmentResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> ClassService:
    return ClassService(db=db)


def _get_enrollment_service(db: AsyncSession) -> enrollment.EnrollmentService:
    return enrollment.EnrollmentService(db=db)


@router.get("", response_model=list[ClassSummary], summary="List classes")
async def list_classes(
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> list[ClassSummary]:
    return await _get_service(db).list_classes(teacher_id=current_user.scope_id)


@router.post(
    "",
    response_model=ClassSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Create class",
    description="Create a class for a teacher, enrolling any listed students. Requires admin access.",
)
async def create_class(
    data: ClassCreateRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> ClassSummary:
    try:
        created = await _get_service(db).create_class(data, created_by=current_user.id)
    except (TeacherNotFoundError, StudentNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if created.student_count:
        await cache.invalidate_all()
    return created


@router.get("/{class_id}", response_model=ClassDetail, summary="Get class")
async def get_class(
    class_id: str,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> ClassDetail:
    try:
        return await _get_service(db).get_class(class_id, teacher_id=current_user.scope_id)
    except ClassNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ClassAccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.put("/{class_id}", response_model=ClassSummary, summary="Update class")
async def update_class(
    class_id: str,
    data: ClassUpdateRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> ClassSummary:
    try:
        updated = await _get_service(db).update_class(class_id, data)
    except ClassNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except TeacherNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await cache.invalidate_all()
    return updated


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete class")
async def delete_class(
    class_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> None:
    try:
        await _get_service(db).delete_class(class_id)
    except ClassNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    logger.info("Class %s deleted by %s", class_id, current_user.id)
    await cache.invalidate_all()


@router.post(
    "/{class_id}/students",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll student",
)
async def enroll_student(
    class_id: str,
    data: EnrollmentRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> EnrollmentResponse:
    try:
        enrolled = await _get_enrollment_service(db).enroll_student(class_id, data.student_id)
    except (enrollment.ClassNotFoundError, enrollment.StudentNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except enrollment.AlreadyEnrolledError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    await cache.invalidate_all()
    return enrolled


@router.delete(
    "/{class_id}/students/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove student from class",
)
async def unenroll_student(
    class_id: str,
    student_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> None:
    try:
        await _get_enrollment_service(db).unenroll_student(class_id, student_id)
    except enrollment.NotEnrolledError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    await cache.invalidate_all()
