# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student API endpoints.

- POST /import/preview - Parse, validate and classify an uploaded roster
- POST /import - Create the selected students with their guardian contacts
- GET /directory - Filtered, paginated student directory with term stats
- POST / - Create a student
- POST /bulk-delete - Delete several students
- GET /{student_id} - Get a student
- PUT /{student_id} - Update a student
- DELETE /{student_id} - Delete a student

Imports and record changes require admin access. Teachers see the directory
narrowed to the students enrolled in their classes.
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import (
    get_db,
    get_performance_cache,
    require_admin,
    require_teacher_or_admin,
    resolve_term,
)
from src.api.middleware.auth import CurrentUser
from src.api.v1.uploads import read_upload
from src.core.config import get_settings
from src.domains.imports.parsing import FileParseError
from src.domains.imports.students import StudentImportService
from src.domains.performance.cache import PerformanceCache
from src.domains.performance.service import PerformanceService
from src.domains.student.service import StudentNotFoundError, StudentService
from src.models.imports import ImportResult, StudentImportPreview, StudentImportRequest
from src.models.performance import DirectoryFilters, DirectoryPage
from src.models.student import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    StudentCreateRequest,
    StudentResponse,
    StudentUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_import_service(db: AsyncSession) -> StudentImportService:
    return StudentImportService(db=db, settings=get_settings().imports)


def _get_service(db: AsyncSession) -> StudentService:
    return StudentService(db=db)


@router.post(
    "/import/preview",
    response_model=StudentImportPreview,
    summary="Preview student upload",
    description="Parse a CSV or XLSX roster, drop inactive rows and classify the rest as new, duplicate or error.",
)
async def preview_student_import(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> StudentImportPreview:
    content = await read_upload(file)
    try:
        return await _get_import_service(db).preview(file.filename or "", content)
    except FileParseError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post(
    "/import",
    response_model=ImportResult,
    summary="Import students",
    description=(
        "Create the submitted rows one at a time. Invalid rows are skipped and a "
        "failing row never stops the rest; the full ledger is always returned."
    ),
)
async def import_students(
    data: StudentImportRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ImportResult:
    logger.info(
        "Student import of %s (%d rows) by %s",
        data.file_name,
        len(data.rows),
        current_user.id,
    )
    return await _get_import_service(db).import_students(data, uploaded_by=current_user.id)


@router.get(
    "/directory",
    response_model=DirectoryPage,
    summary="Student directory",
    description="Students with grade totals, low points and flags for the resolved term.",
)
async def student_directory(
    search: str | None = Query(None, description="Name contains"),
    year_group: str | None = Query(None),
    school: str | None = Query(None),
    class_id: str | None = Query(None),
    performance: Literal["all", "on_track", "at_risk", "struggling"] = Query("all"),
    flag_status: Literal["all", "none", "1", "2", "3"] = Query(
        "all", description="3 means three or more flags"
    ),
    enrollment_status: Literal["all", "enrolled", "not_enrolled"] = Query("all"),
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1),
    term_id: str = Depends(resolve_term),
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> DirectoryPage:
    filters = DirectoryFilters(
        search=search,
        year_group=year_group,
        school=school,
        class_id=class_id,
        performance=performance,
        flag_status=flag_status,
        enrollment_status=enrollment_status,
    )
    service = PerformanceService(
        db,
        cache=cache,
        max_page_size=get_settings().performance.max_page_size,
    )
    return await service.list_student_directory(
        term_id,
        filters,
        page=page,
        page_size=page_size,
        teacher_id=current_user.scope_id,
    )


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create student",
)
async def create_student(
    data: StudentCreateRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    return await _get_service(db).create_student(data, created_by=current_user.id)


@router.post(
    "/bulk-delete",
    response_model=BulkDeleteResponse,
    summary="Delete students",
    description="Delete the listed students with their enrollments and grades. Unknown ids are ignored.",
)
async def delete_students(
    data: BulkDeleteRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> BulkDeleteResponse:
    deleted = await _get_service(db).delete_students(data.student_ids)
    if deleted:
        await cache.invalidate_all()
    return BulkDeleteResponse(deleted=deleted)


@router.get("/{student_id}", response_model=StudentResponse, summary="Get student")
async def get_student(
    student_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    try:
        return await _get_service(db).get_student(student_id)
    except StudentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{student_id}", response_model=StudentResponse, summary="Update student")
async def update_student(
    student_id: str,
    data: StudentUpdateRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> StudentResponse:
    try:
        student = await _get_service(db).update_student(student_id, data)
    except StudentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    await cache.invalidate_all()
    return student


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete student")
async def delete_student(
    student_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: PerformanceCache = Depends(get_performance_cache),
) -> None:
    try:
        await _get_service(db).delete_student(student_id)
    except StudentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    await cache.invalidate_all()
