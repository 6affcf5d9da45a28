# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Curriculum API endpoints.

- GET /tree - Full Qualification -> Board -> Subject -> Topic -> Subtopic tree
- GET /{level} - List one level, optionally under a parent
- POST /{level} - Create an entity
- PUT /{level}/{item_id} - Rename or re-parent an entity
- DELETE /{level}/{item_id} - Delete an entity and its descendants
- POST /import/preview - Parse and validate an uploaded file
- POST /import - Reconcile validated rows into the hierarchy

Reads are open to teachers; changes and imports require admin access.
"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, require_admin, require_teacher_or_admin
from src.api.middleware.auth import CurrentUser
from src.api.v1.uploads import read_upload
from src.domains.curriculum.reconciler import CurriculumImportError, ReconcileResult
from src.domains.curriculum.service import (
    CurriculumItemExistsError,
    CurriculumItemNotFoundError,
    CurriculumParentNotFoundError,
    CurriculumService,
    CurriculumValidationError,
)
from src.domains.imports.parsing import FileParseError
from src.models.curriculum import (
    CurriculumImportPreview,
    CurriculumImportRequest,
    CurriculumImportResponse,
    CurriculumItemCreate,
    CurriculumItemResponse,
    CurriculumItemUpdate,
    CurriculumLevel,
    CurriculumNode,
    LevelCountsResponse,
    RowWarningResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> CurriculumService:
    return CurriculumService(db=db)


def _to_import_response(file_name: str, result: ReconcileResult) -> CurriculumImportResponse:
    return CurriculumImportResponse(
        file_name=file_name,
        levels={
            level: LevelCountsResponse(created=counts.created, existing=counts.existing)
            for level, counts in result.levels.items()
        },
        warnings=[
            RowWarningResponse(row_number=w.row_number, level=w.level, message=w.message)
            for w in result.warnings
        ],
        total_created=result.total_created,
    )


@router.get("/tree", response_model=list[CurriculumNode], summary="Curriculum tree")
async def get_tree(
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> list[CurriculumNode]:
    return await _get_service(db).get_tree()


# Import routes are declared before /{level} so "import" is not read as a level


@router.post(
    "/import/preview",
    response_model=CurriculumImportPreview,
    summary="Preview curriculum upload",
    description="Parse a CSV or XLSX file and validate each row. Nothing is written.",
)
async def preview_import(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CurriculumImportPreview:
    content = await read_upload(file)
    try:
        return _get_service(db).preview_import(file.filename or "", content)
    except FileParseError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post(
    "/import",
    response_model=CurriculumImportResponse,
    summary="Import curriculum rows",
    description=(
        "Create every qualification, board, subject, topic and subtopic the rows "
        "reference that does not exist yet. Existing entities are reused."
    ),
)
async def import_curriculum(
    data: CurriculumImportRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CurriculumImportResponse:
    logger.info(
        "Curriculum import of %s (%d rows) by %s",
        data.file_name,
        len(data.rows),
        current_user.id,
    )

    try:
        result = await _get_service(db).import_rows(data.rows)
    except CurriculumImportError as e:
        partial = _to_import_response(data.file_name, e.partial)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": "Curriculum import failed",
                "error": e.message,
                "level": e.level,
                "partial": partial.model_dump(),
            },
        )

    response = _to_import_response(data.file_name, result)
    logger.info(
        "Curriculum import of %s created %d entities with %d warnings",
        data.file_name,
        response.total_created,
        len(response.warnings),
    )
    return response


@router.get("/{level}", response_model=list[CurriculumItemResponse], summary="List level")
async def list_items(
    level: CurriculumLevel,
    parent_id: str | None = Query(None, description="Restrict to one parent"),
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> list[CurriculumItemResponse]:
    return await _get_service(db).list_items(level, parent_id=parent_id)


@router.post(
    "/{level}",
    response_model=CurriculumItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create entity",
)
async def create_item(
    level: CurriculumLevel,
    data: CurriculumItemCreate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CurriculumItemResponse:
    try:
        return await _get_service(db).create_item(level, data)
    except CurriculumValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except CurriculumParentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except CurriculumItemExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.put("/{level}/{item_id}", response_model=CurriculumItemResponse, summary="Update entity")
async def update_item(
    level: CurriculumLevel,
    item_id: str,
    data: CurriculumItemUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CurriculumItemResponse:
    try:
        return await _get_service(db).update_item(level, item_id, data)
    except CurriculumValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (CurriculumItemNotFoundError, CurriculumParentNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except CurriculumItemExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.delete(
    "/{level}/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete entity",
)
async def delete_item(
    level: CurriculumLevel,
    item_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await _get_service(db).delete_item(level, item_id)
    except CurriculumItemNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
