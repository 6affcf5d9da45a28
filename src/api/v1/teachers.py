# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Teacher API endpoints.

- POST /import/preview - Parse, validate and classify an uploaded staff list
- POST /import - Create login accounts and profiles for the selected teachers

Both require admin access. The import response carries each new teacher's
temporary password; it is not stored anywhere in plain text.
"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_identity_provider, require_admin
from src.api.middleware.auth import CurrentUser
from src.api.v1.uploads import read_upload
from src.core.config import get_settings
from src.domains.auth.identity import LocalIdentityProvider
from src.domains.imports.parsing import FileParseError
from src.domains.imports.teachers import TeacherImportService
from src.models.imports import ImportResult, TeacherImportPreview, TeacherImportRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession, identity: LocalIdentityProvider) -> TeacherImportService:
    return TeacherImportService(db=db, identity=identity, settings=get_settings().imports)


@router.post(
    "/import/preview",
    response_model=TeacherImportPreview,
    summary="Preview teacher upload",
    description="Parse a CSV or XLSX staff list. New rows are preselected.",
)
async def preview_teacher_import(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    identity: LocalIdentityProvider = Depends(get_identity_provider),
) -> TeacherImportPreview:
    content = await read_upload(file)
    try:
        return await _get_service(db, identity).preview(file.filename or "", content)
    except FileParseError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post(
    "/import",
    response_model=ImportResult,
    summary="Import teachers",
    description=(
        "Create an account and a profile for each submitted row. Rows already "
        "registered or failing validation are skipped."
    ),
)
async def import_teachers(
    data: TeacherImportRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    identity: LocalIdentityProvider = Depends(get_identity_provider),
) -> ImportResult:
    logger.info(
        "Teacher import of %s (%d rows) by %s",
        data.file_name,
        len(data.rows),
        current_user.id,
    )
    return await _get_service(db, identity).import_teachers(data, uploaded_by=current_user.id)
