# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared handling for CSV/XLSX upload endpoints."""

from fastapi import HTTPException, UploadFile, status

from src.core.config import get_settings


async def read_upload(file: UploadFile) -> bytes:
    """Read an uploaded file into memory.

    Raises:
        HTTPException: 413 if the file exceeds the configured limit,
            400 if it is empty.
    """
    limit = get_settings().imports.max_upload_bytes
    content = await file.read(limit + 1)
    if len(content) > limit:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {limit // (1024 * 1024)} MB upload limit",
        )
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is empty")
    return content
