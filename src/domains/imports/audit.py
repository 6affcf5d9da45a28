# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Import audit log shared by the student and teacher imports."""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models.imports import ImportLog
from src.models.imports import ImportResult

logger = logging.getLogger(__name__)


async def write_import_log(
    db: AsyncSession,
    import_type: str,
    file_name: str,
    uploaded_by: str | None,
    result: ImportResult,
    log_data: dict[str, Any],
) -> bool:
    """Record a finished import.

    The ledger has already been committed row by row, so a failure here is
    logged and reported as False instead of raised.
    """
    entry = ImportLog(
        import_type=import_type,
        file_name=file_name or "unknown",
        uploaded_by=uploaded_by,
        total_rows=len(result.success) + len(result.failed),
        success_count=len(result.success),
        failed_count=len(result.failed),
        log_data=log_data,
    )
    db.add(entry)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to log %s import of %s: %s", import_type, file_name, str(e))
        return False

    logger.info(
        "Logged %s import of %s: %d succeeded, %d failed",
        import_type,
        file_name,
        entry.success_count,
        entry.failed_count,
    )
    return True


def backend_message(error: Exception) -> str:
    """Backend error text without the SQLAlchemy statement dump."""
    original = getattr(error, "orig", None)
    return str(original or error).strip() or "Unknown error"
