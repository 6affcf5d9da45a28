# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk teacher import.

Every new row is selected by default; duplicates (email already has a
profile) and errors cannot be selected.

Each teacher is created in two steps: a login account through the identity
provider, then an application profile. If the profile insert fails, the
account is deleted again so no orphan login remains.
"""

import logging
import re
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import ImportSettings
from src.domains.auth.identity import IdentityError, IdentityProvider
from src.domains.auth.password import generate_temporary_password
from src.domains.imports.audit import backend_message, write_import_log
from src.domains.imports.columns import TEACHER_COLUMNS, resolve_columns
from src.domains.imports.parsing import line_number_of, parse_upload
from src.infrastructure.database.models.account import Profile
from src.models.imports import (
    ImportFailure,
    ImportResult,
    ImportSuccess,
    TeacherImportPreview,
    TeacherImportRequest,
    TeacherImportRow,
    TeacherImportStats,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_NAME_PART_LENGTH = 2
TEACHER_ROLE = "teacher"


def split_full_name(full_name: str) -> tuple[str, str]:
    """First token and the rest: "Mary Ann Lee" -> ("Mary", "Ann Lee")."""
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def normalize_teacher_rows(
    raw_rows: list[dict[str, str]],
) -> tuple[list[TeacherImportRow], TeacherImportStats]:
    """Map raw rows onto teacher fields, keeping active rows only.

    Dedicated first/last name columns win; a full-name column fills
    whichever part is missing.
    """
    stats = TeacherImportStats(total_in_file=len(raw_rows))
    if not raw_rows:
        return [], stats

    columns = resolve_columns(raw_rows[0].keys(), TEACHER_COLUMNS)
    rows: list[TeacherImportRow] = []

    for index, raw in enumerate(raw_rows):
        status = columns.value(raw, "status", "Active")
        if status.lower() != "active":
            stats.inactive_count += 1
            continue
        stats.active_count += 1

        first_name = columns.value(raw, "first_name")
        last_name = columns.value(raw, "last_name")
        full_name = columns.value(raw, "full_name")
        if (not first_name or not last_name) and full_name:
            split_first, split_last = split_full_name(full_name)
            first_name = first_name or split_first
            last_name = last_name or split_last

        rows.append(
            TeacherImportRow(
                row_number=line_number_of(raw, index),
                first_name=first_name,
                last_name=last_name,
                email=columns.value(raw, "email").lower(),
                status=status,
            )
        )

    return rows, stats


def teacher_errors(row: TeacherImportRow) -> list[str]:
    errors = []
    if len(row.first_name) < MIN_NAME_PART_LENGTH:
        errors.append("First name missing or too short")
    if len(row.last_name) < MIN_NAME_PART_LENGTH:
        errors.append("Last name missing or too short")
    if not row.email:
        errors.append("Email is required")
    elif not EMAIL_PATTERN.match(row.email):
        errors.append("Invalid email format")
    return errors


def classify_teachers(
    rows: Iterable[TeacherImportRow],
    existing_emails: set[str],
    stats: TeacherImportStats,
    flag_file_duplicates: bool = False,
) -> None:
    """Set validation_status on each row and count the outcome in ``stats``."""
    seen: set[str] = set()
    for row in rows:
        errors = teacher_errors(row)
        duplicate = bool(row.email) and (
            row.email in existing_emails or (flag_file_duplicates and row.email in seen)
        )
        if row.email:
            seen.add(row.email)

        if errors:
            row.validation_status = "error"
            row.errors = errors
            stats.error_count += 1
        elif duplicate:
            row.validation_status = "duplicate"
            row.errors = []
            stats.duplicate_count += 1
        else:
            row.validation_status = "new"
            row.errors = []
            stats.new_count += 1


class TeacherImportService:
    """Preview and commit bulk teacher uploads.

    Attributes:
        db: Async database session.
        identity: Identity provider creating login accounts.
        settings: Import settings.
    """

    def __init__(
        self,
        db: AsyncSession,
        identity: IdentityProvider,
        settings: ImportSettings,
    ) -> None:
        self.db = db
        self.identity = identity
        self.settings = settings

    async def preview(self, filename: str, content: bytes) -> TeacherImportPreview:
        """Parse, validate and classify an upload without writing anything.

        Raises:
            FileParseError: If the file cannot be parsed.
        """
        raw_rows = parse_upload(filename, content)
        rows, stats = normalize_teacher_rows(raw_rows)

        existing = await self._existing_emails(row.email for row in rows)
        classify_teachers(rows, existing, stats, self.settings.flag_file_duplicates)

        logger.info(
            "Teacher upload %s: %d active, %d new, %d duplicate, %d error",
            filename,
            stats.active_count,
            stats.new_count,
            stats.duplicate_count,
            stats.error_count,
        )
        selected = [row.row_number for row in rows if row.validation_status == "new"]
        return TeacherImportPreview(file_name=filename, rows=rows, stats=stats, selected=selected)

    async def import_teachers(
        self,
        request: TeacherImportRequest,
        uploaded_by: str | None,
    ) -> ImportResult:
        """Create the selected teachers one at a time.

        Duplicates are re-checked against stored profiles and skipped along
        with invalid rows. Successful rows carry the temporary password.
        """
        result = ImportResult()
        existing = await self._existing_emails(row.email for row in request.rows)

        for row in request.rows:
            if teacher_errors(row) or row.email in existing:
                result.skipped.append(row.row_number)
                continue

            password = generate_temporary_password(self.settings.temp_password_length)
            error = await self._create_teacher(row, password)
            if error is not None:
                result.failed.append(
                    ImportFailure(
                        row_number=row.row_number,
                        full_name=row.full_name,
                        email=row.email,
                        error=error,
                    )
                )
                continue

            existing.add(row.email)
            result.success.append(
                ImportSuccess(
                    row_number=row.row_number,
                    full_name=row.full_name,
                    email=row.email,
                    temporary_password=password,
                )
            )

        await write_import_log(
            self.db,
            import_type="teachers",
            file_name=request.file_name,
            uploaded_by=uploaded_by,
            result=result,
            log_data={
                "success": [s.email for s in result.success],
                "failed": [f.model_dump() for f in result.failed],
                "skipped": result.skipped,
            },
        )
        return result

    async def _create_teacher(self, row: TeacherImportRow, password: str) -> str | None:
        """Account first, then profile; returns an error message or None."""
        try:
            account = await self.identity.create_account(
                row.email,
                password,
                {"full_name": row.full_name, "role": TEACHER_ROLE},
            )
        except IdentityError as e:
            logger.error("Account creation failed for %s: %s", row.email, str(e))
            return str(e)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Account creation failed for %s: %s", row.email, str(e))
            return backend_message(e)

        try:
            self.db.add(
                Profile(
                    id=account.id,
                    email=row.email,
                    full_name=row.full_name,
                    role=TEACHER_ROLE,
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            message = backend_message(e)
            logger.error(
                "Profile creation failed for %s, removing account %s: %s",
                row.email,
                account.id,
                message,
            )
            await self._compensate(account.id)
            return message

        return None

    async def _compensate(self, account_id: str) -> None:
        try:
            await self.identity.delete_account(account_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to remove orphan account %s: %s", account_id, str(e))
        except IdentityError as e:
            logger.error("Identity provider refused to remove orphan account %s: %s", account_id, str(e))

    async def _existing_emails(self, emails: Iterable[str]) -> set[str]:
        lowered = {email.lower() for email in emails if email}
        if not lowered:
            return set()
        result = await self.db.execute(
            select(func.lower(Profile.email)).where(func.lower(Profile.email).in_(lowered))
        )
        return set(result.scalars().all())
