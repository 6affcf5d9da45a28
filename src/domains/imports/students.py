# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk student import.

Preview: parse the upload, drop inactive rows, normalize fields, validate,
and classify each row as new, duplicate (name already stored) or error.
Nothing is selected by default; the operator picks rows (usually by year
group). Duplicates may be picked on purpose, errors never.

Import: commit the picked rows one at a time. A failed row is recorded and
the loop moves on; the full ledger is always returned and logged.
"""

import logging
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import ImportSettings
from src.domains.imports.audit import backend_message, write_import_log
from src.domains.imports.columns import STUDENT_COLUMNS, resolve_columns
from src.domains.imports.parsing import line_number_of, parse_upload
from src.infrastructure.database.models.school import Student, StudentContact
from src.models.imports import (
    ImportFailure,
    ImportResult,
    ImportSuccess,
    StudentImportPreview,
    StudentImportRequest,
    StudentImportRow,
    StudentImportStats,
)

logger = logging.getLogger(__name__)

DEFAULT_YEAR_GROUP = "Year 7"
DEFAULT_SCHOOL = "Unknown"
DEFAULT_GUARDIAN = "Unknown"
GUARDIAN_RELATIONSHIP = "Guardian"
MIN_NAME_LENGTH = 2


def normalize_year_group(value: str) -> str:
    """Keep the first part of combined labels: "Year 12/Grade 11" -> "Year 12"."""
    if "/" in value:
        return value.split("/", 1)[0].strip()
    return value.strip()


def normalize_student_rows(
    raw_rows: list[dict[str, str]],
) -> tuple[list[StudentImportRow], StudentImportStats]:
    """Map raw rows onto student fields, keeping active rows only.

    Row numbers are the spreadsheet lines the rows were parsed from, so
    inactive and blank rows never shift them (header is line 1).
    """
    stats = StudentImportStats(total_in_file=len(raw_rows))
    if not raw_rows:
        return [], stats

    columns = resolve_columns(raw_rows[0].keys(), STUDENT_COLUMNS)
    rows: list[StudentImportRow] = []

    for index, raw in enumerate(raw_rows):
        status = columns.value(raw, "status", "Active")
        if status.lower() != "active":
            stats.inactive_count += 1
            continue
        stats.active_count += 1

        rows.append(
            StudentImportRow(
                row_number=line_number_of(raw, index),
                full_name=columns.value(raw, "full_name"),
                year_group=normalize_year_group(columns.value(raw, "year_group")),
                school=columns.value(raw, "school"),
                email=columns.value(raw, "email").lower(),
                phone=columns.value(raw, "phone"),
                guardian_name=columns.value(raw, "guardian_name"),
                status=status,
            )
        )

    return rows, stats


def student_errors(row: StudentImportRow) -> list[str]:
    if len(row.full_name) < MIN_NAME_LENGTH:
        return ["Name missing or too short"]
    return []


def classify_students(
    rows: Iterable[StudentImportRow],
    existing_names: set[str],
    stats: StudentImportStats,
    flag_file_duplicates: bool = False,
) -> None:
    """Set validation_status on each row and count the outcome in ``stats``.

    Args:
        rows: Normalized active rows, mutated in place.
        existing_names: Lowercase names already stored.
        stats: Counters to fill.
        flag_file_duplicates: Also mark later rows repeating a name seen
            earlier in the same file.
    """
    seen: set[str] = set()
    for row in rows:
        key = row.full_name.lower()
        errors = student_errors(row)
        duplicate = bool(row.full_name) and (
            key in existing_names or (flag_file_duplicates and key in seen)
        )
        if row.full_name:
            seen.add(key)

        # Error beats duplicate
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


class StudentImportService:
    """Preview and commit bulk student uploads.

    Attributes:
        db: Async database session.
        settings: Import settings.
    """

    def __init__(self, db: AsyncSession, settings: ImportSettings) -> None:
        self.db = db
        self.settings = settings

    async def preview(self, filename: str, content: bytes) -> StudentImportPreview:
        """Parse, validate and classify an upload without writing anything.

        Raises:
            FileParseError: If the file cannot be parsed.
        """
        raw_rows = parse_upload(filename, content)
        rows, stats = normalize_student_rows(raw_rows)

        existing = await self._existing_names(row.full_name for row in rows)
        classify_students(rows, existing, stats, self.settings.flag_file_duplicates)

        logger.info(
            "Student upload %s: %d active, %d new, %d duplicate, %d error",
            filename,
            stats.active_count,
            stats.new_count,
            stats.duplicate_count,
            stats.error_count,
        )
        # Operators select by year group; nothing is preselected
        return StudentImportPreview(file_name=filename, rows=rows, stats=stats, selected=[])

    async def import_students(
        self,
        request: StudentImportRequest,
        uploaded_by: str | None,
    ) -> ImportResult:
        """Insert the selected rows one at a time.

        Rows failing validation are skipped, never written. Each remaining
        row commits a student and its guardian contact together; a backend
        error on one row is recorded and the next row proceeds.
        """
        result = ImportResult()

        for row in request.rows:
            if student_errors(row):
                result.skipped.append(row.row_number)
                continue

            try:
                await self._insert_student(row, uploaded_by)
            except SQLAlchemyError as e:
                await self.db.rollback()
                message = backend_message(e)
                logger.error("Student import failed for %s: %s", row.full_name, message)
                result.failed.append(
                    ImportFailure(
                        row_number=row.row_number,
                        full_name=row.full_name,
                        email=row.email,
                        error=message,
                    )
                )
                continue

            result.success.append(
                ImportSuccess(row_number=row.row_number, full_name=row.full_name, email=row.email)
            )

        await write_import_log(
            self.db,
            import_type="students",
            file_name=request.file_name,
            uploaded_by=uploaded_by,
            result=result,
            log_data={
                "success": [s.full_name for s in result.success],
                "failed": [f.model_dump() for f in result.failed],
                "skipped": result.skipped,
            },
        )
        return result

    async def _insert_student(self, row: StudentImportRow, uploaded_by: str | None) -> None:
        student = Student(
            name=row.full_name,
            year_group=row.year_group or DEFAULT_YEAR_GROUP,
            school=row.school or DEFAULT_SCHOOL,
            created_by=uploaded_by,
        )
        self.db.add(student)
        await self.db.flush()

        self.db.add(
            StudentContact(
                student_id=student.id,
                parent_name=row.guardian_name or DEFAULT_GUARDIAN,
                relationship_type=GUARDIAN_RELATIONSHIP,
                email=row.email or None,
                phone=row.phone or None,
            )
        )
        await self.db.commit()

    async def _existing_names(self, names: Iterable[str]) -> set[str]:
        lowered = {name.lower() for name in names if name}
        if not lowered:
            return set()
        result = await self.db.execute(
            select(func.lower(Student.name)).where(func.lower(Student.name).in_(lowered))
        )
        return set(result.scalars().all())
