# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Row validation for curriculum uploads.

Only rows that pass validation are handed to the reconciler.
"""

from src.domains.imports.columns import (
    CURRICULUM_COLUMNS,
    CURRICULUM_PREFIXES,
    resolve_columns,
)
from src.domains.imports.parsing import line_number_of
from src.models.curriculum import (
    CurriculumImportStats,
    CurriculumPreviewRow,
    CurriculumRow,
)


def validate_curriculum_rows(
    raw_rows: list[dict[str, str]],
) -> tuple[list[CurriculumPreviewRow], CurriculumImportStats]:
    """Map raw upload rows onto curriculum fields and validate them.

    Row numbers are spreadsheet line numbers: the header is line 1.
    """
    if not raw_rows:
        return [], CurriculumImportStats()

    columns = resolve_columns(raw_rows[0].keys(), CURRICULUM_COLUMNS, CURRICULUM_PREFIXES)
    stats = CurriculumImportStats(total=len(raw_rows))
    rows: list[CurriculumPreviewRow] = []

    for index, raw in enumerate(raw_rows):
        row = CurriculumPreviewRow(
            row_number=line_number_of(raw, index),
            qualification=columns.value(raw, "qualification"),
            board=columns.value(raw, "board"),
            subject=columns.value(raw, "subject"),
            topic=columns.value(raw, "topic"),
            subtopic=columns.value(raw, "subtopic"),
        )
        errors = row_errors(row)
        if errors:
            row.validation_status = "error"
            row.errors = errors
            stats.error += 1
        else:
            stats.valid += 1
        rows.append(row)

    return rows, stats


def row_errors(row: CurriculumRow) -> list[str]:
    errors = []
    if not row.qualification:
        errors.append("Qualification is required")
    if not row.board:
        errors.append("Board is required")
    if not row.subject:
        errors.append("Subject is required")
    if row.subtopic and not row.topic:
        errors.append("Subtopic requires a topic")
    return errors
