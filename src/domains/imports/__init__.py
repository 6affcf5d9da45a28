# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk uploads: file parsing, column mapping, student and teacher imports."""

from src.domains.imports.parsing import (
    EmptyFileError,
    FileParseError,
    UnsupportedFileError,
    parse_upload,
)
from src.domains.imports.students import StudentImportService
from src.domains.imports.teachers import TeacherImportService

__all__ = [
    "parse_upload",
    "FileParseError",
    "UnsupportedFileError",
    "EmptyFileError",
    "StudentImportService",
    "TeacherImportService",
]
