# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk student and teacher import models."""

from typing import Literal

from pydantic import BaseModel

ValidationStatus = Literal["new", "duplicate", "error"]


class StudentImportRow(BaseModel):
    """Normalized student line from an upload."""

    row_number: int
    full_name: str = ""
    year_group: str = ""
    school: str = ""
    email: str = ""
    phone: str = ""
    guardian_name: str = ""
    status: str = "Active"
    validation_status: ValidationStatus = "new"
    errors: list[str] = []


class StudentImportStats(BaseModel):
    total_in_file: int = 0
    active_count: int = 0
    inactive_count: int = 0
    new_count: int = 0
    duplicate_count: int = 0
    error_count: int = 0


class StudentImportPreview(BaseModel):
    """Validated student rows plus the default selection (row numbers)."""

    file_name: str
    rows: list[StudentImportRow]
    stats: StudentImportStats
    selected: list[int] = []


class StudentImportRequest(BaseModel):
    file_name: str = "students_upload"
    rows: list[StudentImportRow]


class TeacherImportRow(BaseModel):
    """Normalized teacher line from an upload."""

    row_number: int
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    status: str = "Active"
    validation_status: ValidationStatus = "new"
    errors: list[str] = []

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class TeacherImportStats(BaseModel):
    total_in_file: int = 0
    active_count: int = 0
    inactive_count: int = 0
    new_count: int = 0
    duplicate_count: int = 0
    error_count: int = 0


class TeacherImportPreview(BaseModel):
    file_name: str
    rows: list[TeacherImportRow]
    stats: TeacherImportStats
    selected: list[int] = []


class TeacherImportRequest(BaseModel):
    file_name: str = "teachers_upload"
    rows: list[TeacherImportRow]


class ImportSuccess(BaseModel):
    row_number: int
    full_name: str
    email: str = ""
    temporary_password: str | None = None


class ImportFailure(BaseModel):
    row_number: int
    full_name: str
    email: str = ""
    error: str


class ImportResult(BaseModel):
    """Per-row ledger of a confirmed import."""

    success: list[ImportSuccess] = []
    failed: list[ImportFailure] = []
    skipped: list[int] = []
