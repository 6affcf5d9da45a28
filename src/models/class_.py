# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class and enrollment request and response models."""

from pydantic import BaseModel, Field


class ClassCreateRequest(BaseModel):
    """Create a class for a teacher, optionally with its first roster."""

    name: str = Field(..., min_length=1, max_length=255)
    teacher_id: str
    student_ids: list[str] = Field(default_factory=list)


class ClassUpdateRequest(BaseModel):
    """Rename a class or hand it to another teacher."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    teacher_id: str | None = None


class ClassSummary(BaseModel):
    id: str
    name: str
    teacher_id: str | None = None
    teacher_name: str | None = None
    student_count: int = 0


class RosterEntry(BaseModel):
    enrollment_id: str
    student_id: str
    name: str
    year_group: str


class ClassDetail(ClassSummary):
    """Class with its enrolled students, ordered by name."""

    students: list[RosterEntry] = Field(default_factory=list)


class EnrollmentRequest(BaseModel):
    student_id: str


class EnrollmentResponse(BaseModel):
    id: str
    class_id: str
    student_id: str
