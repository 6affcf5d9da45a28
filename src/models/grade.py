# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade entry request and response models."""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

WorkType = Literal["classwork", "homework", "test", "exam"]


class GradeCreateRequest(BaseModel):
    """One assessment result.

    ``term_id`` defaults to the term resolved for the request.
    """

    student_id: str
    class_id: str
    term_id: str | None = None
    topic_id: str | None = None
    subtopic_id: str | None = None
    work_type: WorkType = "classwork"
    marks_obtained: float = Field(..., ge=0)
    total_marks: float = Field(..., gt=0)
    attempt_number: int = Field(default=1, ge=1)
    notes: str | None = None
    assessed_date: date | None = None


class GradeUpdateRequest(BaseModel):
    """Partial correction of a recorded grade. Unset fields keep their value."""

    marks_obtained: float | None = Field(default=None, ge=0)
    total_marks: float | None = Field(default=None, gt=0)
    work_type: WorkType | None = None
    notes: str | None = None
    assessed_date: date | None = None


class GradeRetakeRequest(BaseModel):
    """New attempt at the assessment behind an existing grade."""

    marks_obtained: float = Field(..., ge=0)
    total_marks: float = Field(..., gt=0)
    work_type: WorkType | None = None
    notes: str | None = None
    assessed_date: date | None = None


class GradeResponse(BaseModel):
    id: str
    student_id: str
    class_id: str
    term_id: str
    topic_id: str | None = None
    subtopic_id: str | None = None
    work_type: str
    marks_obtained: float
    total_marks: float
    percentage: float
    is_low_point: bool
    attempt_number: int
    assessed_date: date
    is_retake: bool = False
    original_grade_id: str | None = None
