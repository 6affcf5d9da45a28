# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Performance reporting response models.

Percentages in these models are display values, rounded to whole percent.
Status and flags are computed from unrounded averages before conversion.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

PerformanceStatus = Literal["On Track", "At Risk", "Struggling"]
ContactType = Literal["message", "call", "meeting"]
ContactStatus = Literal["pending", "contacted", "resolved"]


class StudentSummary(BaseModel):
    """Per-student flag classification within one term."""

    student_id: str
    student_name: str = ""
    total_grades: int = 0
    low_points: int = 0
    flag_count: int = 0
    average_percentage: int = 0
    status: PerformanceStatus = "On Track"


class ClassPerformance(BaseModel):
    """Per-class rollup for one term."""

    class_id: str
    class_name: str
    teacher_id: str | None = None
    teacher_name: str | None = None
    student_count: int = 0
    total_grades: int = 0
    low_points: int = 0
    average_percentage: int = 0
    flagged_students: int = 0


class FlagBreakdown(BaseModel):
    one: int = 0
    two: int = 0
    three: int = 0


class TeacherDashboard(BaseModel):
    term_id: str
    class_count: int = 0
    student_count: int = 0
    grades_entered: int = 0
    flagged_count: int = 0
    flag_breakdown: FlagBreakdown = Field(default_factory=FlagBreakdown)
    classes: list[ClassPerformance] = []


class ParentContactEntry(BaseModel):
    id: str
    contact_type: ContactType
    status: ContactStatus
    notes: str | None = None
    contacted_at: datetime | None = None
    updated_at: datetime | None = None


class FlaggedStudent(StudentSummary):
    """Flagged student with the intervention expected at their flag level."""

    class_names: list[str] = []
    required_contact: ContactType = "message"
    contacts: list[ParentContactEntry] = []


class ContactStatusUpdate(BaseModel):
    student_id: str
    term_id: str | None = None
    contact_type: ContactType
    status: ContactStatus
    notes: str | None = None


class DirectoryFilters(BaseModel):
    """Student directory filters. Performance and flag filters apply after aggregation."""

    search: str | None = None
    year_group: str | None = None
    school: str | None = None
    class_id: str | None = None
    performance: Literal["all", "on_track", "at_risk", "struggling"] = "all"
    flag_status: Literal["all", "none", "1", "2", "3"] = "all"
    enrollment_status: Literal["all", "enrolled", "not_enrolled"] = "all"


class DirectoryEntry(StudentSummary):
    year_group: str = ""
    school: str = ""
    class_names: list[str] = []


class DirectoryPage(BaseModel):
    items: list[DirectoryEntry]
    total: int
    page: int
    page_size: int
    total_pages: int
