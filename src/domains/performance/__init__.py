# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Performance domain: flag aggregation and term-scoped reporting.

Usage:
    from src.domains.performance import aggregate, PerformanceService

    summary = aggregate(records)
    dashboard = await PerformanceService(db).get_teacher_dashboard(teacher_id, term_id)
"""

from src.domains.performance.aggregator import (
    AssessmentRecord,
    FlagClassification,
    aggregate,
    aggregate_by_student,
    display_percentage,
    flag_breakdown,
    flag_count_for,
    flagged_students,
    status_for,
)
from src.domains.performance.cache import PerformanceCache
from src.domains.performance.service import (
    ClassAccessDeniedError,
    ClassNotFoundError,
    PerformanceService,
    PerformanceServiceError,
    StudentAccessDeniedError,
    StudentNotFoundError,
)

__all__ = [
    "AssessmentRecord",
    "FlagClassification",
    "aggregate",
    "aggregate_by_student",
    "display_percentage",
    "flag_breakdown",
    "flag_count_for",
    "flagged_students",
    "status_for",
    "PerformanceCache",
    "PerformanceService",
    "PerformanceServiceError",
    "StudentNotFoundError",
    "ClassNotFoundError",
    "ClassAccessDeniedError",
    "StudentAccessDeniedError",
]
