# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade entry domain."""

from src.domains.grade.service import (
    GradeAccessDeniedError,
    GradeClassNotFoundError,
    GradeNotFoundError,
    GradeService,
    GradeServiceError,
    GradeValidationError,
    StudentNotEnrolledError,
    compute_percentage,
)

__all__ = [
    "GradeService",
    "GradeServiceError",
    "GradeValidationError",
    "GradeNotFoundError",
    "GradeClassNotFoundError",
    "GradeAccessDeniedError",
    "StudentNotEnrolledError",
    "compute_percentage",
]
