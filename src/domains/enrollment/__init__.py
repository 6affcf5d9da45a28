# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

Adds students to classes and removes them again.
"""

from src.domains.enrollment.service import (
    AlreadyEnrolledError,
    ClassNotFoundError,
    EnrollmentService,
    EnrollmentServiceError,
    NotEnrolledError,
    StudentNotFoundError,
)

__all__ = [
    "EnrollmentService",
    "EnrollmentServiceError",
    "ClassNotFoundError",
    "StudentNotFoundError",
    "AlreadyEnrolledError",
    "NotEnrolledError",
]
