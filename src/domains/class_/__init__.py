# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class domain package.

This package provides class management functionality including:
- Class CRUD with an optional starting roster
- Teacher-scoped class listing and roster reads
"""

from src.domains.class_.service import (
    ClassAccessDeniedError,
    ClassNotFoundError,
    ClassService,
    ClassServiceError,
    StudentNotFoundError,
    TeacherNotFoundError,
)

__all__ = [
    "ClassService",
    "ClassServiceError",
    "ClassNotFoundError",
    "ClassAccessDeniedError",
    "TeacherNotFoundError",
    "StudentNotFoundError",
]
