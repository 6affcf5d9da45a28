# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student record domain."""

from src.domains.student.service import (
    StudentNotFoundError,
    StudentService,
    StudentServiceError,
)

__all__ = [
    "StudentService",
    "StudentServiceError",
    "StudentNotFoundError",
]
