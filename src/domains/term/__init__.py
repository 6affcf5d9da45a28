# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic term domain."""

from src.domains.term.service import (
    ActiveTermDeleteError,
    NoTermError,
    TermNotFoundError,
    TermService,
    TermServiceError,
    TermValidationError,
)

__all__ = [
    "TermService",
    "TermServiceError",
    "TermNotFoundError",
    "TermValidationError",
    "ActiveTermDeleteError",
    "NoTermError",
]
