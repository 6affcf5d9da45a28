# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Curriculum domain.

- CurriculumService: single-entity admin actions, tree, upload preview/import
- CurriculumReconciler: level-by-level bulk reconciliation of upload rows
- CurriculumRepository: the store contract the reconciler runs against
"""

from src.domains.curriculum.reconciler import (
    CurriculumImportError,
    CurriculumReconciler,
    LevelCounts,
    ReconcileResult,
    RowWarning,
)
from src.domains.curriculum.repository import (
    CurriculumEntity,
    CurriculumRepository,
    RepositoryError,
    SQLAlchemyCurriculumRepository,
)
from src.domains.curriculum.service import (
    CurriculumItemExistsError,
    CurriculumItemNotFoundError,
    CurriculumParentNotFoundError,
    CurriculumService,
    CurriculumServiceError,
    CurriculumValidationError,
)

__all__ = [
    "CurriculumService",
    "CurriculumServiceError",
    "CurriculumItemNotFoundError",
    "CurriculumItemExistsError",
    "CurriculumParentNotFoundError",
    "CurriculumValidationError",
    "CurriculumReconciler",
    "CurriculumImportError",
    "ReconcileResult",
    "LevelCounts",
    "RowWarning",
    "CurriculumRepository",
    "CurriculumEntity",
    "RepositoryError",
    "SQLAlchemyCurriculumRepository",
]
