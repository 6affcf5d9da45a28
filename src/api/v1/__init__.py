# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Each module provides a FastAPI router for a specific domain.

Modules:
    auth: Sign-in and current account.
    terms: Academic term management and the active term.
    curriculum: Curriculum hierarchy, tree and bulk upload.
    students: Student records, bulk upload and directory.
    classes: Classes and their rosters.
    teachers: Teacher bulk upload.
    performance: Term dashboards, class and student summaries, flags.
    grades: Grade entry.
"""

from fastapi import APIRouter

from src.api.v1 import (
    auth,
    classes,
    curriculum,
    grades,
    performance,
    students,
    teachers,
    terms,
)

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(terms.router, prefix="/terms", tags=["Terms"])
router.include_router(curriculum.router, prefix="/curriculum", tags=["Curriculum"])
router.include_router(students.router, prefix="/students", tags=["Students"])
router.include_router(classes.router, prefix="/classes", tags=["Classes"])
router.include_router(teachers.router, prefix="/teachers", tags=["Teachers"])
router.include_router(performance.router, prefix="/performance", tags=["Performance"])
router.include_router(grades.router, prefix="/grades", tags=["Grades"])

__all__ = ["router"]
