# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for SchoolBoard."""

from src.infrastructure.database.models.account import Profile, UserAccount
from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, new_id
from src.infrastructure.database.models.curriculum import (
    Board,
    Qualification,
    Subject,
    Subtopic,
    Topic,
)
from src.infrastructure.database.models.imports import ImportLog
from src.infrastructure.database.models.school import (
    Class,
    ClassStudent,
    Grade,
    ParentContact,
    Student,
    StudentContact,
    Term,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "new_id",
    "UserAccount",
    "Profile",
    "Qualification",
    "Board",
    "Subject",
    "Topic",
    "Subtopic",
    "Term",
    "Student",
    "StudentContact",
    "Class",
    "ClassStudent",
    "Grade",
    "ParentContact",
    "ImportLog",
]
