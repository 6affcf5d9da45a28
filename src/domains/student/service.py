# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Single-student record management.

Bulk creation goes through the roster import. Deleting a student removes
their contacts, enrollments, grades and parent contacts with them.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import Student
from src.models.student import StudentCreateRequest, StudentResponse, StudentUpdateRequest

logger = logging.getLogger(__name__)


class StudentServiceError(Exception):
    """Base exception for student service errors."""

    pass


class StudentNotFoundError(StudentServiceError):
    """Raised when student is not found."""

    pass


class StudentService:
    """Service for creating, editing and removing students.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_student(
        self,
        request: StudentCreateRequest,
        created_by: str | None,
    ) -> StudentResponse:
        student = Student(
            name=request.name,
            year_group=request.year_group,
            school=request.school,
            created_by=created_by,
        )
        self.db.add(student)
        await self.db.commit()
        await self.db.refresh(student)

        logger.info("Created student: %s (%s)", student.name, student.id)
        return self._to_response(student)

    async def get_student(self, student_id: str) -> StudentResponse:
        """Raises StudentNotFoundError if the student does not exist."""
        return self._to_response(await self._get_by_id(student_id))

    async def update_student(
        self,
        student_id: str,
        request: StudentUpdateRequest,
    ) -> StudentResponse:
        """Apply the fields set on the request.

        Raises:
            StudentNotFoundError: If student not found.
        """
        student = await self._get_by_id(student_id)

        for field, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(student, field, value)

        await self.db.commit()
        await self.db.refresh(student)

        logger.info("Updated student: %s", student_id)
        return self._to_response(student)

    async def delete_student(self, student_id: str) -> None:
        """Raises StudentNotFoundError if the student does not exist."""
        student = await self._get_by_id(student_id)
        await self.db.delete(student)
        await self.db.commit()

        logger.info("Deleted student: %s", student_id)

    async def delete_students(self, student_ids: list[str]) -> int:
        """Delete several students at once and return how many existed."""
        ids = list(dict.fromkeys(str(s) for s in student_ids))
        if not ids:
            return 0

        result = await self.db.execute(delete(Student).where(Student.id.in_(ids)))
        await self.db.commit()

        logger.info("Deleted %d of %d requested students", result.rowcount, len(ids))
        return result.rowcount

    async def _get_by_id(self, student_id: str) -> Student:
        result = await self.db.execute(select(Student).where(Student.id == str(student_id)))
        student = result.scalar_one_or_none()
        if student is None:
            raise StudentNotFoundError(f"Student {student_id} not found")
        return student

    def _to_response(self, student: Student) -> StudentResponse:
        return StudentResponse(
            id=str(student.id),
            name=student.name,
            year_group=student.year_group,
            school=student.school,
            created_by=student.created_by,
            created_at=student.created_at,
        )
