# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment service for class rosters.

A student is in a class at most once. Removing a student from a class
keeps the grades they earned there.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import Class, ClassStudent, Student, new_id
from src.models.class_ import EnrollmentResponse

logger = logging.getLogger(__name__)


class EnrollmentServiceError(Exception):
    """Base exception for enrollment service errors."""

    pass


class ClassNotFoundError(EnrollmentServiceError):
    """Raised when class is not found."""

    pass


class StudentNotFoundError(EnrollmentServiceError):
    """Raised when student is not found."""

    pass


class AlreadyEnrolledError(EnrollmentServiceError):
    """Raised when student is already in the class."""

    pass


class NotEnrolledError(EnrollmentServiceError):
    """Raised when student is not in the class."""

    pass


class EnrollmentService:
    """Service for adding and removing class students.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def enroll_student(self, class_id: str, student_id: str) -> EnrollmentResponse:
        """Add a student to a class.

        Raises:
            ClassNotFoundError: If class not found.
            StudentNotFoundError: If student not found.
            AlreadyEnrolledError: If the student is already in the class.
        """
        await self._require(Class, class_id, ClassNotFoundError)
        await self._require(Student, student_id, StudentNotFoundError)

        if await self._get_enrollment(class_id, student_id) is not None:
            raise AlreadyEnrolledError("Student is already enrolled in this class")

        enrollment = ClassStudent(id=new_id(), class_id=str(class_id), student_id=str(student_id))
        self.db.add(enrollment)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise AlreadyEnrolledError("Student is already enrolled in this class")

        logger.info("Enrolled student %s in class %s", student_id, class_id)
        return EnrollmentResponse(
            id=str(enrollment.id),
            class_id=str(class_id),
            student_id=str(student_id),
        )

    async def unenroll_student(self, class_id: str, student_id: str) -> None:
        """Remove a student from a class.

        Raises:
            NotEnrolledError: If the student is not in the class.
        """
        enrollment = await self._get_enrollment(class_id, student_id)
        if enrollment is None:
            raise NotEnrolledError("Student is not enrolled in this class")

        await self.db.delete(enrollment)
        await self.db.commit()

        logger.info("Removed student %s from class %s", student_id, class_id)

    async def _require(self, model: type, entity_id: str, error: type[EnrollmentServiceError]) -> None:
        result = await self.db.execute(select(model.id).where(model.id == str(entity_id)))
        if result.scalar_one_or_none() is None:
            raise error(f"{model.__name__} {entity_id} not found")

    async def _get_enrollment(self, class_id: str, student_id: str) -> ClassStudent | None:
        result = await self.db.execute(
            select(ClassStudent).where(
                ClassStudent.class_id == str(class_id),
                ClassStudent.student_id == str(student_id),
            )
        )
        return result.scalar_one_or_none()
