# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class service for managing teaching classes.

This module provides the ClassService class for:
- Class CRUD operations, admin only
- Listing classes with teacher names and student counts
- Reading one class with its roster
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import Class, ClassStudent, Profile, Student, new_id
from src.models.class_ import (
    ClassCreateRequest,
    ClassDetail,
    ClassSummary,
    ClassUpdateRequest,
    RosterEntry,
)

logger = logging.getLogger(__name__)


class ClassServiceError(Exception):
    """Base exception for class service errors."""

    pass


class ClassNotFoundError(ClassServiceError):
    """Raised when class is not found."""

    pass


class ClassAccessDeniedError(ClassServiceError):
    """Raised when a teacher reads a class they do not teach."""

    pass


class TeacherNotFoundError(ClassServiceError):
    """Raised when the assigned teacher has no teacher profile."""

    pass


class StudentNotFoundError(ClassServiceError):
    """Raised when a roster names an unknown student."""

    pass


class ClassService:
    """Service for managing classes.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_class(
        self,
        request: ClassCreateRequest,
        created_by: str,
    ) -> ClassSummary:
        """Create a class, enrolling the given students.

        Args:
            request: Class creation data.
            created_by: ID of the admin creating the class.

        Returns:
            Created class summary.

        Raises:
            TeacherNotFoundError: If the teacher has no teacher profile.
            StudentNotFoundError: If a listed student does not exist.
        """
        teacher_name = await self._require_teacher(request.teacher_id)
        student_ids = list(dict.fromkeys(str(s) for s in request.student_ids))
        if student_ids:
            await self._require_students(student_ids)

        class_ = Class(id=new_id(), name=request.name.strip(), teacher_id=request.teacher_id)
        self.db.add(class_)
        for student_id in student_ids:
            self.db.add(ClassStudent(id=new_id(), class_id=class_.id, student_id=student_id))
        await self.db.commit()

        logger.info(
            "Created class: %s (%s) with %d students by %s",
            class_.name,
            class_.id,
            len(student_ids),
            created_by,
        )
        return ClassSummary(
            id=str(class_.id),
            name=class_.name,
            teacher_id=class_.teacher_id,
            teacher_name=teacher_name,
            student_count=len(student_ids),
        )

    async def list_classes(self, teacher_id: str | None = None) -> list[ClassSummary]:
        """List classes by name, narrowed to one teacher when given."""
        query = (
            select(
                Class.id,
                Class.name,
                Class.teacher_id,
                Profile.full_name.label("teacher_name"),
                func.count(ClassStudent.id).label("student_count"),
            )
            .outerjoin(Profile, Profile.id == Class.teacher_id)
            .outerjoin(ClassStudent, ClassStudent.class_id == Class.id)
            .group_by(Class.id, Profile.full_name)
            .order_by(Class.name)
        )
        if teacher_id is not None:
            query = query.where(Class.teacher_id == str(teacher_id))

        result = await self.db.execute(query)
        return [
            ClassSummary(
                id=str(row.id),
                name=row.name,
                teacher_id=str(row.teacher_id) if row.teacher_id else None,
                teacher_name=row.teacher_name,
                student_count=row.student_count or 0,
            )
            for row in result
        ]

    async def get_class(self, class_id: str, teacher_id: str | None = None) -> ClassDetail:
        """Get a class with its roster.

        Raises:
            ClassNotFoundError: If class not found.
            ClassAccessDeniedError: If the class belongs to another teacher.
        """
        class_ = await self._get_by_id(class_id)
        if teacher_id is not None and str(class_.teacher_id) != str(teacher_id):
            raise ClassAccessDeniedError("You do not teach this class")

        roster = await self.db.execute(
            select(ClassStudent.id, Student.id.label("student_id"), Student.name, Student.year_group)
            .join(Student, Student.id == ClassStudent.student_id)
            .where(ClassStudent.class_id == str(class_id))
            .order_by(Student.name)
        )
        students = [
            RosterEntry(
                enrollment_id=str(row.id),
                student_id=str(row.student_id),
                name=row.name,
                year_group=row.year_group,
            )
            for row in roster
        ]

        return ClassDetail(
            id=str(class_.id),
            name=class_.name,
            teacher_id=class_.teacher_id,
            teacher_name=await self._teacher_name(class_.teacher_id),
            student_count=len(students),
            students=students,
        )

    async def update_class(self, class_id: str, request: ClassUpdateRequest) -> ClassSummary:
        """Rename a class or reassign its teacher.

        Raises:
            ClassNotFoundError: If class not found.
            TeacherNotFoundError: If the new teacher has no teacher profile.
        """
        class_ = await self._get_by_id(class_id)

        if request.teacher_id is not None:
            await self._require_teacher(request.teacher_id)
            class_.teacher_id = request.teacher_id
        if request.name is not None:
            class_.name = request.name.strip()

        await self.db.commit()
        await self.db.refresh(class_)

        count = await self.db.execute(
            select(func.count(ClassStudent.id)).where(ClassStudent.class_id == str(class_id))
        )

        logger.info("Updated class: %s", class_id)
        return ClassSummary(
            id=str(class_.id),
            name=class_.name,
            teacher_id=class_.teacher_id,
            teacher_name=await self._teacher_name(class_.teacher_id),
            student_count=count.scalar() or 0,
        )

    async def delete_class(self, class_id: str) -> None:
        """Delete a class. Its enrollments and grades go with it.

        Raises:
            ClassNotFoundError: If class not found.
        """
        class_ = await self._get_by_id(class_id)
        await self.db.delete(class_)
        await self.db.commit()

        logger.info("Deleted class: %s", class_id)

    async def _get_by_id(self, class_id: str) -> Class:
        result = await self.db.execute(select(Class).where(Class.id == str(class_id)))
        class_ = result.scalar_one_or_none()

        if not class_:
            raise ClassNotFoundError(f"Class {class_id} not found")

        return class_

    async def _require_teacher(self, teacher_id: str) -> str:
        result = await self.db.execute(
            select(Profile.full_name).where(
                Profile.id == str(teacher_id),
                Profile.role == "teacher",
            )
        )
        name = result.scalar_one_or_none()
        if name is None:
            raise TeacherNotFoundError(f"Teacher {teacher_id} not found")
        return name

    async def _require_students(self, student_ids: list[str]) -> None:
        result = await self.db.execute(select(Student.id).where(Student.id.in_(student_ids)))
        found = {str(student_id) for student_id in result.scalars().all()}
        missing = [s for s in student_ids if s not in found]
        if missing:
            raise StudentNotFoundError(f"Unknown students: {', '.join(missing)}")

    async def _teacher_name(self, teacher_id: str | None) -> str | None:
        if teacher_id is None:
            return None
        result = await self.db.execute(select(Profile.full_name).where(Profile.id == str(teacher_id)))
        return result.scalar_one_or_none()
