# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade entry.

A grade's percentage and low-point flag are computed when the marks are
written, at entry or on correction, and stored with the grade. The
aggregator reads them back unchanged.

Teachers record and retake grades only in classes they teach. They may
correct or delete a grade they entered themselves, or any grade in one of
their classes. A ``teacher_id`` of None is the school-wide admin scope.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.performance.aggregator import is_low_point
from src.infrastructure.database.models.school import Class, ClassStudent, Grade
from src.models.grade import (
    GradeCreateRequest,
    GradeResponse,
    GradeRetakeRequest,
    GradeUpdateRequest,
)

logger = logging.getLogger(__name__)


class GradeServiceError(Exception):
    """Base exception for grade service errors."""

    pass


class GradeValidationError(GradeServiceError):
    """Raised for inconsistent marks."""

    pass


class GradeNotFoundError(GradeServiceError):
    """Raised when a grade does not exist."""

    pass


class GradeClassNotFoundError(GradeServiceError):
    """Raised when the grade's class does not exist."""

    pass


class GradeAccessDeniedError(GradeServiceError):
    """Raised when a teacher writes a grade outside their classes."""

    pass


class StudentNotEnrolledError(GradeServiceError):
    """Raised when the student is not in the class."""

    pass


def compute_percentage(marks_obtained: float, total_marks: float) -> float:
    """Percentage rounded to two decimals.

    Raises:
        GradeValidationError: If the marks are out of range.
    """
    if total_marks <= 0:
        raise GradeValidationError("Total marks must be greater than zero")
    if marks_obtained < 0:
        raise GradeValidationError("Marks obtained cannot be negative")
    if marks_obtained > total_marks:
        raise GradeValidationError("Marks obtained cannot exceed total marks")
    return round(marks_obtained / total_marks * 100, 2)


class GradeService:
    """Service for recording, correcting and removing grades.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def record_grade(
        self,
        request: GradeCreateRequest,
        term_id: str,
        entered_by: str | None,
        teacher_id: str | None = None,
    ) -> GradeResponse:
        """Store one grade in the given term.

        Raises:
            GradeValidationError: If the marks are out of range.
            GradeClassNotFoundError: If the class does not exist.
            GradeAccessDeniedError: If the class belongs to another teacher.
            StudentNotEnrolledError: If the student is not in the class.
        """
        percentage = compute_percentage(request.marks_obtained, request.total_marks)
        await self._require_class_owner(request.class_id, teacher_id)
        await self._require_enrollment(request.class_id, request.student_id)

        grade = Grade(
            student_id=request.student_id,
            class_id=request.class_id,
            term_id=term_id,
            topic_id=request.topic_id,
            subtopic_id=request.subtopic_id,
            work_type=request.work_type,
            marks_obtained=request.marks_obtained,
            total_marks=request.total_marks,
            percentage=percentage,
            is_low_point=is_low_point(percentage),
            attempt_number=request.attempt_number,
            notes=request.notes,
            assessed_date=request.assessed_date or date.today(),
            entered_by=entered_by,
        )
        self.db.add(grade)
        await self.db.commit()
        await self.db.refresh(grade)

        logger.info(
            "Recorded grade %s for student %s: %.2f%%%s",
            grade.id,
            grade.student_id,
            percentage,
            " (low point)" if grade.is_low_point else "",
        )
        return self._to_response(grade)

    async def update_grade(
        self,
        grade_id: str,
        request: GradeUpdateRequest,
        teacher_id: str | None = None,
    ) -> GradeResponse:
        """Correct a grade, recomputing its percentage and low-point flag.

        Raises:
            GradeNotFoundError: If the grade does not exist.
            GradeAccessDeniedError: If the teacher neither entered the grade
                nor teaches its class.
            GradeValidationError: If the resulting marks are out of range.
        """
        grade = await self._get_writable(grade_id, teacher_id)

        marks = request.marks_obtained
        if marks is None:
            marks = float(grade.marks_obtained)
        total = request.total_marks
        if total is None:
            total = float(grade.total_marks)
        percentage = compute_percentage(marks, total)

        updates = request.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in updates.items():
            setattr(grade, field, value)
        grade.percentage = percentage
        grade.is_low_point = is_low_point(percentage)

        await self.db.commit()
        await self.db.refresh(grade)

        logger.info("Updated grade %s: %s, now %.2f%%", grade_id, sorted(updates), percentage)
        return self._to_response(grade)

    async def add_retake(
        self,
        original_grade_id: str,
        request: GradeRetakeRequest,
        entered_by: str | None,
        teacher_id: str | None = None,
    ) -> GradeResponse:
        """Record a new attempt at the assessment behind an existing grade.

        The retake shares the original's student, class, term and curriculum
        position, and its attempt number follows the highest attempt already
        stored for that position.

        Raises:
            GradeValidationError: If the marks are out of range.
            GradeNotFoundError: If the original grade does not exist.
            GradeClassNotFoundError: If the class does not exist.
            GradeAccessDeniedError: If the class belongs to another teacher.
        """
        percentage = compute_percentage(request.marks_obtained, request.total_marks)
        original = await self._get_grade(original_grade_id)
        await self._require_class_owner(str(original.class_id), teacher_id)

        result = await self.db.execute(
            select(func.max(Grade.attempt_number)).where(
                Grade.student_id == str(original.student_id),
                Grade.class_id == str(original.class_id),
                Grade.term_id == str(original.term_id),
                _same(Grade.topic_id, original.topic_id),
                _same(Grade.subtopic_id, original.subtopic_id),
            )
        )
        attempt = (result.scalar() or 1) + 1

        retake = Grade(
            student_id=original.student_id,
            class_id=original.class_id,
            term_id=original.term_id,
            topic_id=original.topic_id,
            subtopic_id=original.subtopic_id,
            work_type=request.work_type or original.work_type,
            marks_obtained=request.marks_obtained,
            total_marks=request.total_marks,
            percentage=percentage,
            is_low_point=is_low_point(percentage),
            attempt_number=attempt,
            notes=request.notes,
            assessed_date=request.assessed_date or date.today(),
            entered_by=entered_by,
            original_grade_id=str(original.id),
            is_retake=True,
        )
        self.db.add(retake)
        await self.db.commit()
        await self.db.refresh(retake)

        logger.info(
            "Recorded retake %s of grade %s (attempt %d): %.2f%%",
            retake.id,
            original_grade_id,
            attempt,
            percentage,
        )
        return self._to_response(retake)

    async def delete_grade(self, grade_id: str, teacher_id: str | None = None) -> str:
        """Delete a grade and return the term it belonged to.

        Raises:
            GradeNotFoundError: If the grade does not exist.
            GradeAccessDeniedError: If the teacher neither entered the grade
                nor teaches its class.
        """
        grade = await self._get_writable(grade_id, teacher_id)

        term_id = str(grade.term_id)
        await self.db.delete(grade)
        await self.db.commit()

        logger.info("Deleted grade: %s", grade_id)
        return term_id

    async def _get_grade(self, grade_id: str) -> Grade:
        result = await self.db.execute(select(Grade).where(Grade.id == str(grade_id)))
        grade = result.scalar_one_or_none()
        if grade is None:
            raise GradeNotFoundError(f"Grade {grade_id} not found")
        return grade

    async def _get_writable(self, grade_id: str, teacher_id: str | None) -> Grade:
        grade = await self._get_grade(grade_id)
        if teacher_id is None or str(grade.entered_by) == str(teacher_id):
            return grade
        try:
            await self._require_class_owner(str(grade.class_id), teacher_id)
        except GradeClassNotFoundError:
            raise GradeAccessDeniedError("You cannot change this grade")
        return grade

    async def _require_class_owner(self, class_id: str, teacher_id: str | None) -> None:
        result = await self.db.execute(select(Class.teacher_id).where(Class.id == str(class_id)))
        row = result.one_or_none()
        if row is None:
            raise GradeClassNotFoundError(f"Class {class_id} not found")
        if teacher_id is not None and str(row.teacher_id) != str(teacher_id):
            raise GradeAccessDeniedError("You do not teach this class")

    async def _require_enrollment(self, class_id: str, student_id: str) -> None:
        result = await self.db.execute(
            select(ClassStudent.id).where(
                ClassStudent.class_id == str(class_id),
                ClassStudent.student_id == str(student_id),
            )
        )
        if result.scalar_one_or_none() is None:
            raise StudentNotEnrolledError("Student is not enrolled in this class")

    def _to_response(self, grade: Grade) -> GradeResponse:
        return GradeResponse(
            id=str(grade.id),
            student_id=str(grade.student_id),
            class_id=str(grade.class_id),
            term_id=str(grade.term_id),
            topic_id=grade.topic_id,
            subtopic_id=grade.subtopic_id,
            work_type=grade.work_type,
            marks_obtained=float(grade.marks_obtained),
            total_marks=float(grade.total_marks),
            percentage=float(grade.percentage),
            is_low_point=bool(grade.is_low_point),
            attempt_number=grade.attempt_number,
            assessed_date=grade.assessed_date,
            is_retake=bool(grade.is_retake),
            original_grade_id=grade.original_grade_id,
        )


def _same(column, value: str | None):
    return column.is_(None) if value is None else column == str(value)
