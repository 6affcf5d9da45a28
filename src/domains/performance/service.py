# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Performance reporting service.

This module provides the PerformanceService class for:
- Per-student summaries, alone or for a whole class
- Per-class rollups for a teacher (or every class, for admins)
- The teacher dashboard
- The flag report with parent-contact status
- The paginated student directory

Every read takes an explicit term id. Grade rows are converted into
AssessmentRecord immediately after the query and all arithmetic goes
through the aggregator.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from typing import Any, Iterable

from sqlalchemy import Select, exists, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.performance.aggregator import (
    AssessmentRecord,
    FlagClassification,
    aggregate,
    aggregate_by_student,
    display_percentage,
    flag_breakdown,
    flagged_students,
    matches_flag_status,
    matches_performance,
    required_contact_for,
)
from src.domains.performance.cache import PerformanceCache
from src.infrastructure.database.models.account import Profile
from src.infrastructure.database.models.base import new_id
from src.infrastructure.database.models.school import (
    Class,
    ClassStudent,
    Grade,
    ParentContact,
    Student,
)
from src.models.performance import (
    ClassPerformance,
    ContactStatusUpdate,
    DirectoryEntry,
    DirectoryFilters,
    DirectoryPage,
    FlagBreakdown,
    FlaggedStudent,
    ParentContactEntry,
    StudentSummary,
    TeacherDashboard,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


class PerformanceServiceError(Exception):
    """Base exception for performance service errors."""

    pass


class StudentNotFoundError(PerformanceServiceError):
    """Raised when a student does not exist."""

    pass


class ClassNotFoundError(PerformanceServiceError):
    """Raised when a class does not exist."""

    pass


class ClassAccessDeniedError(PerformanceServiceError):
    """Raised when a teacher reads a class they do not teach."""

    pass


class StudentAccessDeniedError(PerformanceServiceError):
    """Raised when a teacher acts on a student outside their classes."""

    pass


def to_record(row: Any) -> AssessmentRecord:
    """Normalize one grade row (Decimal, UUID, nullable bool) at the boundary."""
    return AssessmentRecord(
        student_id=str(row.student_id),
        class_id=str(row.class_id),
        term_id=str(row.term_id),
        percentage=float(row.percentage),
        is_low_point=bool(row.is_low_point),
    )


def summary_fields(summary: FlagClassification) -> dict[str, Any]:
    return {
        "total_grades": summary.total_grades,
        "low_points": summary.low_points,
        "flag_count": summary.flag_count,
        "average_percentage": display_percentage(summary.average_percentage),
        "status": summary.status,
    }


class PerformanceService:
    """Term-scoped performance reads.

    Attributes:
        db: Async database session.
        cache: Optional (scope, term) cache for the heavier rollups.
        max_page_size: Upper bound for directory pages.
    """

    def __init__(
        self,
        db: AsyncSession,
        cache: PerformanceCache | None = None,
        max_page_size: int = 100,
    ) -> None:
        self.db = db
        self.cache = cache or PerformanceCache(None)
        self.max_page_size = max_page_size

    # =========================================================================
    # Students
    # =========================================================================

    async def get_student_summary(
        self,
        student_id: str,
        term_id: str,
        teacher_id: str | None = None,
    ) -> StudentSummary:
        """Summary of one student's grades in a term, across all classes.

        Raises:
            StudentNotFoundError: If the student does not exist.
            StudentAccessDeniedError: If the teacher has no class with the student.
        """
        result = await self.db.execute(select(Student.name).where(Student.id == str(student_id)))
        name = result.scalar_one_or_none()
        if name is None:
            raise StudentNotFoundError(f"Student {student_id} not found")
        await self._require_taught_student(student_id, teacher_id)

        records = await self._load_records(term_id, student_ids=[str(student_id)])
        return StudentSummary(
            student_id=str(student_id),
            student_name=name,
            **summary_fields(aggregate(records)),
        )

    async def get_student_progress_summary(
        self,
        class_id: str,
        term_id: str,
        teacher_id: str | None = None,
    ) -> list[StudentSummary]:
        """One summary per enrolled student, from grades in this class only.

        Args:
            class_id: Class to report on.
            term_id: Term to report on.
            teacher_id: When given, the class must belong to this teacher.

        Raises:
            ClassNotFoundError: If the class does not exist.
            ClassAccessDeniedError: If the class belongs to another teacher.
        """
        await self._require_class(class_id, teacher_id)

        roster = await self.db.execute(
            select(Student.id, Student.name)
            .join(ClassStudent, ClassStudent.student_id == Student.id)
            .where(ClassStudent.class_id == str(class_id))
            .order_by(Student.name)
        )
        students = [(str(r.id), r.name) for r in roster]

        records = await self._load_records(term_id, class_ids=[str(class_id)])
        by_student = aggregate_by_student(records)

        return [
            StudentSummary(
                student_id=student_id,
                student_name=name,
                **summary_fields(by_student.get(student_id, aggregate([]))),
            )
            for student_id, name in students
        ]

    # =========================================================================
    # Classes and dashboard
    # =========================================================================

    async def get_class_performance_summary(
        self,
        teacher_id: str | None,
        term_id: str,
    ) -> list[ClassPerformance]:
        """Per-class rollup for a teacher's classes, or every class when None."""
        scope = f"classes:{teacher_id or 'all'}"
        cached = await self.cache.get(scope, term_id)
        if cached is not None:
            return [ClassPerformance.model_validate(item) for item in cached]

        classes = await self._compute_class_performance(teacher_id, term_id)
        await self.cache.set(scope, term_id, [c.model_dump(mode="json") for c in classes])
        return classes

    async def get_teacher_dashboard(self, teacher_id: str | None, term_id: str) -> TeacherDashboard:
        """Headline numbers for a teacher (or the whole school when None)."""
        scope = f"dashboard:{teacher_id or 'all'}"
        cached = await self.cache.get(scope, term_id)
        if cached is not None:
            return TeacherDashboard.model_validate(cached)

        class_rows = await self._load_classes(teacher_id)
        class_ids = [c["id"] for c in class_rows]
        enrollments = await self._load_enrollments(class_ids)
        records = await self._load_records(term_id, class_ids=class_ids) if class_ids else []

        per_student = aggregate_by_student(records)
        flagged = [s for s in per_student.values() if s.is_flagged]

        dashboard = TeacherDashboard(
            term_id=str(term_id),
            class_count=len(class_rows),
            student_count=len({student_id for _, student_id in enrollments}),
            grades_entered=len(records),
            flagged_count=len(flagged),
            flag_breakdown=FlagBreakdown(**flag_breakdown(flagged)),
            classes=self._rollup_classes(class_rows, enrollments, records),
        )
        await self.cache.set(scope, term_id, dashboard.model_dump(mode="json"))
        return dashboard

    # =========================================================================
    # Flags
    # =========================================================================

    async def get_flagged_students(
        self,
        term_id: str,
        teacher_id: str | None = None,
    ) -> list[FlaggedStudent]:
        """Students with at least one flag, with their parent contacts for the term.

        Flags are counted per student across every class in scope.
        """
        scope = f"flags:{teacher_id or 'all'}"
        cached = await self.cache.get(scope, term_id)
        if cached is not None:
            return [FlaggedStudent.model_validate(item) for item in cached]

        class_rows = await self._load_classes(teacher_id)
        class_ids = [c["id"] for c in class_rows]
        if not class_ids:
            return []

        records = await self._load_records(term_id, class_ids=class_ids)
        flagged = flagged_students(records)
        if not flagged:
            await self.cache.set(scope, term_id, [])
            return []

        student_ids = [student_id for student_id, _ in flagged]
        names = await self._student_names(student_ids)
        class_names = await self._class_names_by_student(student_ids, class_ids)
        contacts = await self._contacts_by_student(student_ids, term_id)

        report = [
            FlaggedStudent(
                student_id=student_id,
                student_name=names.get(student_id, ""),
                class_names=class_names.get(student_id, []),
                required_contact=required_contact_for(summary.flag_count),
                contacts=contacts.get(student_id, []),
                **summary_fields(summary),
            )
            for student_id, summary in flagged
        ]
        await self.cache.set(scope, term_id, [r.model_dump(mode="json") for r in report])
        return report

    async def update_contact_status(
        self,
        update: ContactStatusUpdate,
        term_id: str,
        teacher_id: str | None = None,
    ) -> ParentContactEntry:
        """Create or update the contact entry for (student, term, contact type).

        ``contacted_at`` is stamped when the status becomes "contacted" and
        cleared otherwise.

        Raises:
            StudentNotFoundError: If the student does not exist.
            StudentAccessDeniedError: If the teacher has no class with the student.
        """
        result = await self.db.execute(select(Student.id).where(Student.id == update.student_id))
        if result.scalar_one_or_none() is None:
            raise StudentNotFoundError(f"Student {update.student_id} not found")
        await self._require_taught_student(update.student_id, teacher_id)

        now = utc_now()
        values = {
            "student_id": update.student_id,
            "term_id": term_id,
            "contact_type": update.contact_type,
            "status": update.status,
            "notes": update.notes,
            "contacted_at": now if update.status == "contacted" else None,
            "updated_at": now,
        }
        stmt = pg_insert(ParentContact).values(id=new_id(), **values)
        stmt = stmt.on_conflict_do_update(
            constraint="uq_parent_contacts_student_term_type",
            set_={
                "status": stmt.excluded.status,
                "notes": stmt.excluded.notes,
                "contacted_at": stmt.excluded.contacted_at,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(ParentContact)

        result = await self.db.execute(stmt)
        contact = result.scalar_one()
        await self.db.commit()
        await self.cache.invalidate_term(term_id)

        logger.info(
            "Contact %s for student %s in term %s set to %s",
            update.contact_type,
            update.student_id,
            term_id,
            update.status,
        )
        return _to_contact_entry(contact)

    # =========================================================================
    # Directory
    # =========================================================================

    async def list_student_directory(
        self,
        term_id: str,
        filters: DirectoryFilters,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        teacher_id: str | None = None,
    ) -> DirectoryPage:
        """Students with term stats, filtered and paginated.

        ``page_size`` is clamped to 1..max_page_size. Performance and flag
        filters apply after aggregation, so when either is set the whole
        filtered roster is aggregated before the page is cut and the total
        is exact.
        """
        page_size = min(max(1, page_size), self.max_page_size)
        page = max(1, page)
        post_filter = filters.performance != "all" or filters.flag_status != "all"

        base = self._directory_query(filters, teacher_id)
        scope_class_ids = None
        if teacher_id is not None:
            scope_class_ids = [c["id"] for c in await self._load_classes(teacher_id)]

        if post_filter:
            result = await self.db.execute(base.order_by(Student.name, Student.id))
            students = list(result.all())
            entries = await self._directory_entries(students, term_id, scope_class_ids)
            entries = [
                e
                for e in entries
                if matches_performance(filters.performance, e[1])
                and matches_flag_status(filters.flag_status, e[1])
            ]
            total = len(entries)
            start = (page - 1) * page_size
            items = [entry for entry, _ in entries[start : start + page_size]]
        else:
            count_result = await self.db.execute(
                select(func.count()).select_from(base.subquery())
            )
            total = count_result.scalar() or 0
            result = await self.db.execute(
                base.order_by(Student.name, Student.id)
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            students = list(result.all())
            items = [
                entry
                for entry, _ in await self._directory_entries(students, term_id, scope_class_ids)
            ]

        return DirectoryPage(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if total else 0,
        )

    def _directory_query(self, filters: DirectoryFilters, teacher_id: str | None) -> Select:
        query = select(Student.id, Student.name, Student.year_group, Student.school)

        if filters.search:
            query = query.where(Student.name.ilike(f"%{filters.search.strip()}%"))
        if filters.year_group:
            query = query.where(Student.year_group == filters.year_group)
        if filters.school:
            query = query.where(Student.school == filters.school)

        enrolled = select(ClassStudent.id).where(ClassStudent.student_id == Student.id)
        if filters.class_id:
            query = query.where(
                exists(enrolled.where(ClassStudent.class_id == str(filters.class_id)))
            )
        if filters.enrollment_status == "enrolled":
            query = query.where(exists(enrolled))
        elif filters.enrollment_status == "not_enrolled":
            query = query.where(~exists(enrolled))

        if teacher_id is not None:
            query = query.where(
                exists(
                    enrolled.join(Class, Class.id == ClassStudent.class_id).where(
                        Class.teacher_id == str(teacher_id)
                    )
                )
            )
        return query

    async def _directory_entries(
        self,
        students: list[Any],
        term_id: str,
        scope_class_ids: list[str] | None,
    ) -> list[tuple[DirectoryEntry, FlagClassification]]:
        if not students:
            return []
        student_ids = [str(s.id) for s in students]

        if scope_class_ids is not None and not scope_class_ids:
            records: list[AssessmentRecord] = []
        else:
            records = await self._load_records(
                term_id, student_ids=student_ids, class_ids=scope_class_ids
            )
        by_student = aggregate_by_student(records)
        class_names = await self._class_names_by_student(student_ids, scope_class_ids)

        entries = []
        for student in students:
            student_id = str(student.id)
            summary = by_student.get(student_id, aggregate([]))
            entries.append(
                (
                    DirectoryEntry(
                        student_id=student_id,
                        student_name=student.name,
                        year_group=student.year_group,
                        school=student.school,
                        class_names=class_names.get(student_id, []),
                        **summary_fields(summary),
                    ),
                    summary,
                )
            )
        return entries

    # =========================================================================
    # Loading helpers
    # =========================================================================

    async def _load_records(
        self,
        term_id: str,
        class_ids: Iterable[str] | None = None,
        student_ids: Iterable[str] | None = None,
    ) -> list[AssessmentRecord]:
        """Grades of one term, as AssessmentRecord."""
        query = select(
            Grade.student_id,
            Grade.class_id,
            Grade.term_id,
            Grade.percentage,
            Grade.is_low_point,
        ).where(Grade.term_id == str(term_id))
        if class_ids is not None:
            query = query.where(Grade.class_id.in_([str(c) for c in class_ids]))
        if student_ids is not None:
            query = query.where(Grade.student_id.in_([str(s) for s in student_ids]))

        result = await self.db.execute(query)
        return [to_record(row) for row in result]

    async def _load_classes(self, teacher_id: str | None) -> list[dict[str, Any]]:
        query = (
            select(Class.id, Class.name, Class.teacher_id, Profile.full_name)
            .outerjoin(Profile, Profile.id == Class.teacher_id)
            .order_by(Class.name)
        )
        if teacher_id is not None:
            query = query.where(Class.teacher_id == str(teacher_id))
        result = await self.db.execute(query)
        return [
            {
                "id": str(r.id),
                "name": r.name,
                "teacher_id": str(r.teacher_id) if r.teacher_id else None,
                "teacher_name": r.full_name,
            }
            for r in result
        ]

    async def _load_enrollments(self, class_ids: list[str]) -> list[tuple[str, str]]:
        if not class_ids:
            return []
        result = await self.db.execute(
            select(ClassStudent.class_id, ClassStudent.student_id).where(
                ClassStudent.class_id.in_(class_ids)
            )
        )
        return [(str(r.class_id), str(r.student_id)) for r in result]

    async def _compute_class_performance(
        self,
        teacher_id: str | None,
        term_id: str,
    ) -> list[ClassPerformance]:
        class_rows = await self._load_classes(teacher_id)
        class_ids = [c["id"] for c in class_rows]
        enrollments = await self._load_enrollments(class_ids)
        records = await self._load_records(term_id, class_ids=class_ids) if class_ids else []
        return self._rollup_classes(class_rows, enrollments, records)

    def _rollup_classes(
        self,
        class_rows: list[dict[str, Any]],
        enrollments: list[tuple[str, str]],
        records: list[AssessmentRecord],
    ) -> list[ClassPerformance]:
        students_per_class: dict[str, set[str]] = defaultdict(set)
        for class_id, student_id in enrollments:
            students_per_class[class_id].add(student_id)

        records_per_class: dict[str, list[AssessmentRecord]] = defaultdict(list)
        for record in records:
            records_per_class[record.class_id].append(record)

        rollup = []
        for row in class_rows:
            class_records = records_per_class.get(row["id"], [])
            summary = aggregate(class_records)
            rollup.append(
                ClassPerformance(
                    class_id=row["id"],
                    class_name=row["name"],
                    teacher_id=row["teacher_id"],
                    teacher_name=row["teacher_name"],
                    student_count=len(students_per_class.get(row["id"], ())),
                    total_grades=summary.total_grades,
                    low_points=summary.low_points,
                    average_percentage=display_percentage(summary.average_percentage),
                    flagged_students=len(flagged_students(class_records)),
                )
            )
        return rollup

    async def _require_class(self, class_id: str, teacher_id: str | None) -> None:
        result = await self.db.execute(select(Class.teacher_id).where(Class.id == str(class_id)))
        row = result.one_or_none()
        if row is None:
            raise ClassNotFoundError(f"Class {class_id} not found")
        if teacher_id is not None and str(row.teacher_id) != str(teacher_id):
            raise ClassAccessDeniedError("You do not teach this class")

    async def _require_taught_student(self, student_id: str, teacher_id: str | None) -> None:
        if teacher_id is None:
            return
        result = await self.db.execute(
            select(ClassStudent.id)
            .join(Class, Class.id == ClassStudent.class_id)
            .where(
                ClassStudent.student_id == str(student_id),
                Class.teacher_id == str(teacher_id),
            )
            .limit(1)
        )
        if result.scalar_one_or_none() is None:
            raise StudentAccessDeniedError("You do not teach this student")

    async def _student_names(self, student_ids: list[str]) -> dict[str, str]:
        result = await self.db.execute(
            select(Student.id, Student.name).where(Student.id.in_(student_ids))
        )
        return {str(r.id): r.name for r in result}

    async def _class_names_by_student(
        self,
        student_ids: list[str],
        class_ids: list[str] | None = None,
    ) -> dict[str, list[str]]:
        query = (
            select(ClassStudent.student_id, Class.name)
            .join(Class, Class.id == ClassStudent.class_id)
            .where(ClassStudent.student_id.in_(student_ids))
            .order_by(Class.name)
        )
        if class_ids is not None:
            query = query.where(ClassStudent.class_id.in_(class_ids))
        result = await self.db.execute(query)

        names: dict[str, list[str]] = defaultdict(list)
        for row in result:
            names[str(row.student_id)].append(row.name)
        return dict(names)

    async def _contacts_by_student(
        self,
        student_ids: list[str],
        term_id: str,
    ) -> dict[str, list[ParentContactEntry]]:
        result = await self.db.execute(
            select(ParentContact).where(
                ParentContact.term_id == str(term_id),
                ParentContact.student_id.in_(student_ids),
            )
        )
        contacts: dict[str, list[ParentContactEntry]] = defaultdict(list)
        for contact in result.scalars().all():
            contacts[str(contact.student_id)].append(_to_contact_entry(contact))
        return dict(contacts)


def _to_contact_entry(contact: ParentContact) -> ParentContactEntry:
    return ParentContactEntry(
        id=str(contact.id),
        contact_type=contact.contact_type,
        status=contact.status,
        notes=contact.notes,
        contacted_at=contact.contacted_at,
        updated_at=contact.updated_at,
    )