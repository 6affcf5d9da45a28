# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for PerformanceService.

Each test scripts the session's execute() results in query order.
"""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.domains.performance.cache import PerformanceCache
from src.domains.performance.service import (
    ClassAccessDeniedError,
    ClassNotFoundError,
    PerformanceService,
    StudentAccessDeniedError,
    StudentNotFoundError,
    to_record,
)
from src.models.performance import ContactStatusUpdate, DirectoryFilters

TERM = "term-1"


def grade(student_id: str, percentage: float, class_id: str = "c1") -> SimpleNamespace:
    return SimpleNamespace(
        student_id=student_id,
        class_id=class_id,
        term_id=TERM,
        percentage=Decimal(str(percentage)),
        is_low_point=percentage < 80,
    )


def class_row(class_id: str, name: str, teacher_id: str | None = "t1") -> SimpleNamespace:
    return SimpleNamespace(id=class_id, name=name, teacher_id=teacher_id, full_name="Tom Hart")


def student_row(student_id: str, name: str) -> SimpleNamespace:
    return SimpleNamespace(id=student_id, name=name, year_group="Year 9", school="Hill")


def one_or_none_result(value) -> MagicMock:
    result = MagicMock()
    result.one_or_none.return_value = value
    return result


@pytest.fixture
def service(mock_db: AsyncMock) -> PerformanceService:
    return PerformanceService(mock_db, max_page_size=50)


class TestToRecord:
    def test_normalizes_types(self) -> None:
        row = SimpleNamespace(
            student_id=1, class_id=2, term_id=3, percentage=Decimal("67.50"), is_low_point=None
        )

        record = to_record(row)

        assert record.student_id == "1"
        assert record.percentage == 67.5
        assert record.is_low_point is False


class TestStudentSummary:
    """Tests for single-student and per-class student summaries."""

    @pytest.mark.asyncio
    async def test_student_summary(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        scalar_result,
        rows_result,
    ) -> None:
        mock_db.execute.side_effect = [
            scalar_result("Jane Doe"),
            rows_result([grade("s1", 90), grade("s1", 65), grade("s1", 60), grade("s1", 55)]),
        ]

        summary = await service.get_student_summary("s1", TERM)

        assert summary.student_name == "Jane Doe"
        assert summary.total_grades == 4
        assert summary.low_points == 3
        assert summary.flag_count == 1
        assert summary.average_percentage == 68
        assert summary.status == "Struggling"

    @pytest.mark.asyncio
    async def test_unknown_student(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        scalar_result,
    ) -> None:
        mock_db.execute.return_value = scalar_result(None)

        with pytest.raises(StudentNotFoundError):
            await service.get_student_summary("missing", TERM)

    @pytest.mark.asyncio
    async def test_teacher_reads_own_student(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        scalar_result,
        rows_result,
    ) -> None:
        mock_db.execute.side_effect = [
            scalar_result("Jane Doe"),
            scalar_result("enrollment-1"),
            rows_result([grade("s1", 90)]),
        ]

        summary = await service.get_student_summary("s1", TERM, teacher_id="t1")

        assert summary.total_grades == 1

    @pytest.mark.asyncio
    async def test_teacher_without_the_student(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        scalar_result,
    ) -> None:
        mock_db.execute.side_effect = [scalar_result("Jane Doe"), scalar_result(None)]

        with pytest.raises(StudentAccessDeniedError):
            await service.get_student_summary("s1", TERM, teacher_id="t1")

        assert mock_db.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_progress_summary_includes_ungraded_students(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        rows_result,
    ) -> None:
        mock_db.execute.side_effect = [
            one_or_none_result(SimpleNamespace(teacher_id="t1")),
            rows_result([student_row("s1", "Ann"), student_row("s2", "Ben")]),
            rows_result([grade("s1", 50)] * 3),
        ]

        summaries = await service.get_student_progress_summary("c1", TERM, teacher_id="t1")

        assert [s.student_name for s in summaries] == ["Ann", "Ben"]
        assert summaries[0].flag_count == 1
        assert summaries[1].total_grades == 0
        assert summaries[1].status == "On Track"

    @pytest.mark.asyncio
    async def test_progress_summary_other_teachers_class(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
    ) -> None:
        mock_db.execute.return_value = one_or_none_result(SimpleNamespace(teacher_id="t2"))

        with pytest.raises(ClassAccessDeniedError):
            await service.get_student_progress_summary("c1", TERM, teacher_id="t1")

    @pytest.mark.asyncio
    async def test_progress_summary_unknown_class(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
    ) -> None:
        mock_db.execute.return_value = one_or_none_result(None)

        with pytest.raises(ClassNotFoundError):
            await service.get_student_progress_summary("missing", TERM)


class TestDashboard:
    """Tests for class rollups and the teacher dashboard."""

    @pytest.mark.asyncio
    async def test_dashboard_counts(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        rows_result,
    ) -> None:
        mock_db.execute.side_effect = [
            rows_result([class_row("c1", "Maths"), class_row("c2", "Physics")]),
            rows_result(
                [
                    SimpleNamespace(class_id="c1", student_id="s1"),
                    SimpleNamespace(class_id="c2", student_id="s1"),
                    SimpleNamespace(class_id="c2", student_id="s2"),
                ]
            ),
            rows_result(
                [grade("s1", 50, "c1")] * 2
                + [grade("s1", 50, "c2")]
                + [grade("s2", 95, "c2")]
            ),
        ]

        dashboard = await service.get_teacher_dashboard("t1", TERM)

        assert dashboard.class_count == 2
        assert dashboard.student_count == 2
        assert dashboard.grades_entered == 4
        # Low points from two classes combine into one flag for s1
        assert dashboard.flagged_count == 1
        assert dashboard.flag_breakdown.one == 1
        maths, physics = dashboard.classes
        assert maths.student_count == 1
        assert maths.flagged_students == 0
        assert physics.student_count == 2
        assert physics.average_percentage == 73

    @pytest.mark.asyncio
    async def test_teacher_without_classes(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        rows_result,
    ) -> None:
        mock_db.execute.return_value = rows_result([])

        dashboard = await service.get_teacher_dashboard("t1", TERM)

        assert dashboard.class_count == 0
        assert dashboard.grades_entered == 0
        mock_db.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_class_summary_served_from_cache(self, mock_db: AsyncMock) -> None:
        cache = AsyncMock(spec=PerformanceCache)
        cache.get.return_value = [{"class_id": "c1", "class_name": "Maths", "total_grades": 3}]
        service = PerformanceService(mock_db, cache=cache)

        classes = await service.get_class_performance_summary(None, TERM)

        assert classes[0].class_name == "Maths"
        cache.get.assert_awaited_once_with("classes:all", TERM)
        mock_db.execute.assert_not_awaited()


class TestFlaggedStudents:
    @pytest.mark.asyncio
    async def test_flag_report(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        rows_result,
    ) -> None:
        contact = SimpleNamespace(
            id="pc-1",
            student_id="s1",
            contact_type="call",
            status="contacted",
            notes=None,
            contacted_at=None,
            updated_at=None,
        )
        mock_db.execute.side_effect = [
            rows_result([class_row("c1", "Maths")]),
            rows_result([grade("s1", 50)] * 4 + [grade("s2", 50)] * 3 + [grade("s3", 90)]),
            rows_result([student_row("s1", "Ann"), student_row("s2", "Ben")]),
            rows_result(
                [
                    SimpleNamespace(student_id="s1", name="Maths"),
                    SimpleNamespace(student_id="s2", name="Maths"),
                ]
            ),
            rows_result([contact]),
        ]

        report = await service.get_flagged_students(TERM)

        assert [r.student_name for r in report] == ["Ann", "Ben"]
        assert report[0].flag_count == 2
        assert report[0].required_contact == "call"
        assert report[0].contacts[0].status == "contacted"
        assert report[1].required_contact == "message"
        assert report[1].contacts == []

    @pytest.mark.asyncio
    async def test_no_flags(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        rows_result,
    ) -> None:
        mock_db.execute.side_effect = [
            rows_result([class_row("c1", "Maths")]),
            rows_result([grade("s1", 90)]),
        ]

        assert await service.get_flagged_students(TERM) == []


class TestContactStatus:
    @pytest.mark.asyncio
    async def test_unknown_student(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        scalar_result,
    ) -> None:
        mock_db.execute.return_value = scalar_result(None)
        update = ContactStatusUpdate(student_id="missing", contact_type="call", status="contacted")

        with pytest.raises(StudentNotFoundError):
            await service.update_contact_status(update, TERM)

        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upsert_invalidates_term(
        self,
        mock_db: AsyncMock,
        scalar_result,
    ) -> None:
        stored = SimpleNamespace(
            id="pc-1",
            contact_type="meeting",
            status="resolved",
            notes="Met on Friday",
            contacted_at=None,
            updated_at=None,
        )
        mock_db.execute.side_effect = [scalar_result("s1"), scalar_result(stored)]
        cache = AsyncMock(spec=PerformanceCache)
        service = PerformanceService(mock_db, cache=cache)
        update = ContactStatusUpdate(
            student_id="s1", contact_type="meeting", status="resolved", notes="Met on Friday"
        )

        entry = await service.update_contact_status(update, TERM)

        assert entry.status == "resolved"
        mock_db.commit.assert_awaited_once()
        cache.invalidate_term.assert_awaited_once_with(TERM)

    @pytest.mark.asyncio
    async def test_teacher_cannot_update_other_students_contact(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        scalar_result,
    ) -> None:
        mock_db.execute.side_effect = [scalar_result("s1"), scalar_result(None)]
        update = ContactStatusUpdate(student_id="s1", contact_type="call", status="contacted")

        with pytest.raises(StudentAccessDeniedError):
            await service.update_contact_status(update, TERM, teacher_id="t1")

        mock_db.commit.assert_not_awaited()


class TestDirectory:
    """Tests for the paginated student directory."""

    @pytest.mark.asyncio
    async def test_plain_page(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        scalar_result,
        rows_result,
    ) -> None:
        mock_db.execute.side_effect = [
            scalar_result(45),
            rows_result([student_row("s1", "Ann")]),
            rows_result([grade("s1", 85)]),
            rows_result([SimpleNamespace(student_id="s1", name="Maths")]),
        ]

        page = await service.list_student_directory(TERM, DirectoryFilters(), page=3, page_size=20)

        assert page.total == 45
        assert page.total_pages == 3
        assert page.items[0].class_names == ["Maths"]
        assert page.items[0].status == "On Track"

    @pytest.mark.asyncio
    async def test_page_size_clamped(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        scalar_result,
        rows_result,
    ) -> None:
        mock_db.execute.side_effect = [scalar_result(0), rows_result([])]

        page = await service.list_student_directory(TERM, DirectoryFilters(), page=0, page_size=500)

        assert page.page == 1
        assert page.page_size == 50
        assert page.total_pages == 0

    @pytest.mark.asyncio
    async def test_performance_filter_counts_after_aggregation(
        self,
        service: PerformanceService,
        mock_db: AsyncMock,
        rows_result,
    ) -> None:
        mock_db.execute.side_effect = [
            rows_result(
                [student_row("s1", "Ann"), student_row("s2", "Ben"), student_row("s3", "Cat")]
            ),
            rows_result([grade("s1", 50), grade("s2", 95), grade("s3", 60)]),
            rows_result([]),
        ]

        page = await service.list_student_directory(
            TERM,
            DirectoryFilters(performance="struggling"),
            page=1,
            page_size=1,
        )

        assert page.total == 2
        assert page.total_pages == 2
        assert [e.student_name for e in page.items] == ["Ann"]
