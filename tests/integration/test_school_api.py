# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the v1 API routing and error mapping.

Services are patched; dependencies are overridden so no database is needed.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.dependencies import (
    get_db,
    get_performance_cache,
    require_admin,
    require_teacher_or_admin,
    resolve_term,
)
from src.api.v1 import router as v1_router
from src.domains.curriculum.reconciler import (
    CurriculumImportError,
    LevelCounts,
    ReconcileResult,
)
from src.domains.class_.service import TeacherNotFoundError
from src.domains.enrollment.service import AlreadyEnrolledError
from src.domains.grade.service import GradeAccessDeniedError
from src.domains.performance.service import ClassAccessDeniedError, StudentAccessDeniedError
from src.domains.student.service import StudentNotFoundError
from src.models.class_ import ClassSummary, EnrollmentResponse
from src.models.grade import GradeResponse
from src.models.performance import TeacherDashboard

TERM = "term-1"


@pytest.fixture
def teacher() -> MagicMock:
    user = MagicMock()
    user.id = "teacher-1"
    user.role = "teacher"
    user.is_admin = False
    user.scope_id = "teacher-1"
    return user


@pytest.fixture
def cache() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def app(teacher: MagicMock, cache: AsyncMock) -> FastAPI:
    """Create test FastAPI app."""
    app = FastAPI()
    app.include_router(v1_router)

    async def fake_db():
        yield AsyncMock()

    app.dependency_overrides[get_db] = fake_db
    app.dependency_overrides[require_teacher_or_admin] = lambda: teacher
    app.dependency_overrides[require_admin] = lambda: teacher
    app.dependency_overrides[resolve_term] = lambda: TERM
    app.dependency_overrides[get_performance_cache] = lambda: cache
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


class TestRouting:
    def test_routes_registered(self, app: FastAPI) -> None:
        routes = {route.path for route in app.routes}

        assert {
            "/api/v1/auth/login",
            "/api/v1/terms",
            "/api/v1/curriculum/tree",
            "/api/v1/curriculum/import/preview",
            "/api/v1/curriculum/{level}",
            "/api/v1/students/import",
            "/api/v1/students/directory",
            "/api/v1/teachers/import",
            "/api/v1/performance/dashboard",
            "/api/v1/performance/flags",
            "/api/v1/performance/flags/contacts",
            "/api/v1/grades",
            "/api/v1/grades/{grade_id}",
            "/api/v1/grades/{grade_id}/retake",
            "/api/v1/classes",
            "/api/v1/classes/{class_id}",
            "/api/v1/classes/{class_id}/students",
            "/api/v1/classes/{class_id}/students/{student_id}",
            "/api/v1/students",
            "/api/v1/students/bulk-delete",
            "/api/v1/students/{student_id}",
        } <= routes


class TestPerformanceEndpoints:
    """Tests for performance reads."""

    @patch("src.api.v1.performance._get_service")
    def test_dashboard_scoped_to_teacher(self, mock_get_service, client: TestClient) -> None:
        service = MagicMock()
        service.get_teacher_dashboard = AsyncMock(
            return_value=TeacherDashboard(term_id=TERM, class_count=2)
        )
        mock_get_service.return_value = service

        response = client.get("/api/v1/performance/dashboard")

        assert response.status_code == 200
        assert response.json()["class_count"] == 2
        service.get_teacher_dashboard.assert_awaited_once_with("teacher-1", TERM)

    @patch("src.api.v1.performance._get_service")
    def test_other_teachers_class_forbidden(self, mock_get_service, client: TestClient) -> None:
        service = MagicMock()
        service.get_student_progress_summary = AsyncMock(
            side_effect=ClassAccessDeniedError("You do not teach this class")
        )
        mock_get_service.return_value = service

        response = client.get("/api/v1/performance/classes/c9/students")

        assert response.status_code == 403

    @patch("src.api.v1.performance._get_service")
    def test_student_summary_scoped_to_teacher(self, mock_get_service, client: TestClient) -> None:
        service = MagicMock()
        service.get_student_summary = AsyncMock(
            side_effect=StudentAccessDeniedError("You do not teach this student")
        )
        mock_get_service.return_value = service

        response = client.get("/api/v1/performance/students/s9")

        assert response.status_code == 403
        service.get_student_summary.assert_awaited_once_with("s9", TERM, teacher_id="teacher-1")

    @patch("src.api.v1.performance.term_or_404", new_callable=AsyncMock)
    @patch("src.api.v1.performance._get_service")
    def test_contact_update_scoped_to_teacher(
        self,
        mock_get_service,
        mock_term_or_404,
        client: TestClient,
    ) -> None:
        mock_term_or_404.return_value = TERM
        service = MagicMock()
        service.update_contact_status = AsyncMock(
            side_effect=StudentAccessDeniedError("You do not teach this student")
        )
        mock_get_service.return_value = service

        response = client.put(
            "/api/v1/performance/flags/contacts",
            json={"student_id": "s9", "contact_type": "call", "status": "contacted"},
        )

        assert response.status_code == 403
        assert service.update_contact_status.await_args.kwargs == {"teacher_id": "teacher-1"}


class TestCurriculumEndpoints:
    """Tests for curriculum import error mapping."""

    @patch("src.api.v1.curriculum._get_service")
    def test_import_failure_reports_partial_counts(
        self,
        mock_get_service,
        client: TestClient,
    ) -> None:
        partial = ReconcileResult()
        partial.levels["qualification"] = LevelCounts(created=1)
        service = MagicMock()
        service.import_rows = AsyncMock(
            side_effect=CurriculumImportError("connection reset", "board", partial)
        )
        mock_get_service.return_value = service

        response = client.post(
            "/api/v1/curriculum/import",
            json={
                "file_name": "curriculum.csv",
                "rows": [{"row_number": 2, "qualification": "GCSE", "board": "AQA", "subject": "Physics"}],
            },
        )

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["level"] == "board"
        assert detail["error"] == "connection reset"
        assert detail["partial"]["levels"]["qualification"]["created"] == 1

    def test_unknown_level_rejected(self, client: TestClient) -> None:
        response = client.get("/api/v1/curriculum/chapter")

        assert response.status_code == 422

    def test_unsupported_upload(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/curriculum/import/preview",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400


class TestGradeEndpoints:
    @patch("src.api.v1.grades.term_or_404", new_callable=AsyncMock)
    @patch("src.api.v1.grades._get_service")
    def test_recording_grade_invalidates_term(
        self,
        mock_get_service,
        mock_term_or_404,
        client: TestClient,
        cache: AsyncMock,
    ) -> None:
        mock_term_or_404.return_value = TERM
        service = MagicMock()
        service.record_grade = AsyncMock(
            return_value={
                "id": "g1",
                "student_id": "s1",
                "class_id": "c1",
                "term_id": TERM,
                "work_type": "test",
                "marks_obtained": 40,
                "total_marks": 50,
                "percentage": 80.0,
                "is_low_point": False,
                "attempt_number": 1,
                "assessed_date": "2025-10-01",
            }
        )
        mock_get_service.return_value = service

        response = client.post(
            "/api/v1/grades",
            json={"student_id": "s1", "class_id": "c1", "marks_obtained": 40, "total_marks": 50},
        )

        assert response.status_code == 201
        cache.invalidate_term.assert_awaited_once_with(TERM)

    @patch("src.api.v1.grades._get_service")
    def test_update_invalidates_grade_term(
        self,
        mock_get_service,
        client: TestClient,
        cache: AsyncMock,
    ) -> None:
        service = MagicMock()
        service.update_grade = AsyncMock(return_value=stored_grade(percentage=90.0))
        mock_get_service.return_value = service

        response = client.put("/api/v1/grades/g1", json={"marks_obtained": 45})

        assert response.status_code == 200
        assert response.json()["percentage"] == 90.0
        assert service.update_grade.await_args.kwargs == {"teacher_id": "teacher-1"}
        cache.invalidate_term.assert_awaited_once_with(TERM)

    @patch("src.api.v1.grades._get_service")
    def test_retake_created(
        self,
        mock_get_service,
        client: TestClient,
        cache: AsyncMock,
    ) -> None:
        service = MagicMock()
        service.add_retake = AsyncMock(
            return_value=stored_grade(id="g2", attempt_number=2, is_retake=True, original_grade_id="g1")
        )
        mock_get_service.return_value = service

        response = client.post(
            "/api/v1/grades/g1/retake", json={"marks_obtained": 45, "total_marks": 50}
        )

        assert response.status_code == 201
        assert response.json()["original_grade_id"] == "g1"
        cache.invalidate_term.assert_awaited_once_with(TERM)

    @patch("src.api.v1.grades._get_service")
    def test_delete_outside_scope_forbidden(
        self,
        mock_get_service,
        client: TestClient,
        cache: AsyncMock,
    ) -> None:
        service = MagicMock()
        service.delete_grade = AsyncMock(
            side_effect=GradeAccessDeniedError("You do not teach this class")
        )
        mock_get_service.return_value = service

        response = client.delete("/api/v1/grades/g1")

        assert response.status_code == 403
        service.delete_grade.assert_awaited_once_with("g1", teacher_id="teacher-1")
        cache.invalidate_term.assert_not_awaited()


def stored_grade(**overrides) -> GradeResponse:
    values = {
        "id": "g1",
        "student_id": "s1",
        "class_id": "c1",
        "term_id": TERM,
        "work_type": "test",
        "marks_obtained": 45,
        "total_marks": 50,
        "percentage": 90.0,
        "is_low_point": False,
        "attempt_number": 1,
        "assessed_date": "2025-10-01",
    }
    values.update(overrides)
    return GradeResponse(**values)


class TestClassEndpoints:
    """Tests for class management and rosters."""

    @patch("src.api.v1.classes._get_service")
    def test_list_scoped_to_teacher(self, mock_get_service, client: TestClient) -> None:
        service = MagicMock()
        service.list_classes = AsyncMock(
            return_value=[ClassSummary(id="c1", name="7A", teacher_id="teacher-1", student_count=3)]
        )
        mock_get_service.return_value = service

        response = client.get("/api/v1/classes")

        assert response.json()[0]["student_count"] == 3
        service.list_classes.assert_awaited_once_with(teacher_id="teacher-1")

    @patch("src.api.v1.classes._get_service")
    def test_unknown_teacher_rejected(self, mock_get_service, client: TestClient) -> None:
        service = MagicMock()
        service.create_class = AsyncMock(side_effect=TeacherNotFoundError("Teacher t9 not found"))
        mock_get_service.return_value = service

        response = client.post("/api/v1/classes", json={"name": "7A", "teacher_id": "t9"})

        assert response.status_code == 400

    @patch("src.api.v1.classes._get_enrollment_service")
    def test_enroll_drops_cached_aggregates(
        self,
        mock_get_service,
        client: TestClient,
        cache: AsyncMock,
    ) -> None:
        service = MagicMock()
        service.enroll_student = AsyncMock(
            return_value=EnrollmentResponse(id="e1", class_id="c1", student_id="s1")
        )
        mock_get_service.return_value = service

        response = client.post("/api/v1/classes/c1/students", json={"student_id": "s1"})

        assert response.status_code == 201
        cache.invalidate_all.assert_awaited_once()

    @patch("src.api.v1.classes._get_enrollment_service")
    def test_enroll_twice_conflicts(self, mock_get_service, client: TestClient) -> None:
        service = MagicMock()
        service.enroll_student = AsyncMock(
            side_effect=AlreadyEnrolledError("Student is already enrolled in this class")
        )
        mock_get_service.return_value = service

        response = client.post("/api/v1/classes/c1/students", json={"student_id": "s1"})

        assert response.status_code == 409

    @patch("src.api.v1.classes._get_enrollment_service")
    def test_unenroll(self, mock_get_service, client: TestClient, cache: AsyncMock) -> None:
        service = MagicMock()
        service.unenroll_student = AsyncMock(return_value=None)
        mock_get_service.return_value = service

        response = client.delete("/api/v1/classes/c1/students/s1")

        assert response.status_code == 204
        service.unenroll_student.assert_awaited_once_with("c1", "s1")
        cache.invalidate_all.assert_awaited_once()


class TestStudentEndpoints:
    @patch("src.api.v1.students._get_service")
    def test_missing_student(self, mock_get_service, client: TestClient) -> None:
        service = MagicMock()
        service.update_student = AsyncMock(side_effect=StudentNotFoundError("Student s9 not found"))
        mock_get_service.return_value = service

        response = client.put("/api/v1/students/s9", json={"name": "Ben"})

        assert response.status_code == 404

    @patch("src.api.v1.students._get_service")
    def test_bulk_delete(self, mock_get_service, client: TestClient, cache: AsyncMock) -> None:
        service = MagicMock()
        service.delete_students = AsyncMock(return_value=2)
        mock_get_service.return_value = service

        response = client.post("/api/v1/students/bulk-delete", json={"student_ids": ["s1", "s2"]})

        assert response.json() == {"deleted": 2}
        cache.invalidate_all.assert_awaited_once()
