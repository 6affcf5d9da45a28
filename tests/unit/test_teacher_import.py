# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for bulk teacher import."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.core.config.settings import ImportSettings
from src.domains.auth.identity import AccountExistsError, IdentityError
from src.domains.imports.teachers import (
    TeacherImportService,
    classify_teachers,
    normalize_teacher_rows,
    split_full_name,
    teacher_errors,
)
from src.infrastructure.database.models.account import Profile
from src.models.auth import AccountInfo
from src.models.imports import TeacherImportRequest, TeacherImportRow, TeacherImportStats

CSV = (
    "Name,Email,Status\n"
    "Mary Ann Lee,MARY@SCHOOL.ORG,Active\n"
    "Tom Hart,tom@school.org,Active\n"
    "Al B,al@school.org,Active\n"
    "Gone Person,gone@school.org,Inactive\n"
).encode("utf-8")


def teacher_row(number: int, first: str, last: str, email: str) -> TeacherImportRow:
    return TeacherImportRow(row_number=number, first_name=first, last_name=last, email=email)


@pytest.fixture
def identity() -> AsyncMock:
    provider = AsyncMock()
    provider.create_account.side_effect = lambda email, password, metadata: AccountInfo(
        id=f"acct-{email}",
        email=email,
        full_name=metadata["full_name"],
        role=metadata["role"],
    )
    return provider


class TestNameHandling:
    def test_split_full_name(self) -> None:
        assert split_full_name("Mary Ann Lee") == ("Mary", "Ann Lee")
        assert split_full_name("Cher") == ("Cher", "")
        assert split_full_name("   ") == ("", "")

    def test_dedicated_columns_win_over_full_name(self) -> None:
        raw = [{"First Name": "Mary", "Last Name": "", "Full Name": "Mary Ann Lee"}]

        rows, _ = normalize_teacher_rows(raw)

        assert rows[0].first_name == "Mary"
        assert rows[0].last_name == "Ann Lee"
        assert rows[0].full_name == "Mary Ann Lee"


class TestValidation:
    """Tests for teacher row validation."""

    def test_valid_row(self) -> None:
        assert teacher_errors(teacher_row(2, "Tom", "Hart", "tom@school.org")) == []

    @pytest.mark.parametrize("email", ["tom", "tom@school", "tom @school.org", "@school.org"])
    def test_invalid_email(self, email: str) -> None:
        errors = teacher_errors(teacher_row(2, "Tom", "Hart", email))

        assert errors == ["Invalid email format"]

    def test_missing_fields(self) -> None:
        errors = teacher_errors(teacher_row(2, "T", "", ""))

        assert errors == [
            "First name missing or too short",
            "Last name missing or too short",
            "Email is required",
        ]

    def test_existing_email_is_duplicate(self) -> None:
        rows = [
            teacher_row(2, "Tom", "Hart", "tom@school.org"),
            teacher_row(3, "Ann", "Bell", "ann@school.org"),
        ]
        stats = TeacherImportStats()

        classify_teachers(rows, {"tom@school.org"}, stats)

        assert [r.validation_status for r in rows] == ["duplicate", "new"]


class TestPreview:
    @pytest.mark.asyncio
    async def test_new_rows_selected_by_default(
        self,
        mock_db: AsyncMock,
        rows_result,
        identity: AsyncMock,
        import_settings: ImportSettings,
    ) -> None:
        mock_db.execute.return_value = rows_result(["tom@school.org"])
        service = TeacherImportService(mock_db, identity, import_settings)

        preview = await service.preview("teachers.csv", CSV)

        statuses = {r.email: r.validation_status for r in preview.rows}
        assert statuses == {
            "mary@school.org": "new",
            "tom@school.org": "duplicate",
            "al@school.org": "error",
        }
        assert preview.selected == [2]
        assert preview.stats.inactive_count == 1
        identity.create_account.assert_not_awaited()


class TestImportTeachers:
    """Tests for creating accounts and profiles."""

    @pytest.mark.asyncio
    async def test_creates_account_then_profile(
        self,
        mock_db: AsyncMock,
        rows_result,
        identity: AsyncMock,
        import_settings: ImportSettings,
    ) -> None:
        mock_db.execute.return_value = rows_result([])
        service = TeacherImportService(mock_db, identity, import_settings)
        request = TeacherImportRequest(rows=[teacher_row(2, "Tom", "Hart", "tom@school.org")])

        result = await service.import_teachers(request, uploaded_by="admin-1")

        (success,) = result.success
        assert success.email == "tom@school.org"
        assert len(success.temporary_password) == 10
        email, password, metadata = identity.create_account.await_args.args
        assert password == success.temporary_password
        assert metadata == {"full_name": "Tom Hart", "role": "teacher"}
        profile = mock_db.add.call_args_list[0].args[0]
        assert isinstance(profile, Profile)
        assert profile.id == "acct-tom@school.org"

    @pytest.mark.asyncio
    async def test_profile_failure_removes_account(
        self,
        mock_db: AsyncMock,
        rows_result,
        identity: AsyncMock,
        import_settings: ImportSettings,
    ) -> None:
        mock_db.execute.return_value = rows_result([])
        mock_db.commit.side_effect = [
            IntegrityError("INSERT", {}, Exception("profiles_pkey violated")),
            None,
        ]
        service = TeacherImportService(mock_db, identity, import_settings)
        request = TeacherImportRequest(rows=[teacher_row(2, "Tom", "Hart", "tom@school.org")])

        result = await service.import_teachers(request, uploaded_by=None)

        assert result.success == []
        assert result.failed[0].error == "profiles_pkey violated"
        identity.delete_account.assert_awaited_once_with("acct-tom@school.org")

    @pytest.mark.asyncio
    async def test_failed_cleanup_still_reports_row(
        self,
        mock_db: AsyncMock,
        rows_result,
        identity: AsyncMock,
        import_settings: ImportSettings,
    ) -> None:
        mock_db.execute.return_value = rows_result([])
        mock_db.commit.side_effect = [
            IntegrityError("INSERT", {}, Exception("profiles_pkey violated")),
            None,
        ]
        identity.delete_account.side_effect = IdentityError("account is locked")
        service = TeacherImportService(mock_db, identity, import_settings)
        request = TeacherImportRequest(rows=[teacher_row(2, "Tom", "Hart", "tom@school.org")])

        result = await service.import_teachers(request, uploaded_by=None)

        assert result.failed[0].error == "profiles_pkey violated"
        assert result.success == []

    @pytest.mark.asyncio
    async def test_account_error_recorded(
        self,
        mock_db: AsyncMock,
        rows_result,
        identity: AsyncMock,
        import_settings: ImportSettings,
    ) -> None:
        mock_db.execute.return_value = rows_result([])
        identity.create_account.side_effect = AccountExistsError(
            "A user with email tom@school.org already exists"
        )
        service = TeacherImportService(mock_db, identity, import_settings)
        request = TeacherImportRequest(rows=[teacher_row(2, "Tom", "Hart", "tom@school.org")])

        result = await service.import_teachers(request, uploaded_by=None)

        assert "already exists" in result.failed[0].error
        identity.delete_account.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicates_and_repeats_skipped(
        self,
        mock_db: AsyncMock,
        rows_result,
        identity: AsyncMock,
        import_settings: ImportSettings,
    ) -> None:
        mock_db.execute.return_value = rows_result(["old@school.org"])
        service = TeacherImportService(mock_db, identity, import_settings)
        request = TeacherImportRequest(
            rows=[
                teacher_row(2, "Old", "Hand", "old@school.org"),
                teacher_row(3, "Tom", "Hart", "tom@school.org"),
                teacher_row(4, "Tom", "Hart", "tom@school.org"),
                teacher_row(5, "Bad", "Email", "nope"),
            ]
        )

        result = await service.import_teachers(request, uploaded_by=None)

        assert [s.row_number for s in result.success] == [3]
        assert result.skipped == [2, 4, 5]
        assert identity.create_account.await_count == 1
