# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for upload parsing, header resolution and curriculum row validation."""

import io
from datetime import date, datetime

import pytest
from openpyxl import Workbook

from src.domains.curriculum.validation import row_errors, validate_curriculum_rows
from src.domains.imports.columns import (
    CURRICULUM_COLUMNS,
    CURRICULUM_PREFIXES,
    STUDENT_COLUMNS,
    TEACHER_COLUMNS,
    normalize_header,
    resolve_columns,
)
from src.domains.imports.parsing import (
    EmptyFileError,
    FileParseError,
    UnsupportedFileError,
    cell_to_str,
    parse_upload,
)
from src.models.curriculum import CurriculumRow


def xlsx_bytes(rows: list[list[object]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


class TestColumnResolution:
    """Tests for header variant matching."""

    def test_normalize_header(self) -> None:
        assert normalize_header("  Full   Name ") == "full name"
        assert normalize_header(None) == ""

    def test_student_variants(self) -> None:
        columns = resolve_columns(
            ["Full Name", "School Year", "Institution", "Mobile", "Parent Name"],
            STUDENT_COLUMNS,
        )

        assert columns.mapping == {
            "full_name": "Full Name",
            "year_group": "School Year",
            "school": "Institution",
            "phone": "Mobile",
            "guardian_name": "Parent Name",
        }

    def test_priority_order_within_variants(self) -> None:
        columns = resolve_columns(["Year", "Year Group"], STUDENT_COLUMNS)

        assert columns.mapping["year_group"] == "Year Group"

    def test_header_claimed_once(self) -> None:
        """A bare "Name" column feeds full_name only once per file."""
        columns = resolve_columns(["Name", "First Name", "Last Name"], TEACHER_COLUMNS)

        assert columns.mapping["first_name"] == "First Name"
        assert columns.mapping["last_name"] == "Last Name"
        assert columns.mapping["full_name"] == "Name"

    def test_qualification_prefix(self) -> None:
        columns = resolve_columns(
            ["Qualification Type", "Board", "Subject"],
            CURRICULUM_COLUMNS,
            CURRICULUM_PREFIXES,
        )

        assert columns.mapping["qualification"] == "Qualification Type"
        assert not columns.has("topic")

    def test_value_strips_and_defaults(self) -> None:
        columns = resolve_columns(["Name", "Status"], STUDENT_COLUMNS)

        assert columns.value({"Name": "  Jane  ", "Status": ""}, "full_name") == "Jane"
        assert columns.value({"Name": "Jane", "Status": " "}, "status", "Active") == "Active"
        assert columns.value({"Name": "Jane"}, "email") == ""


class TestCellToStr:
    def test_conversions(self) -> None:
        assert cell_to_str(None) == ""
        assert cell_to_str(12.0) == "12"
        assert cell_to_str(12.5) == "12.5"
        assert cell_to_str(True) == "TRUE"
        assert cell_to_str(datetime(2025, 9, 1)) == "2025-09-01"
        assert cell_to_str(date(2025, 9, 1)) == "2025-09-01"
        assert cell_to_str("  x ") == "x"


class TestParseUpload:
    """Tests for CSV and XLSX parsing."""

    def test_csv_with_bom(self) -> None:
        content = "\ufeffName,Year\nJane Doe,Year 9\n,\nJohn Smith,Year 10\n".encode("utf-8")

        rows = parse_upload("students.csv", content)

        assert rows == [
            {"Name": "Jane Doe", "Year": "Year 9"},
            {"Name": "John Smith", "Year": "Year 10"},
        ]

    def test_rows_keep_their_file_lines(self) -> None:
        content = "Name,Year\nJane Doe,Year 9\n\n,\nJohn Smith,Year 10\n".encode("utf-8")

        rows = parse_upload("students.csv", content)

        assert [row.line_number for row in rows] == [2, 5]

    def test_xlsx_rows_keep_their_sheet_lines(self) -> None:
        content = xlsx_bytes([["Name"], [None], ["Jane Doe"], [None], ["John Smith"]])

        rows = parse_upload("students.xlsx", content)

        assert [row.line_number for row in rows] == [3, 5]

    def test_csv_short_rows_padded(self) -> None:
        rows = parse_upload("a.CSV", b"Name,Year,Email\nJane\n")

        assert rows == [{"Name": "Jane", "Year": "", "Email": ""}]

    def test_xlsx(self) -> None:
        content = xlsx_bytes(
            [
                ["Qualification", "Board", "Subject"],
                ["GCSE", "AQA", "Physics"],
                [None, None, None],
                ["A-Level", "OCR", 2024.0],
            ]
        )

        rows = parse_upload("curriculum.xlsx", content)

        assert rows == [
            {"Qualification": "GCSE", "Board": "AQA", "Subject": "Physics"},
            {"Qualification": "A-Level", "Board": "OCR", "Subject": "2024"},
        ]

    def test_unsupported_extension(self) -> None:
        with pytest.raises(UnsupportedFileError):
            parse_upload("students.pdf", b"%PDF")

    def test_empty_bytes(self) -> None:
        with pytest.raises(EmptyFileError):
            parse_upload("students.csv", b"")

    def test_header_only(self) -> None:
        with pytest.raises(EmptyFileError):
            parse_upload("students.csv", b"Name,Year\n")

    def test_corrupt_xlsx(self) -> None:
        with pytest.raises(FileParseError):
            parse_upload("broken.xlsx", b"not a zip archive")

    def test_csv_not_utf8(self) -> None:
        with pytest.raises(FileParseError):
            parse_upload("latin.csv", "Name\nJosé\n".encode("utf-16"))


class TestCurriculumValidation:
    """Tests for curriculum row validation."""

    def test_row_numbers_and_stats(self) -> None:
        raw = [
            {"Qualifications": "GCSE", "Board": "AQA", "Subject": "Physics"},
            {"Qualifications": "GCSE", "Board": "", "Subject": "Physics"},
        ]

        rows, stats = validate_curriculum_rows(raw)

        assert [r.row_number for r in rows] == [2, 3]
        assert rows[0].validation_status == "valid"
        assert rows[1].validation_status == "error"
        assert rows[1].errors == ["Board is required"]
        assert (stats.total, stats.valid, stats.error) == (2, 1, 1)

    def test_subtopic_requires_topic(self) -> None:
        errors = row_errors(
            CurriculumRow(
                row_number=2,
                qualification="GCSE",
                board="AQA",
                subject="Physics",
                subtopic="Orphan",
            )
        )

        assert errors == ["Subtopic requires a topic"]

    def test_all_required_missing(self) -> None:
        errors = row_errors(CurriculumRow(row_number=2))

        assert len(errors) == 3

    def test_row_numbers_follow_blank_lines(self) -> None:
        content = b"Qualification,Board,Subject\n,,\nGCSE,AQA,Physics\n,,\nGCSE,,Maths\n"

        rows, _ = validate_curriculum_rows(parse_upload("curriculum.csv", content))

        assert [(r.row_number, r.validation_status) for r in rows] == [(3, "valid"), (5, "error")]

    def test_empty_input(self) -> None:
        rows, stats = validate_curriculum_rows([])

        assert rows == []
        assert stats.total == 0
