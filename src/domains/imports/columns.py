# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Header variants accepted in uploaded spreadsheets.

Each table maps a canonical field to the header spellings accepted for it,
in priority order. A file's headers are resolved against a table once, and
every row is then read through the resulting ColumnMap.

Example:
    >>> columns = resolve_columns(["Full Name", "Year"], STUDENT_COLUMNS)
    >>> columns.value({"Full Name": " Jane ", "Year": "Year 9"}, "full_name")
    'Jane'
"""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

STUDENT_COLUMNS: dict[str, tuple[str, ...]] = {
    "full_name": ("name", "full name", "fullname"),
    "year_group": ("school year", "year group", "year", "yeargroup"),
    "school": ("school", "school name", "institution"),
    "email": ("email",),
    "phone": ("phone", "contact", "mobile"),
    "guardian_name": ("guardian name", "parent name", "guardian"),
    "status": ("status",),
}

TEACHER_COLUMNS: dict[str, tuple[str, ...]] = {
    "first_name": ("first name", "firstname"),
    "last_name": ("last name", "lastname"),
    "full_name": ("name", "full name", "fullname"),
    "email": ("email",),
    "status": ("status",),
}

CURRICULUM_COLUMNS: dict[str, tuple[str, ...]] = {
    "qualification": ("qualification", "qualifications"),
    "board": ("board",),
    "subject": ("subject",),
    "topic": ("topic",),
    "subtopic": ("subtopic",),
}

# Headers starting with these stems also match (e.g. "Qualification Type")
CURRICULUM_PREFIXES: dict[str, tuple[str, ...]] = {
    "qualification": ("qualificat",),
}


def normalize_header(header: object) -> str:
    """Lowercase a header and collapse internal whitespace."""
    if header is None:
        return ""
    return " ".join(str(header).split()).lower()


@dataclass(frozen=True)
class ColumnMap:
    """Canonical field to actual header, for one file."""

    mapping: dict[str, str] = field(default_factory=dict)

    def has(self, canonical: str) -> bool:
        return canonical in self.mapping

    def value(self, row: Mapping[str, object], canonical: str, default: str = "") -> str:
        """Read a stripped string cell, or ``default`` when absent or blank."""
        header = self.mapping.get(canonical)
        if header is None:
            return default
        raw = row.get(header)
        if raw is None:
            return default
        text = str(raw).strip()
        return text or default


def resolve_columns(
    headers: Iterable[str],
    table: Mapping[str, Sequence[str]],
    prefixes: Mapping[str, Sequence[str]] | None = None,
) -> ColumnMap:
    """Resolve a file's headers against a column table.

    Exact variants are tried in priority order before prefix stems.
    A header is claimed by at most one canonical field.
    """
    by_normalized: dict[str, str] = {}
    for header in headers:
        key = normalize_header(header)
        if key and key not in by_normalized:
            by_normalized[key] = header

    claimed: set[str] = set()
    mapping: dict[str, str] = {}

    for canonical, variants in table.items():
        for variant in variants:
            header = by_normalized.get(variant)
            if header is not None and header not in claimed:
                mapping[canonical] = header
                claimed.add(header)
                break

    for canonical, stems in (prefixes or {}).items():
        if canonical in mapping:
            continue
        for key, header in by_normalized.items():
            if header in claimed:
                continue
            if any(key.startswith(stem) for stem in stems):
                mapping[canonical] = header
                claimed.add(header)
                break

    return ColumnMap(mapping=mapping)
