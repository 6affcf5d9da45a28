# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Curriculum hierarchy request and response models."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class CurriculumLevel(str, Enum):
    """Hierarchy levels, parent first."""

    QUALIFICATION = "qualification"
    BOARD = "board"
    SUBJECT = "subject"
    TOPIC = "topic"
    SUBTOPIC = "subtopic"

    @property
    def parent(self) -> "CurriculumLevel | None":
        levels = list(CurriculumLevel)
        index = levels.index(self)
        return levels[index - 1] if index > 0 else None


class CurriculumItemCreate(BaseModel):
    """Create one entity. ``parent_id`` is required below qualification."""

    name: str = Field(..., max_length=255)
    parent_id: str | None = None


class CurriculumItemUpdate(BaseModel):
    """Rename and/or re-parent one entity."""

    name: str | None = Field(default=None, max_length=255)
    parent_id: str | None = None


class CurriculumItemResponse(BaseModel):
    id: str
    level: CurriculumLevel
    name: str
    parent_id: str | None = None


class CurriculumNode(BaseModel):
    """Node of the nested curriculum tree."""

    id: str
    name: str
    level: CurriculumLevel
    children: list["CurriculumNode"] = []


class CurriculumRow(BaseModel):
    """One spreadsheet line describing a path through the hierarchy."""

    row_number: int
    qualification: str = ""
    board: str = ""
    subject: str = ""
    topic: str = ""
    subtopic: str = ""


class CurriculumPreviewRow(CurriculumRow):
    validation_status: Literal["valid", "error"] = "valid"
    errors: list[str] = []


class CurriculumImportStats(BaseModel):
    total: int = 0
    valid: int = 0
    error: int = 0


class CurriculumImportPreview(BaseModel):
    """Parsed and validated upload, returned before anything is written."""

    file_name: str
    rows: list[CurriculumPreviewRow]
    stats: CurriculumImportStats


class CurriculumImportRequest(BaseModel):
    file_name: str = "curriculum_upload"
    rows: list[CurriculumRow]


class LevelCountsResponse(BaseModel):
    created: int = 0
    existing: int = 0


class RowWarningResponse(BaseModel):
    row_number: int
    level: str
    message: str


class CurriculumImportResponse(BaseModel):
    """Outcome of a bulk curriculum import."""

    file_name: str
    levels: dict[str, LevelCountsResponse]
    warnings: list[RowWarningResponse] = []
    total_created: int = 0
