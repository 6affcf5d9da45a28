# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Single-student request and response models."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class StudentCreateRequest(BaseModel):
    name: str = Field(..., max_length=255)
    year_group: str = Field(..., max_length=50)
    school: str = Field(..., max_length=255)

    @field_validator("name", "year_group", "school")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class StudentUpdateRequest(BaseModel):
    """Partial student update."""

    name: str | None = Field(default=None, max_length=255)
    year_group: str | None = Field(default=None, max_length=50)
    school: str | None = Field(default=None, max_length=255)

    @field_validator("name", "year_group", "school")
    @classmethod
    def not_blank(cls, value: str | None) -> str | None:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class StudentResponse(BaseModel):
    id: str
    name: str
    year_group: str
    school: str
    created_by: str | None = None
    created_at: datetime | None = None


class BulkDeleteRequest(BaseModel):
    student_ids: list[str] = Field(..., min_length=1)


class BulkDeleteResponse(BaseModel):
    deleted: int
