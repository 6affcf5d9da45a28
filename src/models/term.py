# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic term request and response models."""

from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator


class TermCreateRequest(BaseModel):
    """Create a term. New terms are inactive unless asked otherwise."""

    name: str = Field(..., min_length=1, max_length=100)
    academic_year: str = Field(..., min_length=1, max_length=20)
    start_date: date
    end_date: date
    is_active: bool = False

    @model_validator(mode="after")
    def check_dates(self) -> Self:
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class TermUpdateRequest(BaseModel):
    """Partial term update."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    academic_year: str | None = Field(default=None, min_length=1, max_length=20)
    start_date: date | None = None
    end_date: date | None = None


class TermResponse(BaseModel):
    """Term details."""

    id: str
    name: str
    academic_year: str
    start_date: date
    end_date: date
    is_active: bool
    created_at: datetime | None = None


class TermListResponse(BaseModel):
    items: list[TermResponse]
    total: int
