# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication request and response models."""

from typing import Literal

from pydantic import BaseModel, Field


class AccountInfo(BaseModel):
    """Identity account as seen by the rest of the system."""

    id: str
    email: str
    full_name: str | None = None
    role: Literal["admin", "teacher"] = "teacher"
    is_active: bool = True


class LoginRequest(BaseModel):
    """Email and password sign-in."""

    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    """Tokens plus the signed-in account."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: AccountInfo
