# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication API endpoints.

- POST /login - Sign in with email and password
- GET /me - Get the signed-in account

Example:
    POST /api/v1/auth/login
    Body:
        {"email": "admin@school.test", "password": "..."}
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import get_identity_provider, require_auth
from src.api.middleware.auth import CurrentUser
from src.domains.auth.identity import (
    AccountInactiveError,
    InvalidCredentialsError,
    LocalIdentityProvider,
)
from src.models.auth import AccountInfo, LoginRequest, LoginResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Sign in",
    description="Authenticate with email and password and receive session tokens.",
)
async def login(
    data: LoginRequest,
    identity: LocalIdentityProvider = Depends(get_identity_provider),
) -> LoginResponse:
    """Sign in with email and password.

    Raises:
        HTTPException: 401 on bad credentials, 403 if the account is inactive.
    """
    try:
        account = await identity.authenticate(data.email, data.password)
    except InvalidCredentialsError:
        logger.info("Failed sign-in for %s", data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except AccountInactiveError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    tokens = identity.issue_tokens(account)
    logger.info("Signed in %s (%s)", account.id, account.role)

    return LoginResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
        user=account,
    )


@router.get("/me", response_model=AccountInfo, summary="Current account")
async def me(
    current_user: CurrentUser = Depends(require_auth),
    identity: LocalIdentityProvider = Depends(get_identity_provider),
) -> AccountInfo:
    account = await identity.get_user(current_user.id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    return account
