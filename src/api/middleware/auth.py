# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bearer-token authentication and request correlation.

Every request is tagged with a request id, taken from X-Request-ID when
the client sends one, bound into the logging context and echoed on the
response. Outside the public paths a valid access token puts a CurrentUser
on ``request.state.user``; anything else leaves it None, and the role
guards in src.api.dependencies turn that into 401.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable
from uuid import uuid4

from fastapi import Request, Response
from fastapi.security.utils import get_authorization_scheme_param
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.core.config import get_settings
from src.domains.auth.jwt import JWTError, JWTManager, TokenPayload
from src.utils.logging import bind_request_context, clear_request_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

PUBLIC_PATHS = frozenset({
    "/",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/api/v1/auth/login",
})


@dataclass(frozen=True)
class CurrentUser:
    """Account behind the access token; ``id`` is shared with the teacher profile."""

    id: str
    role: str
    email: str | None = None
    full_name: str | None = None

    @classmethod
    def from_token(cls, payload: TokenPayload) -> "CurrentUser":
        return cls(id=payload.sub, role=payload.role, email=payload.email, full_name=payload.full_name)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_teacher(self) -> bool:
        return self.role == "teacher"

    @property
    def scope_id(self) -> str | None:
        """Teacher id that narrows reads; None means school-wide."""
        return None if self.is_admin else self.id


def bearer_token(request: Request) -> str | None:
    scheme, token = get_authorization_scheme_param(request.headers.get("Authorization"))
    if scheme.lower() != "bearer" or not token:
        return None
    return token


class AuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self._tokens = JWTManager(get_settings().jwt)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex[:16]
        bind_request_context(request_id)
        request.state.user = None

        try:
            if request.url.path not in PUBLIC_PATHS:
                user = self._user_from(request)
                if user is not None:
                    request.state.user = user
                    bind_request_context(request_id, user_id=user.id, role=user.role)
            response = await call_next(request)
        finally:
            clear_request_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    def _user_from(self, request: Request) -> CurrentUser | None:
        token = bearer_token(request)
        if token is None:
            return None
        try:
            payload = self._tokens.decode_token(token, expected_type="access")
        except JWTError as e:
            logger.debug("Ignoring bearer token on %s: %s", request.url.path, str(e))
            return None
        return CurrentUser.from_token(payload)


def get_current_user(request: Request) -> CurrentUser | None:
    return getattr(request.state, "user", None)
