# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Term service for managing academic terms.

This module provides the TermService class for:
- Term CRUD operations
- Switching the active term
- Resolving the term a request reads from

Term resolution happens once per request and the resulting id is passed
down explicitly; no service reads an ambient "current term".
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models.school import Term
from src.models.term import (
    TermCreateRequest,
    TermResponse,
    TermUpdateRequest,
)

logger = logging.getLogger(__name__)


class TermServiceError(Exception):
    """Base exception for term service errors."""

    pass


class TermNotFoundError(TermServiceError):
    """Raised when a term is not found."""

    pass


class TermValidationError(TermServiceError):
    """Raised when term dates are inconsistent."""

    pass


class ActiveTermDeleteError(TermServiceError):
    """Raised when deleting the active term."""

    pass


class NoTermError(TermServiceError):
    """Raised when no term exists to resolve a request against."""

    pass


class TermService:
    """Service for managing academic terms.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_term(
        self,
        request: TermCreateRequest,
        created_by: str | None = None,
    ) -> TermResponse:
        """Create a term, inactive unless the request says otherwise."""
        if request.is_active:
            await self._deactivate_all()

        term = Term(
            name=request.name,
            academic_year=request.academic_year,
            start_date=request.start_date,
            end_date=request.end_date,
            is_active=request.is_active,
            created_by=created_by,
        )
        self.db.add(term)
        await self.db.commit()
        await self.db.refresh(term)

        logger.info("Created term: %s (%s)", term.name, term.id)
        return self._to_response(term)

    async def list_terms(self) -> tuple[list[TermResponse], int]:
        """List terms, most recent first."""
        result = await self.db.execute(select(Term).order_by(Term.start_date.desc()))
        terms = [self._to_response(t) for t in result.scalars().all()]
        return terms, len(terms)

    async def get_term(self, term_id: str) -> TermResponse:
        return self._to_response(await self._get_by_id(term_id))

    async def get_active_term(self) -> TermResponse | None:
        result = await self.db.execute(select(Term).where(Term.is_active.is_(True)).limit(1))
        term = result.scalar_one_or_none()
        return self._to_response(term) if term else None

    async def update_term(self, term_id: str, request: TermUpdateRequest) -> TermResponse:
        """Update a term.

        Raises:
            TermNotFoundError: If the term does not exist.
            TermValidationError: If the resulting end date is not after the start.
        """
        term = await self._get_by_id(term_id)

        new_start = request.start_date or term.start_date
        new_end = request.end_date or term.end_date
        if new_end <= new_start:
            raise TermValidationError("End date must be after start date")

        if request.name is not None:
            term.name = request.name
        if request.academic_year is not None:
            term.academic_year = request.academic_year
        term.start_date = new_start
        term.end_date = new_end

        await self.db.commit()
        await self.db.refresh(term)

        logger.info("Updated term: %s", term_id)
        return self._to_response(term)

    async def delete_term(self, term_id: str) -> None:
        """Delete a term. Its grades and contacts go with it.

        Raises:
            TermNotFoundError: If the term does not exist.
            ActiveTermDeleteError: If the term is active.
        """
        term = await self._get_by_id(term_id)
        if term.is_active:
            raise ActiveTermDeleteError("Cannot delete the active term")

        await self.db.delete(term)
        await self.db.commit()
        logger.info("Deleted term: %s", term_id)

    async def set_active_term(self, term_id: str) -> TermResponse:
        """Make one term active, deactivating every other term first."""
        term = await self._get_by_id(term_id)

        await self._deactivate_all()
        term.is_active = True

        await self.db.commit()
        await self.db.refresh(term)

        logger.info("Set term %s as active", term_id)
        return self._to_response(term)

    async def resolve_term(self, term_id: str | None = None) -> str:
        """Pick the term a request reads from.

        An explicit id wins, then the active term, then the term that ended
        most recently.

        Raises:
            TermNotFoundError: If an explicit id does not exist.
            NoTermError: If there are no terms at all.
        """
        if term_id:
            return (await self._get_by_id(term_id)).id

        result = await self.db.execute(
            select(Term.id)
            .order_by(Term.is_active.desc(), Term.end_date.desc())
            .limit(1)
        )
        resolved = result.scalar_one_or_none()
        if resolved is None:
            raise NoTermError("No academic term has been set up")
        return str(resolved)

    async def _get_by_id(self, term_id: str) -> Term:
        result = await self.db.execute(select(Term).where(Term.id == str(term_id)))
        term = result.scalar_one_or_none()
        if term is None:
            raise TermNotFoundError(f"Term {term_id} not found")
        return term

    async def _deactivate_all(self) -> None:
        await self.db.execute(
            update(Term).where(Term.is_active.is_(True)).values(is_active=False)
        )

    def _to_response(self, term: Term) -> TermResponse:
        return TermResponse(
            id=str(term.id),
            name=term.name,
            academic_year=term.academic_year,
            start_date=term.start_date,
            end_date=term.end_date,
            is_active=term.is_active,
            created_at=term.created_at,
        )
