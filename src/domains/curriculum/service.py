# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Curriculum service for single-entity admin actions and bulk import.

This module provides the CurriculumService class for:
- Create, rename, re-parent and delete at each of the five levels
- Listing a level under a parent
- The nested curriculum tree
- Upload preview and confirmed bulk import through the reconciler
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.domains.curriculum.reconciler import CurriculumReconciler, ReconcileResult, RowWarning
from src.domains.curriculum.repository import LEVEL_MODELS, SQLAlchemyCurriculumRepository
from src.domains.curriculum.validation import row_errors, validate_curriculum_rows
from src.domains.imports.parsing import parse_upload
from src.infrastructure.database.models.curriculum import (
    Board,
    Qualification,
    Subject,
    Topic,
)
from src.models.curriculum import (
    CurriculumImportPreview,
    CurriculumItemCreate,
    CurriculumItemResponse,
    CurriculumItemUpdate,
    CurriculumLevel,
    CurriculumNode,
    CurriculumRow,
)

logger = logging.getLogger(__name__)


class CurriculumServiceError(Exception):
    """Base exception for curriculum service errors."""

    pass


class CurriculumItemNotFoundError(CurriculumServiceError):
    """Raised when an entity does not exist."""

    pass


class CurriculumItemExistsError(CurriculumServiceError):
    """Raised when the parent already has an entity with that name."""

    pass


class CurriculumParentNotFoundError(CurriculumServiceError):
    """Raised when the referenced parent does not exist."""

    pass


class CurriculumValidationError(CurriculumServiceError):
    """Raised for a blank name or a missing parent id."""

    pass


class CurriculumService:
    """Service for the Qualification -> Board -> Subject -> Topic -> Subtopic hierarchy.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_items(
        self,
        level: CurriculumLevel,
        parent_id: str | None = None,
    ) -> list[CurriculumItemResponse]:
        """List a level, optionally restricted to one parent."""
        model, parent_attr = LEVEL_MODELS[level]
        query = select(model).order_by(model.name)
        if parent_attr is not None and parent_id is not None:
            query = query.where(getattr(model, parent_attr) == parent_id)

        result = await self.db.execute(query)
        return [self._to_response(level, item) for item in result.scalars().all()]

    async def create_item(
        self,
        level: CurriculumLevel,
        request: CurriculumItemCreate,
    ) -> CurriculumItemResponse:
        """Create one entity.

        Raises:
            CurriculumValidationError: If the name is blank or the parent id is missing.
            CurriculumParentNotFoundError: If the parent does not exist.
            CurriculumItemExistsError: If the parent already has that name.
        """
        model, parent_attr = LEVEL_MODELS[level]
        name = self._clean_name(request.name)

        parent_id = None
        if parent_attr is not None:
            parent_id = await self._require_parent(level, request.parent_id)

        await self._ensure_unique(level, name, parent_id)

        values = {"name": name}
        if parent_attr is not None:
            values[parent_attr] = parent_id
        item = model(**values)
        self.db.add(item)
        await self._commit_unique(level, name)
        await self.db.refresh(item)

        logger.info("Created %s: %s (%s)", level.value, item.name, item.id)
        return self._to_response(level, item)

    async def update_item(
        self,
        level: CurriculumLevel,
        item_id: str,
        request: CurriculumItemUpdate,
    ) -> CurriculumItemResponse:
        """Rename and/or re-parent an entity.

        Raises:
            CurriculumItemNotFoundError: If the entity does not exist.
            CurriculumParentNotFoundError: If the new parent does not exist.
            CurriculumItemExistsError: If the target parent already has that name.
        """
        model, parent_attr = LEVEL_MODELS[level]
        item = await self._get_by_id(level, item_id)

        name = self._clean_name(request.name) if request.name is not None else item.name
        parent_id = getattr(item, parent_attr) if parent_attr else None
        if parent_attr is not None and request.parent_id is not None:
            parent_id = await self._require_parent(level, request.parent_id)

        await self._ensure_unique(level, name, parent_id, exclude_id=item.id)

        item.name = name
        if parent_attr is not None:
            setattr(item, parent_attr, parent_id)
        await self._commit_unique(level, name)
        await self.db.refresh(item)

        logger.info("Updated %s: %s", level.value, item_id)
        return self._to_response(level, item)

    async def delete_item(self, level: CurriculumLevel, item_id: str) -> None:
        """Delete an entity. Descendants go with it through the foreign keys."""
        item = await self._get_by_id(level, item_id)
        await self.db.delete(item)
        await self.db.commit()
        logger.info("Deleted %s: %s", level.value, item_id)

    async def get_tree(self) -> list[CurriculumNode]:
        """Load the full hierarchy, each level ordered by name."""
        query = (
            select(Qualification)
            .options(
                selectinload(Qualification.boards)
                .selectinload(Board.subjects)
                .selectinload(Subject.topics)
                .selectinload(Topic.subtopics)
            )
            .order_by(Qualification.name)
        )
        result = await self.db.execute(query)
        return [
            CurriculumNode(
                id=q.id,
                name=q.name,
                level=CurriculumLevel.QUALIFICATION,
                children=[
                    CurriculumNode(
                        id=b.id,
                        name=b.name,
                        level=CurriculumLevel.BOARD,
                        children=[
                            CurriculumNode(
                                id=s.id,
                                name=s.name,
                                level=CurriculumLevel.SUBJECT,
                                children=[
                                    CurriculumNode(
                                        id=t.id,
                                        name=t.name,
                                        level=CurriculumLevel.TOPIC,
                                        children=[
                                            CurriculumNode(
                                                id=st.id,
                                                name=st.name,
                                                level=CurriculumLevel.SUBTOPIC,
                                            )
                                            for st in t.subtopics
                                        ],
                                    )
                                    for t in s.topics
                                ],
                            )
                            for s in b.subjects
                        ],
                    )
                    for b in q.boards
                ],
            )
            for q in result.scalars().all()
        ]

    def preview_import(self, filename: str, content: bytes) -> CurriculumImportPreview:
        """Parse and validate an upload without writing anything.

        Raises:
            FileParseError: If the file cannot be parsed.
        """
        raw_rows = parse_upload(filename, content)
        rows, stats = validate_curriculum_rows(raw_rows)
        return CurriculumImportPreview(file_name=filename, rows=rows, stats=stats)

    async def import_rows(self, rows: list[CurriculumRow]) -> ReconcileResult:
        """Reconcile the valid rows; invalid rows come back as warnings.

        Raises:
            CurriculumImportError: If the store fails mid-import.
        """
        valid: list[CurriculumRow] = []
        rejected: list[RowWarning] = []
        for row in rows:
            errors = row_errors(row)
            if errors:
                rejected.append(
                    RowWarning(row_number=row.row_number, level="row", message="; ".join(errors))
                )
            else:
                valid.append(row)

        reconciler = CurriculumReconciler(SQLAlchemyCurriculumRepository(self.db))
        result = await reconciler.reconcile(valid)
        result.warnings = rejected + result.warnings
        return result

    # Helpers

    def _clean_name(self, name: str) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise CurriculumValidationError("Name is required")
        return cleaned

    async def _get_by_id(self, level: CurriculumLevel, item_id: str):
        model, _ = LEVEL_MODELS[level]
        result = await self.db.execute(select(model).where(model.id == str(item_id)))
        item = result.scalar_one_or_none()
        if item is None:
            raise CurriculumItemNotFoundError(f"{level.value.capitalize()} {item_id} not found")
        return item

    async def _require_parent(self, level: CurriculumLevel, parent_id: str | None) -> str:
        parent_level = level.parent
        if not parent_id:
            raise CurriculumValidationError(f"{parent_level.value.capitalize()} is required")
        parent_model, _ = LEVEL_MODELS[parent_level]
        result = await self.db.execute(
            select(parent_model.id).where(parent_model.id == str(parent_id))
        )
        if result.scalar_one_or_none() is None:
            raise CurriculumParentNotFoundError(
                f"{parent_level.value.capitalize()} {parent_id} not found"
            )
        return str(parent_id)

    async def _ensure_unique(
        self,
        level: CurriculumLevel,
        name: str,
        parent_id: str | None,
        exclude_id: str | None = None,
    ) -> None:
        model, parent_attr = LEVEL_MODELS[level]
        query = select(func.count()).select_from(model).where(
            func.lower(model.name) == name.lower()
        )
        if parent_attr is not None:
            query = query.where(getattr(model, parent_attr) == parent_id)
        if exclude_id is not None:
            query = query.where(model.id != exclude_id)

        result = await self.db.execute(query)
        if (result.scalar() or 0) > 0:
            raise CurriculumItemExistsError(f"{level.value.capitalize()} '{name}' already exists")

    async def _commit_unique(self, level: CurriculumLevel, name: str) -> None:
        # The unique index still decides under concurrent writers
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("Unique violation on %s '%s': %s", level.value, name, str(e))
            raise CurriculumItemExistsError(
                f"{level.value.capitalize()} '{name}' already exists"
            ) from e

    def _to_response(self, level: CurriculumLevel, item) -> CurriculumItemResponse:
        _, parent_attr = LEVEL_MODELS[level]
        return CurriculumItemResponse(
            id=str(item.id),
            level=level,
            name=item.name,
            parent_id=getattr(item, parent_attr) if parent_attr else None,
        )
