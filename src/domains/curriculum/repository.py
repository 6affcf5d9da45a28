# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Level-generic store access for curriculum reconciliation.

The reconciler only needs three things from the store: bulk-select the
entities of one level under a set of parents, bulk-insert new entities of
one level, and commit. CurriculumRepository is that contract;
SQLAlchemyCurriculumRepository implements it over the async session.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Protocol

from sqlalchemy import func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models.curriculum import (
    Board,
    Qualification,
    Subject,
    Subtopic,
    Topic,
)
from src.models.curriculum import CurriculumLevel

logger = logging.getLogger(__name__)

# Model and parent foreign key column for each level
LEVEL_MODELS = {
    CurriculumLevel.QUALIFICATION: (Qualification, None),
    CurriculumLevel.BOARD: (Board, "qualification_id"),
    CurriculumLevel.SUBJECT: (Subject, "board_id"),
    CurriculumLevel.TOPIC: (Topic, "subject_id"),
    CurriculumLevel.SUBTOPIC: (Subtopic, "topic_id"),
}


@dataclass(frozen=True)
class CurriculumEntity:
    """Minimal view of a stored or pending entity."""

    id: str
    name: str
    parent_id: str | None = None


class RepositoryError(Exception):
    """Raised when the store rejects a bulk operation.

    Attributes:
        message: Backend error text, surfaced to the caller as-is.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class CurriculumRepository(Protocol):
    async def find_existing(
        self,
        level: CurriculumLevel,
        parent_ids: set[str | None],
        names: set[str],
    ) -> list[CurriculumEntity]:
        """Entities of ``level`` under any of ``parent_ids``.

        For the root level ``parent_ids`` is ``{None}`` and ``names`` (lowercase)
        selects instead.
        """
        ...

    async def insert_many(self, level: CurriculumLevel, entities: list[CurriculumEntity]) -> None:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...


class SQLAlchemyCurriculumRepository:
    """CurriculumRepository over an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_existing(
        self,
        level: CurriculumLevel,
        parent_ids: set[str | None],
        names: set[str],
    ) -> list[CurriculumEntity]:
        model, parent_attr = LEVEL_MODELS[level]
        try:
            if parent_attr is None:
                if not names:
                    return []
                stmt = select(model.id, model.name).where(func.lower(model.name).in_(names))
                result = await self._db.execute(stmt)
                return [CurriculumEntity(id=str(r.id), name=r.name) for r in result]

            ids = [p for p in parent_ids if p is not None]
            if not ids:
                return []
            parent_col = getattr(model, parent_attr)
            stmt = select(model.id, model.name, parent_col.label("parent_id")).where(
                parent_col.in_(ids)
            )
            result = await self._db.execute(stmt)
            return [
                CurriculumEntity(id=str(r.id), name=r.name, parent_id=str(r.parent_id))
                for r in result
            ]
        except SQLAlchemyError as e:
            logger.error("Failed to load %s entities: %s", level.value, str(e))
            raise RepositoryError(str(getattr(e, "orig", None) or e)) from e

    async def insert_many(self, level: CurriculumLevel, entities: list[CurriculumEntity]) -> None:
        if not entities:
            return
        model, parent_attr = LEVEL_MODELS[level]
        values = [_insert_values(entity, parent_attr) for entity in entities]
        try:
            await self._db.execute(insert(model), values)
        except SQLAlchemyError as e:
            logger.error("Failed to insert %d %s entities: %s", len(values), level.value, str(e))
            raise RepositoryError(str(getattr(e, "orig", None) or e)) from e

    async def commit(self) -> None:
        try:
            await self._db.commit()
        except SQLAlchemyError as e:
            raise RepositoryError(str(getattr(e, "orig", None) or e)) from e

    async def rollback(self) -> None:
        await self._db.rollback()


def _insert_values(entity: CurriculumEntity, parent_attr: str | None) -> dict:
    values = {"id": entity.id, "name": entity.name}
    if parent_attr is not None:
        values[parent_attr] = entity.parent_id
    return values

