# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk curriculum import reconciliation.

Rows describe paths Qualification -> Board -> Subject -> Topic -> Subtopic.
Levels are processed strictly parent first, because a level's uniqueness
key ``(parent_id, lowercase(name))`` needs the ids resolved at the level
above. For each level:

1. Resolve every active row's key from its parent id and name.
2. Deduplicate keys within the batch (first spelling wins).
3. Bulk-select existing entities under the resolved parents.
4. Bulk-insert keys that are still missing, with client-generated ids.
5. Commit, then hand the resolved ids down to the next level.

Existing entities are never renamed or moved. Running the same file twice
creates nothing the second time.

A backend failure aborts the import with CurriculumImportError. Levels
already committed stay committed.

Example:
    >>> reconciler = CurriculumReconciler(SQLAlchemyCurriculumRepository(db))
    >>> result = await reconciler.reconcile(rows)
    >>> result.levels["subject"].created
    2
"""

import logging
from dataclasses import dataclass, field
from typing import Sequence
from uuid import uuid4

from src.domains.curriculum.repository import (
    CurriculumEntity,
    CurriculumRepository,
    RepositoryError,
)
from src.models.curriculum import CurriculumLevel, CurriculumRow

logger = logging.getLogger(__name__)

# Levels whose name may be left empty to end a row's path early
OPTIONAL_LEVELS = (CurriculumLevel.TOPIC, CurriculumLevel.SUBTOPIC)

LEVELS = list(CurriculumLevel)

_Key = tuple[str | None, str]


@dataclass
class LevelCounts:
    """Distinct keys at one level: newly inserted vs already stored."""

    created: int = 0
    existing: int = 0


@dataclass
class RowWarning:
    """A row that stopped short of its deepest named level."""

    row_number: int
    level: str
    message: str


@dataclass
class ReconcileResult:
    levels: dict[str, LevelCounts] = field(
        default_factory=lambda: {level.value: LevelCounts() for level in CurriculumLevel}
    )
    warnings: list[RowWarning] = field(default_factory=list)

    @property
    def total_created(self) -> int:
        return sum(counts.created for counts in self.levels.values())


class CurriculumImportError(Exception):
    """Raised when the store fails during reconciliation.

    Attributes:
        message: Backend error text.
        level: Level being processed when the failure happened.
        partial: Counts for the levels committed before the failure.
    """

    def __init__(self, message: str, level: str, partial: ReconcileResult) -> None:
        super().__init__(message)
        self.message = message
        self.level = level
        self.partial = partial


class CurriculumReconciler:
    """Creates the missing parts of a curriculum hierarchy from upload rows."""

    def __init__(self, repository: CurriculumRepository) -> None:
        self._repo = repository

    async def reconcile(self, rows: Sequence[CurriculumRow]) -> ReconcileResult:
        """Insert every entity the rows reference that does not exist yet.

        Args:
            rows: Validated rows.

        Returns:
            Per-level created/existing counts and per-row warnings.

        Raises:
            CurriculumImportError: If a bulk select, insert or commit fails.
        """
        result = ReconcileResult()
        # row_number -> id resolved at the previous level (None at the root)
        active: dict[int, str | None] = {row.row_number: None for row in rows}
        by_number = {row.row_number: row for row in rows}

        for level in LEVELS:
            if not active:
                break

            row_keys, candidates = self._collect_keys(level, active, by_number, result)
            for row_number in list(active):
                if row_number not in row_keys:
                    del active[row_number]

            if not candidates:
                continue

            try:
                lookup = await self._reconcile_level(level, candidates, result.levels[level.value])
            except RepositoryError as e:
                logger.error(
                    "Curriculum import aborted at %s level: %s", level.value, e.message
                )
                await self._repo.rollback()
                raise CurriculumImportError(e.message, level.value, result) from e

            for row_number, key in row_keys.items():
                active[row_number] = lookup[key]

        logger.info(
            "Curriculum import reconciled %d rows: %d entities created, %d warnings",
            len(rows),
            result.total_created,
            len(result.warnings),
        )
        return result

    def _collect_keys(
        self,
        level: CurriculumLevel,
        active: dict[int, str | None],
        by_number: dict[int, CurriculumRow],
        result: ReconcileResult,
    ) -> tuple[dict[int, _Key], dict[_Key, str]]:
        row_keys: dict[int, _Key] = {}
        candidates: dict[_Key, str] = {}

        for row_number, parent_id in active.items():
            row = by_number[row_number]
            name = getattr(row, level.value).strip()
            if not name:
                if level not in OPTIONAL_LEVELS or _has_deeper_name(row, level):
                    result.warnings.append(
                        RowWarning(
                            row_number=row_number,
                            level=level.value,
                            message=f"Missing {level.value} name; row skipped from this level down",
                        )
                    )
                continue

            key = (parent_id, name.lower())
            row_keys[row_number] = key
            candidates.setdefault(key, name)

        return row_keys, candidates

    async def _reconcile_level(
        self,
        level: CurriculumLevel,
        candidates: dict[_Key, str],
        counts: LevelCounts,
    ) -> dict[_Key, str]:
        parent_ids = {parent_id for parent_id, _ in candidates}
        names = {name for _, name in candidates}

        existing = await self._repo.find_existing(level, parent_ids, names)
        lookup: dict[_Key, str] = {}
        for entity in existing:
            lookup.setdefault((entity.parent_id, entity.name.lower()), entity.id)

        pending: list[CurriculumEntity] = []
        for key, name in candidates.items():
            if key in lookup:
                counts.existing += 1
                continue
            entity = CurriculumEntity(id=str(uuid4()), name=name, parent_id=key[0])
            lookup[key] = entity.id
            pending.append(entity)

        if pending:
            await self._repo.insert_many(level, pending)
        await self._repo.commit()
        counts.created = len(pending)

        logger.debug(
            "Level %s: %d created, %d existing",
            level.value,
            counts.created,
            counts.existing,
        )
        return lookup


def _has_deeper_name(row: CurriculumRow, level: CurriculumLevel) -> bool:
    deeper = LEVELS[LEVELS.index(level) + 1 :]
    return any(getattr(row, lower.value).strip() for lower in deeper)
