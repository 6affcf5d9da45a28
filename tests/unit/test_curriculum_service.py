# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for CurriculumService."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from src.domains.curriculum.reconciler import ReconcileResult, RowWarning
from src.domains.curriculum.service import (
    CurriculumItemExistsError,
    CurriculumItemNotFoundError,
    CurriculumParentNotFoundError,
    CurriculumService,
    CurriculumValidationError,
)
from src.infrastructure.database.models.curriculum import Board, Subject
from src.models.curriculum import (
    CurriculumItemCreate,
    CurriculumItemUpdate,
    CurriculumLevel,
    CurriculumRow,
)


@pytest.fixture
def service(mock_db: AsyncMock) -> CurriculumService:
    async def assign_id(obj):
        if obj.id is None:
            obj.id = "new-1"

    mock_db.refresh.side_effect = assign_id
    return CurriculumService(mock_db)


def node(node_id: str, name: str, **children) -> SimpleNamespace:
    return SimpleNamespace(id=node_id, name=name, **children)


class TestCreateItem:
    """Tests for single-entity creation."""

    @pytest.mark.asyncio
    async def test_qualification_needs_no_parent(
        self,
        service: CurriculumService,
        mock_db: AsyncMock,
        scalar_result,
    ) -> None:
        mock_db.execute.return_value = scalar_result(0)

        created = await service.create_item(
            CurriculumLevel.QUALIFICATION, CurriculumItemCreate(name="  GCSE ")
        )

        assert created.name == "GCSE"
        assert created.parent_id is None
        assert created.id == "new-1"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_board_linked_to_parent(
        self,
        service: CurriculumService,
        mock_db: AsyncMock,
        scalar_result,
    ) -> None:
        mock_db.execute.side_effect = [scalar_result("q1"), scalar_result(0)]

        created = await service.create_item(
            CurriculumLevel.BOARD, CurriculumItemCreate(name="AQA", parent_id="q1")
        )

        board = mock_db.add.call_args.args[0]
        assert isinstance(board, Board)
        assert board.qualification_id == "q1"
        assert created.parent_id == "q1"

    @pytest.mark.asyncio
    async def test_duplicate_name_under_parent(
        self,
        service: CurriculumService,
        mock_db: AsyncMock,
        scalar_result,
    ) -> None:
        mock_db.execute.side_effect = [scalar_result("q1"), scalar_result(1)]

        with pytest.raises(CurriculumItemExistsError, match="'aqa' already exists"):
            await service.create_item(
                CurriculumLevel.BOARD, CurriculumItemCreate(name="aqa", parent_id="q1")
            )

        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_unique_index_race(
        self,
        service: CurriculumService,
        mock_db: AsyncMock,
        scalar_result,
    ) -> None:
        mock_db.execute.return_value = scalar_result(0)
        mock_db.commit.side_effect = IntegrityError("INSERT", {}, Exception("uq_qualifications_name"))

        with pytest.raises(CurriculumItemExistsError):
            await service.create_item(
                CurriculumLevel.QUALIFICATION, CurriculumItemCreate(name="GCSE")
            )

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_parent(
        self,
        service: CurriculumService,
        mock_db: AsyncMock,
        scalar_result,
    ) -> None:
        mock_db.execute.return_value = scalar_result(None)

        with pytest.raises(CurriculumParentNotFoundError, match="Board b9 not found"):
            await service.create_item(
                CurriculumLevel.SUBJECT, CurriculumItemCreate(name="Physics", parent_id="b9")
            )

    @pytest.mark.asyncio
    async def test_parent_id_required_below_root(
        self,
        service: CurriculumService,
        mock_db: AsyncMock,
    ) -> None:
        with pytest.raises(CurriculumValidationError, match="Subject is required"):
            await service.create_item(CurriculumLevel.TOPIC, CurriculumItemCreate(name="Waves"))

        mock_db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blank_name(self, service: CurriculumService, mock_db: AsyncMock) -> None:
        with pytest.raises(CurriculumValidationError, match="Name is required"):
            await service.create_item(
                CurriculumLevel.QUALIFICATION, CurriculumItemCreate(name="   ")
            )

        mock_db.execute.assert_not_awaited()


class TestUpdateItem:
    """Tests for renaming and re-parenting."""

    @pytest.mark.asyncio
    async def test_reparent_onto_clashing_name(
        self,
        service: CurriculumService,
        mock_db: AsyncMock,
        scalar_result,
    ) -> None:
        subject = Subject(id="s1", name="Physics", board_id="b1")
        mock_db.execute.side_effect = [
            scalar_result(subject),
            scalar_result("b2"),
            scalar_result(1),
        ]

        with pytest.raises(CurriculumItemExistsError):
            await service.update_item(
                CurriculumLevel.SUBJECT, "s1", CurriculumItemUpdate(parent_id="b2")
            )

        assert subject.board_id == "b1"
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rename_keeps_parent(
        self,
        service: CurriculumService,
        mock_db: AsyncMock,
        scalar_result,
    ) -> None:
        subject = Subject(id="s1", name="Physics", board_id="b1")
        mock_db.execute.side_effect = [scalar_result(subject), scalar_result(0)]

        updated = await service.update_item(
            CurriculumLevel.SUBJECT, "s1", CurriculumItemUpdate(name="Combined Physics")
        )

        assert updated.name == "Combined Physics"
        assert updated.parent_id == "b1"

    @pytest.mark.asyncio
    async def test_missing_item(
        self,
        service: CurriculumService,
        mock_db: AsyncMock,
        scalar_result,
    ) -> None:
        mock_db.execute.return_value = scalar_result(None)

        with pytest.raises(CurriculumItemNotFoundError):
            await service.update_item(
                CurriculumLevel.TOPIC, "t9", CurriculumItemUpdate(name="Forces")
            )


class TestTree:
    @pytest.mark.asyncio
    async def test_nested_levels(
        self,
        service: CurriculumService,
        mock_db: AsyncMock,
        rows_result,
    ) -> None:
        subtopic = node("st1", "Reflection")
        topic = node("t1", "Waves", subtopics=[subtopic])
        subject = node("s1", "Physics", topics=[topic])
        board = node("b1", "AQA", subjects=[subject])
        mock_db.execute.return_value = rows_result([
            node("q1", "GCSE", boards=[board]),
            node("q2", "IGCSE", boards=[]),
        ])

        tree = await service.get_tree()

        assert [q.name for q in tree] == ["GCSE", "IGCSE"]
        assert tree[1].children == []
        leaf = tree[0].children[0].children[0].children[0].children[0]
        assert leaf.id == "st1"
        assert leaf.level == CurriculumLevel.SUBTOPIC
        assert leaf.children == []


class TestImportRows:
    @pytest.mark.asyncio
    async def test_invalid_rows_warned_first(
        self,
        service: CurriculumService,
    ) -> None:
        rows = [
            CurriculumRow(row_number=2, qualification="GCSE", board="AQA", subject="Physics"),
            CurriculumRow(row_number=3, qualification="GCSE", subject="Maths"),
            CurriculumRow(
                row_number=4, qualification="GCSE", board="AQA", subject="Physics", subtopic="Lenses"
            ),
        ]
        reconciled = ReconcileResult(
            warnings=[RowWarning(row_number=2, level="topic", message="Missing topic name")]
        )
        reconciler = MagicMock()
        reconciler.reconcile = AsyncMock(return_value=reconciled)

        with patch(
            "src.domains.curriculum.service.CurriculumReconciler", return_value=reconciler
        ):
            result = await service.import_rows(rows)

        (valid,) = reconciler.reconcile.await_args.args[0]
        assert valid.row_number == 2
        assert [(w.row_number, w.level) for w in result.warnings] == [
            (3, "row"),
            (4, "row"),
            (2, "topic"),
        ]
        assert result.warnings[0].message == "Board is required"
        assert result.warnings[1].message == "Subtopic requires a topic"
