# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Curriculum hierarchy models.

Qualification -> Board -> Subject -> Topic -> Subtopic. Names are unique
per parent, case-insensitively; the lowercase index enforces it.
"""

from sqlalchemy import ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Qualification(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Top of the hierarchy (e.g. GCSE, A-Level)."""

    __tablename__ = "qualifications"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    boards: Mapped[list["Board"]] = relationship(
        back_populates="qualification",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Board.name",
    )


class Board(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Examination board within a qualification."""

    __tablename__ = "boards"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    qualification_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("qualifications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    qualification: Mapped[Qualification] = relationship(back_populates="boards")
    subjects: Mapped[list["Subject"]] = relationship(
        back_populates="board",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Subject.name",
    )


class Subject(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Subject offered by a board."""

    __tablename__ = "subjects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    board_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("boards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    board: Mapped[Board] = relationship(back_populates="subjects")
    topics: Mapped[list["Topic"]] = relationship(
        back_populates="subject",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Topic.name",
    )


class Topic(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Topic within a subject."""

    __tablename__ = "topics"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subject_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    subject: Mapped[Subject] = relationship(back_populates="topics")
    subtopics: Mapped[list["Subtopic"]] = relationship(
        back_populates="topic",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Subtopic.name",
    )


class Subtopic(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Leaf of the hierarchy."""

    __tablename__ = "subtopics"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    topic_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("topics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    topic: Mapped[Topic] = relationship(back_populates="subtopics")


# Case-insensitive uniqueness, scoped to the immediate parent
Index("uq_qualifications_name", func.lower(Qualification.name), unique=True)
Index("uq_boards_parent_name", Board.qualification_id, func.lower(Board.name), unique=True)
Index("uq_subjects_parent_name", Subject.board_id, func.lower(Subject.name), unique=True)
Index("uq_topics_parent_name", Topic.subject_id, func.lower(Topic.name), unique=True)
Index("uq_subtopics_parent_name", Subtopic.topic_id, func.lower(Subtopic.name), unique=True)
