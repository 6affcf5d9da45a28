# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School models: terms, students, classes, grades and parent contacts."""

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Term(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Academic term. At most one term is active at a time."""

    __tablename__ = "terms"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    created_by: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)


class Student(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Student record. Names are not unique."""

    __tablename__ = "students"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    year_group: Mapped[str] = mapped_column(String(50), nullable=False)
    school: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)

    contacts: Mapped[list["StudentContact"]] = relationship(
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    enrollments: Mapped[list["ClassStudent"]] = relationship(
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class StudentContact(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Guardian contact details for a student."""

    __tablename__ = "student_contacts"

    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_name: Mapped[str] = mapped_column(String(255), nullable=False)
    relationship_type: Mapped[str] = mapped_column("relationship", String(50), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    student: Mapped[Student] = relationship(back_populates="contacts")


class Class(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Teaching class owned by one teacher."""

    __tablename__ = "classes"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    teacher_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    enrollments: Mapped[list["ClassStudent"]] = relationship(
        back_populates="class_",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ClassStudent(UUIDPrimaryKeyMixin, Base):
    """Enrollment of a student in a class."""

    __tablename__ = "class_students"
    __table_args__ = (
        UniqueConstraint("class_id", "student_id", name="uq_class_students_pair"),
    )

    class_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("classes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    class_: Mapped[Class] = relationship(back_populates="enrollments")
    student: Mapped[Student] = relationship(back_populates="enrollments")


class Grade(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """One assessment result for a student in a class and term."""

    __tablename__ = "grades"

    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    class_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("classes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    term_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("terms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    topic_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("topics.id", ondelete="SET NULL"),
        nullable=True,
    )
    subtopic_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("subtopics.id", ondelete="SET NULL"),
        nullable=True,
    )
    work_type: Mapped[str] = mapped_column(String(20), nullable=False, default="classwork")
    marks_obtained: Mapped[float] = mapped_column(Numeric(7, 2), nullable=False)
    total_marks: Mapped[float] = mapped_column(Numeric(7, 2), nullable=False)
    percentage: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False)
    is_low_point: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    assessed_date: Mapped[date] = mapped_column(Date, nullable=False)
    entered_by: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True, index=True)
    original_grade_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("grades.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_retake: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class ParentContact(UUIDPrimaryKeyMixin, Base):
    """Intervention contact made with a flagged student's family in a term."""

    __tablename__ = "parent_contacts"
    __table_args__ = (
        UniqueConstraint(
            "student_id", "term_id", "contact_type", name="uq_parent_contacts_student_term_type"
        ),
    )

    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    term_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("terms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    contact_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    contacted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
