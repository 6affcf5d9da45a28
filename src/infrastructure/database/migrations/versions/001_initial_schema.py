# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial SchoolBoard schema.

Revision ID: 001_initial
Revises: None
Create Date: 2025-01-06

Creates accounts and profiles, the five-level curriculum hierarchy, terms,
students, classes, grades, parent contacts and the import log.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def _fk(column: str, target: str, ondelete: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        column,
        postgresql.UUID(as_uuid=False),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


# (table, parent column, parent table) from the top of the hierarchy down
CURRICULUM_LEVELS = [
    ("qualifications", None, None),
    ("boards", "qualification_id", "qualifications"),
    ("subjects", "board_id", "boards"),
    ("topics", "subject_id", "subjects"),
    ("subtopics", "topic_id", "topics"),
]


def upgrade() -> None:
    """Create all tables."""
    # ==========================================================================
    # Accounts
    # ==========================================================================
    op.create_table(
        "user_accounts",
        _id(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="teacher"),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("role IN ('admin', 'teacher')", name="valid_account_role"),
    )
    op.create_index("ix_user_accounts_email", "user_accounts", ["email"], unique=True)

    op.create_table(
        "profiles",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("user_accounts.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="teacher"),
        *_timestamps(),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"])

    # ==========================================================================
    # Curriculum hierarchy
    # ==========================================================================
    for table, parent_column, parent_table in CURRICULUM_LEVELS:
        columns = [_id(), sa.Column("name", sa.String(255), nullable=False)]
        if parent_column is not None:
            columns.append(_fk(parent_column, f"{parent_table}.id", "CASCADE"))
        op.create_table(table, *columns, *_timestamps())

        if parent_column is None:
            op.create_index(
                f"uq_{table}_name", table, [sa.text("lower(name)")], unique=True
            )
        else:
            op.create_index(f"ix_{table}_{parent_column}", table, [parent_column])
            op.create_index(
                f"uq_{table}_parent_name",
                table,
                [sa.text(parent_column), sa.text("lower(name)")],
                unique=True,
            )

    # ==========================================================================
    # Terms
    # ==========================================================================
    op.create_table(
        "terms",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("academic_year", sa.String(20), nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_by", postgresql.UUID(as_uuid=False), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("end_date > start_date", name="valid_term_dates"),
    )
    op.create_index("ix_terms_is_active", "terms", ["is_active"])

    # ==========================================================================
    # Students and classes
    # ==========================================================================
    op.create_table(
        "students",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("year_group", sa.String(50), nullable=False),
        sa.Column("school", sa.String(255), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=False), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_students_name", "students", ["name"])

    op.create_table(
        "student_contacts",
        _id(),
        _fk("student_id", "students.id", "CASCADE"),
        sa.Column("parent_name", sa.String(255), nullable=False),
        sa.Column("relationship", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_student_contacts_student_id", "student_contacts", ["student_id"])

    op.create_table(
        "classes",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        _fk("teacher_id", "profiles.id", "SET NULL", nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_classes_teacher_id", "classes", ["teacher_id"])

    op.create_table(
        "class_students",
        _id(),
        _fk("class_id", "classes.id", "CASCADE"),
        _fk("student_id", "students.id", "CASCADE"),
        sa.UniqueConstraint("class_id", "student_id", name="uq_class_students_pair"),
    )
    op.create_index("ix_class_students_class_id", "class_students", ["class_id"])
    op.create_index("ix_class_students_student_id", "class_students", ["student_id"])

    # ==========================================================================
    # Grades and parent contacts
    # ==========================================================================
    op.create_table(
        "grades",
        _id(),
        _fk("student_id", "students.id", "CASCADE"),
        _fk("class_id", "classes.id", "CASCADE"),
        _fk("term_id", "terms.id", "CASCADE"),
        _fk("topic_id", "topics.id", "SET NULL", nullable=True),
        _fk("subtopic_id", "subtopics.id", "SET NULL", nullable=True),
        sa.Column("work_type", sa.String(20), nullable=False, server_default="classwork"),
        sa.Column("marks_obtained", sa.Numeric(7, 2), nullable=False),
        sa.Column("total_marks", sa.Numeric(7, 2), nullable=False),
        sa.Column("percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("is_low_point", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("attempt_number", sa.Integer, nullable=False, server_default="1"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("assessed_date", sa.Date, nullable=False),
        sa.Column("entered_by", postgresql.UUID(as_uuid=False), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("total_marks > 0", name="valid_total_marks"),
        sa.CheckConstraint(
            "marks_obtained >= 0 AND marks_obtained <= total_marks",
            name="valid_marks_obtained",
        ),
        sa.CheckConstraint(
            "work_type IN ('classwork', 'homework', 'test', 'exam')",
            name="valid_work_type",
        ),
    )
    op.create_index("ix_grades_student_id", "grades", ["student_id"])
    op.create_index("ix_grades_class_id", "grades", ["class_id"])
    op.create_index("ix_grades_term_id", "grades", ["term_id"])
    op.create_index("ix_grades_entered_by", "grades", ["entered_by"])

    op.create_table(
        "parent_contacts",
        _id(),
        _fk("student_id", "students.id", "CASCADE"),
        _fk("term_id", "terms.id", "CASCADE"),
        sa.Column("contact_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("contacted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "student_id",
            "term_id",
            "contact_type",
            name="uq_parent_contacts_student_term_type",
        ),
        sa.CheckConstraint(
            "contact_type IN ('message', 'call', 'meeting')",
            name="valid_contact_type",
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'contacted', 'resolved')",
            name="valid_contact_status",
        ),
    )
    op.create_index("ix_parent_contacts_student_id", "parent_contacts", ["student_id"])
    op.create_index("ix_parent_contacts_term_id", "parent_contacts", ["term_id"])

    # ==========================================================================
    # Import log
    # ==========================================================================
    op.create_table(
        "import_logs",
        _id(),
        sa.Column("import_type", sa.String(20), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("uploaded_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("total_rows", sa.Integer, nullable=False, server_default="0"),
        sa.Column("success_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("failed_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("log_data", postgresql.JSONB, nullable=False, server_default="{}"),
        *_timestamps(),
    )


def downgrade() -> None:
    """Drop all tables, children first."""
    for table in (
        "import_logs",
        "parent_contacts",
        "grades",
        "class_students",
        "classes",
        "student_contacts",
        "students",
        "terms",
    ):
        op.drop_table(table)

    for table, _, _ in reversed(CURRICULUM_LEVELS):
        op.drop_table(table)

    op.drop_table("profiles")
    op.drop_table("user_accounts")
