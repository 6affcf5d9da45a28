# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade retakes.

Revision ID: 002_grade_retakes
Revises: 001_initial
Create Date: 2025-02-03

A retake is a new grade row pointing at the grade it repeats.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "002_grade_retakes"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "grades",
        sa.Column(
            "original_grade_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("grades.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.add_column(
        "grades",
        sa.Column("is_retake", sa.Boolean, nullable=False, server_default=sa.false()),
    )


def downgrade() -> None:
    op.drop_column("grades", "is_retake")
    op.drop_column("grades", "original_grade_id")
