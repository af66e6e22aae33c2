# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-day application number counters.

Revision ID: 002_number_counters
Revises: 001_initial
Create Date: 2025-10-20

Seeds each day's counter from the numbers already issued, so numbering
continues where the count-based scheme left off.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "002_number_counters"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the counter table and seed it from issued numbers."""
    op.create_table(
        "application_number_counters",
        sa.Column("day", sa.String(8), primary_key=True),
        sa.Column("last_value", sa.Integer, nullable=False),
        sa.CheckConstraint("last_value > 0", name="positive_number_counter"),
    )
    # Numbers look like PREFIX-YYYYMMDD-NNNN; the day is the second segment.
    op.execute(
        """
        INSERT INTO application_number_counters (day, last_value)
        SELECT day, COUNT(*)
        FROM (
            SELECT substr(application_number, length(application_number) - 12, 8) AS day
            FROM class_applications
            WHERE application_number IS NOT NULL
        ) issued
        GROUP BY day
        """
    )


def downgrade() -> None:
    """Drop the counter table."""
    op.drop_table("application_number_counters")
