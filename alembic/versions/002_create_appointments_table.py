"""Create appointments table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 00:05:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create appointments table."""
    op.create_table(
        "appointments",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("patient_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("patient_first_name", sa.String(50), nullable=False),
        sa.Column("patient_last_name", sa.String(50), nullable=False),
        sa.Column("patient_email", sa.String(254), nullable=False),
        sa.Column("patient_phone", sa.String(20), nullable=False),
        sa.Column("pet_name", sa.String(50), nullable=False),
        sa.Column("pet_age", sa.Integer(), nullable=False),
        sa.Column("pet_species", sa.String(20), nullable=False),
        sa.Column("pet_sex", sa.String(10), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time_slot", sa.String(5), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("veterinarian_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("diagnosis", sa.Text(), nullable=True),
        sa.Column("treatment", sa.Text(), nullable=True),
        sa.Column("veterinarian_notes", sa.Text(), nullable=True),
        sa.Column(
            "clinical_records",
            sa.JSON(),
            nullable=False,
            server_default=sa.text("'[]'"),
        ),
        sa.Column(
            "has_clinical_record",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("reviewed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="appointments_status_check",
        ),
    )

    # Create indexes
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_veterinarian_id", "appointments", ["veterinarian_id"])
    op.create_index("ix_appointments_slot", "appointments", ["date", "time_slot"])


def downgrade() -> None:
    """Drop appointments table."""
    op.drop_index("ix_appointments_slot", table_name="appointments")
    op.drop_index("ix_appointments_veterinarian_id", table_name="appointments")
    op.drop_index("ix_appointments_patient_id", table_name="appointments")
    op.drop_table("appointments")
