"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Table,
    Text,
    Uuid,
    func,
)

from app.models.users import metadata

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Booking account, if the appointment was made while logged in
    Column("patient_id", Uuid, nullable=True, index=True),
    # Snapshot fields (copied at booking time, not a live reference)
    Column("patient_first_name", String(50), nullable=False),
    Column("patient_last_name", String(50), nullable=False),
    Column("patient_email", String(254), nullable=False),
    Column("patient_phone", String(20), nullable=False),
    # Pet
    Column("pet_name", String(50), nullable=False),
    Column("pet_age", Integer, nullable=False),
    Column("pet_species", String(20), nullable=False),
    Column("pet_sex", String(10), nullable=False),
    # Scheduling
    Column("date", Date, nullable=False),
    Column("time_slot", String(5), nullable=False),
    Column("description", Text, nullable=False),
    # Status management
    Column("status", String(20), nullable=False, default="pending"),
    # Veterinarian
    Column("veterinarian_id", Uuid, nullable=True, index=True),
    Column("diagnosis", Text, nullable=True),
    Column("treatment", Text, nullable=True),
    Column("veterinarian_notes", Text, nullable=True),
    # Clinical history, oldest first
    Column("clinical_records", JSON, nullable=False, default=list),
    Column("has_clinical_record", Boolean, nullable=False, default=False),
    Column("reviewed", Boolean, nullable=False, default=False),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
        name="appointments_status_check",
    ),
    Index("ix_appointments_slot", "date", "time_slot"),
)
