"""User model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
    func,
)

# Metadata shared by all tables
metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Identity (stored normalized: trimmed and lower-cased)
    Column("email", String(254), nullable=False, unique=True, index=True),
    Column("password_hash", Text, nullable=False),
    # Profile
    Column("first_name", String(50), nullable=False),
    Column("last_name", String(50), nullable=False),
    Column("age", Integer, nullable=False),
    Column("role", String(20), nullable=False, default="patient", index=True),
    # Account state
    Column("is_active", Boolean, nullable=False, default=True),
    Column("is_verified", Boolean, nullable=False, default=False),
    # One-shot codes, each slot used once then cleared
    Column("verification_code", String(6), nullable=True),
    Column("verification_code_expires_at", DateTime(timezone=True), nullable=True),
    Column("recovery_code", String(6), nullable=True),
    Column("recovery_code_expires_at", DateTime(timezone=True), nullable=True),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint(
        "role IN ('patient', 'veterinarian', 'admin')",
        name="users_role_check",
    ),
)
