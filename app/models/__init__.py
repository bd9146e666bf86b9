"""Database models."""

from app.models.appointments import appointments
from app.models.users import metadata, users

__all__ = [
    "appointments",
    "metadata",
    "users",
]
