"""Roles and the capabilities granted to each of them."""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Account role enumeration."""

    PATIENT = "patient"
    VETERINARIAN = "veterinarian"
    ADMIN = "admin"


class Capability(str, Enum):
    """Actions guarded at the HTTP boundary."""

    BOOK_APPOINTMENT = "book_appointment"
    VIEW_ALL_APPOINTMENTS = "view_all_appointments"
    VIEW_VETERINARIAN_APPOINTMENTS = "view_veterinarian_appointments"
    UPDATE_APPOINTMENT_STATUS = "update_appointment_status"
    EDIT_APPOINTMENT = "edit_appointment"
    ASSIGN_VETERINARIAN = "assign_veterinarian"
    DELETE_APPOINTMENT = "delete_appointment"
    WRITE_CLINICAL_RECORD = "write_clinical_record"
    REVIEW_APPOINTMENT = "review_appointment"
    MANAGE_USERS = "manage_users"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.PATIENT: frozenset({Capability.BOOK_APPOINTMENT}),
    Role.VETERINARIAN: frozenset(
        {
            Capability.VIEW_ALL_APPOINTMENTS,
            Capability.VIEW_VETERINARIAN_APPOINTMENTS,
            Capability.UPDATE_APPOINTMENT_STATUS,
            Capability.EDIT_APPOINTMENT,
            Capability.WRITE_CLINICAL_RECORD,
            Capability.REVIEW_APPOINTMENT,
        }
    ),
    Role.ADMIN: frozenset(
        {
            Capability.BOOK_APPOINTMENT,
            Capability.VIEW_ALL_APPOINTMENTS,
            Capability.VIEW_VETERINARIAN_APPOINTMENTS,
            Capability.UPDATE_APPOINTMENT_STATUS,
            Capability.EDIT_APPOINTMENT,
            Capability.ASSIGN_VETERINARIAN,
            Capability.DELETE_APPOINTMENT,
            Capability.MANAGE_USERS,
        }
    ),
}


@dataclass(frozen=True)
class Principal:
    """Authenticated caller, rebuilt from access-token claims."""

    id: UUID
    email: str
    role: Role

    @property
    def capabilities(self) -> frozenset[Capability]:
        return ROLE_CAPABILITIES[self.role]

    def can(self, capability: Capability) -> bool:
        """Return True when the caller's role grants ``capability``."""
        return capability in self.capabilities
