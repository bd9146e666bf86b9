"""Appointment schemas for request/response validation."""

import datetime as dt
import re
from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.schemas.common import Envelope
from app.schemas.users import validate_person_name

TIME_SLOT_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
DESCRIPTION_PATTERN = re.compile(r"^[A-Za-z0-9ÁÉÍÓÚáéíóúÑñÜü\s.,]+$")
PHONE_PATTERN = re.compile(r"^\d{10}$")


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PetSpecies(str, Enum):
    """Species the clinic attends."""

    DOG = "dog"
    CAT = "cat"
    RABBIT = "rabbit"
    HAMSTER = "hamster"
    BIRD = "bird"
    GUINEA_PIG = "guinea_pig"
    MOUSE = "mouse"


class PetSex(str, Enum):
    """Pet sex enumeration."""

    MALE = "male"
    FEMALE = "female"


def _validate_phone(v: str) -> str:
    if not PHONE_PATTERN.match(v):
        raise ValueError("must have exactly 10 digits")
    return v


def _validate_description(v: str) -> str:
    if not DESCRIPTION_PATTERN.match(v):
        raise ValueError("may only contain letters, digits, spaces, commas and periods")
    if not any(ch.isalpha() for ch in v):
        raise ValueError("must contain at least one letter")
    return v


class AppointmentBase(BaseModel):
    """Base appointment schema with common fields."""

    model_config = ConfigDict(str_strip_whitespace=True)

    patient_first_name: str
    patient_last_name: str
    patient_email: EmailStr
    patient_phone: str
    pet_name: str
    pet_age: int = Field(..., gt=0, le=20)
    pet_species: PetSpecies
    pet_sex: PetSex
    date: dt.date
    time_slot: str = Field(..., pattern=TIME_SLOT_PATTERN)
    description: str = Field(..., min_length=1, max_length=500)

    @field_validator("patient_first_name", "patient_last_name", "pet_name")
    @classmethod
    def validate_names(cls, v: str) -> str:
        """Validate name fields."""
        return validate_person_name(v)

    @field_validator("patient_phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        """Validate phone number format."""
        return _validate_phone(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        """Validate the free-text reason for the visit."""
        return _validate_description(v)


class AppointmentCreate(AppointmentBase):
    """Schema for booking a new appointment."""


class AppointmentUpdate(BaseModel):
    """Schema for updating an existing appointment."""

    model_config = ConfigDict(str_strip_whitespace=True)

    patient_first_name: str | None = None
    patient_last_name: str | None = None
    patient_email: EmailStr | None = None
    patient_phone: str | None = None
    pet_name: str | None = None
    pet_age: int | None = Field(None, gt=0, le=20)
    pet_species: PetSpecies | None = None
    pet_sex: PetSex | None = None
    date: dt.date | None = None
    time_slot: str | None = Field(None, pattern=TIME_SLOT_PATTERN)
    description: str | None = Field(None, min_length=1, max_length=500)
    status: AppointmentStatus | None = None
    veterinarian_id: UUID | None = None
    diagnosis: str | None = None
    treatment: str | None = None
    veterinarian_notes: str | None = None

    @field_validator("patient_first_name", "patient_last_name", "pet_name")
    @classmethod
    def validate_names(cls, v: str | None) -> str | None:
        """Validate name fields when present."""
        return validate_person_name(v) if v is not None else v

    @field_validator("patient_phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        """Validate phone number format when present."""
        return _validate_phone(v) if v is not None else v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        """Validate the description when present and non-empty."""
        return _validate_description(v) if v else v


class AvailabilityRequest(BaseModel):
    """Slot to check."""

    date: dt.date
    time_slot: str = Field(..., pattern=TIME_SLOT_PATTERN)


class AvailabilityResponse(Envelope):
    """Whether the slot is free."""

    available: bool


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus


class VeterinarianAssignment(BaseModel):
    """Veterinarian to attach to an appointment."""

    veterinarian_id: UUID


class ClinicalRecord(BaseModel):
    """One consultation entry in an appointment's clinical history."""

    consultation_date: datetime | None = None
    reason: str | None = None
    symptoms: str | None = None
    # Vital signs
    weight: float | None = Field(None, ge=0)
    temperature: float | None = Field(None, ge=0)
    heart_rate: float | None = Field(None, ge=0)
    respiratory_rate: float | None = Field(None, ge=0)
    # Clinical assessment
    body_condition: str | None = None
    diagnosis: str | None = None
    treatment: str | None = None
    procedures: str | None = None
    next_appointment: datetime | None = None
    # Vaccination
    vaccine_type: str | None = None
    vaccination_date: datetime | None = None
    next_dose: datetime | None = None
    # Notes
    observations: str | None = None
    recommendations: str | None = None


class ClinicalRecordUpdate(ClinicalRecord):
    """Patch for an existing record; ``index`` defaults to the latest one."""

    index: int | None = Field(None, ge=0)


class VeterinarianSummary(BaseModel):
    """Veterinarian reference resolved for display."""

    id: UUID
    first_name: str
    last_name: str


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID | None = None
    patient_first_name: str
    patient_last_name: str
    patient_email: str
    patient_phone: str
    pet_name: str
    pet_age: int
    pet_species: PetSpecies
    pet_sex: PetSex
    date: dt.date
    time_slot: str
    description: str
    status: AppointmentStatus
    veterinarian_id: UUID | None = None
    veterinarian: VeterinarianSummary | None = None
    diagnosis: str | None = None
    treatment: str | None = None
    veterinarian_notes: str | None = None
    clinical_records: list[ClinicalRecord] = Field(default_factory=list)
    has_clinical_record: bool = False
    reviewed: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AppointmentEnvelope(Envelope):
    """Single appointment response."""

    appointment: AppointmentResponse


class AppointmentListResponse(Envelope):
    """Appointment listing response."""

    appointments: list[AppointmentResponse]
    total: int
