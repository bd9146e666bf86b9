"""Appointment service for business logic."""

import datetime as dt
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, ConflictException, NotFoundException
from app.core.permissions import Principal, Role
from app.models.appointments import appointments
from app.models.users import users
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentUpdate,
    ClinicalRecord,
    ClinicalRecordUpdate,
    VeterinarianSummary,
)

# Statuses reachable from each status; completed appointments stay completed.
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(AppointmentStatus),
    AppointmentStatus.CONFIRMED: frozenset(AppointmentStatus),
    AppointmentStatus.CANCELLED: frozenset(AppointmentStatus),
    AppointmentStatus.COMPLETED: frozenset({AppointmentStatus.COMPLETED}),
}


def can_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    """Whether an appointment in ``current`` may move to ``new``."""
    return new in ALLOWED_TRANSITIONS[current]


def reopens(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    """Whether the change takes a cancelled appointment's slot back."""
    cancelled = AppointmentStatus.CANCELLED
    return current == cancelled and new != cancelled


class AppointmentService:
    """Service for managing appointments."""

    def __init__(self, db: AsyncSession, logger: structlog.stdlib.BoundLogger | None = None):
        """Initialize service with database session."""
        self.db = db
        self.logger = logger or structlog.get_logger(__name__)

    async def _get_row(self, appointment_id: UUID) -> dict:
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Appointment not found")
        return dict(row)

    async def _update_row(self, appointment_id: UUID, **values: Any) -> dict:
        values["updated_at"] = datetime.now(UTC)
        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**values)
            .returning(appointments)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Appointment not found")
        return dict(row)

    async def _veterinarian_summaries(self, vet_ids: set[UUID]) -> dict[UUID, VeterinarianSummary]:
        if not vet_ids:
            return {}
        stmt = select(users.c.id, users.c.first_name, users.c.last_name).where(
            users.c.id.in_(list(vet_ids))
        )
        result = await self.db.execute(stmt)
        return {row["id"]: VeterinarianSummary(**row) for row in result.mappings().all()}

    async def _to_responses(self, rows: list[dict]) -> list[AppointmentResponse]:
        vet_ids = {row["veterinarian_id"] for row in rows if row["veterinarian_id"]}
        summaries = await self._veterinarian_summaries(vet_ids)
        return [
            AppointmentResponse.model_validate(
                {**row, "veterinarian": summaries.get(row["veterinarian_id"])}
            )
            for row in rows
        ]

    async def _to_response(self, row: dict) -> AppointmentResponse:
        return (await self._to_responses([row]))[0]

    async def _list(self, *conditions: Any, order_by: tuple[Any, ...]) -> list[AppointmentResponse]:
        stmt = select(appointments)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        result = await self.db.execute(stmt.order_by(*order_by))
        return await self._to_responses([dict(row) for row in result.mappings().all()])

    async def _require_veterinarian(self, vet_id: UUID) -> dict:
        result = await self.db.execute(select(users).where(users.c.id == vet_id))
        vet = result.mappings().first()
        if not vet or vet["role"] != Role.VETERINARIAN.value:
            raise NotFoundException("Veterinarian not found")
        if not vet["is_active"]:
            raise BadRequestException("The veterinarian's account is deactivated")
        return dict(vet)

    async def check_availability(
        self,
        date: dt.date,
        time_slot: str,
        exclude_id: UUID | None = None,
    ) -> bool:
        """
        Check whether a slot is free.

        A slot is taken only by a non-cancelled appointment at the exact
        same date and time.

        Args:
            date: Appointment date
            time_slot: ``HH:MM`` start time
            exclude_id: Appointment to ignore (the one being moved)

        Returns:
            True if the slot is free
        """
        conditions = [
            appointments.c.date == date,
            appointments.c.time_slot == time_slot,
            appointments.c.status != AppointmentStatus.CANCELLED.value,
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        result = await self.db.execute(select(appointments.c.id).where(and_(*conditions)).limit(1))
        return result.first() is None

    async def _require_free_slot(
        self,
        date: dt.date,
        time_slot: str,
        exclude_id: UUID | None = None,
    ) -> None:
        if not await self.check_availability(date, time_slot, exclude_id=exclude_id):
            raise ConflictException(
                "The selected time slot is no longer available", field="time_slot"
            )

    @staticmethod
    def _check_transition(current: AppointmentStatus, new_status: AppointmentStatus) -> None:
        if not can_transition(current, new_status):
            raise BadRequestException(
                f"Cannot change status from {current.value} to {new_status.value}",
                field="status",
            )

    async def create_appointment(
        self,
        data: AppointmentCreate,
        principal: Principal,
    ) -> AppointmentResponse:
        """
        Book a new appointment.

        Args:
            data: Appointment creation data
            principal: Account making the booking

        Returns:
            Created appointment

        Raises:
            ConflictException: If the slot is already taken
        """
        await self._require_free_slot(data.date, data.time_slot)

        now = datetime.now(UTC)
        values = {
            **data.model_dump(mode="json", exclude={"date"}),
            "date": data.date,
            "patient_email": data.patient_email.lower(),
            "patient_id": principal.id if principal.role == Role.PATIENT else None,
            "status": AppointmentStatus.PENDING.value,
            "clinical_records": [],
            "has_clinical_record": False,
            "reviewed": False,
            "created_at": now,
            "updated_at": now,
        }

        stmt = insert(appointments).values(**values).returning(appointments)
        result = await self.db.execute(stmt)
        await self.db.commit()

        row = dict(result.mappings().first())  # type: ignore[arg-type]
        self.logger.info(
            "appointment_created",
            appointment_id=str(row["id"]),
            date=str(data.date),
            time_slot=data.time_slot,
        )
        return await self._to_response(row)

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        return await self._to_response(await self._get_row(appointment_id))

    async def list_all(self) -> list[AppointmentResponse]:
        """All appointments, earliest slot first."""
        return await self._list(
            order_by=(appointments.c.date.asc(), appointments.c.time_slot.asc()),
        )

    async def list_for_patient(self, patient_id: UUID) -> list[AppointmentResponse]:
        """Appointments booked by one account, latest date first."""
        return await self._list(
            appointments.c.patient_id == patient_id,
            order_by=(appointments.c.date.desc(), appointments.c.time_slot.desc()),
        )

    async def list_for_veterinarian(self, vet_id: UUID) -> list[AppointmentResponse]:
        """Appointments assigned to one veterinarian, earliest slot first."""
        return await self._list(
            appointments.c.veterinarian_id == vet_id,
            order_by=(appointments.c.date.asc(), appointments.c.time_slot.asc()),
        )

    async def list_active(self, vet_id: UUID) -> list[AppointmentResponse]:
        """Unreviewed appointments assigned to the veterinarian or to nobody."""
        return await self._list(
            appointments.c.reviewed.is_(False),
            (appointments.c.veterinarian_id == vet_id) | appointments.c.veterinarian_id.is_(None),
            order_by=(appointments.c.date.asc(), appointments.c.time_slot.asc()),
        )

    async def list_history(self, vet_id: UUID) -> list[AppointmentResponse]:
        """Reviewed appointments of one veterinarian, most recently updated first."""
        return await self._list(
            appointments.c.reviewed.is_(True),
            appointments.c.veterinarian_id == vet_id,
            order_by=(appointments.c.updated_at.desc(),),
        )

    async def update_status(
        self,
        appointment_id: UUID,
        new_status: AppointmentStatus,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new status.

        A cancelled appointment only comes back if its slot is still free.

        Raises:
            NotFoundException: If appointment not found
            BadRequestException: If the transition is not allowed
            ConflictException: If reopening and the slot was booked meanwhile
        """
        row = await self._get_row(appointment_id)
        current = AppointmentStatus(row["status"])
        self._check_transition(current, new_status)
        if reopens(current, new_status):
            await self._require_free_slot(row["date"], row["time_slot"], exclude_id=appointment_id)

        row = await self._update_row(appointment_id, status=new_status.value)
        self.logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment_id),
            old_status=current.value,
            new_status=new_status.value,
        )
        return await self._to_response(row)

    async def assign_veterinarian(self, appointment_id: UUID, vet_id: UUID) -> AppointmentResponse:
        """
        Attach a veterinarian to an appointment.

        Raises:
            NotFoundException: If the appointment or veterinarian does not exist
            BadRequestException: If the veterinarian is deactivated
        """
        await self._get_row(appointment_id)
        await self._require_veterinarian(vet_id)

        row = await self._update_row(appointment_id, veterinarian_id=vet_id)
        self.logger.info(
            "veterinarian_assigned",
            appointment_id=str(appointment_id),
            veterinarian_id=str(vet_id),
        )
        return await self._to_response(row)

    async def update_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentUpdate,
    ) -> AppointmentResponse:
        """
        Update an existing appointment.

        Only the fields present in ``data`` change.

        Raises:
            NotFoundException: If the appointment or a new veterinarian does not exist
            ConflictException: If the new slot is taken
            BadRequestException: If a status change is not allowed
        """
        row = await self._get_row(appointment_id)
        update_values: dict[str, Any] = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None
        }

        current = AppointmentStatus(row["status"])
        new_status = update_values.get("status", current)
        if "status" in update_values:
            self._check_transition(current, new_status)

        moved = "date" in update_values or "time_slot" in update_values
        if moved or reopens(current, new_status):
            await self._require_free_slot(
                update_values.get("date", row["date"]),
                update_values.get("time_slot", row["time_slot"]),
                exclude_id=appointment_id,
            )

        if "veterinarian_id" in update_values:
            await self._require_veterinarian(update_values["veterinarian_id"])

        if "patient_email" in update_values:
            update_values["patient_email"] = update_values["patient_email"].lower()

        for field, value in update_values.items():
            if isinstance(value, Enum):
                update_values[field] = value.value

        if not update_values:
            return await self._to_response(row)

        row = await self._update_row(appointment_id, **update_values)
        self.logger.info(
            "appointment_updated",
            appointment_id=str(appointment_id),
            fields=sorted(update_values),
        )
        return await self._to_response(row)

    async def delete_appointment(self, appointment_id: UUID) -> None:
        """
        Delete an appointment permanently.

        Raises:
            NotFoundException: If appointment not found
        """
        stmt = delete(appointments).where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        await self.db.commit()
        if not result.rowcount:  # type: ignore[attr-defined]
            raise NotFoundException("Appointment not found")
        self.logger.info("appointment_deleted", appointment_id=str(appointment_id))

    async def save_clinical_record(
        self,
        appointment_id: UUID,
        record: ClinicalRecord,
    ) -> AppointmentResponse:
        """
        Append a consultation to the appointment's clinical history.

        The record's diagnosis and treatment, when given, are copied onto
        the appointment.

        Raises:
            NotFoundException: If appointment not found
        """
        row = await self._get_row(appointment_id)
        entry = record.model_dump(mode="json")
        if entry["consultation_date"] is None:
            entry["consultation_date"] = datetime.now(UTC).isoformat()

        records = [*(row["clinical_records"] or []), entry]
        row = await self._update_row(
            appointment_id,
            clinical_records=records,
            has_clinical_record=True,
            diagnosis=record.diagnosis or row["diagnosis"],
            treatment=record.treatment or row["treatment"],
        )
        self.logger.info(
            "clinical_record_saved",
            appointment_id=str(appointment_id),
            records=len(records),
        )
        return await self._to_response(row)

    async def update_clinical_record(
        self,
        appointment_id: UUID,
        record: ClinicalRecordUpdate,
    ) -> AppointmentResponse:
        """
        Merge changes into one clinical record, the latest by default.

        Raises:
            NotFoundException: If appointment not found
            BadRequestException: If there is no record at that position
        """
        row = await self._get_row(appointment_id)
        records = list(row["clinical_records"] or [])
        if not records:
            raise BadRequestException("This appointment has no clinical record to update")

        index = len(records) - 1 if record.index is None else record.index
        if index >= len(records):
            raise BadRequestException(f"No clinical record at position {index}", field="index")

        changes = record.model_dump(mode="json", exclude_unset=True, exclude={"index"})
        records[index] = {**records[index], **changes}
        latest = records[-1]

        row = await self._update_row(
            appointment_id,
            clinical_records=records,
            has_clinical_record=True,
            diagnosis=latest.get("diagnosis") or row["diagnosis"],
            treatment=latest.get("treatment") or row["treatment"],
        )
        self.logger.info(
            "clinical_record_updated",
            appointment_id=str(appointment_id),
            index=index,
        )
        return await self._to_response(row)

    async def mark_reviewed(self, appointment_id: UUID, vet_id: UUID) -> AppointmentResponse:
        """
        Close an attended appointment and move it to the veterinarian's history.

        Raises:
            NotFoundException: If appointment not found
            BadRequestException: If no clinical record has been saved
            ConflictException: If a cancelled appointment's slot was booked meanwhile
        """
        row = await self._get_row(appointment_id)
        if not row["has_clinical_record"]:
            raise BadRequestException(
                "A clinical record must be saved before the appointment is marked as reviewed"
            )
        if reopens(AppointmentStatus(row["status"]), AppointmentStatus.COMPLETED):
            await self._require_free_slot(row["date"], row["time_slot"], exclude_id=appointment_id)

        row = await self._update_row(
            appointment_id,
            reviewed=True,
            status=AppointmentStatus.COMPLETED.value,
            veterinarian_id=row["veterinarian_id"] or vet_id,
        )
        self.logger.info(
            "appointment_reviewed",
            appointment_id=str(appointment_id),
            veterinarian_id=str(row["veterinarian_id"]),
        )
        return await self._to_response(row)
