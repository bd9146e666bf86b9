"""Appointment endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.core.exceptions import ForbiddenException
from app.core.permissions import Capability, Principal
from app.dependencies import CurrentPrincipal, DatabaseSession, require_capability
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentEnvelope,
    AppointmentListResponse,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    AvailabilityRequest,
    AvailabilityResponse,
    ClinicalRecord,
    ClinicalRecordUpdate,
    VeterinarianAssignment,
)
from app.schemas.common import MessageResponse
from app.services.appointment_service import AppointmentService

router = APIRouter()

Booker = Annotated[Principal, Depends(require_capability(Capability.BOOK_APPOINTMENT))]
AllViewer = Annotated[Principal, Depends(require_capability(Capability.VIEW_ALL_APPOINTMENTS))]
VetViewer = Annotated[
    Principal, Depends(require_capability(Capability.VIEW_VETERINARIAN_APPOINTMENTS))
]
StatusEditor = Annotated[
    Principal, Depends(require_capability(Capability.UPDATE_APPOINTMENT_STATUS))
]
Editor = Annotated[Principal, Depends(require_capability(Capability.EDIT_APPOINTMENT))]
Assigner = Annotated[Principal, Depends(require_capability(Capability.ASSIGN_VETERINARIAN))]
Deleter = Annotated[Principal, Depends(require_capability(Capability.DELETE_APPOINTMENT))]
RecordWriter = Annotated[Principal, Depends(require_capability(Capability.WRITE_CLINICAL_RECORD))]
Reviewer = Annotated[Principal, Depends(require_capability(Capability.REVIEW_APPOINTMENT))]


def _listing(appointments: list) -> AppointmentListResponse:
    return AppointmentListResponse(
        message="Appointments retrieved",
        appointments=appointments,
        total=len(appointments),
    )


@router.post(
    "/availability",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Check slot availability",
)
async def check_availability(
    request: AvailabilityRequest,
    db: DatabaseSession,
) -> AvailabilityResponse:
    """
    Check whether a date and time slot can still be booked.

    Args:
        request: Date and time slot
        db: Database session

    Returns:
        Availability flag
    """
    service = AppointmentService(db)
    available = await service.check_availability(request.date, request.time_slot)
    message = "The slot is available" if available else "The slot is already booked"
    return AvailabilityResponse(message=message, available=available)


@router.post(
    "",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    principal: Booker,
    db: DatabaseSession,
) -> AppointmentEnvelope:
    """
    Book an appointment for a pet.

    Args:
        data: Appointment details
        principal: Authenticated caller
        db: Database session

    Returns:
        Created appointment
    """
    service = AppointmentService(db)
    appointment = await service.create_appointment(data, principal)
    return AppointmentEnvelope(message="Appointment booked", appointment=appointment)


@router.get(
    "",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List all appointments",
)
async def list_appointments(
    principal: AllViewer,
    db: DatabaseSession,
) -> AppointmentListResponse:
    """List every appointment, earliest slot first."""
    service = AppointmentService(db)
    return _listing(await service.list_all())


@router.get(
    "/patient/{patient_id}",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List a patient's appointments",
)
async def list_patient_appointments(
    patient_id: UUID,
    principal: CurrentPrincipal,
    db: DatabaseSession,
) -> AppointmentListResponse:
    """
    List the appointments booked by one account.

    Patients may only list their own appointments.
    """
    if principal.id != patient_id and not principal.can(Capability.VIEW_ALL_APPOINTMENTS):
        raise ForbiddenException("You can only view your own appointments")

    service = AppointmentService(db)
    return _listing(await service.list_for_patient(patient_id))


@router.get(
    "/veterinarian/{vet_id}",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List a veterinarian's appointments",
)
async def list_veterinarian_appointments(
    vet_id: UUID,
    principal: VetViewer,
    db: DatabaseSession,
) -> AppointmentListResponse:
    """List the appointments assigned to one veterinarian."""
    service = AppointmentService(db)
    return _listing(await service.list_for_veterinarian(vet_id))


@router.get(
    "/veterinarian/{vet_id}/active",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List a veterinarian's pending work",
)
async def list_active_appointments(
    vet_id: UUID,
    principal: VetViewer,
    db: DatabaseSession,
) -> AppointmentListResponse:
    """List unreviewed appointments assigned to the veterinarian or unassigned."""
    service = AppointmentService(db)
    return _listing(await service.list_active(vet_id))


@router.get(
    "/veterinarian/{vet_id}/history",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List a veterinarian's reviewed appointments",
)
async def list_appointment_history(
    vet_id: UUID,
    principal: VetViewer,
    db: DatabaseSession,
) -> AppointmentListResponse:
    """List reviewed appointments, most recently updated first."""
    service = AppointmentService(db)
    return _listing(await service.list_history(vet_id))


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    principal: StatusEditor,
    db: DatabaseSession,
) -> AppointmentEnvelope:
    """
    Move an appointment to a new status.

    Args:
        appointment_id: Appointment ID
        data: New status
        principal: Authenticated caller
        db: Database session

    Returns:
        Updated appointment
    """
    service = AppointmentService(db)
    appointment = await service.update_status(appointment_id, data.status)
    return AppointmentEnvelope(message="Status updated", appointment=appointment)


@router.patch(
    "/{appointment_id}/veterinarian",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Assign a veterinarian",
)
async def assign_veterinarian(
    appointment_id: UUID,
    data: VeterinarianAssignment,
    principal: Assigner,
    db: DatabaseSession,
) -> AppointmentEnvelope:
    """Attach an active veterinarian to an appointment."""
    service = AppointmentService(db)
    appointment = await service.assign_veterinarian(appointment_id, data.veterinarian_id)
    return AppointmentEnvelope(message="Veterinarian assigned", appointment=appointment)


@router.post(
    "/{appointment_id}/clinical-records",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Add a clinical record",
)
async def save_clinical_record(
    appointment_id: UUID,
    record: ClinicalRecord,
    principal: RecordWriter,
    db: DatabaseSession,
) -> AppointmentEnvelope:
    """Append a consultation to the appointment's clinical history."""
    service = AppointmentService(db)
    appointment = await service.save_clinical_record(appointment_id, record)
    return AppointmentEnvelope(message="Clinical record saved", appointment=appointment)


@router.put(
    "/{appointment_id}/clinical-records",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update a clinical record",
)
async def update_clinical_record(
    appointment_id: UUID,
    record: ClinicalRecordUpdate,
    principal: RecordWriter,
    db: DatabaseSession,
) -> AppointmentEnvelope:
    """Merge changes into a clinical record; the latest one unless ``index`` is given."""
    service = AppointmentService(db)
    appointment = await service.update_clinical_record(appointment_id, record)
    return AppointmentEnvelope(message="Clinical record updated", appointment=appointment)


@router.patch(
    "/{appointment_id}/reviewed",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Mark an appointment as reviewed",
)
async def mark_reviewed(
    appointment_id: UUID,
    principal: Reviewer,
    db: DatabaseSession,
) -> AppointmentEnvelope:
    """Complete an attended appointment and move it to the caller's history."""
    service = AppointmentService(db)
    appointment = await service.mark_reviewed(appointment_id, principal.id)
    return AppointmentEnvelope(message="Appointment marked as reviewed", appointment=appointment)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    principal: Editor,
    db: DatabaseSession,
) -> AppointmentEnvelope:
    """
    Update the given fields of an appointment.

    Args:
        appointment_id: Appointment ID
        data: Fields to change
        principal: Authenticated caller
        db: Database session

    Returns:
        Updated appointment
    """
    service = AppointmentService(db)
    appointment = await service.update_appointment(appointment_id, data)
    return AppointmentEnvelope(message="Appointment updated", appointment=appointment)


@router.delete(
    "/{appointment_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    principal: Deleter,
    db: DatabaseSession,
) -> MessageResponse:
    """Delete an appointment permanently."""
    service = AppointmentService(db)
    await service.delete_appointment(appointment_id)
    return MessageResponse(message="Appointment deleted")
