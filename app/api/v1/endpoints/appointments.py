"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from app.dependencies import AppointmentServiceDep, CurrentPrincipal
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListData,
    AppointmentPriority,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentType,
    ClinicalNotesUpdate,
    SortOrder,
)
from app.schemas.availability import DayAvailability
from app.schemas.common import ApiResponse
from app.schemas.statistics import AppointmentStatistics, StatisticsPeriod

router = APIRouter()


@router.post(
    "/",
    response_model=ApiResponse[AppointmentResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    principal: CurrentPrincipal,
    service: AppointmentServiceDep,
) -> ApiResponse[AppointmentResponse]:
    """
    Book a new appointment.

    Patients book for themselves; doctors and admins must pass ``patientId``.

    Args:
        data: Appointment creation data
        principal: Authenticated caller
        service: Appointment service

    Returns:
        Created appointment
    """
    appointment = await service.create_appointment(principal, data)
    return ApiResponse(
        status_code=status.HTTP_201_CREATED,
        data=appointment,
        message="Appointment created successfully",
    )


@router.get(
    "/",
    response_model=ApiResponse[AppointmentListData],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    principal: CurrentPrincipal,
    service: AppointmentServiceDep,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    type_filter: AppointmentType | None = Query(None, alias="type"),
    priority: AppointmentPriority | None = Query(None),
    doctor_id: UUID | None = Query(None, alias="doctorId"),
    patient_id: UUID | None = Query(None, alias="patientId"),
    date_from: date | None = Query(None, alias="dateFrom"),
    date_to: date | None = Query(None, alias="dateTo"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_order: SortOrder = Query(SortOrder.ASC, alias="sortOrder"),
) -> ApiResponse[AppointmentListData]:
    """
    List the caller's appointments with filtering.

    Args:
        principal: Authenticated caller
        service: Appointment service
        status_filter: Filter by status
        type_filter: Filter by appointment type
        priority: Filter by priority
        doctor_id: Filter by doctor ID
        patient_id: Filter by patient ID
        date_from: Earliest appointment date
        date_to: Latest appointment date
        page: Page number
        limit: Items per page
        sort_order: Sort by date and time ascending or descending

    Returns:
        Paginated list of appointments
    """
    try:
        filters = AppointmentFilters(
            status=status_filter,
            type=type_filter,
            priority=priority,
            doctor_id=doctor_id,
            patient_id=patient_id,
            date_from=date_from,
            date_to=date_to,
            page=page,
            limit=limit,
            sort_order=sort_order,
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e

    result = await service.list_appointments(principal, filters)
    return ApiResponse(data=result, message="Appointments retrieved successfully")


@router.get(
    "/availability/{doctor_id}",
    response_model=ApiResponse[DayAvailability],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Doctor availability for a date",
)
async def get_doctor_availability(
    doctor_id: UUID,
    principal: CurrentPrincipal,
    service: AppointmentServiceDep,
    day: date = Query(..., alias="date"),
) -> ApiResponse[DayAvailability]:
    """
    Get a doctor's 30-minute slots for one date.

    Args:
        doctor_id: Doctor ID
        principal: Authenticated caller
        service: Appointment service
        day: Date to inspect (YYYY-MM-DD)

    Returns:
        Slots with their status
    """
    availability = await service.get_availability(principal, doctor_id, day)
    return ApiResponse(data=availability, message="Availability retrieved successfully")


@router.get(
    "/statistics",
    response_model=ApiResponse[AppointmentStatistics],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Appointment statistics",
)
async def get_statistics(
    principal: CurrentPrincipal,
    service: AppointmentServiceDep,
    period: StatisticsPeriod = Query(StatisticsPeriod.MONTH),
) -> ApiResponse[AppointmentStatistics]:
    """Dashboard counters for the caller's appointments."""
    statistics = await service.get_statistics(principal, period)
    return ApiResponse(data=statistics, message="Statistics retrieved successfully")


@router.get(
    "/{appointment_id}",
    response_model=ApiResponse[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    principal: CurrentPrincipal,
    service: AppointmentServiceDep,
) -> ApiResponse[AppointmentResponse]:
    """
    Get a specific appointment by ID.

    Raises:
        NotFoundException: If appointment not found
        ForbiddenException: If the caller is not a participant
    """
    appointment = await service.get_appointment(principal, appointment_id)
    return ApiResponse(data=appointment, message="Appointment retrieved successfully")


@router.patch(
    "/{appointment_id}/status",
    response_model=ApiResponse[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    principal: CurrentPrincipal,
    service: AppointmentServiceDep,
) -> ApiResponse[AppointmentResponse]:
    """
    Confirm, cancel, complete or mark an appointment as a no-show.

    Args:
        appointment_id: Appointment ID
        data: Target status with optional cancellation reason and notes
        principal: Authenticated caller
        service: Appointment service

    Returns:
        Updated appointment
    """
    appointment = await service.update_status(principal, appointment_id, data)
    return ApiResponse(data=appointment, message="Appointment status updated successfully")


@router.patch(
    "/{appointment_id}/reschedule",
    response_model=ApiResponse[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: AppointmentReschedule,
    principal: CurrentPrincipal,
    service: AppointmentServiceDep,
) -> ApiResponse[AppointmentResponse]:
    """
    Move an appointment to a new date and time.

    Args:
        appointment_id: Appointment ID
        data: New slot and optional reason
        principal: Authenticated caller
        service: Appointment service

    Returns:
        Rescheduled appointment
    """
    appointment = await service.reschedule(principal, appointment_id, data)
    return ApiResponse(data=appointment, message="Appointment rescheduled successfully")


@router.patch(
    "/{appointment_id}/notes",
    response_model=ApiResponse[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Add clinical notes",
)
async def add_clinical_notes(
    appointment_id: UUID,
    data: ClinicalNotesUpdate,
    principal: CurrentPrincipal,
    service: AppointmentServiceDep,
) -> ApiResponse[AppointmentResponse]:
    """Record the treating doctor's clinical notes and follow-up plan."""
    appointment = await service.add_clinical_notes(principal, appointment_id, data)
    return ApiResponse(data=appointment, message="Clinical notes added successfully")
