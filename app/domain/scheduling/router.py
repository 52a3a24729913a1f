"""Scheduling router - FastAPI endpoints for appointments and availability"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_business
from ...database import get_db
from ...models import AppointmentStatus, Business
from ...shared.clock import Clock, get_clock
from ...shared.pagination import MAX_PAGE_LIMIT
from ...shared.validators import parse_query_date
from .availability_service import AvailabilityService
from .schemas import (
    AppointmentCreate,
    AppointmentListQuery,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    TimeSlot,
    appointment_to_response,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db, clock)


def get_availability_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> AvailabilityService:
    return AvailabilityService(db, clock)


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    date: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    status: Optional[AppointmentStatus] = Query(None),
    customerId: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_PAGE_LIMIT),
    business: Business = Depends(get_current_business),
    service: AppointmentService = Depends(get_appointment_service),
):
    """List appointments ordered by date and start time"""
    query = AppointmentListQuery(
        date=date,
        startDate=startDate,
        endDate=endDate,
        status=status,
        customerId=customerId,
        page=page,
        limit=limit,
    )
    rows, pagination = service.list_appointments(business, query)
    return {"data": [appointment_to_response(a) for a in rows], "pagination": pagination}


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    business: Business = Depends(get_current_business),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book an appointment"""
    return appointment_to_response(service.create_appointment(data, business))


@router.get("/available-slots", response_model=list[TimeSlot])
async def get_available_slots(
    date: str = Query(...),
    serviceId: Optional[str] = Query(None),
    duration: Optional[int] = Query(None, ge=15, le=480),
    business: Business = Depends(get_current_business),
    availability: AvailabilityService = Depends(get_availability_service),
):
    """Slot grid for a day with availability flags"""
    return availability.get_available_slots(business, parse_query_date(date), serviceId, duration)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: str,
    business: Business = Depends(get_current_business),
    service: AppointmentService = Depends(get_appointment_service),
):
    return appointment_to_response(service.get_appointment(appointment_id, business))


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    business: Business = Depends(get_current_business),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Update an appointment"""
    return appointment_to_response(service.update_appointment(appointment_id, data, business))


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: str,
    data: AppointmentStatusUpdate,
    business: Business = Depends(get_current_business),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Advance the appointment lifecycle"""
    return appointment_to_response(service.update_status(appointment_id, data.status, business))


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: str,
    business: Business = Depends(get_current_business),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Delete an appointment"""
    service.delete_appointment(appointment_id, business)
    return {"message": "Appointment deleted"}
