"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import AppointmentStatus, VehicleType
from ...shared.pagination import MAX_PAGE_LIMIT, PaginationMeta
from ...shared.validators import parse_date, validate_date, validate_time


def _optional_date(v):
    if v:
        return validate_date(v)
    return v


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment"""

    customerId: str
    serviceId: str
    date: str
    startTime: str
    vehicleId: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        return validate_date(v)

    @field_validator("startTime")
    @classmethod
    def check_start_time(cls, v):
        return validate_time(v)

    @property
    def parsed_date(self) -> date:
        return parse_date(self.date)


class AppointmentUpdate(BaseModel):
    """Partial update; explicit null clears vehicleId / notes"""

    customerId: Optional[str] = None
    serviceId: Optional[str] = None
    date: Optional[str] = None
    startTime: Optional[str] = None
    vehicleId: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        return _optional_date(v)

    @field_validator("startTime")
    @classmethod
    def check_start_time(cls, v):
        if v:
            return validate_time(v)
        return v

    @property
    def parsed_date(self):
        return parse_date(self.date) if self.date else None


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentListQuery(BaseModel):
    date: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    customerId: Optional[str] = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=MAX_PAGE_LIMIT)

    @field_validator("date", "startDate", "endDate")
    @classmethod
    def check_dates(cls, v):
        return _optional_date(v)

    @property
    def parsed_date(self):
        return parse_date(self.date) if self.date else None

    @property
    def parsed_start_date(self):
        return parse_date(self.startDate) if self.startDate else None

    @property
    def parsed_end_date(self):
        return parse_date(self.endDate) if self.endDate else None


class CustomerSummary(BaseModel):
    id: str
    name: str
    phone: str


class ServiceSummary(BaseModel):
    id: str
    name: str
    price: float
    duration: int


class VehicleSummary(BaseModel):
    id: str
    brand: str
    model: str
    color: str
    plate: Optional[str] = None
    year: Optional[int] = None
    type: VehicleType


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: str
    businessId: str
    customerId: str
    serviceId: str
    vehicleId: Optional[str] = None
    date: str
    startTime: str
    endTime: str
    status: AppointmentStatus
    isFromPublic: bool
    notes: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    customer: Optional[CustomerSummary] = None
    service: Optional[ServiceSummary] = None
    vehicle: Optional[VehicleSummary] = None


class AppointmentListResponse(BaseModel):
    data: list[AppointmentResponse]
    pagination: PaginationMeta


class TimeSlot(BaseModel):
    time: str
    available: bool


def appointment_to_response(appointment) -> AppointmentResponse:
    """Map an Appointment row (with loaded relations) to its API shape"""
    customer = appointment.customer
    service = appointment.service
    vehicle = appointment.vehicle
    return AppointmentResponse(
        id=appointment.id,
        businessId=appointment.business_id,
        customerId=appointment.customer_id,
        serviceId=appointment.service_id,
        vehicleId=appointment.vehicle_id,
        date=appointment.date.isoformat(),
        startTime=appointment.start_time,
        endTime=appointment.end_time,
        status=appointment.status,
        isFromPublic=appointment.is_from_public,
        notes=appointment.notes,
        createdAt=appointment.created_at,
        updatedAt=appointment.updated_at,
        customer=CustomerSummary(id=customer.id, name=customer.name, phone=customer.phone)
        if customer
        else None,
        service=ServiceSummary(
            id=service.id, name=service.name, price=service.price, duration=service.duration
        )
        if service
        else None,
        vehicle=VehicleSummary(
            id=vehicle.id,
            brand=vehicle.brand,
            model=vehicle.model,
            color=vehicle.color,
            plate=vehicle.plate,
            year=vehicle.year,
            type=vehicle.type,
        )
        if vehicle
        else None,
    )
