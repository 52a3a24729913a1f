"""Customer domain schemas - Pydantic models for customers and vehicles"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import AppointmentStatus, VehicleType
from ...shared.pagination import MAX_PAGE_LIMIT, PaginationMeta
from ...shared.validators import normalize_phone


def _check_year(v):
    if v is not None and not 1900 <= v <= date.today().year + 1:
        raise ValueError("Invalid vehicle year")
    return v


class VehicleCreate(BaseModel):
    """Schema for adding a vehicle"""

    brand: str = Field(..., min_length=1, max_length=50)
    model: str = Field(..., min_length=1, max_length=50)
    color: str = Field(..., min_length=1, max_length=30)
    plate: Optional[str] = Field(None, max_length=10)
    year: Optional[int] = None
    type: VehicleType = VehicleType.SEDAN
    isDefault: bool = False

    @field_validator("brand", "model", "color")
    @classmethod
    def strip_text(cls, v):
        return v.strip()

    @field_validator("plate")
    @classmethod
    def normalize_plate(cls, v):
        return v.strip().upper() if v else None

    @field_validator("year")
    @classmethod
    def check_year(cls, v):
        return _check_year(v)


class VehicleUpdate(BaseModel):
    brand: Optional[str] = Field(None, min_length=1, max_length=50)
    model: Optional[str] = Field(None, min_length=1, max_length=50)
    color: Optional[str] = Field(None, min_length=1, max_length=30)
    plate: Optional[str] = Field(None, max_length=10)
    year: Optional[int] = None
    type: Optional[VehicleType] = None
    isDefault: Optional[bool] = None

    @field_validator("plate")
    @classmethod
    def normalize_plate(cls, v):
        return v.strip().upper() if v else None

    @field_validator("year")
    @classmethod
    def check_year(cls, v):
        return _check_year(v)


class CustomerCreate(BaseModel):
    """Schema for creating a customer, optionally with a first vehicle"""

    name: str = Field(..., min_length=2, max_length=100)
    phone: str
    notes: Optional[str] = Field(None, max_length=500)
    vehicle: Optional[VehicleCreate] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v)


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return normalize_phone(v)
        return v


class VehicleResponse(BaseModel):
    id: str
    brand: str
    model: str
    color: str
    plate: Optional[str] = None
    year: Optional[int] = None
    type: VehicleType
    isDefault: bool
    createdAt: Optional[datetime] = None


class CustomerResponse(BaseModel):
    """Schema for customer response"""

    id: str
    name: str
    phone: str
    notes: Optional[str] = None
    createdAt: Optional[datetime] = None
    vehicles: list[VehicleResponse] = []


class CustomerListResponse(BaseModel):
    data: list[CustomerResponse]
    pagination: PaginationMeta


class CustomerAppointmentResponse(BaseModel):
    id: str
    date: str
    startTime: str
    endTime: str
    status: AppointmentStatus
    serviceName: Optional[str] = None
    servicePrice: Optional[float] = None
    vehicle: Optional[VehicleResponse] = None


class CustomerSearchQuery(BaseModel):
    q: Optional[str] = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=MAX_PAGE_LIMIT)


def vehicle_to_response(vehicle) -> VehicleResponse:
    return VehicleResponse(
        id=vehicle.id,
        brand=vehicle.brand,
        model=vehicle.model,
        color=vehicle.color,
        plate=vehicle.plate,
        year=vehicle.year,
        type=vehicle.type,
        isDefault=vehicle.is_default,
        createdAt=vehicle.created_at,
    )


def customer_to_response(customer, vehicles=None) -> CustomerResponse:
    vehicles = customer.vehicles if vehicles is None else vehicles
    ordered = sorted(vehicles, key=lambda v: not v.is_default)
    return CustomerResponse(
        id=customer.id,
        name=customer.name,
        phone=customer.phone,
        notes=customer.notes,
        createdAt=customer.created_at,
        vehicles=[vehicle_to_response(v) for v in ordered],
    )


def history_to_response(appointment) -> CustomerAppointmentResponse:
    service = appointment.service
    return CustomerAppointmentResponse(
        id=appointment.id,
        date=appointment.date.isoformat(),
        startTime=appointment.start_time,
        endTime=appointment.end_time,
        status=appointment.status,
        serviceName=service.name if service else None,
        servicePrice=service.price if service else None,
        vehicle=vehicle_to_response(appointment.vehicle) if appointment.vehicle else None,
    )
