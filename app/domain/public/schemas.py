"""Public booking schemas - what unauthenticated visitors send and see"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import DayOfWeek, VehicleType
from ...shared.validators import normalize_phone, validate_date, validate_time
from ..customers.schemas import VehicleCreate
from ..scheduling.schemas import AppointmentResponse


class PublicBusinessResponse(BaseModel):
    """Business profile without owner data"""

    id: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    slug: str
    imageUrl: Optional[str] = None
    workingDays: list[DayOfWeek]
    openTime: str
    closeTime: str
    slotDuration: int


class PublicServiceResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: float
    duration: int


class PublicBookRequest(BaseModel):
    """Schema for booking without an account"""

    customerName: str = Field(..., min_length=2, max_length=100)
    customerPhone: str
    serviceId: str
    date: str
    startTime: str
    notes: Optional[str] = Field(None, max_length=500)
    vehicle: Optional[VehicleCreate] = None

    @field_validator("customerName")
    @classmethod
    def strip_name(cls, v):
        return v.strip()

    @field_validator("customerPhone")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v)

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        return validate_date(v)

    @field_validator("startTime")
    @classmethod
    def check_start_time(cls, v):
        return validate_time(v)


class BookedCustomer(BaseModel):
    id: str
    name: str


class BookedVehicle(BaseModel):
    id: str
    brand: str
    model: str
    color: str
    type: VehicleType


class BookedBusiness(BaseModel):
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None


class PublicBookResponse(BaseModel):
    appointment: AppointmentResponse
    customer: BookedCustomer
    vehicle: Optional[BookedVehicle] = None
    business: BookedBusiness


def public_business(business) -> PublicBusinessResponse:
    return PublicBusinessResponse(
        id=business.id,
        name=business.name,
        phone=business.phone,
        address=business.address,
        slug=business.slug,
        imageUrl=business.image_url,
        workingDays=business.working_days or [],
        openTime=business.open_time,
        closeTime=business.close_time,
        slotDuration=business.slot_duration,
    )
