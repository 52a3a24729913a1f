"""Business domain schemas - Pydantic models for onboarding and settings"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...config import DEFAULT_CLOSE_TIME, DEFAULT_OPEN_TIME, DEFAULT_SLOT_DURATION
from ...models import DEFAULT_WORKING_DAYS, DayOfWeek
from ...shared.validators import normalize_phone, validate_time


class BusinessCreate(BaseModel):
    """Schema for onboarding a business"""

    name: str = Field(..., min_length=2, max_length=100)
    phone: Optional[str] = None
    address: Optional[str] = Field(None, max_length=200)
    workingDays: list[DayOfWeek] = Field(
        default_factory=lambda: [DayOfWeek(d) for d in DEFAULT_WORKING_DAYS], min_length=1
    )
    openTime: str = DEFAULT_OPEN_TIME
    closeTime: str = DEFAULT_CLOSE_TIME
    slotDuration: int = Field(DEFAULT_SLOT_DURATION, ge=15, le=480)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return normalize_phone(v)
        return None

    @field_validator("openTime", "closeTime")
    @classmethod
    def check_time(cls, v):
        return validate_time(v)


class BusinessUpdate(BaseModel):
    """Partial settings update; explicit null clears phone, address and imageUrl"""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = None
    address: Optional[str] = Field(None, max_length=200)
    imageUrl: Optional[str] = Field(None, max_length=500)
    workingDays: Optional[list[DayOfWeek]] = Field(None, min_length=1)
    openTime: Optional[str] = None
    closeTime: Optional[str] = None
    slotDuration: Optional[int] = Field(None, ge=15, le=480)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return normalize_phone(v)
        return None

    @field_validator("openTime", "closeTime")
    @classmethod
    def check_time(cls, v):
        if v:
            return validate_time(v)
        return v


class BusinessResponse(BaseModel):
    """Schema for the owner's view of a business"""

    id: str
    ownerId: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    slug: str
    imageUrl: Optional[str] = None
    workingDays: list[DayOfWeek]
    openTime: str
    closeTime: str
    slotDuration: int
    isOnboarded: bool
    createdAt: Optional[datetime] = None


class SlugAvailabilityResponse(BaseModel):
    slug: str
    available: bool


def business_to_response(business) -> BusinessResponse:
    return BusinessResponse(
        id=business.id,
        ownerId=business.owner_id,
        name=business.name,
        phone=business.phone,
        address=business.address,
        slug=business.slug,
        imageUrl=business.image_url,
        workingDays=business.working_days or [],
        openTime=business.open_time,
        closeTime=business.close_time,
        slotDuration=business.slot_duration,
        isOnboarded=business.is_onboarded,
        createdAt=business.created_at,
    )
