"""Catalog domain schemas - Pydantic models for services"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ServiceCreate(BaseModel):
    """Schema for creating a catalog service"""

    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Decimal = Field(..., ge=0, le=Decimal("999999.99"), decimal_places=2)
    duration: int = Field(60, ge=15, le=480)
    isActive: bool = True

    @field_validator("name", "description")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if v else v


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Optional[Decimal] = Field(None, ge=0, le=Decimal("999999.99"), decimal_places=2)
    duration: Optional[int] = Field(None, ge=15, le=480)
    isActive: Optional[bool] = None

    @field_validator("name", "description")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if v else v


class ServiceResponse(BaseModel):
    """Schema for service response"""

    id: str
    name: str
    description: Optional[str] = None
    price: float
    duration: int
    isActive: bool
    createdAt: Optional[datetime] = None


def service_to_response(service) -> ServiceResponse:
    return ServiceResponse(
        id=service.id,
        name=service.name,
        description=service.description,
        price=service.price,
        duration=service.duration,
        isActive=service.is_active,
        createdAt=service.created_at,
    )
