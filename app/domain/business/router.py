"""Business router - FastAPI endpoints for onboarding and settings"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_business, get_current_owner_id
from ...database import get_db
from ...models import Business
from .schemas import (
    BusinessCreate,
    BusinessResponse,
    BusinessUpdate,
    SlugAvailabilityResponse,
    business_to_response,
)
from .service import BusinessService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/business", tags=["Business"])


def get_business_service(db: Session = Depends(get_db)) -> BusinessService:
    """Dependency injection for BusinessService"""
    return BusinessService(db)


@router.post("", response_model=BusinessResponse, status_code=201)
async def create_business(
    data: BusinessCreate,
    owner_id: str = Depends(get_current_owner_id),
    service: BusinessService = Depends(get_business_service),
):
    """Onboard the current owner's business"""
    return business_to_response(service.create_business(owner_id, data))


@router.get("", response_model=BusinessResponse)
async def get_business(
    owner_id: str = Depends(get_current_owner_id),
    service: BusinessService = Depends(get_business_service),
):
    """Get the current owner's business"""
    return business_to_response(service.get_by_owner(owner_id))


@router.patch("", response_model=BusinessResponse)
async def update_business(
    data: BusinessUpdate,
    business: Business = Depends(get_current_business),
    service: BusinessService = Depends(get_business_service),
):
    """Update business settings"""
    return business_to_response(service.update_business(business, data))


@router.get("/slug-available", response_model=SlugAvailabilityResponse)
async def check_slug_available(
    slug: str = Query(..., min_length=3, max_length=50, pattern=r"^[a-z0-9-]+$"),
    owner_id: str = Depends(get_current_owner_id),
    service: BusinessService = Depends(get_business_service),
):
    """Whether a slug is free (the owner's own slug counts as free)"""
    return {"slug": slug, "available": service.is_slug_available_for_owner(slug, owner_id)}
