"""Public router - unauthenticated, rate limited booking endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import public_rate_limit
from ...shared.clock import Clock, get_clock
from ...shared.validators import parse_query_date
from ..scheduling.schemas import TimeSlot
from .schemas import (
    PublicBookRequest,
    PublicBookResponse,
    PublicBusinessResponse,
    PublicServiceResponse,
    public_business,
)
from .service import PublicService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["Public"], dependencies=[Depends(public_rate_limit)])


def get_public_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> PublicService:
    return PublicService(db, clock)


@router.get("/{slug}", response_model=PublicBusinessResponse)
async def get_public_business(
    slug: str, service: PublicService = Depends(get_public_service)
):
    return public_business(service.get_business(slug))


@router.get("/{slug}/services", response_model=list[PublicServiceResponse])
async def get_public_services(
    slug: str, service: PublicService = Depends(get_public_service)
):
    """Active services ordered by name"""
    return [
        PublicServiceResponse(
            id=s.id, name=s.name, description=s.description, price=s.price, duration=s.duration
        )
        for s in service.get_services(slug)
    ]


@router.get("/{slug}/slots", response_model=list[TimeSlot])
async def get_public_slots(
    slug: str,
    date: str = Query(...),
    serviceId: Optional[str] = Query(None),
    duration: Optional[int] = Query(None, ge=15, le=480),
    service: PublicService = Depends(get_public_service),
):
    return service.get_available_slots(slug, parse_query_date(date), serviceId, duration)


@router.post("/{slug}/book", response_model=PublicBookResponse, status_code=201)
async def book_appointment(
    slug: str,
    data: PublicBookRequest,
    service: PublicService = Depends(get_public_service),
):
    """Book an appointment without an account"""
    return service.book(slug, data)
