"""Dashboard router - FastAPI endpoints for owner dashboard counters"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_business
from ...database import get_db
from ...models import Business
from ...shared.clock import Clock, get_clock
from .schemas import DashboardAppointment, DashboardStatsResponse, dashboard_appointment
from .service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


def get_dashboard_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> DashboardService:
    return DashboardService(db, clock)


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(
    business: Business = Depends(get_current_business),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Today, week and month counters"""
    return service.get_stats(business)


@router.get("/today", response_model=list[DashboardAppointment])
async def get_today_appointments(
    business: Business = Depends(get_current_business),
    service: DashboardService = Depends(get_dashboard_service),
):
    return [dashboard_appointment(a) for a in service.get_today_appointments(business)]


@router.get("/upcoming", response_model=list[DashboardAppointment])
async def get_upcoming_appointments(
    limit: int = Query(10, ge=1, le=50),
    business: Business = Depends(get_current_business),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Open appointments in the next 7 days"""
    return [dashboard_appointment(a) for a in service.get_upcoming_appointments(business, limit)]
