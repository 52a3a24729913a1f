"""Billing router - FastAPI endpoints for invoices, payments and billing stats"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_business
from ...database import get_db
from ...models import Business, InvoiceStatus
from ...shared.clock import Clock, get_clock
from ...shared.pagination import MAX_PAGE_LIMIT
from .schemas import (
    BillingStatsQuery,
    BillingStatsResponse,
    InvoiceCreate,
    InvoiceFromAppointmentCreate,
    InvoiceIssue,
    InvoiceListQuery,
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceUpdate,
    PaymentCreate,
    RefreshOverdueResponse,
    invoice_to_response,
)
from .service import InvoiceService
from .stats_service import BillingStatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])


def get_invoice_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> InvoiceService:
    """Dependency injection for InvoiceService"""
    return InvoiceService(db, clock)


def get_stats_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> BillingStatsService:
    return BillingStatsService(db, clock)


# ============================================================================
# STATISTICS
# ============================================================================


@router.get("/stats", response_model=BillingStatsResponse)
async def get_billing_stats(
    period: Literal["week", "month", "year"] = Query("month"),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    business: Business = Depends(get_current_business),
    stats: BillingStatsService = Depends(get_stats_service),
):
    """Revenue, receivables and payment breakdowns"""
    query = BillingStatsQuery(period=period, startDate=startDate, endDate=endDate)
    return stats.get_stats(business, query)


# ============================================================================
# INVOICES
# ============================================================================


@router.get("/invoices", response_model=InvoiceListResponse)
async def list_invoices(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_LIMIT),
    status: Optional[InvoiceStatus] = Query(None),
    customerId: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    business: Business = Depends(get_current_business),
    service: InvoiceService = Depends(get_invoice_service),
):
    """List invoices, newest first"""
    query = InvoiceListQuery(
        page=page,
        limit=limit,
        status=status,
        customerId=customerId,
        startDate=startDate,
        endDate=endDate,
        search=search,
    )
    rows, pagination = service.list_invoices(business, query)
    return {"data": [invoice_to_response(i) for i in rows], "pagination": pagination}


@router.post("/invoices", response_model=InvoiceResponse, status_code=201)
async def create_invoice(
    data: InvoiceCreate,
    business: Business = Depends(get_current_business),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Create a manual invoice"""
    return invoice_to_response(service.create_invoice(data, business))


@router.post("/invoices/from-appointment", response_model=InvoiceResponse, status_code=201)
async def create_invoice_from_appointment(
    data: InvoiceFromAppointmentCreate,
    business: Business = Depends(get_current_business),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Invoice an appointment"""
    return invoice_to_response(service.create_from_appointment(data, business))


@router.post("/invoices/refresh-overdue", response_model=RefreshOverdueResponse)
async def refresh_overdue_invoices(
    business: Business = Depends(get_current_business),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Mark PENDING invoices past their due date as OVERDUE"""
    return {"updated": service.refresh_overdue(business)}


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: str,
    business: Business = Depends(get_current_business),
    service: InvoiceService = Depends(get_invoice_service),
):
    return invoice_to_response(service.get_invoice(invoice_id, business))


@router.patch("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: str,
    data: InvoiceUpdate,
    business: Business = Depends(get_current_business),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Edit a draft invoice"""
    return invoice_to_response(service.update_invoice(invoice_id, data, business))


@router.post("/invoices/{invoice_id}/issue", response_model=InvoiceResponse)
async def issue_invoice(
    invoice_id: str,
    data: Optional[InvoiceIssue] = Body(None),
    business: Business = Depends(get_current_business),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Issue a draft invoice"""
    return invoice_to_response(service.issue_invoice(invoice_id, data or InvoiceIssue(), business))


@router.post("/invoices/{invoice_id}/cancel", response_model=InvoiceResponse)
async def cancel_invoice(
    invoice_id: str,
    business: Business = Depends(get_current_business),
    service: InvoiceService = Depends(get_invoice_service),
):
    return invoice_to_response(service.cancel_invoice(invoice_id, business))


# ============================================================================
# PAYMENTS
# ============================================================================


@router.post("/invoices/{invoice_id}/payments", response_model=InvoiceResponse, status_code=201)
async def add_payment(
    invoice_id: str,
    data: PaymentCreate,
    business: Business = Depends(get_current_business),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Record a payment against an issued invoice"""
    return invoice_to_response(service.add_payment(invoice_id, data, business))


@router.delete("/invoices/{invoice_id}/payments/{payment_id}", response_model=InvoiceResponse)
async def remove_payment(
    invoice_id: str,
    payment_id: str,
    business: Business = Depends(get_current_business),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Remove a payment; the invoice status is recomputed"""
    return invoice_to_response(service.remove_payment(invoice_id, payment_id, business))
