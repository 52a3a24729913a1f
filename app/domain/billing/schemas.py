"""Billing domain schemas - Pydantic models for invoices, payments and stats"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...models import InvoiceStatus, PaymentMethod
from ...shared.pagination import MAX_PAGE_LIMIT, PaginationMeta
from ...shared.validators import parse_datetime, validate_date


def _check_datetime(v):
    if v:
        try:
            parse_datetime(v)
        except ValueError as e:
            raise ValueError("Must be an ISO date or datetime") from e
    return v


class InvoiceItemCreate(BaseModel):
    serviceId: Optional[str] = None
    description: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(1, gt=0)
    unitPrice: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class InvoiceCreate(BaseModel):
    """Schema for a manual invoice"""

    customerId: str = Field(..., min_length=1)
    appointmentId: Optional[str] = None
    items: list[InvoiceItemCreate] = Field(..., min_length=1)
    discount: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    dueDate: Optional[str] = None
    notes: Optional[str] = None
    autoIssue: bool = False

    @field_validator("dueDate")
    @classmethod
    def check_due_date(cls, v):
        return _check_datetime(v)


class InvoiceFromAppointmentCreate(BaseModel):
    """Schema for invoicing a booked appointment"""

    appointmentId: str = Field(..., min_length=1)
    discount: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    dueDate: Optional[str] = None
    notes: Optional[str] = None
    autoIssue: bool = True

    @field_validator("dueDate")
    @classmethod
    def check_due_date(cls, v):
        return _check_datetime(v)


class InvoiceUpdate(BaseModel):
    discount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    dueDate: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("dueDate")
    @classmethod
    def check_due_date(cls, v):
        return _check_datetime(v)


class InvoiceIssue(BaseModel):
    dueDate: Optional[str] = None

    @field_validator("dueDate")
    @classmethod
    def check_due_date(cls, v):
        return _check_datetime(v)


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    method: PaymentMethod
    paidAt: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("paidAt")
    @classmethod
    def check_paid_at(cls, v):
        return _check_datetime(v)


class InvoiceListQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=MAX_PAGE_LIMIT)
    status: Optional[InvoiceStatus] = None
    customerId: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    search: Optional[str] = None

    @field_validator("startDate", "endDate")
    @classmethod
    def check_dates(cls, v):
        return _check_datetime(v)


class BillingStatsQuery(BaseModel):
    period: Literal["week", "month", "year"] = "month"
    startDate: Optional[str] = None
    endDate: Optional[str] = None

    @field_validator("startDate", "endDate")
    @classmethod
    def check_dates(cls, v):
        if v:
            return validate_date(v)
        return v


# ============================================================================
# RESPONSES
# ============================================================================


class InvoiceCustomer(BaseModel):
    id: str
    name: str
    phone: str


class InvoiceAppointment(BaseModel):
    id: str
    date: str
    startTime: str


class InvoiceItemResponse(BaseModel):
    id: str
    serviceId: Optional[str] = None
    serviceName: Optional[str] = None
    description: str
    quantity: int
    unitPrice: float
    total: float


class PaymentResponse(BaseModel):
    id: str
    amount: float
    method: PaymentMethod
    paidAt: datetime
    notes: Optional[str] = None


class InvoiceResponse(BaseModel):
    """Schema for invoice response"""

    id: str
    number: str
    status: InvoiceStatus
    subtotal: float
    discount: float
    total: float
    paidAmount: float
    issuedAt: Optional[datetime] = None
    dueDate: Optional[datetime] = None
    paidAt: Optional[datetime] = None
    notes: Optional[str] = None
    createdAt: Optional[datetime] = None
    customer: Optional[InvoiceCustomer] = None
    appointment: Optional[InvoiceAppointment] = None
    items: list[InvoiceItemResponse] = []
    payments: list[PaymentResponse] = []


class InvoiceListResponse(BaseModel):
    data: list[InvoiceResponse]
    pagination: PaginationMeta


class RefreshOverdueResponse(BaseModel):
    updated: int


class InvoiceCountStats(BaseModel):
    total: int
    draft: int
    pending: int
    partial: int
    paid: int
    overdue: int
    cancelled: int


class RevenueByMethod(BaseModel):
    method: PaymentMethod
    total: float
    count: int


class RevenueByDay(BaseModel):
    date: str
    revenue: float
    count: int


class BillingStatsResponse(BaseModel):
    totalRevenue: float
    totalPending: float
    totalOverdue: float
    invoiceCount: InvoiceCountStats
    revenueByMethod: list[RevenueByMethod]
    revenueByDay: list[RevenueByDay]


def invoice_to_response(invoice) -> InvoiceResponse:
    """Map an Invoice row (with loaded relations) to its API shape"""
    customer = invoice.customer
    appointment = invoice.appointment
    return InvoiceResponse(
        id=invoice.id,
        number=invoice.number,
        status=invoice.status,
        subtotal=invoice.subtotal,
        discount=invoice.discount,
        total=invoice.total,
        paidAmount=invoice.paid_amount,
        issuedAt=invoice.issued_at,
        dueDate=invoice.due_date,
        paidAt=invoice.paid_at,
        notes=invoice.notes,
        createdAt=invoice.created_at,
        customer=InvoiceCustomer(id=customer.id, name=customer.name, phone=customer.phone)
        if customer
        else None,
        appointment=InvoiceAppointment(
            id=appointment.id,
            date=appointment.date.isoformat(),
            startTime=appointment.start_time,
        )
        if appointment
        else None,
        items=[
            InvoiceItemResponse(
                id=item.id,
                serviceId=item.service_id,
                serviceName=item.service.name if item.service else None,
                description=item.description,
                quantity=item.quantity,
                unitPrice=item.unit_price,
                total=item.total,
            )
            for item in invoice.items
        ],
        payments=[
            PaymentResponse(
                id=p.id, amount=p.amount, method=p.method, paidAt=p.paid_at, notes=p.notes
            )
            for p in invoice.payments
        ],
    )
