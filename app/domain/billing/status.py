"""Derived invoice status.

An invoice's status follows from its payments, total and due date. Only
issue (DRAFT -> PENDING) and cancel (-> CANCELLED) set it explicitly; every
other write goes through ``derive_invoice_status``.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from ...models import InvoiceStatus

# No payment may be added or edited in these states
PAYMENT_LOCKED_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED, InvoiceStatus.PAID})


def derive_invoice_status(
    status: InvoiceStatus,
    paid_amount: Decimal,
    total: Decimal,
    due_date: Optional[datetime],
    now: datetime,
) -> InvoiceStatus:
    """
    Recompute an invoice status.

    CANCELLED and DRAFT are kept. For issued invoices: fully paid is PAID,
    partially paid is PARTIAL, and an unpaid invoice is OVERDUE once its due
    date has passed, PENDING otherwise.
    """
    if status in (InvoiceStatus.CANCELLED, InvoiceStatus.DRAFT):
        return status
    if paid_amount >= total:
        return InvoiceStatus.PAID
    if paid_amount > 0:
        return InvoiceStatus.PARTIAL
    if due_date is not None and due_date < now:
        return InvoiceStatus.OVERDUE
    return InvoiceStatus.PENDING


def issued_status(total: Decimal) -> InvoiceStatus:
    """Status of a freshly issued invoice: nothing is owed on a zero total"""
    if total <= 0:
        return InvoiceStatus.PAID
    return InvoiceStatus.PENDING
