"""Billing statistics - read-only revenue and receivables aggregation"""

import logging
from collections import OrderedDict
from datetime import datetime, time, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Business, Invoice, InvoiceStatus, Payment
from ...shared.clock import Clock
from ...shared.money import ZERO, to_money
from ...shared.validators import parse_date
from .schemas import BillingStatsQuery

logger = logging.getLogger(__name__)


def resolve_period(
    now: datetime,
    period: str = "month",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> tuple[datetime, datetime]:
    """
    Inclusive [start, end] bounds for a stats query.

    An explicit start/end pair covers whole days. Named periods run up to
    ``now``: week is the trailing 7 days, month and year are to-date.
    """
    if start_date and end_date:
        start = datetime.combine(parse_date(start_date), time.min)
        end = datetime.combine(parse_date(end_date), time.max)
        return start, end

    if period == "week":
        start = now - timedelta(days=7)
    elif period == "year":
        start = datetime(now.year, 1, 1)
    else:
        start = datetime(now.year, now.month, 1)
    return start, now


class BillingStatsService:
    def __init__(self, db: Session, clock: Clock):
        self.db = db
        self.clock = clock

    def get_stats(self, business: Business, query: BillingStatsQuery) -> dict:
        start, end = resolve_period(self.clock.now(), query.period, query.startDate, query.endDate)
        business_id = business.id

        paid_totals = (
            self.db.query(Invoice.total)
            .filter(
                Invoice.business_id == business_id,
                Invoice.status == InvoiceStatus.PAID,
                Invoice.paid_at >= start,
                Invoice.paid_at <= end,
            )
            .all()
        )
        total_revenue = sum((to_money(row.total) for row in paid_totals), ZERO)

        total_pending = self._outstanding(
            business_id, [InvoiceStatus.PENDING, InvoiceStatus.PARTIAL]
        )
        total_overdue = self._outstanding(business_id, [InvoiceStatus.OVERDUE])

        counts = dict(
            self.db.query(Invoice.status, func.count(Invoice.id))
            .filter(Invoice.business_id == business_id)
            .group_by(Invoice.status)
            .all()
        )
        invoice_count = {status.value.lower(): counts.get(status, 0) for status in InvoiceStatus}
        invoice_count["total"] = sum(counts.values())

        payments = (
            self.db.query(Payment.amount, Payment.method, Payment.paid_at)
            .join(Invoice, Payment.invoice_id == Invoice.id)
            .filter(
                Invoice.business_id == business_id,
                Payment.paid_at >= start,
                Payment.paid_at <= end,
            )
            .order_by(Payment.paid_at)
            .all()
        )

        by_method: dict = {}
        by_day: OrderedDict = OrderedDict()
        for amount, method, paid_at in payments:
            amount = to_money(amount)

            entry = by_method.setdefault(method, {"method": method, "total": ZERO, "count": 0})
            entry["total"] += amount
            entry["count"] += 1

            # paid_at is stored as naive UTC, so its date is the UTC day
            day = by_day.setdefault(
                paid_at.date().isoformat(),
                {"date": paid_at.date().isoformat(), "revenue": ZERO, "count": 0},
            )
            day["revenue"] += amount
            day["count"] += 1

        logger.debug(
            f"Billing stats for business {business_id} between {start} and {end}: "
            f"{len(payments)} payment(s)"
        )

        return {
            "totalRevenue": total_revenue,
            "totalPending": total_pending,
            "totalOverdue": total_overdue,
            "invoiceCount": invoice_count,
            "revenueByMethod": sorted(by_method.values(), key=lambda m: m["method"].value),
            "revenueByDay": list(by_day.values()),
        }

    def _outstanding(self, business_id: str, statuses: list[InvoiceStatus]):
        """Sum of (total - paid_amount) over invoices in ``statuses``"""
        rows = (
            self.db.query(Invoice.total, Invoice.paid_amount)
            .filter(Invoice.business_id == business_id, Invoice.status.in_(statuses))
            .all()
        )
        return sum((to_money(r.total) - to_money(r.paid_amount) for r in rows), ZERO)
