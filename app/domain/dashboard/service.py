"""Dashboard service - Read-only counters for the owner's home screen"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ...models import Appointment, AppointmentStatus, Business, Customer, Service
from ...shared.clock import Clock
from ...shared.money import ZERO, to_money

logger = logging.getLogger(__name__)

UPCOMING_DAYS = 7


class DashboardService:
    def __init__(self, db: Session, clock: Clock):
        self.db = db
        self.clock = clock

    def get_stats(self, business: Business) -> dict:
        today = self.clock.today()
        # Weeks start on Sunday; date.weekday() has Monday == 0
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)
        month_start = today.replace(day=1)

        today_counts = dict(
            self.db.query(Appointment.status, func.count(Appointment.id))
            .filter(Appointment.business_id == business.id, Appointment.date == today)
            .group_by(Appointment.status)
            .all()
        )

        week_total = (
            self.db.query(func.count(Appointment.id))
            .filter(
                Appointment.business_id == business.id,
                Appointment.date >= week_start,
                Appointment.date <= today,
                Appointment.status != AppointmentStatus.CANCELLED,
            )
            .scalar()
        )
        week_count, week_revenue = self._completed_revenue(business.id, week_start, today)
        month_count, month_revenue = self._completed_revenue(business.id, month_start)

        new_customers = (
            self.db.query(func.count(Customer.id))
            .filter(
                Customer.business_id == business.id,
                Customer.created_at >= datetime.combine(month_start, datetime.min.time()),
            )
            .scalar()
        )

        return {
            "today": {
                "total": sum(today_counts.values()),
                "pending": today_counts.get(AppointmentStatus.PENDING, 0),
                "confirmed": today_counts.get(AppointmentStatus.CONFIRMED, 0),
                "completed": today_counts.get(AppointmentStatus.COMPLETED, 0),
            },
            "week": {"total": week_total or 0, "completed": week_count, "revenue": week_revenue},
            "month": {
                "total": month_count,
                "revenue": month_revenue,
                "newCustomers": new_customers or 0,
            },
        }

    def get_today_appointments(self, business: Business) -> list[Appointment]:
        return (
            self.db.query(Appointment)
            .options(selectinload(Appointment.customer), selectinload(Appointment.service))
            .filter(
                Appointment.business_id == business.id,
                Appointment.date == self.clock.today(),
                Appointment.status != AppointmentStatus.CANCELLED,
            )
            .order_by(Appointment.start_time)
            .all()
        )

    def get_upcoming_appointments(self, business: Business, limit: int = 10) -> list[Appointment]:
        """PENDING/CONFIRMED appointments in the next 7 days, soonest first"""
        today = self.clock.today()
        return (
            self.db.query(Appointment)
            .options(selectinload(Appointment.customer), selectinload(Appointment.service))
            .filter(
                Appointment.business_id == business.id,
                Appointment.date >= today,
                Appointment.date <= today + timedelta(days=UPCOMING_DAYS),
                Appointment.status.in_([AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED]),
            )
            .order_by(Appointment.date, Appointment.start_time)
            .limit(limit)
            .all()
        )

    def _completed_revenue(self, business_id: str, start, end=None) -> tuple[int, Decimal]:
        """(count, sum of service prices) of COMPLETED appointments from ``start``"""
        query = (
            self.db.query(Service.price)
            .join(Appointment, Appointment.service_id == Service.id)
            .filter(
                Appointment.business_id == business_id,
                Appointment.status == AppointmentStatus.COMPLETED,
                Appointment.date >= start,
            )
        )
        if end is not None:
            query = query.filter(Appointment.date <= end)
        prices = [to_money(row.price) for row in query.all()]
        return len(prices), sum(prices, ZERO)
