"""Slot availability - which start times are still free on a given day"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Business, DayOfWeek
from ...shared.clock import Clock
from .repository import AppointmentRepository
from .time_calculator import add_minutes, generate_slots, overlaps, time_to_minutes

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Computes the slot grid for a business day and marks taken/past slots"""

    def __init__(self, db: Session, clock: Clock):
        self.db = db
        self.clock = clock
        self.repo = AppointmentRepository()

    def resolve_duration(
        self, business: Business, service_id: Optional[str] = None, duration: Optional[int] = None
    ) -> int:
        """Active service duration, else the explicit duration, else the business slot size"""
        if service_id:
            service = self.repo.get_service(self.db, service_id, business.id)
            if service:
                return service.duration
        if duration:
            return duration
        return business.slot_duration

    def get_available_slots(
        self,
        business: Business,
        day: date,
        service_id: Optional[str] = None,
        duration: Optional[int] = None,
    ) -> list[dict]:
        """
        Build the slot grid for ``day``.

        Returns:
            A list of ``{"time": "HH:mm", "available": bool}`` in start order, or an
            empty list when the business does not operate on that weekday.
        """
        if not business.operates_on(DayOfWeek.from_date(day)):
            return []

        slot_duration = self.resolve_duration(business, service_id, duration)
        booked = self.repo.get_active_on_date(self.db, business.id, day)

        is_today = day == self.clock.today()
        now_minutes = time_to_minutes(self.clock.current_time()) if is_today else None

        slots = []
        for start in generate_slots(business.open_time, business.close_time, slot_duration):
            end = add_minutes(start, slot_duration)
            taken = any(overlaps(start, end, a.start_time, a.end_time) for a in booked)
            past = now_minutes is not None and time_to_minutes(start) < now_minutes
            slots.append({"time": start, "available": not (taken or past)})

        logger.debug(
            f"Slots for business {business.id} on {day}: "
            f"{sum(1 for s in slots if s['available'])}/{len(slots)} available"
        )
        return slots
