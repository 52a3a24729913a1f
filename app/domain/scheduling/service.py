"""Appointment service - Booking rules and the appointment state machine"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentStatus, Business, DayOfWeek
from ...shared.clock import Clock
from ...shared.errors import BadRequestError, ConflictError, NotFoundError
from ...shared.pagination import paginate
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentListQuery, AppointmentUpdate
from .time_calculator import add_minutes, overlaps, within_hours

logger = logging.getLogger(__name__)

# Legal status moves; a status absent from the table (or mapped to an empty set) is terminal
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.NO_SHOW: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session, clock: Clock):
        self.db = db
        self.clock = clock
        self.repo = AppointmentRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: str, business: Business) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id, business.id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def list_appointments(self, business: Business, query: AppointmentListQuery) -> tuple[list, dict]:
        db_query = self.repo.list_query(
            self.db,
            business.id,
            day=query.parsed_date,
            start_date=query.parsed_start_date,
            end_date=query.parsed_end_date,
            status=query.status,
            customer_id=query.customerId,
        )
        return paginate(db_query, query.page, query.limit)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_appointment(
        self, data: AppointmentCreate, business: Business, is_from_public: bool = False
    ) -> Appointment:
        """
        Book a new PENDING appointment.

        Raises:
            NotFoundError: Service (missing or inactive), customer or vehicle not in this business
            BadRequestError: Closed weekday or outside opening hours
            ConflictError: Overlaps an existing non-cancelled appointment
        """
        self.repo.lock_business(self.db, business.id)

        service = self.repo.get_service(self.db, data.serviceId, business.id)
        if not service:
            raise NotFoundError("Service not found or inactive")

        customer = self.repo.get_customer(self.db, data.customerId, business.id)
        if not customer:
            raise NotFoundError("Customer not found")

        if data.vehicleId and not self.repo.get_vehicle(self.db, data.vehicleId, customer.id):
            raise NotFoundError("Vehicle not found")

        day = data.parsed_date
        end_time = self._check_slot(business, day, data.startTime, service.duration)

        try:
            appointment = self.repo.create(
                self.db,
                business_id=business.id,
                customer_id=customer.id,
                service_id=service.id,
                vehicle_id=data.vehicleId or None,
                date=day,
                start_time=data.startTime,
                end_time=end_time,
                status=AppointmentStatus.PENDING,
                is_from_public=is_from_public,
                notes=data.notes or None,
            )
            self.db.commit()
        except IntegrityError as e:
            self._raise_slot_taken(e)

        logger.info(
            f"Appointment {appointment.id} booked for business {business.id} "
            f"on {day} {data.startTime}-{end_time} (public={is_from_public})"
        )
        return self.get_appointment(appointment.id, business)

    def update_appointment(
        self, appointment_id: str, data: AppointmentUpdate, business: Business
    ) -> Appointment:
        """Edit a non-terminal appointment, re-validating the slot when date, time or service change"""
        self.repo.lock_business(self.db, business.id)
        appointment = self.get_appointment(appointment_id, business)

        if appointment.status in TERMINAL_STATUSES:
            logger.warning(f"Rejected edit of {appointment.status.value} appointment {appointment.id}")
            raise ConflictError("Completed or cancelled appointments cannot be changed")

        fields = data.model_fields_set

        if data.customerId and data.customerId != appointment.customer_id:
            customer = self.repo.get_customer(self.db, data.customerId, business.id)
            if not customer:
                raise NotFoundError("Customer not found")
            appointment.customer_id = customer.id
            # The previous customer's vehicle cannot follow the appointment
            if appointment.vehicle_id and "vehicleId" not in fields:
                appointment.vehicle_id = None

        if "vehicleId" in fields:
            if data.vehicleId:
                if not self.repo.get_vehicle(self.db, data.vehicleId, appointment.customer_id):
                    raise NotFoundError("Vehicle not found")
                appointment.vehicle_id = data.vehicleId
            else:
                appointment.vehicle_id = None

        if "notes" in fields:
            appointment.notes = data.notes or None

        slot_changed = any(
            [
                data.date is not None and data.parsed_date != appointment.date,
                data.startTime is not None and data.startTime != appointment.start_time,
                data.serviceId is not None and data.serviceId != appointment.service_id,
            ]
        )
        if slot_changed:
            service_id = data.serviceId or appointment.service_id
            service = self.repo.get_service(self.db, service_id, business.id)
            if not service:
                raise NotFoundError("Service not found or inactive")

            day = data.parsed_date or appointment.date
            start_time = data.startTime or appointment.start_time
            end_time = self._check_slot(
                business, day, start_time, service.duration, exclude_id=appointment.id
            )

            appointment.service_id = service.id
            appointment.date = day
            appointment.start_time = start_time
            appointment.end_time = end_time

        self._commit()
        logger.info(f"Appointment {appointment.id} updated (slot changed: {slot_changed})")

        return self.get_appointment(appointment.id, business)

    def update_status(
        self, appointment_id: str, status: AppointmentStatus, business: Business
    ) -> Appointment:
        """
        Move an appointment through its lifecycle.

        Re-applying the current status is a no-op. Leaving COMPLETED or CANCELLED
        is a conflict; any other move missing from ALLOWED_TRANSITIONS is a bad request.
        """
        appointment = self.get_appointment(appointment_id, business)
        current = appointment.status

        if status == current:
            return appointment

        if current in TERMINAL_STATUSES:
            logger.warning(f"Rejected status change {current.value}->{status.value} on {appointment.id}")
            raise ConflictError(f"Appointment is already {current.value.lower()}")

        if not can_transition(current, status):
            logger.warning(f"Rejected status change {current.value}->{status.value} on {appointment.id}")
            raise BadRequestError(f"Cannot change status from {current.value} to {status.value}")

        appointment.status = status
        self._commit()

        logger.info(f"Appointment {appointment.id} status {current.value} -> {status.value}")
        return self.get_appointment(appointment.id, business)

    def delete_appointment(self, appointment_id: str, business: Business) -> None:
        appointment = self.get_appointment(appointment_id, business)
        self.repo.delete(self.db, appointment)
        self._commit()
        logger.info(f"Appointment {appointment_id} deleted from business {business.id}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_slot(
        self,
        business: Business,
        day: date,
        start_time: str,
        duration: int,
        exclude_id: Optional[str] = None,
    ) -> str:
        """Validate weekday, hours and overlap for a prospective slot; returns its end time"""
        end_time = add_minutes(start_time, duration)

        weekday = DayOfWeek.from_date(day)
        if not business.operates_on(weekday):
            logger.warning(f"Booking rejected: business {business.id} closed on {weekday.value}")
            raise BadRequestError("The business does not operate on this day")

        if not within_hours(start_time, end_time, business.open_time, business.close_time):
            logger.warning(
                f"Booking rejected: {start_time}-{end_time} outside "
                f"{business.open_time}-{business.close_time} for business {business.id}"
            )
            raise BadRequestError(
                f"Appointment must be between {business.open_time} and {business.close_time}"
            )

        existing = self.repo.get_active_on_date(self.db, business.id, day, exclude_id=exclude_id)
        for other in existing:
            if overlaps(start_time, end_time, other.start_time, other.end_time):
                logger.warning(
                    f"Booking rejected: {day} {start_time}-{end_time} overlaps appointment {other.id}"
                )
                raise ConflictError("There is already an appointment at this time")

        return end_time

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self._raise_slot_taken(e)

    def _raise_slot_taken(self, error: IntegrityError) -> None:
        """Roll back and report a storage-level uniqueness violation as a booking conflict"""
        self.db.rollback()
        logger.warning(f"Appointment write rejected by storage constraint: {error.orig}")
        raise ConflictError("There is already an appointment at this time") from error
