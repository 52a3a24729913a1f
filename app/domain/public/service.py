"""Public booking service - slug-addressed booking for visitors without an account"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Business, Service
from ...shared.clock import Clock
from ...shared.errors import ApiError
from ..business.service import BusinessService
from ..catalog.service import CatalogService
from ..customers.service import CustomerService
from ..scheduling.availability_service import AvailabilityService
from ..scheduling.schemas import AppointmentCreate, appointment_to_response
from ..scheduling.service import AppointmentService
from .schemas import PublicBookRequest

logger = logging.getLogger(__name__)


class PublicService:
    """Composes the tenant services behind the public booking page"""

    def __init__(self, db: Session, clock: Clock):
        self.db = db
        self.clock = clock
        self.businesses = BusinessService(db)
        self.catalog = CatalogService(db)
        self.customers = CustomerService(db)
        self.availability = AvailabilityService(db, clock)
        self.appointments = AppointmentService(db, clock)

    def get_business(self, slug: str) -> Business:
        return self.businesses.get_by_slug(slug)

    def get_services(self, slug: str) -> list[Service]:
        return self.catalog.get_services(self.get_business(slug), only_active=True)

    def get_available_slots(
        self, slug: str, day: date, service_id: Optional[str] = None, duration: Optional[int] = None
    ) -> list[dict]:
        return self.availability.get_available_slots(self.get_business(slug), day, service_id, duration)

    def book(self, slug: str, data: PublicBookRequest) -> dict:
        """
        Find or create the customer (and vehicle) by phone, then book a PENDING
        appointment flagged as public. Both happen in one transaction: a
        rejected booking leaves no new customer behind.
        """
        business = self.get_business(slug)

        try:
            customer, vehicle = self.customers.find_or_create_with_vehicle(
                business, data.customerName, data.customerPhone, data.vehicle
            )
            appointment = self.appointments.create_appointment(
                AppointmentCreate(
                    customerId=customer.id,
                    serviceId=data.serviceId,
                    date=data.date,
                    startTime=data.startTime,
                    notes=data.notes,
                    vehicleId=vehicle.id if vehicle else None,
                ),
                business,
                is_from_public=True,
            )
        except ApiError:
            self.db.rollback()
            raise

        logger.info(f"Public booking {appointment.id} on '{slug}' for customer {customer.id}")
        return {
            "appointment": appointment_to_response(appointment),
            "customer": {"id": customer.id, "name": customer.name},
            "vehicle": {
                "id": vehicle.id,
                "brand": vehicle.brand,
                "model": vehicle.model,
                "color": vehicle.color,
                "type": vehicle.type,
            }
            if vehicle
            else None,
            "business": {
                "name": business.name,
                "phone": business.phone,
                "address": business.address,
            },
        }
