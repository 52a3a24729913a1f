"""Customer service - Customers, vehicles and the default-vehicle rule"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Business, Customer, Vehicle
from ...shared.errors import ConflictError, NotFoundError
from ...shared.pagination import paginate
from .repository import CustomerRepository
from .schemas import CustomerCreate, CustomerSearchQuery, CustomerUpdate, VehicleCreate, VehicleUpdate

logger = logging.getLogger(__name__)


class CustomerService:
    """
    Service layer for customer business logic.

    Every customer with at least one vehicle has exactly one default vehicle:
    the first vehicle added becomes default, marking another vehicle default
    clears the flag on its siblings, and deleting the default promotes the most
    recently created remaining vehicle.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = CustomerRepository()

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def search_customers(self, business: Business, query: CustomerSearchQuery) -> tuple[list, dict]:
        db_query = self.repo.search_query(self.db, business.id, query.q)
        return paginate(db_query, query.page, query.limit)

    def get_customer(self, customer_id: str, business: Business) -> Customer:
        customer = self.repo.get_customer_by_id(self.db, customer_id, business.id)
        if not customer:
            raise NotFoundError("Customer not found")
        return customer

    def create_customer(self, data: CustomerCreate, business: Business) -> Customer:
        """Create a customer; a vehicle given here becomes the default"""
        if self.repo.get_customer_by_phone(self.db, data.phone, business.id):
            raise ConflictError("A customer with this phone already exists")

        try:
            customer = self.repo.create_customer(
                self.db,
                business.id,
                name=data.name,
                phone=data.phone,
                notes=data.notes or None,
            )
            if data.vehicle:
                self._add_vehicle(customer.id, data.vehicle, force_default=True)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("A customer with this phone already exists") from e

        logger.info(f"Customer {customer.id} created for business {business.id}")
        return self.get_customer(customer.id, business)

    def update_customer(self, customer_id: str, data: CustomerUpdate, business: Business) -> Customer:
        customer = self.get_customer(customer_id, business)

        if data.phone and data.phone != customer.phone:
            other = self.repo.get_customer_by_phone(self.db, data.phone, business.id)
            if other and other.id != customer.id:
                raise ConflictError("A customer with this phone already exists")
            customer.phone = data.phone
        if data.name:
            customer.name = data.name.strip()
        if "notes" in data.model_fields_set:
            customer.notes = data.notes or None

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("A customer with this phone already exists") from e

        return self.get_customer(customer.id, business)

    def delete_customer(self, customer_id: str, business: Business) -> None:
        customer = self.get_customer(customer_id, business)

        if self.repo.count_appointments(self.db, customer.id):
            logger.warning(f"Refused to delete customer {customer.id}: it has appointments")
            raise ConflictError("This customer has appointments and cannot be deleted")

        self.repo.delete_customer(self.db, customer)
        self.db.commit()
        logger.info(f"Customer {customer_id} deleted from business {business.id}")

    def find_or_create_with_vehicle(
        self,
        business: Business,
        name: str,
        phone: str,
        vehicle_data: Optional[VehicleCreate] = None,
    ) -> tuple[Customer, Optional[Vehicle]]:
        """
        Resolve a customer by phone, creating it when absent.

        With ``vehicle_data`` an existing vehicle with the same brand, model and
        color is reused; otherwise a new one is added (default only if it is
        the customer's first). Without it the customer's default vehicle is
        returned. Does not commit.
        """
        customer = self.repo.get_customer_by_phone(self.db, phone, business.id)

        if not customer:
            customer = self.repo.create_customer(self.db, business.id, name=name, phone=phone)
            vehicle = None
            if vehicle_data:
                vehicle = self._add_vehicle(customer.id, vehicle_data, force_default=True)
            logger.info(f"Customer {customer.id} created from public booking")
            return customer, vehicle

        if vehicle_data:
            vehicle = self.repo.find_matching_vehicle(
                self.db, customer.id, vehicle_data.brand, vehicle_data.model, vehicle_data.color
            )
            if not vehicle:
                vehicle = self._add_vehicle(
                    customer.id, vehicle_data.model_copy(update={"isDefault": False})
                )
            return customer, vehicle

        vehicles = self.repo.get_vehicles(self.db, customer.id)
        return customer, vehicles[0] if vehicles else None

    def get_appointment_history(self, customer_id: str, business: Business) -> list:
        """Last 10 appointments, newest first"""
        customer = self.get_customer(customer_id, business)
        return self.repo.get_appointment_history(self.db, customer.id)

    # ------------------------------------------------------------------
    # Vehicles
    # ------------------------------------------------------------------

    def get_vehicles(self, customer_id: str, business: Business) -> list[Vehicle]:
        customer = self.get_customer(customer_id, business)
        return self.repo.get_vehicles(self.db, customer.id)

    def add_vehicle(self, customer_id: str, data: VehicleCreate, business: Business) -> Vehicle:
        customer = self.get_customer(customer_id, business)
        vehicle = self._add_vehicle(customer.id, data)
        self.db.commit()
        self.db.refresh(vehicle)
        logger.info(f"Vehicle {vehicle.id} added to customer {customer.id} (default={vehicle.is_default})")
        return vehicle

    def update_vehicle(
        self, customer_id: str, vehicle_id: str, data: VehicleUpdate, business: Business
    ) -> Vehicle:
        customer = self.get_customer(customer_id, business)
        vehicle = self.repo.get_vehicle(self.db, vehicle_id, customer.id)
        if not vehicle:
            raise NotFoundError("Vehicle not found")

        fields = data.model_fields_set
        for field in ("brand", "model", "color"):
            value = getattr(data, field)
            if value:
                setattr(vehicle, field, value.strip())
        if "plate" in fields:
            vehicle.plate = data.plate
        if "year" in fields:
            vehicle.year = data.year
        if data.type:
            vehicle.type = data.type

        # Unsetting the only default is ignored so the customer keeps one
        if data.isDefault:
            self.repo.clear_default(self.db, customer.id, except_id=vehicle.id)
            vehicle.is_default = True

        self.db.commit()
        self.db.refresh(vehicle)
        return vehicle

    def delete_vehicle(self, customer_id: str, vehicle_id: str, business: Business) -> None:
        customer = self.get_customer(customer_id, business)
        vehicle = self.repo.get_vehicle(self.db, vehicle_id, customer.id)
        if not vehicle:
            raise NotFoundError("Vehicle not found")

        was_default = vehicle.is_default
        self.repo.delete_vehicle(self.db, vehicle)

        if was_default:
            remaining = self.repo.get_vehicles(self.db, customer.id)
            if remaining:
                # get_vehicles orders newest first once no default remains
                remaining[0].is_default = True
                logger.info(f"Vehicle {remaining[0].id} promoted to default for customer {customer.id}")

        self.db.commit()

    def _add_vehicle(self, customer_id: str, data: VehicleCreate, force_default: bool = False) -> Vehicle:
        """Insert a vehicle and keep exactly one default; does not commit"""
        make_default = force_default or data.isDefault or self.repo.count_vehicles(self.db, customer_id) == 0
        if make_default:
            self.repo.clear_default(self.db, customer_id)

        return self.repo.create_vehicle(
            self.db,
            customer_id,
            brand=data.brand,
            model=data.model,
            color=data.color,
            plate=data.plate or None,
            year=data.year,
            type=data.type,
            is_default=make_default,
        )
