"""Customer repository - Database operations for customers and vehicles"""

import re
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from ...models import Appointment, Customer, Vehicle


class CustomerRepository:
    """Repository for customer and vehicle database operations"""

    @staticmethod
    def search_query(db: Session, business_id: str, q: Optional[str] = None):
        """Customers matching ``q`` by name (case-insensitive) or phone digits, by name"""
        query = (
            db.query(Customer)
            .options(selectinload(Customer.vehicles))
            .filter(Customer.business_id == business_id)
        )
        if q:
            conditions = [Customer.name.ilike(f"%{q.strip()}%")]
            digits = re.sub(r"\D", "", q)
            if digits:
                conditions.append(Customer.phone.contains(digits))
            query = query.filter(or_(*conditions))
        return query.order_by(Customer.name)

    @staticmethod
    def get_customer_by_id(db: Session, customer_id: str, business_id: str) -> Optional[Customer]:
        return (
            db.query(Customer)
            .options(selectinload(Customer.vehicles))
            .filter(Customer.id == customer_id, Customer.business_id == business_id)
            .first()
        )

    @staticmethod
    def get_customer_by_phone(db: Session, phone: str, business_id: str) -> Optional[Customer]:
        return (
            db.query(Customer)
            .options(selectinload(Customer.vehicles))
            .filter(Customer.phone == phone, Customer.business_id == business_id)
            .first()
        )

    @staticmethod
    def create_customer(db: Session, business_id: str, **customer_data) -> Customer:
        customer = Customer(business_id=business_id, **customer_data)
        db.add(customer)
        db.flush()
        return customer

    @staticmethod
    def delete_customer(db: Session, customer: Customer) -> None:
        db.delete(customer)
        db.flush()

    @staticmethod
    def count_appointments(db: Session, customer_id: str) -> int:
        return (
            db.query(func.count(Appointment.id))
            .filter(Appointment.customer_id == customer_id)
            .scalar()
            or 0
        )

    @staticmethod
    def get_appointment_history(db: Session, customer_id: str, limit: int = 10) -> list[Appointment]:
        return (
            db.query(Appointment)
            .options(selectinload(Appointment.service), selectinload(Appointment.vehicle))
            .filter(Appointment.customer_id == customer_id)
            .order_by(Appointment.date.desc(), Appointment.start_time.desc())
            .limit(limit)
            .all()
        )

    # Vehicles

    @staticmethod
    def get_vehicles(db: Session, customer_id: str) -> list[Vehicle]:
        """Default vehicle first, then newest first"""
        return (
            db.query(Vehicle)
            .filter(Vehicle.customer_id == customer_id)
            .order_by(Vehicle.is_default.desc(), Vehicle.position.desc())
            .all()
        )

    @staticmethod
    def get_vehicle(db: Session, vehicle_id: str, customer_id: str) -> Optional[Vehicle]:
        return (
            db.query(Vehicle)
            .filter(Vehicle.id == vehicle_id, Vehicle.customer_id == customer_id)
            .first()
        )

    @staticmethod
    def find_matching_vehicle(
        db: Session, customer_id: str, brand: str, model: str, color: str
    ) -> Optional[Vehicle]:
        return (
            db.query(Vehicle)
            .filter(
                Vehicle.customer_id == customer_id,
                Vehicle.brand == brand,
                Vehicle.model == model,
                Vehicle.color == color,
            )
            .first()
        )

    @staticmethod
    def count_vehicles(db: Session, customer_id: str) -> int:
        return db.query(func.count(Vehicle.id)).filter(Vehicle.customer_id == customer_id).scalar() or 0

    @staticmethod
    def clear_default(db: Session, customer_id: str, except_id: Optional[str] = None) -> None:
        query = db.query(Vehicle).filter(
            Vehicle.customer_id == customer_id, Vehicle.is_default.is_(True)
        )
        if except_id:
            query = query.filter(Vehicle.id != except_id)
        for vehicle in query.all():
            vehicle.is_default = False
        db.flush()

    @staticmethod
    def create_vehicle(db: Session, customer_id: str, **vehicle_data) -> Vehicle:
        last = db.query(func.max(Vehicle.position)).filter(Vehicle.customer_id == customer_id).scalar()
        vehicle = Vehicle(customer_id=customer_id, position=(last or 0) + 1, **vehicle_data)
        db.add(vehicle)
        db.flush()
        return vehicle

    @staticmethod
    def delete_vehicle(db: Session, vehicle: Vehicle) -> None:
        """Delete a vehicle, detaching it from any appointment that referenced it"""
        db.query(Appointment).filter(Appointment.vehicle_id == vehicle.id).update(
            {Appointment.vehicle_id: None}, synchronize_session=False
        )
        db.delete(vehicle)
        db.flush()
