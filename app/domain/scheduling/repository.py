"""Appointment repository - Database operations for appointments"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import Appointment, AppointmentStatus, Business, Customer, Service, Vehicle


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def lock_business(db: Session, business_id: str) -> Optional[Business]:
        """Serialize writes for one tenant (SELECT ... FOR UPDATE; no-op on SQLite)"""
        return db.query(Business).filter(Business.id == business_id).with_for_update().first()

    @staticmethod
    def get_by_id(db: Session, appointment_id: str, business_id: str) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(
                selectinload(Appointment.customer),
                selectinload(Appointment.service),
                selectinload(Appointment.vehicle),
            )
            .filter(Appointment.id == appointment_id, Appointment.business_id == business_id)
            .first()
        )

    @staticmethod
    def get_active_on_date(
        db: Session, business_id: str, day: date, exclude_id: Optional[str] = None
    ) -> list[Appointment]:
        """Non-cancelled appointments of a business on one day"""
        query = db.query(Appointment).filter(
            Appointment.business_id == business_id,
            Appointment.date == day,
            Appointment.status != AppointmentStatus.CANCELLED,
        )
        if exclude_id:
            query = query.filter(Appointment.id != exclude_id)
        return query.order_by(Appointment.start_time).all()

    @staticmethod
    def list_query(
        db: Session,
        business_id: str,
        day: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[AppointmentStatus] = None,
        customer_id: Optional[str] = None,
    ):
        """Filtered query ordered by date then start time"""
        query = (
            db.query(Appointment)
            .options(
                selectinload(Appointment.customer),
                selectinload(Appointment.service),
                selectinload(Appointment.vehicle),
            )
            .filter(Appointment.business_id == business_id)
        )

        if day:
            query = query.filter(Appointment.date == day)
        else:
            if start_date:
                query = query.filter(Appointment.date >= start_date)
            if end_date:
                query = query.filter(Appointment.date <= end_date)
        if status:
            query = query.filter(Appointment.status == status)
        if customer_id:
            query = query.filter(Appointment.customer_id == customer_id)

        return query.order_by(Appointment.date, Appointment.start_time)

    @staticmethod
    def get_service(
        db: Session, service_id: str, business_id: str, active_only: bool = True
    ) -> Optional[Service]:
        query = db.query(Service).filter(Service.id == service_id, Service.business_id == business_id)
        if active_only:
            query = query.filter(Service.is_active.is_(True))
        return query.first()

    @staticmethod
    def get_customer(db: Session, customer_id: str, business_id: str) -> Optional[Customer]:
        return (
            db.query(Customer)
            .filter(Customer.id == customer_id, Customer.business_id == business_id)
            .first()
        )

    @staticmethod
    def get_vehicle(db: Session, vehicle_id: str, customer_id: str) -> Optional[Vehicle]:
        return (
            db.query(Vehicle)
            .filter(Vehicle.id == vehicle_id, Vehicle.customer_id == customer_id)
            .first()
        )

    @staticmethod
    def create(db: Session, **data) -> Appointment:
        appointment = Appointment(**data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def delete(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.flush()
