"""Catalog repository - Database operations for services"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Appointment, Service


class ServiceRepository:
    """Repository for service catalog database operations"""

    @staticmethod
    def get_services(db: Session, business_id: str, only_active: bool = False) -> list[Service]:
        query = db.query(Service).filter(Service.business_id == business_id)
        if only_active:
            query = query.filter(Service.is_active.is_(True))
        return query.order_by(Service.name).all()

    @staticmethod
    def get_service_by_id(db: Session, service_id: str, business_id: str) -> Optional[Service]:
        return (
            db.query(Service)
            .filter(Service.id == service_id, Service.business_id == business_id)
            .first()
        )

    @staticmethod
    def count_appointments(db: Session, service_id: str) -> int:
        return (
            db.query(func.count(Appointment.id)).filter(Appointment.service_id == service_id).scalar()
            or 0
        )

    @staticmethod
    def create_service(db: Session, business_id: str, **service_data) -> Service:
        service = Service(business_id=business_id, **service_data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def update_service(db: Session, service: Service, **updates) -> Service:
        for key, value in updates.items():
            if hasattr(service, key):
                setattr(service, key, value)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def delete_service(db: Session, service: Service) -> None:
        db.delete(service)
        db.commit()
