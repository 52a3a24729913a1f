"""Catalog service - Business logic for the service catalog"""

import logging

from sqlalchemy.orm import Session

from ...models import Business, Service
from ...shared.errors import ConflictError, NotFoundError
from ...shared.money import to_money
from .repository import ServiceRepository
from .schemas import ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)


class CatalogService:
    """Service layer for catalog business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ServiceRepository()

    def get_services(self, business: Business, only_active: bool = False) -> list[Service]:
        return self.repo.get_services(self.db, business.id, only_active)

    def get_service(self, service_id: str, business: Business) -> Service:
        service = self.repo.get_service_by_id(self.db, service_id, business.id)
        if not service:
            raise NotFoundError("Service not found")
        return service

    def create_service(self, data: ServiceCreate, business: Business) -> Service:
        service = self.repo.create_service(
            self.db,
            business.id,
            name=data.name,
            description=data.description or None,
            price=to_money(data.price),
            duration=data.duration,
            is_active=data.isActive,
        )
        logger.info(f"Service {service.id} '{service.name}' created for business {business.id}")
        return service

    def update_service(self, service_id: str, data: ServiceUpdate, business: Business) -> Service:
        service = self.get_service(service_id, business)
        fields = data.model_fields_set

        updates = {}
        if data.name is not None:
            updates["name"] = data.name
        if "description" in fields:
            updates["description"] = data.description or None
        if data.price is not None:
            updates["price"] = to_money(data.price)
        if data.duration is not None:
            updates["duration"] = data.duration
        if data.isActive is not None:
            updates["is_active"] = data.isActive

        return self.repo.update_service(self.db, service, **updates)

    def toggle_active(self, service_id: str, business: Business) -> Service:
        service = self.get_service(service_id, business)
        service = self.repo.update_service(self.db, service, is_active=not service.is_active)
        logger.info(f"Service {service.id} active={service.is_active}")
        return service

    def delete_service(self, service_id: str, business: Business) -> None:
        """Hard delete; services with appointments must be deactivated instead"""
        service = self.get_service(service_id, business)

        if self.repo.count_appointments(self.db, service.id):
            logger.warning(f"Refused to delete service {service.id}: it has appointments")
            raise ConflictError(
                "This service has appointments and cannot be deleted. Deactivate it instead."
            )

        self.repo.delete_service(self.db, service)
        logger.info(f"Service {service_id} deleted from business {business.id}")
