"""Catalog router - FastAPI endpoints for the service catalog"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_business
from ...database import get_db
from ...models import Business
from .schemas import ServiceCreate, ServiceResponse, ServiceUpdate, service_to_response
from .service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["Services"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


@router.get("", response_model=list[ServiceResponse])
async def get_services(
    onlyActive: bool = Query(False),
    business: Business = Depends(get_current_business),
    service: CatalogService = Depends(get_catalog_service),
):
    """List services ordered by name"""
    return [service_to_response(s) for s in service.get_services(business, onlyActive)]


@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    business: Business = Depends(get_current_business),
    service: CatalogService = Depends(get_catalog_service),
):
    return service_to_response(service.create_service(data, business))


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(
    service_id: str,
    business: Business = Depends(get_current_business),
    service: CatalogService = Depends(get_catalog_service),
):
    return service_to_response(service.get_service(service_id, business))


@router.patch("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: str,
    data: ServiceUpdate,
    business: Business = Depends(get_current_business),
    service: CatalogService = Depends(get_catalog_service),
):
    return service_to_response(service.update_service(service_id, data, business))


@router.patch("/{service_id}/toggle", response_model=ServiceResponse)
async def toggle_service(
    service_id: str,
    business: Business = Depends(get_current_business),
    service: CatalogService = Depends(get_catalog_service),
):
    """Flip the active flag"""
    return service_to_response(service.toggle_active(service_id, business))


@router.delete("/{service_id}")
async def delete_service(
    service_id: str,
    business: Business = Depends(get_current_business),
    service: CatalogService = Depends(get_catalog_service),
):
    service.delete_service(service_id, business)
    return {"message": "Service deleted"}
