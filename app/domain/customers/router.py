"""Customer router - FastAPI endpoints for customers and their vehicles"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_business
from ...database import get_db
from ...models import Business
from ...shared.pagination import MAX_PAGE_LIMIT
from .schemas import (
    CustomerAppointmentResponse,
    CustomerCreate,
    CustomerListResponse,
    CustomerResponse,
    CustomerSearchQuery,
    CustomerUpdate,
    VehicleCreate,
    VehicleResponse,
    VehicleUpdate,
    customer_to_response,
    history_to_response,
    vehicle_to_response,
)
from .service import CustomerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customers", tags=["Customers"])


def get_customer_service(db: Session = Depends(get_db)) -> CustomerService:
    """Dependency injection for CustomerService"""
    return CustomerService(db)


# ============================================================================
# CUSTOMERS
# ============================================================================


@router.get("", response_model=CustomerListResponse)
async def search_customers(
    q: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_LIMIT),
    business: Business = Depends(get_current_business),
    service: CustomerService = Depends(get_customer_service),
):
    """Search customers by name or phone"""
    rows, pagination = service.search_customers(
        business, CustomerSearchQuery(q=q, page=page, limit=limit)
    )
    return {"data": [customer_to_response(c) for c in rows], "pagination": pagination}


@router.post("", response_model=CustomerResponse, status_code=201)
async def create_customer(
    data: CustomerCreate,
    business: Business = Depends(get_current_business),
    service: CustomerService = Depends(get_customer_service),
):
    return customer_to_response(service.create_customer(data, business))


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: str,
    business: Business = Depends(get_current_business),
    service: CustomerService = Depends(get_customer_service),
):
    return customer_to_response(service.get_customer(customer_id, business))


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: str,
    data: CustomerUpdate,
    business: Business = Depends(get_current_business),
    service: CustomerService = Depends(get_customer_service),
):
    return customer_to_response(service.update_customer(customer_id, data, business))


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: str,
    business: Business = Depends(get_current_business),
    service: CustomerService = Depends(get_customer_service),
):
    service.delete_customer(customer_id, business)
    return {"message": "Customer deleted"}


@router.get("/{customer_id}/appointments", response_model=list[CustomerAppointmentResponse])
async def get_customer_appointments(
    customer_id: str,
    business: Business = Depends(get_current_business),
    service: CustomerService = Depends(get_customer_service),
):
    """Last 10 appointments of a customer"""
    return [history_to_response(a) for a in service.get_appointment_history(customer_id, business)]


# ============================================================================
# VEHICLES
# ============================================================================


@router.get("/{customer_id}/vehicles", response_model=list[VehicleResponse])
async def get_vehicles(
    customer_id: str,
    business: Business = Depends(get_current_business),
    service: CustomerService = Depends(get_customer_service),
):
    return [vehicle_to_response(v) for v in service.get_vehicles(customer_id, business)]


@router.post("/{customer_id}/vehicles", response_model=VehicleResponse, status_code=201)
async def add_vehicle(
    customer_id: str,
    data: VehicleCreate,
    business: Business = Depends(get_current_business),
    service: CustomerService = Depends(get_customer_service),
):
    return vehicle_to_response(service.add_vehicle(customer_id, data, business))


@router.patch("/{customer_id}/vehicles/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    customer_id: str,
    vehicle_id: str,
    data: VehicleUpdate,
    business: Business = Depends(get_current_business),
    service: CustomerService = Depends(get_customer_service),
):
    return vehicle_to_response(service.update_vehicle(customer_id, vehicle_id, data, business))


@router.delete("/{customer_id}/vehicles/{vehicle_id}")
async def delete_vehicle(
    customer_id: str,
    vehicle_id: str,
    business: Business = Depends(get_current_business),
    service: CustomerService = Depends(get_customer_service),
):
    service.delete_vehicle(customer_id, vehicle_id, business)
    return {"message": "Vehicle deleted"}
