"""Dashboard schemas"""

from typing import Optional

from pydantic import BaseModel

from ...models import AppointmentStatus


class TodayStats(BaseModel):
    total: int
    pending: int
    confirmed: int
    completed: int


class WeekStats(BaseModel):
    total: int
    completed: int
    revenue: float


class MonthStats(BaseModel):
    total: int
    revenue: float
    newCustomers: int


class DashboardStatsResponse(BaseModel):
    today: TodayStats
    week: WeekStats
    month: MonthStats


class DashboardAppointment(BaseModel):
    id: str
    date: str
    startTime: str
    endTime: str
    status: AppointmentStatus
    customerId: str
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    serviceId: str
    serviceName: Optional[str] = None
    servicePrice: Optional[float] = None


def dashboard_appointment(appointment) -> DashboardAppointment:
    customer = appointment.customer
    service = appointment.service
    return DashboardAppointment(
        id=appointment.id,
        date=appointment.date.isoformat(),
        startTime=appointment.start_time,
        endTime=appointment.end_time,
        status=appointment.status,
        customerId=appointment.customer_id,
        customerName=customer.name if customer else None,
        customerPhone=customer.phone if customer else None,
        serviceId=appointment.service_id,
        serviceName=service.name if service else None,
        servicePrice=service.price if service else None,
    )
