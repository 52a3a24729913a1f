import enum
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Opaque string identifier assigned at creation"""
    return str(uuid.uuid4())


class DayOfWeek(str, enum.Enum):
    SUNDAY = "SUNDAY"
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"

    @classmethod
    def from_date(cls, value) -> "DayOfWeek":
        # date.weekday(): Monday == 0
        order = [
            cls.MONDAY,
            cls.TUESDAY,
            cls.WEDNESDAY,
            cls.THURSDAY,
            cls.FRIDAY,
            cls.SATURDAY,
            cls.SUNDAY,
        ]
        return order[value.weekday()]


class AppointmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    CANCELLED = "CANCELLED"
    OVERDUE = "OVERDUE"


class PaymentMethod(str, enum.Enum):
    PIX = "PIX"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    CASH = "CASH"
    TRANSFER = "TRANSFER"
    OTHER = "OTHER"


class VehicleType(str, enum.Enum):
    HATCH = "HATCH"
    SEDAN = "SEDAN"
    SUV = "SUV"
    PICKUP = "PICKUP"
    COUPE = "COUPE"
    CONVERTIBLE = "CONVERTIBLE"
    VAN = "VAN"
    TRUCK = "TRUCK"
    MOTORCYCLE = "MOTORCYCLE"
    OTHER = "OTHER"


DEFAULT_WORKING_DAYS = [
    DayOfWeek.MONDAY.value,
    DayOfWeek.TUESDAY.value,
    DayOfWeek.WEDNESDAY.value,
    DayOfWeek.THURSDAY.value,
    DayOfWeek.FRIDAY.value,
]


class Business(Base):
    """Tenant root - every query is scoped by business id"""

    __tablename__ = "businesses"

    id = Column(String(36), primary_key=True, default=generate_id)
    owner_id = Column(String(255), unique=True, nullable=False, index=True)  # Token subject
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    address = Column(String(200), nullable=True)
    slug = Column(String(60), unique=True, nullable=False, index=True)
    image_url = Column(String(500), nullable=True)

    # Hours of operation (same-day window only)
    working_days = Column(JSON, nullable=False, default=lambda: list(DEFAULT_WORKING_DAYS))
    open_time = Column(String(5), nullable=False, default="08:00")
    close_time = Column(String(5), nullable=False, default="18:00")
    slot_duration = Column(Integer, nullable=False, default=60)  # minutes

    is_onboarded = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    services = relationship("Service", back_populates="business")
    customers = relationship("Customer", back_populates="business")

    def operates_on(self, day: DayOfWeek) -> bool:
        return day.value in (self.working_days or [])


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (Index("ix_services_business_active", "business_id", "is_active"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    duration = Column(Integer, nullable=False, default=60)  # minutes, 15-480
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    business = relationship("Business", back_populates="services")


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (UniqueConstraint("business_id", "phone", name="uq_customers_business_phone"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    business = relationship("Business", back_populates="customers")
    vehicles = relationship(
        "Vehicle", back_populates="customer", cascade="all, delete-orphan", order_by="Vehicle.position"
    )


class Vehicle(Base):
    """Customer vehicle; the single-default rule is enforced by CustomerService"""

    __tablename__ = "vehicles"

    id = Column(String(36), primary_key=True, default=generate_id)
    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    brand = Column(String(50), nullable=False)
    model = Column(String(50), nullable=False)
    color = Column(String(30), nullable=False)
    plate = Column(String(10), nullable=True)
    year = Column(Integer, nullable=True)
    type = Column(
        Enum(VehicleType, name="vehicle_type", native_enum=False, length=20),
        nullable=False,
        default=VehicleType.SEDAN,
    )
    is_default = Column(Boolean, default=False, nullable=False)
    # Per-customer insertion order
    position = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="vehicles")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_business_date", "business_id", "date"),
        Index("ix_appointments_business_status", "business_id", "status"),
        # Authoritative double-booking guard for identical starts; cancelled rows free the slot
        Index(
            "uq_appointments_active_slot",
            "business_id",
            "date",
            "start_time",
            unique=True,
            sqlite_where=text("status != 'CANCELLED'"),
            postgresql_where=text("status != 'CANCELLED'"),
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="RESTRICT"), nullable=False)
    vehicle_id = Column(String(36), ForeignKey("vehicles.id", ondelete="SET NULL"), nullable=True)

    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:mm
    end_time = Column(String(5), nullable=False)  # start + service duration
    status = Column(
        Enum(AppointmentStatus, name="appointment_status", native_enum=False, length=20),
        nullable=False,
        default=AppointmentStatus.PENDING,
    )
    is_from_public = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer")
    service = relationship("Service")
    vehicle = relationship("Vehicle")
    invoice = relationship("Invoice", back_populates="appointment", uselist=False)


class Invoice(Base):
    """Invoice; status is derived from payments by billing.status.derive_invoice_status"""

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("business_id", "number", name="uq_invoices_business_number"),
        Index("ix_invoices_business_status", "business_id", "status"),
        Index("ix_invoices_business_issued_at", "business_id", "issued_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True)
    # 1:1 with appointment, enforced by the unique constraint
    appointment_id = Column(
        String(36), ForeignKey("appointments.id", ondelete="SET NULL"), unique=True, nullable=True
    )

    number = Column(String(20), nullable=False)  # NF-0001
    status = Column(
        Enum(InvoiceStatus, name="invoice_status", native_enum=False, length=20),
        nullable=False,
        default=InvoiceStatus.DRAFT,
    )

    subtotal = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)
    paid_amount = Column(Numeric(10, 2), nullable=False, default=0)

    issued_at = Column(DateTime, nullable=True)
    due_date = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer")
    appointment = relationship("Appointment", back_populates="invoice")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
    )
    payments = relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="Payment.paid_at.desc()",
    )


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(String(36), primary_key=True, default=generate_id)
    invoice_id = Column(String(36), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)  # quantity * unit_price

    created_at = Column(DateTime, server_default=func.now())

    invoice = relationship("Invoice", back_populates="items")
    service = relationship("Service")


class Payment(Base):
    """Immutable once created; removal triggers invoice status recomputation"""

    __tablename__ = "payments"
    __table_args__ = (Index("ix_payments_invoice_paid_at", "invoice_id", "paid_at"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    invoice_id = Column(String(36), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    method = Column(Enum(PaymentMethod, name="payment_method", native_enum=False, length=20), nullable=False)
    paid_at = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    invoice = relationship("Invoice", back_populates="payments")
