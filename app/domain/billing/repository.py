"""Invoice repository - Database operations for invoices and payments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from ...models import (
    Appointment,
    Business,
    Customer,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    Payment,
    Service,
)


def _with_relations(query):
    return query.options(
        selectinload(Invoice.customer),
        selectinload(Invoice.appointment),
        selectinload(Invoice.items).selectinload(InvoiceItem.service),
        selectinload(Invoice.payments),
    )


class InvoiceRepository:
    """Repository for invoice database operations"""

    @staticmethod
    def lock_business(db: Session, business_id: str) -> Optional[Business]:
        return db.query(Business).filter(Business.id == business_id).with_for_update().first()

    @staticmethod
    def lock_invoice(db: Session, invoice_id: str, business_id: str) -> Optional[Invoice]:
        """Load an invoice FOR UPDATE so payment mutations on it are serialized"""
        return (
            db.query(Invoice)
            .filter(Invoice.id == invoice_id, Invoice.business_id == business_id)
            .with_for_update()
            .first()
        )

    @staticmethod
    def get_by_id(db: Session, invoice_id: str, business_id: str) -> Optional[Invoice]:
        return (
            _with_relations(db.query(Invoice))
            .filter(Invoice.id == invoice_id, Invoice.business_id == business_id)
            .first()
        )

    @staticmethod
    def get_by_appointment(db: Session, appointment_id: str) -> Optional[Invoice]:
        return db.query(Invoice).filter(Invoice.appointment_id == appointment_id).first()

    @staticmethod
    def get_last_number(db: Session, business_id: str) -> Optional[str]:
        """Highest invoice number of a business (longer numbers sort after shorter ones)"""
        row = (
            db.query(Invoice.number)
            .filter(Invoice.business_id == business_id)
            .order_by(func.length(Invoice.number).desc(), Invoice.number.desc())
            .first()
        )
        return row[0] if row else None

    @staticmethod
    def get_customer(db: Session, customer_id: str, business_id: str) -> Optional[Customer]:
        return (
            db.query(Customer)
            .filter(Customer.id == customer_id, Customer.business_id == business_id)
            .first()
        )

    @staticmethod
    def get_appointment(db: Session, appointment_id: str, business_id: str) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(selectinload(Appointment.service))
            .filter(Appointment.id == appointment_id, Appointment.business_id == business_id)
            .first()
        )

    @staticmethod
    def get_service(db: Session, service_id: str, business_id: str) -> Optional[Service]:
        return (
            db.query(Service)
            .filter(Service.id == service_id, Service.business_id == business_id)
            .first()
        )

    @staticmethod
    def list_query(
        db: Session,
        business_id: str,
        status: Optional[InvoiceStatus] = None,
        customer_id: Optional[str] = None,
        issued_from: Optional[datetime] = None,
        issued_to: Optional[datetime] = None,
        search: Optional[str] = None,
    ):
        query = _with_relations(db.query(Invoice)).filter(Invoice.business_id == business_id)

        if status:
            query = query.filter(Invoice.status == status)
        if customer_id:
            query = query.filter(Invoice.customer_id == customer_id)
        if issued_from:
            query = query.filter(Invoice.issued_at >= issued_from)
        if issued_to:
            query = query.filter(Invoice.issued_at <= issued_to)
        if search:
            pattern = f"%{search}%"
            query = query.join(Customer, Invoice.customer_id == Customer.id).filter(
                or_(Invoice.number.ilike(pattern), Customer.name.ilike(pattern))
            )

        return query.order_by(Invoice.created_at.desc(), Invoice.number.desc())

    @staticmethod
    def get_overdue_candidates(db: Session, business_id: str, now: datetime) -> list[Invoice]:
        """PENDING invoices whose due date has passed"""
        return (
            db.query(Invoice)
            .filter(
                Invoice.business_id == business_id,
                Invoice.status == InvoiceStatus.PENDING,
                Invoice.due_date.isnot(None),
                Invoice.due_date < now,
            )
            .all()
        )

    @staticmethod
    def sum_payments(db: Session, invoice_id: str):
        return (
            db.query(func.coalesce(func.sum(Payment.amount), 0))
            .filter(Payment.invoice_id == invoice_id)
            .scalar()
        )

    @staticmethod
    def get_payment(db: Session, payment_id: str, invoice_id: str) -> Optional[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.id == payment_id, Payment.invoice_id == invoice_id)
            .first()
        )

    @staticmethod
    def create(db: Session, items: list[dict], **data) -> Invoice:
        invoice = Invoice(**data)
        for position, item in enumerate(items):
            invoice.items.append(InvoiceItem(position=position, **item))
        db.add(invoice)
        db.flush()
        return invoice

    @staticmethod
    def add_payment(db: Session, **data) -> Payment:
        payment = Payment(**data)
        db.add(payment)
        db.flush()
        return payment

    @staticmethod
    def delete_payment(db: Session, payment: Payment) -> None:
        db.delete(payment)
        db.flush()
