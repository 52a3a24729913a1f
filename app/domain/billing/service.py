"""Invoice service - Invoice lifecycle and payment reconciliation"""

import logging
import re
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import INVOICE_NUMBER_PREFIX
from ...models import Business, Invoice, InvoiceStatus
from ...shared.clock import Clock
from ...shared.errors import BadRequestError, ConflictError, NotFoundError
from ...shared.money import ZERO, sum_money, to_money
from ...shared.pagination import paginate
from ...shared.validators import parse_datetime
from .repository import InvoiceRepository
from .schemas import (
    InvoiceCreate,
    InvoiceFromAppointmentCreate,
    InvoiceIssue,
    InvoiceListQuery,
    InvoiceUpdate,
    PaymentCreate,
)
from .status import PAYMENT_LOCKED_STATUSES, derive_invoice_status, issued_status

logger = logging.getLogger(__name__)

NUMBER_WIDTH = 4


def format_invoice_number(sequence: int) -> str:
    return f"{INVOICE_NUMBER_PREFIX}{sequence:0{NUMBER_WIDTH}d}"


def next_invoice_number(last_number: Optional[str]) -> str:
    """
    Next number in a business's invoice sequence.

    ``None`` (no invoices yet) gives NF-0001; otherwise the numeric suffix of
    ``last_number`` is incremented. Cancelled invoices keep their numbers, so
    the sequence never reuses one.
    """
    if not last_number:
        return format_invoice_number(1)
    match = re.search(r"(\d+)$", last_number)
    if not match:
        raise ValueError(f"Unparseable invoice number: {last_number!r}")
    return format_invoice_number(int(match.group(1)) + 1)


class InvoiceService:
    """Service layer for invoice business logic"""

    def __init__(self, db: Session, clock: Clock):
        self.db = db
        self.clock = clock
        self.repo = InvoiceRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_invoice(self, invoice_id: str, business: Business) -> Invoice:
        invoice = self.repo.get_by_id(self.db, invoice_id, business.id)
        if not invoice:
            raise NotFoundError("Invoice not found")
        return invoice

    def list_invoices(self, business: Business, query: InvoiceListQuery) -> tuple[list, dict]:
        db_query = self.repo.list_query(
            self.db,
            business.id,
            status=query.status,
            customer_id=query.customerId,
            issued_from=parse_datetime(query.startDate),
            issued_to=parse_datetime(query.endDate),
            search=query.search,
        )
        return paginate(db_query, query.page, query.limit)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_from_appointment(
        self, data: InvoiceFromAppointmentCreate, business: Business
    ) -> Invoice:
        """Invoice a single appointment with one line mirroring its service"""
        self.repo.lock_business(self.db, business.id)

        appointment = self.repo.get_appointment(self.db, data.appointmentId, business.id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        self._ensure_not_invoiced(appointment.id)

        service = appointment.service
        price = to_money(service.price)
        items = [
            {
                "service_id": service.id,
                "description": service.name,
                "quantity": 1,
                "unit_price": price,
                "total": price,
            }
        ]
        return self._create(
            business,
            customer_id=appointment.customer_id,
            appointment_id=appointment.id,
            items=items,
            discount=data.discount,
            due_date=data.dueDate,
            notes=data.notes,
            auto_issue=data.autoIssue,
        )

    def create_invoice(self, data: InvoiceCreate, business: Business) -> Invoice:
        """Manual invoice; subtotal is the sum of quantity x unit price"""
        self.repo.lock_business(self.db, business.id)

        customer = self.repo.get_customer(self.db, data.customerId, business.id)
        if not customer:
            raise NotFoundError("Customer not found")

        if data.appointmentId:
            appointment = self.repo.get_appointment(self.db, data.appointmentId, business.id)
            if not appointment:
                raise NotFoundError("Appointment not found")
            self._ensure_not_invoiced(appointment.id)

        items = []
        for item in data.items:
            if item.serviceId and not self.repo.get_service(self.db, item.serviceId, business.id):
                raise NotFoundError("Service not found")
            unit_price = to_money(item.unitPrice)
            items.append(
                {
                    "service_id": item.serviceId or None,
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit_price": unit_price,
                    "total": to_money(unit_price * item.quantity),
                }
            )

        return self._create(
            business,
            customer_id=customer.id,
            appointment_id=data.appointmentId or None,
            items=items,
            discount=data.discount,
            due_date=data.dueDate,
            notes=data.notes,
            auto_issue=data.autoIssue,
        )

    def _create(
        self,
        business: Business,
        customer_id: str,
        appointment_id: Optional[str],
        items: list[dict],
        discount,
        due_date: Optional[str],
        notes: Optional[str],
        auto_issue: bool,
    ) -> Invoice:
        subtotal = sum_money(item["total"] for item in items)
        discount = to_money(discount)
        if discount > subtotal:
            raise BadRequestError("Discount cannot exceed the invoice subtotal")

        now = self.clock.now()
        total = subtotal - discount
        status = issued_status(total) if auto_issue else InvoiceStatus.DRAFT
        number = next_invoice_number(self.repo.get_last_number(self.db, business.id))

        try:
            invoice = self.repo.create(
                self.db,
                items,
                business_id=business.id,
                customer_id=customer_id,
                appointment_id=appointment_id,
                number=number,
                status=status,
                issued_at=now if auto_issue else None,
                paid_at=now if status == InvoiceStatus.PAID else None,
                due_date=parse_datetime(due_date),
                subtotal=subtotal,
                discount=discount,
                total=total,
                paid_amount=ZERO,
                notes=notes or None,
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Invoice creation rejected by storage constraint: {e.orig}")
            raise ConflictError("An invoice already exists for this appointment or number") from e

        logger.info(
            f"Invoice {number} created for business {business.id} "
            f"(total={total}, status={status.value})"
        )
        return self.get_invoice(invoice.id, business)

    def _ensure_not_invoiced(self, appointment_id: str) -> None:
        if self.repo.get_by_appointment(self.db, appointment_id):
            logger.warning(f"Duplicate invoice rejected for appointment {appointment_id}")
            raise ConflictError("An invoice already exists for this appointment")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def update_invoice(self, invoice_id: str, data: InvoiceUpdate, business: Business) -> Invoice:
        """Edit a DRAFT invoice; total is recomputed from the stored subtotal"""
        invoice = self.get_invoice(invoice_id, business)
        if invoice.status != InvoiceStatus.DRAFT:
            raise BadRequestError("Only draft invoices can be edited")

        if data.discount is not None:
            discount = to_money(data.discount)
            subtotal = to_money(invoice.subtotal)
            if discount > subtotal:
                raise BadRequestError("Discount cannot exceed the invoice subtotal")
            invoice.discount = discount
            invoice.total = subtotal - discount
        if data.dueDate:
            invoice.due_date = parse_datetime(data.dueDate)
        if "notes" in data.model_fields_set:
            invoice.notes = data.notes or None

        self.db.commit()
        logger.info(f"Invoice {invoice.number} updated")
        return self.get_invoice(invoice.id, business)

    def issue_invoice(self, invoice_id: str, data: InvoiceIssue, business: Business) -> Invoice:
        """DRAFT -> PENDING (PAID when the total is zero)"""
        invoice = self.get_invoice(invoice_id, business)
        if invoice.status != InvoiceStatus.DRAFT:
            raise BadRequestError("Only draft invoices can be issued")

        now = self.clock.now()
        invoice.status = issued_status(to_money(invoice.total))
        invoice.issued_at = now
        if invoice.status == InvoiceStatus.PAID:
            invoice.paid_at = now
        if data.dueDate:
            invoice.due_date = parse_datetime(data.dueDate)

        self.db.commit()
        logger.info(f"Invoice {invoice.number} issued for business {business.id}")
        return self.get_invoice(invoice.id, business)

    def cancel_invoice(self, invoice_id: str, business: Business) -> Invoice:
        invoice = self.get_invoice(invoice_id, business)
        if invoice.status == InvoiceStatus.PAID:
            raise BadRequestError("Paid invoices cannot be cancelled")
        if invoice.status == InvoiceStatus.CANCELLED:
            raise BadRequestError("Invoice is already cancelled")

        invoice.status = InvoiceStatus.CANCELLED
        self.db.commit()
        logger.info(f"Invoice {invoice.number} cancelled")
        return self.get_invoice(invoice.id, business)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def add_payment(self, invoice_id: str, data: PaymentCreate, business: Business) -> Invoice:
        """
        Record a payment and recompute the invoice status.

        Raises:
            NotFoundError: Invoice not in this business
            BadRequestError: Invoice is DRAFT, CANCELLED or PAID, or the amount
                exceeds the remaining balance
        """
        invoice = self.repo.lock_invoice(self.db, invoice_id, business.id)
        if not invoice:
            raise NotFoundError("Invoice not found")

        if invoice.status in PAYMENT_LOCKED_STATUSES:
            reasons = {
                InvoiceStatus.DRAFT: "Issue the invoice before adding payments",
                InvoiceStatus.CANCELLED: "Cannot add a payment to a cancelled invoice",
                InvoiceStatus.PAID: "Invoice is already fully paid",
            }
            logger.warning(f"Payment rejected on {invoice.status.value} invoice {invoice.number}")
            raise BadRequestError(reasons[invoice.status])

        amount = to_money(data.amount)
        remaining = to_money(invoice.total) - to_money(invoice.paid_amount)
        if amount > remaining:
            logger.warning(f"Overpayment rejected on invoice {invoice.number}: {amount} > {remaining}")
            raise BadRequestError(f"Amount exceeds the remaining balance of {remaining}")

        self.repo.add_payment(
            self.db,
            invoice_id=invoice.id,
            amount=amount,
            method=data.method,
            paid_at=parse_datetime(data.paidAt) or self.clock.now(),
            notes=data.notes or None,
        )
        self._reconcile(invoice)
        self.db.commit()

        logger.info(
            f"Payment of {amount} ({data.method.value}) recorded on invoice {invoice.number}; "
            f"status now {invoice.status.value}"
        )
        return self.get_invoice(invoice.id, business)

    def remove_payment(self, invoice_id: str, payment_id: str, business: Business) -> Invoice:
        invoice = self.repo.lock_invoice(self.db, invoice_id, business.id)
        if not invoice:
            raise NotFoundError("Invoice not found")

        if invoice.status == InvoiceStatus.CANCELLED:
            logger.warning(f"Payment removal rejected on cancelled invoice {invoice.number}")
            raise BadRequestError("Cannot remove a payment from a cancelled invoice")

        payment = self.repo.get_payment(self.db, payment_id, invoice.id)
        if not payment:
            raise NotFoundError("Payment not found")

        self.repo.delete_payment(self.db, payment)
        self._reconcile(invoice)
        self.db.commit()

        logger.info(
            f"Payment {payment_id} removed from invoice {invoice.number}; "
            f"status now {invoice.status.value}"
        )
        return self.get_invoice(invoice.id, business)

    def refresh_overdue(self, business: Business) -> int:
        """Move PENDING invoices past their due date to OVERDUE; returns how many moved"""
        now = self.clock.now()
        updated = 0
        for invoice in self.repo.get_overdue_candidates(self.db, business.id, now):
            status = derive_invoice_status(
                invoice.status,
                to_money(invoice.paid_amount),
                to_money(invoice.total),
                invoice.due_date,
                now,
            )
            if status == InvoiceStatus.OVERDUE:
                invoice.status = status
                updated += 1

        self.db.commit()
        if updated:
            logger.info(f"{updated} invoice(s) marked overdue for business {business.id}")
        return updated

    def _reconcile(self, invoice: Invoice) -> None:
        """Re-sum payments into paid_amount and derive the resulting status"""
        now = self.clock.now()
        paid = to_money(self.repo.sum_payments(self.db, invoice.id))
        status = derive_invoice_status(
            invoice.status, paid, to_money(invoice.total), invoice.due_date, now
        )

        invoice.paid_amount = paid
        if status == InvoiceStatus.PAID and invoice.status != InvoiceStatus.PAID:
            invoice.paid_at = now
        elif status != InvoiceStatus.PAID:
            invoice.paid_at = None
        invoice.status = status
        self.db.flush()
