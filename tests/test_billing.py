"""Tests for invoice totals, numbering, payment reconciliation and billing stats."""

from datetime import datetime
from decimal import Decimal

import pytest

from app.domain.billing.schemas import (
    BillingStatsQuery,
    InvoiceCreate,
    InvoiceFromAppointmentCreate,
    InvoiceIssue,
    InvoiceItemCreate,
    InvoiceListQuery,
    InvoiceUpdate,
    PaymentCreate,
)
from app.domain.billing.service import InvoiceService, next_invoice_number
from app.domain.billing.stats_service import BillingStatsService, resolve_period
from app.domain.billing.status import derive_invoice_status
from app.models import AppointmentStatus, InvoiceStatus, PaymentMethod
from app.shared.errors import BadRequestError, ConflictError, NotFoundError
from conftest import NOW_UTC, TUESDAY, make_appointment, make_business, make_customer


@pytest.fixture
def invoices(db, clock):
    return InvoiceService(db, clock)


def standard_items():
    return [
        InvoiceItemCreate(description="Lavagem completa", quantity=2, unitPrice=Decimal("50")),
        InvoiceItemCreate(description="Cera", quantity=1, unitPrice=Decimal("30")),
    ]


def create_invoice(invoices, business, customer, items=None, **extra):
    extra.setdefault("autoIssue", True)
    data = InvoiceCreate(customerId=customer.id, items=items or standard_items(), **extra)
    return invoices.create_invoice(data, business)


def pay(invoices, business, invoice, amount, method=PaymentMethod.PIX):
    return invoices.add_payment(
        invoice.id, PaymentCreate(amount=Decimal(amount), method=method), business
    )


class TestInvoiceStatusDerivation:
    @pytest.mark.parametrize(
        "status,paid,due_date,expected",
        [
            (InvoiceStatus.PENDING, "0", None, InvoiceStatus.PENDING),
            (InvoiceStatus.PENDING, "50", None, InvoiceStatus.PARTIAL),
            (InvoiceStatus.PARTIAL, "120", None, InvoiceStatus.PAID),
            (InvoiceStatus.PENDING, "0", datetime(2025, 3, 1), InvoiceStatus.OVERDUE),
            (InvoiceStatus.OVERDUE, "10", datetime(2025, 3, 1), InvoiceStatus.PARTIAL),
            (InvoiceStatus.PENDING, "0", datetime(2025, 4, 1), InvoiceStatus.PENDING),
            (InvoiceStatus.CANCELLED, "120", None, InvoiceStatus.CANCELLED),
            (InvoiceStatus.DRAFT, "0", datetime(2025, 3, 1), InvoiceStatus.DRAFT),
        ],
    )
    def test_derive(self, status, paid, due_date, expected):
        result = derive_invoice_status(status, Decimal(paid), Decimal("120"), due_date, NOW_UTC)
        assert result == expected


class TestInvoiceNumbers:
    def test_first_number(self):
        assert next_invoice_number(None) == "NF-0001"

    def test_increment(self):
        assert next_invoice_number("NF-0009") == "NF-0010"

    def test_grows_past_four_digits(self):
        assert next_invoice_number("NF-9999") == "NF-10000"

    def test_sequence_survives_cancellation(self, invoices, business, customer):
        first = create_invoice(invoices, business, customer)
        second = create_invoice(invoices, business, customer)
        invoices.cancel_invoice(second.id, business)
        third = create_invoice(invoices, business, customer)

        assert [first.number, second.number, third.number] == ["NF-0001", "NF-0002", "NF-0003"]

    def test_sequence_is_per_business(self, db, invoices, business, customer):
        create_invoice(invoices, business, customer)
        other_business = make_business(db, owner_id="owner-2", slug="outra-loja")
        other_customer = make_customer(db, other_business, phone="11911112222")

        other = create_invoice(invoices, other_business, other_customer)
        assert other.number == "NF-0001"


class TestCreateInvoice:
    def test_totals(self, invoices, business, customer):
        invoice = create_invoice(invoices, business, customer, discount=Decimal("10"))

        assert invoice.subtotal == Decimal("130")
        assert invoice.discount == Decimal("10")
        assert invoice.total == Decimal("120")
        assert invoice.paid_amount == Decimal("0")
        assert [item.total for item in invoice.items] == [Decimal("100"), Decimal("30")]
        assert [item.position for item in invoice.items] == [0, 1]

    def test_auto_issue(self, invoices, business, customer):
        invoice = create_invoice(invoices, business, customer)

        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.issued_at == NOW_UTC

    def test_draft_by_default(self, invoices, business, customer):
        data = InvoiceCreate(customerId=customer.id, items=standard_items())
        invoice = invoices.create_invoice(data, business)

        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.issued_at is None

    def test_discount_above_subtotal(self, invoices, business, customer):
        with pytest.raises(BadRequestError):
            create_invoice(invoices, business, customer, discount=Decimal("131"))

    def test_fully_discounted_invoice_is_paid_on_issue(self, invoices, business, customer):
        invoice = create_invoice(
            invoices, business, customer, discount=Decimal("130"), dueDate="2025-03-01"
        )

        assert invoice.total == Decimal("0")
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.paid_at == NOW_UTC
        assert invoices.refresh_overdue(business) == 0
        assert invoices.get_invoice(invoice.id, business).status == InvoiceStatus.PAID

    def test_fully_discounted_draft_is_paid_when_issued(self, invoices, business, customer):
        draft = create_invoice(invoices, business, customer, discount=Decimal("130"), autoIssue=False)
        assert draft.status == InvoiceStatus.DRAFT

        issued = invoices.issue_invoice(draft.id, InvoiceIssue(), business)
        assert issued.status == InvoiceStatus.PAID
        assert issued.paid_at == NOW_UTC

    def test_unknown_customer(self, db, invoices, business):
        other_business = make_business(db, owner_id="owner-2", slug="outra-loja")
        stranger = make_customer(db, other_business, phone="11911112222")

        with pytest.raises(NotFoundError):
            create_invoice(invoices, business, stranger)

    def test_unknown_item_service(self, invoices, business, customer):
        items = [InvoiceItemCreate(serviceId="missing", description="X", unitPrice=Decimal("10"))]

        with pytest.raises(NotFoundError):
            create_invoice(invoices, business, customer, items=items)


class TestInvoiceFromAppointment:
    def test_mirrors_service(self, db, invoices, business, customer, service):
        appointment = make_appointment(
            db, business, customer, service, TUESDAY, status=AppointmentStatus.COMPLETED
        )

        invoice = invoices.create_from_appointment(
            InvoiceFromAppointmentCreate(appointmentId=appointment.id), business
        )

        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.customer_id == customer.id
        assert invoice.appointment_id == appointment.id
        assert invoice.total == Decimal("50")
        assert len(invoice.items) == 1
        assert invoice.items[0].description == service.name
        assert invoice.items[0].service_id == service.id

    def test_one_invoice_per_appointment(self, db, invoices, business, customer, service):
        appointment = make_appointment(db, business, customer, service, TUESDAY)
        data = InvoiceFromAppointmentCreate(appointmentId=appointment.id)
        invoices.create_from_appointment(data, business)

        with pytest.raises(ConflictError):
            invoices.create_from_appointment(data, business)

    def test_manual_invoice_for_invoiced_appointment(self, db, invoices, business, customer, service):
        appointment = make_appointment(db, business, customer, service, TUESDAY)
        invoices.create_from_appointment(
            InvoiceFromAppointmentCreate(appointmentId=appointment.id), business
        )

        with pytest.raises(ConflictError):
            create_invoice(invoices, business, customer, appointmentId=appointment.id)

    def test_unknown_appointment(self, invoices, business):
        with pytest.raises(NotFoundError):
            invoices.create_from_appointment(
                InvoiceFromAppointmentCreate(appointmentId="missing"), business
            )


class TestInvoiceLifecycle:
    def test_issue_draft(self, invoices, business, customer):
        draft = create_invoice(invoices, business, customer, autoIssue=False)

        issued = invoices.issue_invoice(draft.id, InvoiceIssue(dueDate="2025-03-20"), business)
        assert issued.status == InvoiceStatus.PENDING
        assert issued.issued_at == NOW_UTC
        assert issued.due_date == datetime(2025, 3, 20)

    def test_issue_twice(self, invoices, business, customer):
        invoice = create_invoice(invoices, business, customer)

        with pytest.raises(BadRequestError):
            invoices.issue_invoice(invoice.id, InvoiceIssue(), business)

    def test_update_draft_recomputes_total(self, invoices, business, customer):
        draft = create_invoice(invoices, business, customer, autoIssue=False)

        updated = invoices.update_invoice(draft.id, InvoiceUpdate(discount=Decimal("30")), business)
        assert updated.total == Decimal("100")

    def test_issued_invoice_is_read_only(self, invoices, business, customer):
        invoice = create_invoice(invoices, business, customer)

        with pytest.raises(BadRequestError):
            invoices.update_invoice(invoice.id, InvoiceUpdate(notes="changed"), business)

    def test_cancel(self, invoices, business, customer):
        invoice = create_invoice(invoices, business, customer)

        cancelled = invoices.cancel_invoice(invoice.id, business)
        assert cancelled.status == InvoiceStatus.CANCELLED

        with pytest.raises(BadRequestError):
            invoices.cancel_invoice(invoice.id, business)

    def test_paid_invoice_cannot_be_cancelled(self, invoices, business, customer):
        invoice = create_invoice(invoices, business, customer, discount=Decimal("10"))
        pay(invoices, business, invoice, "120")

        with pytest.raises(BadRequestError):
            invoices.cancel_invoice(invoice.id, business)

    def test_list_search(self, db, invoices, business, customer):
        create_invoice(invoices, business, customer)
        other = make_customer(db, business, name="Joao Souza", phone="11955556666")
        create_invoice(invoices, business, other)

        rows, pagination = invoices.list_invoices(business, InvoiceListQuery(search="joao"))
        assert [i.customer.name for i in rows] == ["Joao Souza"]
        assert pagination["total"] == 1


class TestPayments:
    def test_payment_sequence(self, invoices, business, customer):
        invoice = create_invoice(invoices, business, customer, discount=Decimal("10"))

        invoice = pay(invoices, business, invoice, "50")
        assert invoice.status == InvoiceStatus.PARTIAL
        assert invoice.paid_amount == Decimal("50")

        invoice = pay(invoices, business, invoice, "70")
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.paid_amount == Decimal("120")
        assert invoice.paid_at == NOW_UTC

        with pytest.raises(BadRequestError):
            pay(invoices, business, invoice, "1")

        seventy = next(p for p in invoice.payments if p.amount == Decimal("70"))
        invoice = invoices.remove_payment(invoice.id, seventy.id, business)
        assert invoice.status == InvoiceStatus.PARTIAL
        assert invoice.paid_amount == Decimal("50")
        assert invoice.paid_at is None

    def test_overpayment_rejected(self, invoices, business, customer):
        invoice = create_invoice(invoices, business, customer, discount=Decimal("10"))

        with pytest.raises(BadRequestError):
            pay(invoices, business, invoice, "120.01")

    def test_cents_do_not_drift(self, invoices, business, customer):
        items = [InvoiceItemCreate(description="Taxa", quantity=3, unitPrice=Decimal("0.10"))]
        invoice = create_invoice(invoices, business, customer, items=items)

        for _ in range(3):
            invoice = pay(invoices, business, invoice, "0.10")
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.paid_amount == Decimal("0.30")

    def test_draft_rejects_payment(self, invoices, business, customer):
        draft = create_invoice(invoices, business, customer, autoIssue=False)

        with pytest.raises(BadRequestError):
            pay(invoices, business, draft, "10")

    def test_cancelled_rejects_payment(self, invoices, business, customer):
        invoice = create_invoice(invoices, business, customer)
        invoices.cancel_invoice(invoice.id, business)

        with pytest.raises(BadRequestError):
            pay(invoices, business, invoice, "10")

    def test_removing_only_payment_returns_to_pending(self, invoices, business, customer):
        invoice = create_invoice(invoices, business, customer, dueDate="2025-03-31")
        invoice = pay(invoices, business, invoice, "40")
        assert invoice.status == InvoiceStatus.PARTIAL

        invoice = invoices.remove_payment(invoice.id, invoice.payments[0].id, business)
        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.paid_amount == Decimal("0")
        assert invoice.paid_at is None
        assert invoice.payments == []

    def test_removing_only_payment_past_due_is_overdue(self, invoices, business, customer):
        invoice = create_invoice(invoices, business, customer, dueDate="2025-03-01")
        invoice = pay(invoices, business, invoice, "40")
        assert invoice.status == InvoiceStatus.PARTIAL

        invoice = invoices.remove_payment(invoice.id, invoice.payments[0].id, business)
        assert invoice.status == InvoiceStatus.OVERDUE
        assert invoice.paid_amount == Decimal("0")
        assert invoice.paid_at is None

    def test_cancelled_rejects_payment_removal(self, invoices, business, customer):
        invoice = create_invoice(invoices, business, customer)
        invoice = pay(invoices, business, invoice, "40")
        payment_id = invoice.payments[0].id
        invoices.cancel_invoice(invoice.id, business)

        with pytest.raises(BadRequestError):
            invoices.remove_payment(invoice.id, payment_id, business)

        invoice = invoices.get_invoice(invoice.id, business)
        assert invoice.status == InvoiceStatus.CANCELLED
        assert invoice.paid_amount == Decimal("40")
        assert len(invoice.payments) == 1

    def test_remove_unknown_payment(self, invoices, business, customer):
        invoice = create_invoice(invoices, business, customer)

        with pytest.raises(NotFoundError):
            invoices.remove_payment(invoice.id, "missing", business)


class TestOverdue:
    def test_refresh_marks_past_due(self, invoices, business, customer):
        late = create_invoice(invoices, business, customer, dueDate="2025-03-01")
        on_time = create_invoice(invoices, business, customer, dueDate="2025-03-31")

        assert invoices.refresh_overdue(business) == 1
        assert invoices.get_invoice(late.id, business).status == InvoiceStatus.OVERDUE
        assert invoices.get_invoice(on_time.id, business).status == InvoiceStatus.PENDING

    def test_refresh_is_repeatable(self, invoices, business, customer):
        create_invoice(invoices, business, customer, dueDate="2025-03-01")

        invoices.refresh_overdue(business)
        assert invoices.refresh_overdue(business) == 0

    def test_becomes_overdue_as_time_passes(self, invoices, business, customer, clock):
        invoice = create_invoice(invoices, business, customer, dueDate="2025-03-31")
        assert invoices.refresh_overdue(business) == 0

        clock.advance(days=25)

        assert invoices.refresh_overdue(business) == 1
        assert invoices.get_invoice(invoice.id, business).status == InvoiceStatus.OVERDUE

    def test_payment_on_overdue_invoice(self, invoices, business, customer):
        late = create_invoice(invoices, business, customer, dueDate="2025-03-01")
        invoices.refresh_overdue(business)

        invoice = pay(invoices, business, late, "10")
        assert invoice.status == InvoiceStatus.PARTIAL


class TestBillingStats:
    def test_resolve_named_periods(self):
        assert resolve_period(NOW_UTC, "month") == (datetime(2025, 3, 1), NOW_UTC)
        assert resolve_period(NOW_UTC, "year") == (datetime(2025, 1, 1), NOW_UTC)
        assert resolve_period(NOW_UTC, "week") == (datetime(2025, 3, 3, 12, 0), NOW_UTC)

    def test_resolve_explicit_range_covers_whole_days(self):
        start, end = resolve_period(NOW_UTC, "month", "2025-02-01", "2025-02-28")
        assert start == datetime(2025, 2, 1)
        assert end.date() == datetime(2025, 2, 28).date()
        assert (end.hour, end.minute) == (23, 59)

    def test_stats(self, db, invoices, business, customer, clock):
        paid = create_invoice(invoices, business, customer, discount=Decimal("10"))
        pay(invoices, business, paid, "120")

        partial_items = [InvoiceItemCreate(description="Lavagem", unitPrice=Decimal("50"))]
        partial = create_invoice(invoices, business, customer, items=partial_items)
        pay(invoices, business, partial, "20", PaymentMethod.CASH)

        late_items = [InvoiceItemCreate(description="Cera", unitPrice=Decimal("30"))]
        create_invoice(invoices, business, customer, items=late_items, dueDate="2025-03-01")
        invoices.refresh_overdue(business)

        create_invoice(invoices, business, customer, autoIssue=False)

        stats = BillingStatsService(db, clock).get_stats(business, BillingStatsQuery())

        assert stats["totalRevenue"] == Decimal("120")
        assert stats["totalPending"] == Decimal("30")
        assert stats["totalOverdue"] == Decimal("30")
        assert stats["invoiceCount"] == {
            "total": 4,
            "draft": 1,
            "pending": 0,
            "partial": 1,
            "paid": 1,
            "overdue": 1,
            "cancelled": 0,
        }
        assert [(m["method"], m["total"], m["count"]) for m in stats["revenueByMethod"]] == [
            (PaymentMethod.CASH, Decimal("20"), 1),
            (PaymentMethod.PIX, Decimal("120"), 1),
        ]
        assert stats["revenueByDay"] == [
            {"date": "2025-03-10", "revenue": Decimal("140"), "count": 2}
        ]

    def test_stats_outside_range(self, db, invoices, business, customer, clock):
        paid = create_invoice(invoices, business, customer, discount=Decimal("10"))
        pay(invoices, business, paid, "120")

        query = BillingStatsQuery(startDate="2025-02-01", endDate="2025-02-28")
        stats = BillingStatsService(db, clock).get_stats(business, query)

        assert stats["totalRevenue"] == Decimal("0")
        assert stats["revenueByMethod"] == []
        assert stats["invoiceCount"]["paid"] == 1
