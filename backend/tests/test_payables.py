"""
Accounts payable tests.

Verifies:
- Supplier CRUD and the delete guard for suppliers with bills
- Bill validation (dates, amounts) and edits that respect paid amounts
- Due / Overdue / Paid filtering and the dashboard summary
- CSV bill import creates missing suppliers once
"""

from datetime import datetime

import pytest

from thumma.errors import ConflictError, NotFoundError, ValidationError
from thumma.extensions import db
from thumma.models import Bill, Supplier
from thumma.services import payables_service, payment_service


NOW = datetime(2026, 3, 10, 15, 0)


@pytest.fixture
def supplier(admin):
    return payables_service.create_supplier(
        {"name": "Siam Cement Supply", "contact_person": "Khun Dao", "email": "", "phone": "02-555-0101"},
        admin,
    )


def make_bill(user, supplier, number, due, amount=50000, bill_date="2026-03-01"):
    return payables_service.create_bill(
        {
            "supplier_id": supplier.id,
            "invoice_number": number,
            "bill_date": bill_date,
            "due_date": due,
            "amount_cents": amount,
        },
        user,
    )


class TestSuppliers:
    def test_blank_optional_fields_become_null(self, supplier):
        assert supplier.email is None
        assert supplier.contact_person == "Khun Dao"

    def test_list_is_cached_until_write(self, admin, supplier):
        assert [s["name"] for s in payables_service.list_suppliers()] == ["Siam Cement Supply"]
        payables_service.create_supplier({"name": "Asia Steel"}, admin)
        assert [s["name"] for s in payables_service.list_suppliers()] == ["Asia Steel", "Siam Cement Supply"]

    def test_update(self, admin, supplier):
        updated = payables_service.update_supplier(supplier.id, {"phone": "02-555-9999"}, admin)
        assert updated.phone == "02-555-9999"

    def test_unknown_field(self, admin, supplier):
        with pytest.raises(ValidationError):
            payables_service.update_supplier(supplier.id, {"balance": 1}, admin)

    def test_delete_refused_with_bills(self, admin, supplier):
        make_bill(admin, supplier, "B-1", "2026-03-31")
        with pytest.raises(ConflictError):
            payables_service.delete_supplier(supplier.id, admin)

    def test_delete(self, admin, supplier):
        payables_service.delete_supplier(supplier.id, admin)
        with pytest.raises(NotFoundError):
            payables_service.get_supplier(supplier.id)


class TestBills:
    def test_created_due(self, admin, supplier):
        bill = make_bill(admin, supplier, "B-1", "2026-03-31")
        assert bill.status == "Due"
        assert bill.paid_amount_cents == 0
        assert bill.bill_date == datetime(2026, 3, 1)

    def test_due_before_bill_date(self, admin, supplier):
        with pytest.raises(ValidationError):
            make_bill(admin, supplier, "B-1", "2026-02-01")

    def test_missing_fields(self, admin, supplier):
        with pytest.raises(ValidationError, match="Missing required fields"):
            payables_service.create_bill({"supplier_id": supplier.id}, admin)

    def test_zero_amount(self, admin, supplier):
        with pytest.raises(ValidationError):
            make_bill(admin, supplier, "B-1", "2026-03-31", amount=0)

    def test_unknown_supplier(self, admin):
        with pytest.raises(NotFoundError):
            payables_service.create_bill(
                {
                    "supplier_id": 999,
                    "invoice_number": "B-1",
                    "bill_date": "2026-03-01",
                    "due_date": "2026-03-31",
                    "amount_cents": 100,
                },
                admin,
            )

    def test_amount_cannot_drop_below_paid(self, admin, supplier):
        bill = make_bill(admin, supplier, "B-1", "2026-03-31")
        payment_service.record_bill_payment(bill.id, 30000, method="Cash", user=admin)
        with pytest.raises(ConflictError):
            payables_service.update_bill(bill.id, {"amount_cents": 20000}, admin)

    def test_lowering_amount_to_paid_marks_paid(self, admin, supplier):
        bill = make_bill(admin, supplier, "B-1", "2026-03-31")
        payment_service.record_bill_payment(bill.id, 30000, method="Cash", user=admin)
        updated = payables_service.update_bill(bill.id, {"amount_cents": 30000}, admin)
        assert updated.status == "Paid"

    def test_delete_bill(self, admin, supplier):
        bill = make_bill(admin, supplier, "B-1", "2026-03-31")
        payment_service.record_bill_payment(bill.id, 100, method="Cash", user=admin)
        payables_service.delete_bill(bill.id, admin)
        assert db.session.query(Bill).count() == 0


class TestBillViews:
    @pytest.fixture
    def bills(self, admin, supplier):
        overdue = make_bill(admin, supplier, "B-OVERDUE", "2026-03-05", amount=10000)
        today = make_bill(admin, supplier, "B-TODAY", "2026-03-10T18:00:00", amount=20000)
        week = make_bill(admin, supplier, "B-WEEK", "2026-03-15", amount=30000)
        later = make_bill(admin, supplier, "B-LATER", "2026-04-30", amount=40000)
        paid = make_bill(admin, supplier, "B-PAID", "2026-03-05", amount=5000)
        payment_service.record_bill_payment(paid.id, 5000, method="Cash", user=admin)
        return {b.invoice_number: b.id for b in (overdue, today, week, later, paid)}

    def test_status_filters(self, bills):
        overdue = payables_service.list_bills("Overdue", now=NOW)
        due = payables_service.list_bills("Due", now=NOW)
        paid = payables_service.list_bills("Paid", now=NOW)
        assert [b.invoice_number for b in overdue] == ["B-OVERDUE"]
        assert [b.invoice_number for b in due] == ["B-TODAY", "B-WEEK", "B-LATER"]
        assert [b.invoice_number for b in paid] == ["B-PAID"]
        assert len(payables_service.list_bills(now=NOW)) == 5

    def test_invalid_status(self, db_session):
        with pytest.raises(ValidationError):
            payables_service.list_bills("Late")

    def test_summary(self, bills):
        summary = payables_service.payables_summary(NOW)
        assert summary["total_owed_cents"] == 100000
        assert summary["due_today_cents"] == 20000
        assert summary["due_today_count"] == 1
        assert summary["due_next_7_days_cents"] == 30000
        assert summary["overdue_cents"] == 10000
        assert summary["overdue_count"] == 1

    def test_bill_due_this_morning_counts_once(self, admin, supplier):
        bill = make_bill(admin, supplier, "B-MIDNIGHT", "2026-03-10", amount=50000)
        assert payment_service.display_status(bill, NOW) == "Due"
        assert payables_service.list_bills("Overdue", now=NOW) == []

        summary = payables_service.payables_summary(NOW)
        assert summary["due_today_count"] == 1
        assert summary["due_today_cents"] == 50000
        assert summary["overdue_count"] == 0
        assert summary["overdue_cents"] == 0


class TestBillImport:
    def test_creates_missing_suppliers_once(self, admin, supplier):
        rows = [
            {"supplier_name": "siam cement supply", "invoice_number": "X-1", "bill_date": "2026-03-01",
             "due_date": "2026-03-31", "amount": "1,250.50", "notes": ""},
            {"supplier_name": "Asia Steel", "invoice_number": "X-2", "bill_date": "2026-03-01",
             "due_date": "2026-03-31", "amount": "300"},
            {"supplier_name": "ASIA STEEL", "invoice_number": "X-3", "bill_date": "2026-03-02",
             "due_date": "2026-04-01", "amount": 10},
        ]
        result = payables_service.import_bills(rows, admin)

        assert [b.amount_cents for b in result["bills"]] == [125050, 30000, 1000]
        assert [s.name for s in result["suppliers"]] == ["Asia Steel"]
        assert result["bills"][0].supplier_id == supplier.id
        assert db.session.query(Supplier).count() == 2

    def test_bad_row_rejects_whole_import(self, admin, supplier):
        rows = [
            {"supplier_name": "Asia Steel", "invoice_number": "X-2", "bill_date": "2026-03-01",
             "due_date": "2026-03-31", "amount": "300"},
            {"supplier_name": "Asia Steel", "invoice_number": "X-3", "bill_date": "2026-03-01",
             "due_date": "2026-03-31", "amount": "abc"},
        ]
        with pytest.raises(ValidationError, match="Row 3"):
            payables_service.import_bills(rows, admin)
        assert db.session.query(Bill).count() == 0
