import pytest

from portal.extensions import db
from portal.models import Invoice

from conftest import create_project


def _create(admin_client, project, **overrides):
    payload = {"project_id": str(project), "description": "Design deposit", "amount": "19.99"}
    payload.update(overrides)
    return admin_client.post("/admin/invoices", json=payload)


def test_create_invoice_stores_cents(app, admin_client, active_client, sent_emails):
    resp = _create(admin_client, active_client.project_id, due_date="2026-12-01")
    assert resp.status_code == 201

    invoice = resp.get_json()["invoice"]
    assert invoice["amount"] == 1999
    assert invoice["amount_display"] == "$19.99"
    assert invoice["currency"] == "usd"
    assert invoice["status"] == "pending"
    assert invoice["paid_at"] is None
    assert invoice["client_id"] == active_client.user_id
    assert invoice["due_date"] == "2026-12-01"

    assert [e.subject for e in sent_emails] == ["New Invoice - Keyline Studios"]
    assert "$19.99" in sent_emails[0].html
    assert "Design deposit" in sent_emails[0].html


@pytest.mark.parametrize(
    "extra",
    [
        {"amount": "abc"},
        {"amount": "-5"},
        {"amount": ""},
        {"description": ""},
        {"project_id": ""},
        {"project_id": "not-a-uuid"},
        {"amount": "21474836.48"},
        {"due_date": "soon"},
    ],
)
def test_create_invoice_validation(app, admin_client, active_client, sent_emails, extra):
    resp = _create(admin_client, active_client.project_id, **extra)
    assert resp.status_code == 400

    with app.app_context():
        assert Invoice.query.count() == 0
    assert sent_emails == []


def test_create_invoice_unknown_project(admin_client):
    resp = _create(admin_client, "6f1c1d2e-0000-4000-8000-000000000000")
    assert resp.status_code == 404


def test_status_transitions_manage_paid_at(app, admin_client, active_client):
    invoice_id = _create(admin_client, active_client.project_id).get_json()["invoice"]["id"]
    url = f"/admin/invoices/{invoice_id}/status"

    paid = admin_client.post(url, json={"status": "paid"}).get_json()["invoice"]
    assert paid["status"] == "paid"
    assert paid["paid_at"] is not None

    overdue = admin_client.post(url, json={"status": "overdue"}).get_json()["invoice"]
    assert overdue["status"] == "overdue"
    assert overdue["paid_at"] is None

    back = admin_client.post(url, json={"status": "pending"}).get_json()["invoice"]
    assert back["status"] == "pending"
    assert back["paid_at"] is None

    assert admin_client.post(url, json={"status": "refunded"}).status_code == 400


def test_admin_filters_invoices(app, admin_client, active_client):
    second_project = create_project(app, active_client.user_id, name="Phase 2")
    _create(admin_client, active_client.project_id)
    _create(admin_client, second_project, amount="100")

    rows = admin_client.get(f"/admin/invoices?project_id={second_project}").get_json()["invoices"]
    assert [r["amount_display"] for r in rows] == ["$100.00"]

    assert len(admin_client.get("/admin/invoices?status=pending").get_json()["invoices"]) == 2
    assert admin_client.get("/admin/invoices?status=paid").get_json()["invoices"] == []


def test_client_lists_own_project_invoices(admin_client, active_client, other_client):
    _create(admin_client, active_client.project_id)

    rows = active_client.http.get(f"/portal/projects/{active_client.project_id}/invoices").get_json()["invoices"]
    assert [r["amount_display"] for r in rows] == ["$19.99"]

    resp = other_client.http.get(f"/portal/projects/{active_client.project_id}/invoices")
    assert resp.status_code == 404


def test_invoice_pdf(admin_client, active_client, other_client):
    invoice_id = _create(admin_client, active_client.project_id).get_json()["invoice"]["id"]

    resp = active_client.http.get(f"/portal/invoices/{invoice_id}/pdf")
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert resp.data.startswith(b"%PDF")
    assert "Keyline_Invoice_INV-" in resp.headers["Content-Disposition"]

    assert other_client.http.get(f"/portal/invoices/{invoice_id}/pdf").status_code == 404


def test_invoice_model_set_status(app, active_client):
    from portal.models import InvoiceStatus

    with app.app_context():
        inv = Invoice(
            project_id=active_client.project_id,
            client_id=active_client.user_id,
            description="Retainer",
            amount=100,
        )
        inv.set_status(InvoiceStatus.PAID)
        assert inv.paid_at is not None
        inv.set_status(InvoiceStatus.OVERDUE)
        assert inv.paid_at is None
        db.session.rollback()
