"""
A new client from signup to a paid invoice, driven only through HTTP.
"""

from conftest import PASSWORD, SIGNATURE


def _screen(http):
    return http.get("/auth/session").get_json()["session"]["screen"]


def test_client_journey(app, admin_client, sent_emails):
    client = app.test_client()

    resp = client.post(
        "/auth/signup",
        json={"email": "Jordan@Brightside.test", "password": PASSWORD, "full_name": "Jordan Bright"},
    )
    assert resp.status_code == 201
    assert _screen(client) == "onboarding_form"

    resp = client.post(
        "/portal/onboarding",
        json={
            "company_name": "Brightside",
            "project_description": "A storefront for our coffee roastery",
            "inspiration_images": ["https://images.example/one.jpg"],
        },
    )
    assert resp.status_code == 201
    assert _screen(client) == "pending_review"
    assert client.get("/portal/dashboard").status_code == 403

    pending = admin_client.get("/admin/clients?status=pending").get_json()["clients"]
    client_id = next(c["user_id"] for c in pending if c["profile"]["email"] == "jordan@brightside.test")

    assert admin_client.post(f"/admin/clients/{client_id}/approve").status_code == 200
    assert _screen(client) == "no_contract_yet"

    sent = admin_client.post(
        "/admin/contracts",
        json={"client_id": client_id, "title": "Website Agreement", "content": "Design and build."},
    ).get_json()
    assert sent["project_created"] is True
    assert sent["project"]["name"] == "Brightside Project"
    project_id = sent["project"]["id"]
    assert _screen(client) == "sign_contract"

    contract = client.get("/portal/contract").get_json()["contract"]
    resp = client.post(f"/portal/contracts/{contract['id']}/sign", json={"signature_data": SIGNATURE})
    assert resp.status_code == 200
    assert resp.get_json()["session"]["screen"] == "dashboard"

    dashboard = client.get("/portal/dashboard").get_json()
    assert dashboard["project"]["id"] == project_id
    assert dashboard["project"]["status"] == "discovery"

    invoice = admin_client.post(
        "/admin/invoices",
        json={"project_id": project_id, "description": "Deposit", "amount": "250.00"},
    ).get_json()["invoice"]

    listed = client.get(f"/portal/projects/{project_id}/invoices").get_json()["invoices"]
    assert [(i["amount_display"], i["status"]) for i in listed] == [("$250.00", "pending")]

    admin_client.post(f"/admin/invoices/{invoice['id']}/status", json={"status": "paid"})
    listed = client.get(f"/portal/projects/{project_id}/invoices").get_json()["invoices"]
    assert listed[0]["status"] == "paid"
    assert listed[0]["paid_at"] is not None

    assert [e.subject for e in sent_emails] == [
        "You're Approved! - Keyline Studios",
        "Your Contract is Ready - Keyline Studios",
        "New Invoice - Keyline Studios",
    ]
