from portal.extensions import db
from portal.models import ApprovalStatus, ClientOnboarding, User

from conftest import PASSWORD, create_client, login


def _signup(app, email="new@acme.test", password=PASSWORD):
    http = app.test_client()
    resp = http.post(
        "/auth/signup",
        json={"email": email, "password": password, "full_name": "Nora New"},
    )
    return http, resp


# =========================================================
# Signup
# =========================================================
def test_signup_creates_pending_onboarding(app):
    http, resp = _signup(app)
    assert resp.status_code == 201

    body = resp.get_json()
    assert body["user"]["role"] == "client"
    assert body["session"]["screen"] == "onboarding_form"

    with app.app_context():
        row = ClientOnboarding.query.filter_by(user_id=body["user"]["id"]).one()
        assert row.approval_status is ApprovalStatus.PENDING
        assert row.submitted_at is None


def test_signup_rejects_duplicate_email(app):
    _signup(app)
    _, resp = _signup(app, email="NEW@acme.test")
    assert resp.status_code == 409


def test_signup_enforces_password_policy(app):
    _, resp = _signup(app, password="short")
    assert resp.status_code == 400
    with app.app_context():
        assert User.query.count() == 0


# =========================================================
# Intake form (single submission)
# =========================================================
def test_submit_requires_company_and_description(app):
    http, _ = _signup(app)

    resp = http.post("/portal/onboarding", json={"company_name": "Acme"})
    assert resp.status_code == 400

    row = http.get("/portal/onboarding").get_json()["onboarding"]
    assert row["submitted_at"] is None
    assert row["company_name"] is None


def test_submit_moves_client_to_pending_review(app):
    http, _ = _signup(app)

    resp = http.post(
        "/portal/onboarding",
        json={
            "company_name": "Acme",
            "project_description": "New storefront",
            "additional_details": "Launch before spring",
            "logo_url": "http://localhost/files/uploads/1/abc-logo.png",
            "inspiration_images": ["http://example.test/a.png", " ", "http://example.test/b.png"],
        },
    )
    assert resp.status_code == 201

    body = resp.get_json()
    assert body["onboarding"]["submitted_at"] is not None
    assert body["onboarding"]["inspiration_images"] == [
        "http://example.test/a.png",
        "http://example.test/b.png",
    ]
    assert body["session"]["screen"] == "pending_review"


def test_submitted_form_is_read_only(app):
    http, _ = _signup(app)
    first = {"company_name": "Acme", "project_description": "New storefront"}
    assert http.post("/portal/onboarding", json=first).status_code == 201

    resp = http.post(
        "/portal/onboarding",
        json={"company_name": "Changed", "project_description": "Something else"},
    )
    assert resp.status_code == 409

    row = http.get("/portal/onboarding").get_json()["onboarding"]
    assert row["company_name"] == "Acme"
    assert row["project_description"] == "New storefront"


def test_inspiration_images_must_be_a_list(app):
    http, _ = _signup(app)
    resp = http.post(
        "/portal/onboarding",
        json={
            "company_name": "Acme",
            "project_description": "New storefront",
            "inspiration_images": "http://example.test/a.png",
        },
    )
    assert resp.status_code == 400


def test_admin_cannot_use_intake_form(admin_client):
    assert admin_client.get("/portal/onboarding").status_code == 403


# =========================================================
# Admin review
# =========================================================
def test_admin_lists_clients_by_status(app, admin_client):
    create_client(app, "p@acme.test", approval=ApprovalStatus.PENDING)
    create_client(app, "a@acme.test", approval=ApprovalStatus.APPROVED)

    pending = admin_client.get("/admin/clients?status=pending").get_json()["clients"]
    assert [c["profile"]["email"] for c in pending] == ["p@acme.test"]

    everyone = admin_client.get("/admin/clients").get_json()["clients"]
    assert len(everyone) == 2

    assert admin_client.get("/admin/clients?status=bogus").status_code == 400


def test_approve_client_sends_one_email(app, admin_client, sent_emails):
    user_id = create_client(app, "p@acme.test", approval=ApprovalStatus.PENDING)

    resp = admin_client.post(f"/admin/clients/{user_id}/approve")
    assert resp.status_code == 200
    client = resp.get_json()["client"]
    assert client["approval_status"] == "approved"
    assert client["approved_at"] is not None

    assert [e.subject for e in sent_emails] == ["You're Approved! - Keyline Studios"]
    assert sent_emails[0].to == "p@acme.test"
    assert "Welcome Casey Client!" in sent_emails[0].html

    # Approving again changes nothing and sends nothing
    admin_client.post(f"/admin/clients/{user_id}/approve")
    assert len(sent_emails) == 1

    http = login(app.test_client(), "p@acme.test")
    assert http.get("/auth/session").get_json()["session"]["screen"] == "no_contract_yet"


def test_reject_client_is_terminal_screen(app, admin_client, sent_emails):
    user_id = create_client(app, "r@acme.test", approval=ApprovalStatus.PENDING)

    resp = admin_client.post(f"/admin/clients/{user_id}/reject")
    assert resp.status_code == 200
    assert resp.get_json()["client"]["approval_status"] == "rejected"
    assert sent_emails == []

    http = login(app.test_client(), "r@acme.test")
    assert http.get("/auth/session").get_json()["session"]["screen"] == "rejected"


def test_approve_unknown_client_is_404(admin_client):
    assert admin_client.post("/admin/clients/9999/approve").status_code == 404


def test_approve_survives_email_failure(app, admin_client, monkeypatch):
    from portal.services import notifications

    def boom(email):
        raise notifications.NotificationError("provider down", 500)

    monkeypatch.setattr(notifications, "send_email", boom)
    user_id = create_client(app, "p@acme.test", approval=ApprovalStatus.PENDING)

    resp = admin_client.post(f"/admin/clients/{user_id}/approve")
    assert resp.status_code == 200

    with app.app_context():
        row = ClientOnboarding.query.filter_by(user_id=user_id).one()
        assert row.approval_status is ApprovalStatus.APPROVED
        assert db.session.get(User, user_id) is not None
