"""
Shared fixtures for the portal test-suite.

- every test gets a fresh app on an in-memory SQLite database
- outbound email is recorded instead of sent (``sent_emails``)
- realtime pub/sub runs on an in-memory Redis (``redis_server``)
- helpers create users/projects/contracts directly and return their ids

No app context stays pushed while requests run: Flask-Login caches the
current user on ``g``, so each request must get its own context.
"""

from types import SimpleNamespace

import fakeredis
import pytest

from portal import create_app
from portal.extensions import broker, db
from portal.models import (
    ApprovalStatus,
    ClientOnboarding,
    Contract,
    Project,
    ProjectStatus,
    Role,
    User,
    utcnow_naive,
)
from portal.services import notifications
from portal.settings import Config
from portal.utils.passwords import hash_password

PASSWORD = "Keyline-Test-2024"
SIGNATURE = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=="

# scrypt hashing is slow; hash once for the whole run
_PASSWORD_HASH = hash_password(PASSWORD)


class TestConfig(Config):
    __test__ = False

    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = "memory://"
    RESEND_API_KEY = "re_test_key"
    PUBLIC_FILES_BASE_URL = ""
    PREFERRED_URL_SCHEME = "http"
    MESSAGE_STREAM_KEEPALIVE_SECONDS = 0.05


# =========================================================
# App / clients
# =========================================================
@pytest.fixture
def redis_server():
    """One Redis shared by every "worker" in a test."""
    return fakeredis.FakeServer()


@pytest.fixture
def app(tmp_path, redis_server):
    app = create_app(TestConfig)
    app.config["FILES_STORAGE_DIR"] = str(tmp_path / "files")
    broker.init_app(app, client=fakeredis.FakeRedis(server=redis_server))

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Every email that would have gone to the provider, in order."""
    sent = []

    def fake_send_email(email):
        sent.append(email)
        return {"id": f"test-email-{len(sent)}"}

    monkeypatch.setattr(notifications, "send_email", fake_send_email)
    return sent


def login(http, email, password=PASSWORD):
    resp = http.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return http


# =========================================================
# Data helpers (each returns ids, never ORM objects)
# =========================================================
def create_user(app, email, *, role=Role.CLIENT, full_name=None, company_name=None):
    with app.app_context():
        user = User(
            email=email,
            full_name=full_name,
            company_name=company_name,
            role=role,
            password_hash=_PASSWORD_HASH,
        )
        db.session.add(user)
        db.session.commit()
        return user.id


def create_client(
    app,
    email,
    *,
    approval=ApprovalStatus.APPROVED,
    submitted=True,
    full_name="Casey Client",
    company_name="Acme Co",
):
    user_id = create_user(app, email, full_name=full_name, company_name=company_name)
    with app.app_context():
        db.session.add(
            ClientOnboarding(
                user_id=user_id,
                company_name=company_name if submitted else None,
                project_description="A new marketing site" if submitted else None,
                approval_status=approval,
                approved_at=utcnow_naive() if approval is ApprovalStatus.APPROVED else None,
                submitted_at=utcnow_naive() if submitted else None,
            )
        )
        db.session.commit()
    return user_id


def create_project(app, client_id, *, name="Brand Refresh", status=ProjectStatus.DISCOVERY):
    with app.app_context():
        project = Project(client_id=client_id, name=name, status=status)
        db.session.add(project)
        db.session.commit()
        return project.id


def create_contract(app, client_id, project_id, *, signed=False, title="Service Agreement"):
    with app.app_context():
        contract = Contract(
            client_id=client_id,
            project_id=project_id,
            title=title,
            content="Scope, fees and timeline.",
            is_signed=signed,
            signature_data=SIGNATURE if signed else None,
            signed_at=utcnow_naive() if signed else None,
        )
        db.session.add(contract)
        db.session.commit()
        return contract.id


# =========================================================
# Ready-made actors
# =========================================================
@pytest.fixture
def admin_id(app):
    return create_user(app, "admin@keyline.test", role=Role.ADMIN, full_name="Studio Admin")


@pytest.fixture
def admin_client(app, admin_id):
    return login(app.test_client(), "admin@keyline.test")


@pytest.fixture
def active_client(app):
    """Approved client with one project and a signed contract, logged in."""
    user_id = create_client(app, "client@acme.test")
    project_id = create_project(app, user_id)
    contract_id = create_contract(app, user_id, project_id, signed=True)
    http = login(app.test_client(), "client@acme.test")
    return SimpleNamespace(
        user_id=user_id,
        project_id=project_id,
        contract_id=contract_id,
        http=http,
    )


@pytest.fixture
def other_client(app):
    """A second active client, for ownership checks."""
    user_id = create_client(app, "other@globex.test", full_name="Olive Other", company_name="Globex")
    project_id = create_project(app, user_id, name="Globex Portal")
    contract_id = create_contract(app, user_id, project_id, signed=True)
    http = login(app.test_client(), "other@globex.test")
    return SimpleNamespace(
        user_id=user_id,
        project_id=project_id,
        contract_id=contract_id,
        http=http,
    )
