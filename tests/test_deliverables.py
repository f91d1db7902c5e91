import io
import os

import pytest

from portal.extensions import db
from portal.models import Deliverable


def _storage_files(app):
    root = app.config["FILES_STORAGE_DIR"]
    found = []
    for dirpath, _dirs, files in os.walk(root):
        found.extend(os.path.join(dirpath, f) for f in files)
    return found


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "Logo", "external_link": "https://drive.example/logo"},
        {"project_id": "PROJECT", "external_link": "https://drive.example/logo"},
        {"project_id": "PROJECT", "title": "  "},
        {"project_id": "PROJECT", "title": "Logo"},
    ],
)
def test_validation_happens_before_any_write(app, admin_client, active_client, sent_emails, payload):
    data = {k: (str(active_client.project_id) if v == "PROJECT" else v) for k, v in payload.items()}

    resp = admin_client.post("/admin/deliverables", json=data)
    assert resp.status_code == 400

    with app.app_context():
        assert Deliverable.query.count() == 0
    assert _storage_files(app) == []
    assert sent_emails == []


def test_missing_file_with_empty_upload_field(app, admin_client, active_client):
    resp = admin_client.post(
        "/admin/deliverables",
        data={
            "project_id": str(active_client.project_id),
            "title": "Logo",
            "file": (io.BytesIO(b""), ""),
        },
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert _storage_files(app) == []


def test_link_deliverable(admin_client, active_client, sent_emails):
    resp = admin_client.post(
        "/admin/deliverables",
        json={
            "project_id": str(active_client.project_id),
            "title": "Brand guidelines",
            "external_link": "https://drive.example/guidelines",
        },
    )
    assert resp.status_code == 201

    d = resp.get_json()["deliverable"]
    assert d["version"] == 1
    assert d["is_delivered"] is True
    assert d["delivered_at"] is not None
    assert d["file_type"] == "document"
    assert d["file_url"] is None

    assert [e.subject for e in sent_emails] == ["New Deliverable Ready - Keyline Studios"]
    assert "Brand guidelines" in sent_emails[0].html


def test_same_title_bumps_version(admin_client, active_client):
    payload = {
        "project_id": str(active_client.project_id),
        "title": "Homepage mockup",
        "external_link": "https://figma.example/v",
    }
    versions = [
        admin_client.post("/admin/deliverables", json=payload).get_json()["deliverable"]["version"]
        for _ in range(3)
    ]
    assert versions == [1, 2, 3]

    other = dict(payload, title="About page")
    assert admin_client.post("/admin/deliverables", json=other).get_json()["deliverable"]["version"] == 1


def test_file_deliverable_is_stored_and_served(app, admin_client, admin_id, active_client):
    resp = admin_client.post(
        "/admin/deliverables",
        data={
            "project_id": str(active_client.project_id),
            "title": "Final logo",
            "file_type": "image",
            "file": (io.BytesIO(b"PNGDATA"), "final logo (v2).png"),
        },
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201

    d = resp.get_json()["deliverable"]
    assert d["file_type"] == "image"
    assert f"/files/deliverables/{admin_id}/" in d["file_url"]
    assert d["file_url"].endswith("-final_logo__v2_.png")

    path = d["file_url"].split("/files/", 1)[1]
    served = app.test_client().get(f"/files/{path}")
    assert served.status_code == 200
    assert served.data == b"PNGDATA"


def test_client_sees_only_delivered_items(app, admin_client, active_client):
    with app.app_context():
        db.session.add(
            Deliverable(
                project_id=active_client.project_id,
                title="Work in progress",
                external_link="https://figma.example/wip",
                is_delivered=False,
            )
        )
        db.session.commit()

    admin_client.post(
        "/admin/deliverables",
        json={
            "project_id": str(active_client.project_id),
            "title": "Sitemap",
            "external_link": "https://figma.example/sitemap",
        },
    )

    rows = active_client.http.get(f"/portal/projects/{active_client.project_id}/deliverables").get_json()
    assert [d["title"] for d in rows["deliverables"]] == ["Sitemap"]

    assert len(admin_client.get("/admin/deliverables").get_json()["deliverables"]) == 2


def test_delete_deliverable(app, admin_client, active_client):
    created = admin_client.post(
        "/admin/deliverables",
        json={
            "project_id": str(active_client.project_id),
            "title": "Old export",
            "external_link": "https://drive.example/old",
        },
    ).get_json()["deliverable"]

    assert admin_client.delete(f"/admin/deliverables/{created['id']}").status_code == 200
    assert admin_client.delete(f"/admin/deliverables/{created['id']}").status_code == 404

    with app.app_context():
        assert Deliverable.query.count() == 0


def test_failed_commit_removes_the_uploaded_file(app, admin_client, active_client, sent_emails, monkeypatch):
    def refuse(action):
        db.session.rollback()
        return False

    monkeypatch.setattr("portal.admin.commit_or_rollback", refuse)

    resp = admin_client.post(
        "/admin/deliverables",
        data={
            "project_id": str(active_client.project_id),
            "title": "Final logo",
            "file": (io.BytesIO(b"PNGDATA"), "logo.png"),
        },
        content_type="multipart/form-data",
    )
    assert resp.status_code == 500

    assert _storage_files(app) == []
    with app.app_context():
        assert Deliverable.query.count() == 0
    assert sent_emails == []
