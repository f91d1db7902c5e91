import pytest
from sqlalchemy.exc import IntegrityError

from portal.extensions import db
from portal.models import MilestoneApproval


def _url(project_id):
    return f"/portal/projects/{project_id}/approvals"


def test_catalog_lists_the_four_checkpoints(active_client):
    rows = active_client.http.get(_url(active_client.project_id)).get_json()["approvals"]

    assert [r["key"] for r in rows] == [
        "design_approval",
        "scope_approval",
        "development_approval",
        "final_approval",
    ]
    assert not any(r["approved"] for r in rows)
    assert rows[0]["description"] == "Approve the design mockups and visual direction"


def test_approve_once(active_client):
    url = _url(active_client.project_id)

    resp = active_client.http.post(url, json={"approval_type": "design_approval", "notes": "Love it"})
    assert resp.status_code == 201
    approval = resp.get_json()["approval"]
    assert approval["approved_by"] == active_client.user_id
    assert approval["label"] == "Design Approval"

    again = active_client.http.post(url, json={"approval_type": "design_approval"})
    assert again.status_code == 409

    rows = {r["key"]: r for r in active_client.http.get(url).get_json()["approvals"]}
    assert rows["design_approval"]["approved"] is True
    assert rows["design_approval"]["approval"]["notes"] == "Love it"
    assert rows["scope_approval"]["approved"] is False


def test_unknown_approval_type(active_client):
    resp = active_client.http.post(_url(active_client.project_id), json={"approval_type": "launch_party"})
    assert resp.status_code == 400


def test_cannot_approve_foreign_project(active_client, other_client):
    resp = active_client.http.post(_url(other_client.project_id), json={"approval_type": "scope_approval"})
    assert resp.status_code == 404


def test_uniqueness_is_enforced_by_the_database(app, active_client):
    with app.app_context():
        db.session.add(MilestoneApproval(project_id=active_client.project_id, approval_type="final_approval"))
        db.session.commit()

        db.session.add(MilestoneApproval(project_id=active_client.project_id, approval_type="final_approval"))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()
