# portal/client.py
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user
from sqlalchemy.exc import IntegrityError

from .extensions import db
from .models import (
    APPROVAL_TYPES,
    ApprovalStatus,
    ClientOnboarding,
    Contract,
    Deliverable,
    Invoice,
    MilestoneApproval,
    Project,
    utcnow_naive,
)
from .services.access import load_session
from .services.messaging import message_stream_response, post_message, project_messages
from .utils.db import commit_or_rollback, failed
from .utils.guards import active_client_required, client_required
from .utils.invoice_pdf import invoice_number, render_invoice_pdf
from .utils.serialize import (
    approval_catalog,
    approval_to_dict,
    contract_to_dict,
    deliverable_to_dict,
    invoice_to_dict,
    message_to_dict,
    onboarding_to_dict,
    project_to_dict,
    timeline_to_dict,
)

client = Blueprint("client", __name__, url_prefix="/portal")

SIGNATURE_PREFIX = "data:image/png;base64,"


# =========================================================
# Helpers
# =========================================================
def _payload() -> dict:
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _clean_str(value) -> str:
    return str(value or "").strip()


def _not_found(what: str):
    return jsonify({"error": f"{what} not found"}), 404


def _owned_project(project_id) -> Project | None:
    return Project.query.filter(
        Project.id == project_id,
        Project.client_id == current_user.id,
    ).first()


def _clean_url_list(value) -> list[str] | None:
    """List of non-empty strings, or None when the input is not a list."""
    if value is None:
        return []
    if not isinstance(value, list):
        return None
    urls = []
    for item in value:
        if not isinstance(item, str):
            return None
        item = item.strip()
        if item:
            urls.append(item)
    return urls


# =========================================================
# Onboarding (intake form, single submission)
# =========================================================
@client.route("/onboarding", methods=["GET"])
@client_required
def onboarding_get():
    row = ClientOnboarding.query.filter_by(user_id=current_user.id).first()
    if not row:
        return _not_found("Onboarding")
    return jsonify({"onboarding": onboarding_to_dict(row)}), 200


@client.route("/onboarding", methods=["POST"])
@client_required
def onboarding_submit():
    row = ClientOnboarding.query.filter_by(user_id=current_user.id).first()
    if row and row.is_submitted:
        return jsonify({"error": "Onboarding has already been submitted"}), 409

    data = _payload()
    company_name = _clean_str(data.get("company_name"))
    project_description = _clean_str(data.get("project_description"))
    additional_details = _clean_str(data.get("additional_details")) or None
    logo_url = _clean_str(data.get("logo_url")) or None
    inspiration_images = _clean_url_list(data.get("inspiration_images"))

    if not company_name or not project_description:
        return jsonify({"error": "Company name and project description are required"}), 400
    if inspiration_images is None:
        return jsonify({"error": "inspiration_images must be a list of URLs"}), 400

    if row is None:
        row = ClientOnboarding(user_id=current_user.id, approval_status=ApprovalStatus.PENDING)
        db.session.add(row)

    row.company_name = company_name
    row.project_description = project_description
    row.additional_details = additional_details
    row.logo_url = logo_url
    row.inspiration_images = inspiration_images
    row.submitted_at = utcnow_naive()

    # Keep the profile in step with the intake answers
    current_user.company_name = company_name
    if logo_url:
        current_user.logo_url = logo_url

    if not commit_or_rollback("Submit onboarding"):
        return failed("Submit onboarding")

    return (
        jsonify(
            {
                "onboarding": onboarding_to_dict(row),
                "session": load_session(current_user, refresh=True).to_dict(),
            }
        ),
        201,
    )


# =========================================================
# Contract signing
# =========================================================
def _approved_or_403():
    session = load_session(current_user)
    if session.approval_status is not ApprovalStatus.APPROVED:
        return jsonify({"error": "Your application has not been approved", "screen": session.access.screen}), 403
    return None


@client.route("/contract", methods=["GET"])
@client_required
def contract_pending():
    """Newest unsigned contract (the sign screen), or null."""
    resp = _approved_or_403()
    if resp:
        return resp

    contract = (
        Contract.query.filter(
            Contract.client_id == current_user.id,
            Contract.is_signed.is_(False),
        )
        .order_by(Contract.created_at.desc())
        .first()
    )
    return jsonify({"contract": contract_to_dict(contract) if contract else None}), 200


@client.route("/contracts", methods=["GET"])
@active_client_required
def contracts_list():
    contracts = (
        Contract.query.filter(Contract.client_id == current_user.id)
        .order_by(Contract.created_at.desc())
        .all()
    )
    return jsonify({"contracts": [contract_to_dict(c) for c in contracts]}), 200


@client.route("/contracts/<uuid:contract_id>/sign", methods=["POST"])
@client_required
def contract_sign(contract_id):
    resp = _approved_or_403()
    if resp:
        return resp

    data = _payload()
    signature = _clean_str(data.get("signature_data"))
    if not signature.startswith(SIGNATURE_PREFIX) or len(signature) <= len(SIGNATURE_PREFIX):
        return jsonify({"error": "A drawn signature (PNG data URL) is required"}), 400

    now = utcnow_naive()

    # Single conditional update: owner + still unsigned
    updated = (
        Contract.query.filter(
            Contract.id == contract_id,
            Contract.client_id == current_user.id,
            Contract.is_signed.is_(False),
        )
        .update(
            {
                Contract.is_signed: True,
                Contract.signature_data: signature,
                Contract.signed_at: now,
                Contract.updated_at: now,
            },
            synchronize_session=False,
        )
    )

    if not updated:
        db.session.rollback()
        existing = Contract.query.filter(
            Contract.id == contract_id,
            Contract.client_id == current_user.id,
        ).first()
        if existing is None:
            return _not_found("Contract")
        return jsonify({"error": "Contract has already been signed"}), 409

    if not commit_or_rollback("Sign contract"):
        return failed("Sign contract")

    contract = db.session.get(Contract, contract_id)
    return (
        jsonify(
            {
                "contract": contract_to_dict(contract),
                "session": load_session(current_user, refresh=True).to_dict(),
            }
        ),
        200,
    )


# =========================================================
# Dashboard / projects
# =========================================================
@client.route("/dashboard", methods=["GET"])
@active_client_required
def dashboard():
    latest = (
        Project.query.filter(Project.client_id == current_user.id)
        .order_by(Project.created_at.desc())
        .first()
    )
    return (
        jsonify(
            {
                "project": project_to_dict(latest) if latest else None,
                "session": load_session(current_user).to_dict(),
            }
        ),
        200,
    )


@client.route("/projects", methods=["GET"])
@active_client_required
def projects_list():
    projects = (
        Project.query.filter(Project.client_id == current_user.id)
        .order_by(Project.created_at.desc())
        .all()
    )
    return jsonify({"projects": [project_to_dict(p) for p in projects]}), 200


@client.route("/projects/<uuid:project_id>", methods=["GET"])
@active_client_required
def project_detail(project_id):
    project = _owned_project(project_id)
    if not project:
        return _not_found("Project")
    return jsonify({"project": project_to_dict(project)}), 200


@client.route("/projects/<uuid:project_id>/timeline", methods=["GET"])
@active_client_required
def project_timeline(project_id):
    project = _owned_project(project_id)
    if not project:
        return _not_found("Project")
    return jsonify(timeline_to_dict(project)), 200


# =========================================================
# Messages
# =========================================================
@client.route("/projects/<uuid:project_id>/messages", methods=["GET"])
@active_client_required
def messages_list(project_id):
    project = _owned_project(project_id)
    if not project:
        return _not_found("Project")
    return jsonify({"messages": [message_to_dict(m) for m in project_messages(project.id)]}), 200


@client.route("/projects/<uuid:project_id>/messages", methods=["POST"])
@active_client_required
def messages_send(project_id):
    project = _owned_project(project_id)
    if not project:
        return _not_found("Project")

    content = _clean_str(_payload().get("content"))
    if not content:
        return jsonify({"error": "Message content is required"}), 400

    msg = post_message(project, current_user, content)
    if msg is None:
        return failed("Send message")

    return jsonify({"message": message_to_dict(msg)}), 201


@client.route("/projects/<uuid:project_id>/messages/stream", methods=["GET"])
@active_client_required
def messages_stream(project_id):
    project = _owned_project(project_id)
    if not project:
        return _not_found("Project")
    return message_stream_response(project.id)


# =========================================================
# Invoices
# =========================================================
@client.route("/projects/<uuid:project_id>/invoices", methods=["GET"])
@active_client_required
def invoices_list(project_id):
    project = _owned_project(project_id)
    if not project:
        return _not_found("Project")

    invoices = (
        Invoice.query.filter(
            Invoice.project_id == project.id,
            Invoice.client_id == current_user.id,
        )
        .order_by(Invoice.created_at.desc())
        .all()
    )
    return jsonify({"invoices": [invoice_to_dict(i) for i in invoices]}), 200


@client.route("/invoices/<uuid:invoice_id>/pdf", methods=["GET"])
@active_client_required
def invoice_pdf(invoice_id):
    inv = Invoice.query.filter(
        Invoice.id == invoice_id,
        Invoice.client_id == current_user.id,
    ).first()
    if not inv:
        return _not_found("Invoice")

    pdf_bytes = render_invoice_pdf(inv)
    filename = f"Keyline_Invoice_{invoice_number(inv)}.pdf"

    return current_app.response_class(
        pdf_bytes,
        mimetype="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


# =========================================================
# Deliverables
# =========================================================
@client.route("/projects/<uuid:project_id>/deliverables", methods=["GET"])
@active_client_required
def deliverables_list(project_id):
    project = _owned_project(project_id)
    if not project:
        return _not_found("Project")

    rows = (
        Deliverable.query.filter(
            Deliverable.project_id == project.id,
            Deliverable.is_delivered.is_(True),
        )
        .order_by(Deliverable.created_at.desc())
        .all()
    )
    return jsonify({"deliverables": [deliverable_to_dict(d) for d in rows]}), 200


# =========================================================
# Milestone approvals
# =========================================================
def _project_approvals(project_id) -> list[MilestoneApproval]:
    return (
        MilestoneApproval.query.filter(MilestoneApproval.project_id == project_id)
        .order_by(MilestoneApproval.approved_at.asc())
        .all()
    )


@client.route("/projects/<uuid:project_id>/approvals", methods=["GET"])
@active_client_required
def approvals_list(project_id):
    project = _owned_project(project_id)
    if not project:
        return _not_found("Project")
    return jsonify({"approvals": approval_catalog(_project_approvals(project.id))}), 200


@client.route("/projects/<uuid:project_id>/approvals", methods=["POST"])
@active_client_required
def approvals_create(project_id):
    project = _owned_project(project_id)
    if not project:
        return _not_found("Project")

    data = _payload()
    approval_type = _clean_str(data.get("approval_type"))
    notes = _clean_str(data.get("notes")) or None

    if approval_type not in APPROVAL_TYPES:
        return jsonify({"error": "Unknown approval type"}), 400

    exists = MilestoneApproval.query.filter_by(
        project_id=project.id,
        approval_type=approval_type,
    ).first()
    if exists:
        return jsonify({"error": "This milestone has already been approved"}), 409

    approval = MilestoneApproval(
        project_id=project.id,
        approval_type=approval_type,
        approved_by=current_user.id,
        notes=notes,
    )
    db.session.add(approval)

    try:
        db.session.commit()
    except IntegrityError:
        # Concurrent approval of the same type
        db.session.rollback()
        return jsonify({"error": "This milestone has already been approved"}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Approve milestone failed")
        return failed("Approve milestone")

    return jsonify({"approval": approval_to_dict(approval)}), 201
