# portal/admin.py
from __future__ import annotations

from datetime import date

from flask import Blueprint, jsonify, request
from flask_login import current_user
from sqlalchemy import func

from .extensions import db
from .models import (
    ApprovalStatus,
    ClientOnboarding,
    Contract,
    Deliverable,
    HealthStatus,
    Invoice,
    InvoiceStatus,
    Milestone,
    MilestoneApproval,
    Project,
    ProjectStatus,
    Role,
    SupportPlan,
    User,
    WaitingOn,
    utcnow_naive,
)
from .services.messaging import message_stream_response, post_message, project_messages
from .services.money import format_currency, to_minor_units
from .services.notifications import notify_client
from .services.storage import StorageError, delete_stored, store_upload
from .utils.db import commit_or_rollback, failed, parse_uuid
from .utils.guards import admin_required
from .utils.serialize import (
    approval_to_dict,
    client_to_dict,
    contract_to_dict,
    deliverable_to_dict,
    invoice_to_dict,
    message_to_dict,
    milestone_to_dict,
    project_to_dict,
    support_plan_to_dict,
)

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def _payload() -> dict:
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _clean_str(value) -> str:
    return str(value or "").strip()


def _bad_request(message: str):
    return jsonify({"error": message}), 400


def _not_found(what: str):
    return jsonify({"error": f"{what} not found"}), 404


def _parse_enum(enum_cls, raw):
    """Enum member for a raw value, or None when it does not name one."""
    try:
        return enum_cls(_clean_str(raw).lower())
    except ValueError:
        return None


def _parse_date(raw) -> date | None:
    """ISO date; a datetime string keeps its date part. ValueError if unparseable."""
    raw = _clean_str(raw)
    if not raw:
        return None
    return date.fromisoformat(raw[:10])


def _parse_int(raw) -> int | None:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _client_user(client_id) -> User | None:
    user_id = _parse_int(client_id)
    if user_id is None:
        return None
    user = db.session.get(User, user_id)
    if not user or user.role is not Role.CLIENT:
        return None
    return user


def _is_approved(user: User) -> bool:
    row = ClientOnboarding.query.filter_by(user_id=user.id).first()
    return bool(row and row.approval_status is ApprovalStatus.APPROVED)


def _latest_project(client_id) -> Project | None:
    return (
        Project.query.filter(Project.client_id == client_id)
        .order_by(Project.created_at.desc())
        .first()
    )


def _default_project_name(user: User) -> str:
    return f"{user.company_name or user.full_name or user.email} Project"


# -------------------------------------------------------------------
# Overview
# -------------------------------------------------------------------
@admin_bp.route("/stats", methods=["GET"])
@admin_required
def stats():
    pending_clients = (
        db.session.query(func.count(ClientOnboarding.id))
        .filter(ClientOnboarding.approval_status == ApprovalStatus.PENDING)
        .scalar()
    )
    active_projects = (
        db.session.query(func.count(Project.id))
        .filter(Project.status != ProjectStatus.DELIVERED)
        .scalar()
    )
    pending_invoices = (
        db.session.query(func.count(Invoice.id))
        .filter(Invoice.status == InvoiceStatus.PENDING)
        .scalar()
    )
    return (
        jsonify(
            {
                "pending_clients": pending_clients or 0,
                "active_projects": active_projects or 0,
                "pending_invoices": pending_invoices or 0,
            }
        ),
        200,
    )


# -------------------------------------------------------------------
# Clients (onboarding review)
# -------------------------------------------------------------------
@admin_bp.route("/clients", methods=["GET"])
@admin_required
def clients_list():
    qry = ClientOnboarding.query

    status_raw = _clean_str(request.args.get("status"))
    if status_raw:
        status = _parse_enum(ApprovalStatus, status_raw)
        if status is None:
            return _bad_request("Invalid status filter")
        qry = qry.filter(ClientOnboarding.approval_status == status)

    rows = qry.order_by(ClientOnboarding.created_at.desc()).all()
    return jsonify({"clients": [client_to_dict(r) for r in rows]}), 200


def _set_approval(user_id: int, status: ApprovalStatus):
    row = ClientOnboarding.query.filter_by(user_id=user_id).first()
    if not row:
        return None, _not_found("Client")

    changed = row.approval_status is not status
    row.approval_status = status
    row.approved_at = utcnow_naive() if status is ApprovalStatus.APPROVED else None

    action = "Approve client" if status is ApprovalStatus.APPROVED else "Reject client"
    if not commit_or_rollback(action):
        return None, failed(action)

    return (row, changed), None


@admin_bp.route("/clients/<int:user_id>/approve", methods=["POST"])
@admin_required
def clients_approve(user_id: int):
    result, resp = _set_approval(user_id, ApprovalStatus.APPROVED)
    if resp:
        return resp

    row, changed = result
    if changed:
        notify_client("client_approved", row.user_id)

    return jsonify({"client": client_to_dict(row)}), 200


@admin_bp.route("/clients/<int:user_id>/reject", methods=["POST"])
@admin_required
def clients_reject(user_id: int):
    result, resp = _set_approval(user_id, ApprovalStatus.REJECTED)
    if resp:
        return resp

    row, _changed = result
    return jsonify({"client": client_to_dict(row)}), 200


# -------------------------------------------------------------------
# Projects
# -------------------------------------------------------------------
@admin_bp.route("/projects", methods=["GET"])
@admin_required
def projects_list():
    qry = Project.query

    client_id = _parse_int(request.args.get("client_id"))
    if client_id is not None:
        qry = qry.filter(Project.client_id == client_id)

    status_raw = _clean_str(request.args.get("status"))
    if status_raw:
        status = _parse_enum(ProjectStatus, status_raw)
        if status is None:
            return _bad_request("Invalid status filter")
        qry = qry.filter(Project.status == status)

    projects = qry.order_by(Project.created_at.desc()).all()
    return jsonify({"projects": [project_to_dict(p, include_internal=True) for p in projects]}), 200


@admin_bp.route("/projects", methods=["POST"])
@admin_required
def projects_create():
    data = _payload()
    name = _clean_str(data.get("name"))
    description = _clean_str(data.get("description")) or None

    if not name or not data.get("client_id"):
        return _bad_request("Project name and client are required")

    client = _client_user(data.get("client_id"))
    if not client:
        return _not_found("Client")
    if not _is_approved(client):
        return _bad_request("Client must be approved before a project is created")

    project = Project(client_id=client.id, name=name, description=description)
    db.session.add(project)

    if not commit_or_rollback("Create project"):
        return failed("Create project")

    return jsonify({"project": project_to_dict(project, include_internal=True)}), 201


@admin_bp.route("/projects/<uuid:project_id>", methods=["GET"])
@admin_required
def projects_view(project_id):
    project = db.session.get(Project, project_id)
    if not project:
        return _not_found("Project")

    data = project_to_dict(project, include_internal=True)
    data["milestones"] = [milestone_to_dict(m) for m in project.milestones]
    return jsonify({"project": data}), 200


# Admin-editable enum fields: payload key -> enum
_PROJECT_ENUM_FIELDS = {
    "health_status": HealthStatus,
    "waiting_on": WaitingOn,
    "support_plan": SupportPlan,
}

_PROJECT_TEXT_FIELDS = ("description", "internal_notes", "launch_notes")


@admin_bp.route("/projects/<uuid:project_id>", methods=["PATCH"])
@admin_required
def projects_update(project_id):
    project = db.session.get(Project, project_id)
    if not project:
        return _not_found("Project")

    data = _payload()
    previous_status = project.status
    new_status = previous_status

    # Validate everything before touching the row
    if "status" in data:
        new_status = _parse_enum(ProjectStatus, data.get("status"))
        if new_status is None:
            return _bad_request("Invalid project status")

    enum_updates = {}
    for key, enum_cls in _PROJECT_ENUM_FIELDS.items():
        if key in data:
            value = _parse_enum(enum_cls, data.get(key))
            if value is None:
                return _bad_request(f"Invalid {key}")
            enum_updates[key] = value

    if "name" in data and not _clean_str(data.get("name")):
        return _bad_request("Project name cannot be empty")

    if "launch_date" in data:
        try:
            launch_date = _parse_date(data.get("launch_date"))
        except ValueError:
            return _bad_request("launch_date must be an ISO date (YYYY-MM-DD)")

    # Apply
    project.status = new_status
    for key, value in enum_updates.items():
        setattr(project, key, value)
    if "name" in data:
        project.name = _clean_str(data.get("name"))
    for key in _PROJECT_TEXT_FIELDS:
        if key in data:
            setattr(project, key, _clean_str(data.get(key)) or None)
    if "launch_date" in data:
        project.launch_date = launch_date

    if not commit_or_rollback("Update project"):
        return failed("Update project")

    # At most one status notification per update
    if new_status is not previous_status:
        if new_status.is_terminal:
            notify_client("project_completed", project.client_id)
        else:
            notify_client("project_updated", project.client_id, {"status": new_status.value})

    return jsonify({"project": project_to_dict(project, include_internal=True)}), 200


@admin_bp.route("/projects/<uuid:project_id>/launch-summary", methods=["GET"])
@admin_required
def projects_launch_summary(project_id):
    project = db.session.get(Project, project_id)
    if not project:
        return _not_found("Project")

    delivered = (
        Deliverable.query.filter(
            Deliverable.project_id == project.id,
            Deliverable.is_delivered.is_(True),
        )
        .order_by(Deliverable.created_at.asc())
        .all()
    )
    approvals = (
        MilestoneApproval.query.filter(MilestoneApproval.project_id == project.id)
        .order_by(MilestoneApproval.approved_at.asc())
        .all()
    )

    return (
        jsonify(
            {
                "project": project_to_dict(project, include_internal=True),
                "deliverables": [deliverable_to_dict(d) for d in delivered],
                "approvals": [approval_to_dict(a) for a in approvals],
                "support_plan": support_plan_to_dict(project.support_plan),
                "launch_date": project.launch_date.isoformat() if project.launch_date else None,
                "launch_notes": project.launch_notes,
            }
        ),
        200,
    )


# -------------------------------------------------------------------
# Milestones
# -------------------------------------------------------------------
@admin_bp.route("/projects/<uuid:project_id>/milestones", methods=["POST"])
@admin_required
def milestones_create(project_id):
    project = db.session.get(Project, project_id)
    if not project:
        return _not_found("Project")

    data = _payload()
    title = _clean_str(data.get("title"))
    if not title:
        return _bad_request("Milestone title is required")

    stage = project.status
    if data.get("status"):
        stage = _parse_enum(ProjectStatus, data.get("status"))
        if stage is None:
            return _bad_request("Invalid milestone stage")

    try:
        due_date = _parse_date(data.get("due_date"))
    except ValueError:
        return _bad_request("due_date must be an ISO date (YYYY-MM-DD)")

    sort_order = _parse_int(data.get("sort_order"))
    if sort_order is None:
        current_max = (
            db.session.query(func.max(Milestone.sort_order))
            .filter(Milestone.project_id == project.id)
            .scalar()
        )
        sort_order = (current_max if current_max is not None else -1) + 1

    milestone = Milestone(
        project_id=project.id,
        title=title,
        description=_clean_str(data.get("description")) or None,
        status=stage,
        sort_order=sort_order,
        due_date=due_date,
    )
    db.session.add(milestone)

    if not commit_or_rollback("Create milestone"):
        return failed("Create milestone")

    return jsonify({"milestone": milestone_to_dict(milestone)}), 201


@admin_bp.route("/milestones/<uuid:milestone_id>/complete", methods=["POST"])
@admin_required
def milestones_complete(milestone_id):
    milestone = db.session.get(Milestone, milestone_id)
    if not milestone:
        return _not_found("Milestone")

    completed = _payload().get("completed", True)
    if isinstance(completed, str):
        completed = completed.strip().lower() in ("1", "true", "yes", "on")

    milestone.is_completed = bool(completed)
    milestone.completed_at = utcnow_naive() if milestone.is_completed else None

    if not commit_or_rollback("Complete milestone"):
        return failed("Complete milestone")

    return jsonify({"milestone": milestone_to_dict(milestone)}), 200


# -------------------------------------------------------------------
# Contracts
# -------------------------------------------------------------------
@admin_bp.route("/contracts", methods=["GET"])
@admin_required
def contracts_list():
    qry = Contract.query

    client_id = _parse_int(request.args.get("client_id"))
    if client_id is not None:
        qry = qry.filter(Contract.client_id == client_id)

    contracts = qry.order_by(Contract.created_at.desc()).all()
    out = []
    for c in contracts:
        row = contract_to_dict(c)
        row["client_email"] = c.client.email if c.client else None
        row["project_name"] = c.project.name if c.project else None
        out.append(row)
    return jsonify({"contracts": out}), 200


@admin_bp.route("/contracts", methods=["POST"])
@admin_required
def contracts_send():
    data = _payload()
    title = _clean_str(data.get("title"))
    content = _clean_str(data.get("content"))

    if not data.get("client_id") or not title or not content:
        return _bad_request("Client, title and content are required")

    client = _client_user(data.get("client_id"))
    if not client:
        return _not_found("Client")

    project = None
    project_created = False

    if data.get("project_id"):
        requested_id = parse_uuid(data.get("project_id"))
        project = db.session.get(Project, requested_id) if requested_id else None
        if not project or project.client_id != client.id:
            return _bad_request("Project does not belong to this client")
    else:
        project = _latest_project(client.id)

    if project is None:
        # Committed on its own; kept even if the contract insert below fails
        project = Project(client_id=client.id, name=_default_project_name(client))
        db.session.add(project)
        if not commit_or_rollback("Create project for contract"):
            return failed("Create project for contract")
        project_created = True

    contract = Contract(
        client_id=client.id,
        project_id=project.id,
        title=title,
        content=content,
    )
    db.session.add(contract)

    if not commit_or_rollback("Send contract"):
        return failed("Send contract")

    notify_client("contract_sent", client.id)

    return (
        jsonify(
            {
                "contract": contract_to_dict(contract),
                "project": project_to_dict(project, include_internal=True),
                "project_created": project_created,
            }
        ),
        201,
    )


@admin_bp.route("/contracts/<uuid:contract_id>", methods=["PATCH"])
@admin_required
def contracts_update(contract_id):
    contract = db.session.get(Contract, contract_id)
    if not contract:
        return _not_found("Contract")

    if contract.is_signed:
        return jsonify({"error": "Signed contracts cannot be edited"}), 409

    data = _payload()
    if "title" in data:
        title = _clean_str(data.get("title"))
        if not title:
            return _bad_request("Contract title cannot be empty")
        contract.title = title
    if "content" in data:
        content = _clean_str(data.get("content"))
        if not content:
            return _bad_request("Contract content cannot be empty")
        contract.content = content

    if not commit_or_rollback("Update contract"):
        return failed("Update contract")

    return jsonify({"contract": contract_to_dict(contract)}), 200


# -------------------------------------------------------------------
# Invoices
# -------------------------------------------------------------------
@admin_bp.route("/invoices", methods=["GET"])
@admin_required
def invoices_list():
    qry = Invoice.query

    project_id = parse_uuid(request.args.get("project_id"))
    if project_id is not None:
        qry = qry.filter(Invoice.project_id == project_id)

    status_raw = _clean_str(request.args.get("status"))
    if status_raw:
        status = _parse_enum(InvoiceStatus, status_raw)
        if status is None:
            return _bad_request("Invalid status filter")
        qry = qry.filter(Invoice.status == status)

    invoices = qry.order_by(Invoice.created_at.desc()).all()
    return jsonify({"invoices": [invoice_to_dict(i) for i in invoices]}), 200


@admin_bp.route("/invoices", methods=["POST"])
@admin_required
def invoices_create():
    data = _payload()
    project_id = parse_uuid(data.get("project_id"))
    description = _clean_str(data.get("description"))
    currency = (_clean_str(data.get("currency")) or "usd").lower()

    if not project_id or not description or data.get("amount") in (None, ""):
        return _bad_request("Project, description and amount are required")

    try:
        amount = to_minor_units(data.get("amount"))
    except ValueError as exc:
        return _bad_request(str(exc))

    try:
        due_date = _parse_date(data.get("due_date"))
    except ValueError:
        return _bad_request("due_date must be an ISO date (YYYY-MM-DD)")

    project = db.session.get(Project, project_id)
    if not project:
        return _not_found("Project")

    invoice = Invoice(
        project_id=project.id,
        client_id=project.client_id,
        description=description,
        amount=amount,
        currency=currency,
        status=InvoiceStatus.PENDING,
        due_date=due_date,
    )
    db.session.add(invoice)

    if not commit_or_rollback("Create invoice"):
        return failed("Create invoice")

    notify_client(
        "invoice_created",
        invoice.client_id,
        {
            "amount": format_currency(invoice.amount, invoice.currency),
            "description": invoice.description,
        },
    )

    return jsonify({"invoice": invoice_to_dict(invoice)}), 201


@admin_bp.route("/invoices/<uuid:invoice_id>/status", methods=["POST"])
@admin_required
def invoices_set_status(invoice_id):
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        return _not_found("Invoice")

    status = _parse_enum(InvoiceStatus, _payload().get("status"))
    if status is None:
        return _bad_request("Status must be one of: pending, paid, overdue")

    invoice.set_status(status)

    if not commit_or_rollback("Update invoice status"):
        return failed("Update invoice status")

    return jsonify({"invoice": invoice_to_dict(invoice)}), 200


# -------------------------------------------------------------------
# Deliverables
# -------------------------------------------------------------------
@admin_bp.route("/deliverables", methods=["GET"])
@admin_required
def deliverables_list():
    qry = Deliverable.query

    project_id = parse_uuid(request.args.get("project_id"))
    if project_id is not None:
        qry = qry.filter(Deliverable.project_id == project_id)

    rows = qry.order_by(Deliverable.created_at.desc()).all()
    return jsonify({"deliverables": [deliverable_to_dict(d) for d in rows]}), 200


@admin_bp.route("/deliverables", methods=["POST"])
@admin_required
def deliverables_create():
    data = _payload()
    upload = request.files.get("file")
    if upload is not None and not upload.filename:
        upload = None

    project_id = parse_uuid(data.get("project_id"))
    title = _clean_str(data.get("title"))
    external_link = _clean_str(data.get("external_link")) or None

    # Validation first: no storage or database work on failure
    if not project_id or not title:
        return _bad_request("Please select a project and enter a title")
    if upload is None and not external_link:
        return _bad_request("Please upload a file or provide an external link")

    project = db.session.get(Project, project_id)
    if not project:
        return _not_found("Project")

    stored = None
    file_url = None
    if upload is not None:
        try:
            stored = store_upload(upload, folder="deliverables", owner_id=current_user.id)
        except StorageError as exc:
            return _bad_request(f"Failed to upload file: {exc}")
        file_url = stored.public_url

    # Same title in the same project -> next version
    current_max = (
        db.session.query(func.max(Deliverable.version))
        .filter(Deliverable.project_id == project.id, Deliverable.title == title)
        .scalar()
    )
    version = (current_max or 0) + 1

    now = utcnow_naive()
    deliverable = Deliverable(
        project_id=project.id,
        title=title,
        description=_clean_str(data.get("description")) or None,
        file_url=file_url,
        file_type=_clean_str(data.get("file_type")) or "document",
        external_link=external_link,
        version=version,
        is_delivered=True,
        delivered_at=now,
    )
    db.session.add(deliverable)

    if not commit_or_rollback("Create deliverable"):
        if stored is not None:
            delete_stored(stored.path)
        return failed("Create deliverable")

    notify_client("deliverable_sent", project.client_id, {"title": title})

    return jsonify({"deliverable": deliverable_to_dict(deliverable)}), 201


@admin_bp.route("/deliverables/<uuid:deliverable_id>", methods=["DELETE"])
@admin_required
def deliverables_delete(deliverable_id):
    deliverable = db.session.get(Deliverable, deliverable_id)
    if not deliverable:
        return _not_found("Deliverable")

    db.session.delete(deliverable)
    if not commit_or_rollback("Delete deliverable"):
        return failed("Delete deliverable")

    return jsonify({"message": "Deliverable deleted"}), 200


# -------------------------------------------------------------------
# Messages
# -------------------------------------------------------------------
@admin_bp.route("/projects/<uuid:project_id>/messages", methods=["GET"])
@admin_required
def messages_list(project_id):
    project = db.session.get(Project, project_id)
    if not project:
        return _not_found("Project")
    return jsonify({"messages": [message_to_dict(m) for m in project_messages(project.id)]}), 200


@admin_bp.route("/projects/<uuid:project_id>/messages", methods=["POST"])
@admin_required
def messages_send(project_id):
    project = db.session.get(Project, project_id)
    if not project:
        return _not_found("Project")

    content = _clean_str(_payload().get("content"))
    if not content:
        return _bad_request("Message content is required")

    msg = post_message(project, current_user, content)
    if msg is None:
        return failed("Send message")

    notify_client("message_received", project.client_id)

    return jsonify({"message": message_to_dict(msg)}), 201


@admin_bp.route("/projects/<uuid:project_id>/messages/stream", methods=["GET"])
@admin_required
def messages_stream(project_id):
    project = db.session.get(Project, project_id)
    if not project:
        return _not_found("Project")
    return message_stream_response(project.id)
