# portal/utils/serialize.py
from __future__ import annotations

from datetime import date, datetime

from portal.config.studio import SUPPORT_PLAN_DETAILS
from portal.models import (
    APPROVAL_TYPES,
    PROJECT_STAGE_DESCRIPTIONS,
    ClientOnboarding,
    Contract,
    Deliverable,
    Invoice,
    Message,
    Milestone,
    MilestoneApproval,
    Project,
    User,
)
from portal.services.money import format_currency


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value else None


def _val(enum_value):
    return enum_value.value if enum_value is not None else None


def _id(value) -> str | None:
    return str(value) if value is not None else None


# =========================================================
# Users / onboarding
# =========================================================
def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "company_name": user.company_name,
        "logo_url": user.logo_url,
        "role": _val(user.role),
        "is_active": user.is_active,
        "created_at": _iso(user.created_at),
    }


def onboarding_to_dict(row: ClientOnboarding) -> dict:
    return {
        "id": _id(row.id),
        "user_id": row.user_id,
        "company_name": row.company_name,
        "project_description": row.project_description,
        "additional_details": row.additional_details,
        "logo_url": row.logo_url,
        "inspiration_images": list(row.inspiration_images or []),
        "approval_status": _val(row.approval_status),
        "approved_at": _iso(row.approved_at),
        "submitted_at": _iso(row.submitted_at),
        "created_at": _iso(row.created_at),
    }


def client_to_dict(row: ClientOnboarding) -> dict:
    """Admin client list: onboarding row plus the profile it belongs to."""
    data = onboarding_to_dict(row)
    data["profile"] = user_to_dict(row.user) if row.user else None
    return data


# =========================================================
# Projects
# =========================================================
def project_to_dict(project: Project, *, include_internal: bool = False) -> dict:
    data = {
        "id": _id(project.id),
        "client_id": project.client_id,
        "name": project.name,
        "description": project.description,
        "status": _val(project.status),
        "health_status": _val(project.health_status),
        "waiting_on": _val(project.waiting_on),
        "support_plan": _val(project.support_plan),
        "launch_date": _iso(project.launch_date),
        "launch_notes": project.launch_notes,
        "created_at": _iso(project.created_at),
        "updated_at": _iso(project.updated_at),
    }
    # internal_notes never leaves the admin API
    if include_internal:
        data["internal_notes"] = project.internal_notes
        data["client"] = user_to_dict(project.client) if project.client else None
    return data


def milestone_to_dict(m: Milestone) -> dict:
    return {
        "id": _id(m.id),
        "project_id": _id(m.project_id),
        "title": m.title,
        "description": m.description,
        "status": _val(m.status),
        "sort_order": m.sort_order,
        "due_date": _iso(m.due_date),
        "is_completed": m.is_completed,
        "completed_at": _iso(m.completed_at),
    }


def timeline_to_dict(project: Project) -> dict:
    """Stages before the current one are complete; later ones pending."""
    current = project.status.position
    stages = []
    for stage, description in PROJECT_STAGE_DESCRIPTIONS.items():
        if stage.position < current:
            state = "complete"
        elif stage.position == current:
            state = "current"
        else:
            state = "pending"
        stages.append(
            {
                "key": stage.value,
                "label": stage.value.title(),
                "description": description,
                "state": state,
            }
        )
    return {
        "project_id": _id(project.id),
        "status": _val(project.status),
        "stages": stages,
        "milestones": [milestone_to_dict(m) for m in project.milestones],
    }


def support_plan_to_dict(plan) -> dict:
    key = _val(plan) or "none"
    details = SUPPORT_PLAN_DETAILS.get(key, SUPPORT_PLAN_DETAILS["none"])
    return {"key": key, **details}


# =========================================================
# Contracts
# =========================================================
def contract_to_dict(contract: Contract, *, include_signature: bool = True) -> dict:
    data = {
        "id": _id(contract.id),
        "client_id": contract.client_id,
        "project_id": _id(contract.project_id),
        "title": contract.title,
        "content": contract.content,
        "is_signed": contract.is_signed,
        "signed_at": _iso(contract.signed_at),
        "created_at": _iso(contract.created_at),
    }
    if include_signature:
        data["signature_data"] = contract.signature_data
    return data


# =========================================================
# Deliverables
# =========================================================
def deliverable_to_dict(d: Deliverable) -> dict:
    return {
        "id": _id(d.id),
        "project_id": _id(d.project_id),
        "title": d.title,
        "description": d.description,
        "file_url": d.file_url,
        "file_type": d.file_type,
        "external_link": d.external_link,
        "version": d.version,
        "is_delivered": d.is_delivered,
        "delivered_at": _iso(d.delivered_at),
        "created_at": _iso(d.created_at),
    }


# =========================================================
# Invoices
# =========================================================
def invoice_to_dict(inv: Invoice) -> dict:
    return {
        "id": _id(inv.id),
        "project_id": _id(inv.project_id),
        "client_id": inv.client_id,
        "description": inv.description,
        "amount": inv.amount,
        "currency": inv.currency,
        "amount_display": format_currency(inv.amount, inv.currency),
        "status": _val(inv.status),
        "due_date": _iso(inv.due_date),
        "paid_at": _iso(inv.paid_at),
        "created_at": _iso(inv.created_at),
    }


# =========================================================
# Messages
# =========================================================
def message_to_dict(msg: Message) -> dict:
    sender = msg.sender
    return {
        "id": _id(msg.id),
        "project_id": _id(msg.project_id),
        "sender_id": msg.sender_id,
        "sender_name": sender.display_name if sender else None,
        "sender_role": _val(sender.role) if sender else None,
        "content": msg.content,
        "is_read": msg.is_read,
        "created_at": _iso(msg.created_at),
    }


# =========================================================
# Approvals
# =========================================================
def approval_to_dict(a: MilestoneApproval) -> dict:
    meta = APPROVAL_TYPES.get(a.approval_type, {})
    return {
        "id": _id(a.id),
        "project_id": _id(a.project_id),
        "approval_type": a.approval_type,
        "label": meta.get("label", a.approval_type),
        "approved_by": a.approved_by,
        "notes": a.notes,
        "approved_at": _iso(a.approved_at),
    }


def approval_catalog(approvals: list[MilestoneApproval]) -> list[dict]:
    """Fixed checkpoints with their approval (or None)."""
    by_type = {a.approval_type: a for a in approvals}
    out = []
    for key, meta in APPROVAL_TYPES.items():
        row = by_type.get(key)
        out.append(
            {
                "key": key,
                "label": meta["label"],
                "description": meta["description"],
                "approved": row is not None,
                "approval": approval_to_dict(row) if row else None,
            }
        )
    return out
