# portal/models.py
from __future__ import annotations

import enum
import secrets
import uuid
from datetime import datetime, timedelta, timezone

import sqlalchemy as sa
from flask_login import UserMixin
from sqlalchemy import Enum as SAEnum

from .extensions import db


# Columns are "timestamp without time zone": standardize on naive UTC in app code.
def utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _string_enum(enum_cls: type[enum.Enum], name: str) -> SAEnum:
    # Stored as plain strings (portable between Postgres and SQLite)
    return SAEnum(
        enum_cls,
        name=name,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
        validate_strings=True,
    )


# =========================================================
# Enumerations
# =========================================================
class Role(enum.Enum):
    ADMIN = "admin"
    CLIENT = "client"


class ApprovalStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProjectStatus(enum.Enum):
    DISCOVERY = "discovery"
    DESIGN = "design"
    DEVELOPMENT = "development"
    REVIEW = "review"
    DELIVERED = "delivered"

    @property
    def position(self) -> int:
        return PROJECT_STAGES.index(self)

    @property
    def is_terminal(self) -> bool:
        return self is ProjectStatus.DELIVERED


# Ordered lifecycle; DELIVERED is terminal.
PROJECT_STAGES = list(ProjectStatus)

PROJECT_STAGE_DESCRIPTIONS = {
    ProjectStatus.DISCOVERY: "Understanding your needs",
    ProjectStatus.DESIGN: "Creating mockups and prototypes",
    ProjectStatus.DEVELOPMENT: "Building your product",
    ProjectStatus.REVIEW: "Testing and refinement",
    ProjectStatus.DELIVERED: "Project complete",
}


class HealthStatus(enum.Enum):
    ON_TRACK = "on_track"
    NEEDS_ATTENTION = "needs_attention"
    BLOCKED = "blocked"


class WaitingOn(enum.Enum):
    NONE = "none"
    CLIENT = "client"
    STUDIO = "studio"


class SupportPlan(enum.Enum):
    NONE = "none"
    BASIC = "basic"
    PRIORITY = "priority"


class InvoiceStatus(enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


# Fixed catalog of client sign-off checkpoints
APPROVAL_TYPES = {
    "design_approval": {
        "label": "Design Approval",
        "description": "Approve the design mockups and visual direction",
    },
    "scope_approval": {
        "label": "Scope Approval",
        "description": "Approve the project scope and requirements",
    },
    "development_approval": {
        "label": "Development Approval",
        "description": "Approve development progress and implementation",
    },
    "final_approval": {
        "label": "Final Approval",
        "description": "Approve the final deliverables for launch",
    },
}


# =========================================================
# User (Authentication + Role + Profile)
# =========================================================
class User(UserMixin, db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)

    # Identity / profile
    email = db.Column(db.String(120), nullable=False)
    full_name = db.Column(db.String(160), nullable=True)
    company_name = db.Column(db.String(160), nullable=True)
    logo_url = db.Column(db.String(500), nullable=True)

    # Auth
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(_string_enum(Role, "user_role"), nullable=False, default=Role.CLIENT)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login_at = db.Column(db.DateTime, nullable=True)

    # Bearer token for the upload function
    api_token = db.Column(db.String(128), nullable=True, index=True)
    api_token_expires_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utcnow_naive,
        onupdate=utcnow_naive,
    )

    onboarding = db.relationship(
        "ClientOnboarding",
        back_populates="user",
        uselist=False,
        lazy="select",
    )

    __table_args__ = (
        db.UniqueConstraint("email", name="user_email_key"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    def new_api_token(self, hours: int = 24) -> str:
        token = secrets.token_urlsafe(32)
        self.api_token = token
        self.api_token_expires_at = utcnow_naive() + timedelta(hours=hours)
        return token

    def is_api_token_valid(self) -> bool:
        if not self.api_token or not self.api_token_expires_at:
            return False
        return utcnow_naive() <= self.api_token_expires_at

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email} {self.role.value if self.role else None}>"


# =========================================================
# Client onboarding (intake + approval)
# =========================================================
class ClientOnboarding(db.Model):
    __tablename__ = "client_onboarding"

    id = db.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    user_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    user = db.relationship("User", back_populates="onboarding", lazy="joined")

    company_name = db.Column(db.String(160), nullable=True)
    project_description = db.Column(db.Text, nullable=True)
    additional_details = db.Column(db.Text, nullable=True)
    logo_url = db.Column(db.String(500), nullable=True)
    inspiration_images = db.Column(sa.JSON, nullable=True)

    approval_status = db.Column(
        _string_enum(ApprovalStatus, "approval_status"),
        nullable=False,
        default=ApprovalStatus.PENDING,
        index=True,
    )
    approved_at = db.Column(db.DateTime, nullable=True)

    # Set exactly once by the intake form
    submitted_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)

    @property
    def is_submitted(self) -> bool:
        return self.submitted_at is not None

    def __repr__(self) -> str:
        return f"<ClientOnboarding user={self.user_id} {self.approval_status.value}>"


# =========================================================
# Projects + milestones
# =========================================================
class Project(db.Model):
    __tablename__ = "project"

    id = db.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    client_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    client = db.relationship("User", foreign_keys=[client_id], lazy="joined")

    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)

    status = db.Column(
        _string_enum(ProjectStatus, "project_status"),
        nullable=False,
        default=ProjectStatus.DISCOVERY,
        index=True,
    )

    # Admin-side tracking, independent of status
    health_status = db.Column(
        _string_enum(HealthStatus, "health_status"),
        nullable=False,
        default=HealthStatus.ON_TRACK,
    )
    waiting_on = db.Column(_string_enum(WaitingOn, "waiting_on"), nullable=False, default=WaitingOn.NONE)
    support_plan = db.Column(_string_enum(SupportPlan, "support_plan"), nullable=False, default=SupportPlan.NONE)
    internal_notes = db.Column(db.Text, nullable=True)

    launch_date = db.Column(db.Date, nullable=True)
    launch_notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)

    milestones = db.relationship(
        "Milestone",
        back_populates="project",
        order_by="Milestone.sort_order",
        lazy="select",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Project {self.id} {self.name} {self.status.value}>"


class Milestone(db.Model):
    __tablename__ = "milestone"

    id = db.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    project_id = db.Column(
        sa.Uuid,
        db.ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project = db.relationship("Project", back_populates="milestones")

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(_string_enum(ProjectStatus, "milestone_stage"), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    due_date = db.Column(db.Date, nullable=True)

    is_completed = db.Column(db.Boolean, nullable=False, default=False)
    completed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    def __repr__(self) -> str:
        return f"<Milestone {self.id} {self.title}>"


# =========================================================
# Contracts (drawn signature, immutable once signed)
# =========================================================
class Contract(db.Model):
    __tablename__ = "contract"

    id = db.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    client_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    client = db.relationship("User", foreign_keys=[client_id], lazy="joined")

    project_id = db.Column(
        sa.Uuid,
        db.ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project = db.relationship("Project", foreign_keys=[project_id], lazy="joined")

    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)

    is_signed = db.Column(db.Boolean, nullable=False, default=False, index=True)
    signature_data = db.Column(db.Text, nullable=True)  # PNG data URL
    signed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)

    def __repr__(self) -> str:
        return f"<Contract {self.id} client={self.client_id} signed={self.is_signed}>"


# =========================================================
# Deliverables
# =========================================================
class Deliverable(db.Model):
    __tablename__ = "deliverable"

    id = db.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    project_id = db.Column(
        sa.Uuid,
        db.ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project = db.relationship("Project", foreign_keys=[project_id], lazy="joined")

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)

    file_url = db.Column(db.String(1000), nullable=True)
    file_type = db.Column(db.String(50), nullable=True)
    external_link = db.Column(db.String(1000), nullable=True)

    version = db.Column(db.Integer, nullable=False, default=1)

    is_delivered = db.Column(db.Boolean, nullable=False, default=False)
    delivered_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)

    __table_args__ = (
        db.CheckConstraint(
            "file_url IS NOT NULL OR external_link IS NOT NULL",
            name="ck_deliverable_has_target",
        ),
    )

    def __repr__(self) -> str:
        return f"<Deliverable {self.id} {self.title} v{self.version}>"


# =========================================================
# Invoices (amount in integer cents)
# =========================================================
class Invoice(db.Model):
    __tablename__ = "invoice"

    id = db.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    project_id = db.Column(
        sa.Uuid,
        db.ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project = db.relationship("Project", foreign_keys=[project_id], lazy="joined")

    client_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    client = db.relationship("User", foreign_keys=[client_id], lazy="joined")

    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(10), nullable=False, default="usd")

    status = db.Column(
        _string_enum(InvoiceStatus, "invoice_status"),
        nullable=False,
        default=InvoiceStatus.PENDING,
        index=True,
    )
    due_date = db.Column(db.Date, nullable=True)
    paid_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)

    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_invoice_amount_non_negative"),
    )

    def set_status(self, status: InvoiceStatus) -> None:
        self.status = status
        self.paid_at = utcnow_naive() if status is InvoiceStatus.PAID else None

    def __repr__(self) -> str:
        return f"<Invoice {self.id} {self.amount} {self.currency} {self.status.value}>"


# =========================================================
# Messages (append-only, per project)
# =========================================================
class Message(db.Model):
    __tablename__ = "message"

    id = db.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    project_id = db.Column(
        sa.Uuid,
        db.ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender = db.relationship("User", foreign_keys=[sender_id], lazy="joined")

    content = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, index=True)

    def __repr__(self) -> str:
        return f"<Message {self.id} project={self.project_id}>"


# =========================================================
# Milestone approvals (one per project + type)
# =========================================================
class MilestoneApproval(db.Model):
    __tablename__ = "milestone_approval"

    id = db.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    project_id = db.Column(
        sa.Uuid,
        db.ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    approval_type = db.Column(db.String(50), nullable=False)

    approved_by = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )
    notes = db.Column(db.Text, nullable=True)
    approved_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    __table_args__ = (
        db.UniqueConstraint(
            "project_id",
            "approval_type",
            name="uq_milestone_approval_project_type",
        ),
    )

    def __repr__(self) -> str:
        return f"<MilestoneApproval {self.project_id} {self.approval_type}>"
