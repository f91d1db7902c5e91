"""initial_portal_schema

Revision ID: 5a1c9e7d2b30
Revises:
Create Date: 2026-10-17 09:12:44.118402

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5a1c9e7d2b30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # =========================
    # user
    # =========================
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=120), nullable=False),
        sa.Column("full_name", sa.String(length=160), nullable=True),
        sa.Column("company_name", sa.String(length=160), nullable=True),
        sa.Column("logo_url", sa.String(length=500), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=6), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("api_token", sa.String(length=128), nullable=True),
        sa.Column("api_token_expires_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("email", name="user_email_key"),
    )
    op.create_index("ix_user_api_token", "user", ["api_token"])

    # =========================
    # client_onboarding
    # one per client user
    # =========================
    op.create_table(
        "client_onboarding",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("company_name", sa.String(length=160), nullable=True),
        sa.Column("project_description", sa.Text(), nullable=True),
        sa.Column("additional_details", sa.Text(), nullable=True),
        sa.Column("logo_url", sa.String(length=500), nullable=True),
        sa.Column("inspiration_images", sa.JSON(), nullable=True),
        sa.Column("approval_status", sa.String(length=8), nullable=False),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE", name="fk_client_onboarding_user"),
    )
    op.create_index("ix_client_onboarding_approval_status", "client_onboarding", ["approval_status"])

    # =========================
    # project
    # =========================
    op.create_table(
        "project",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=11), nullable=False),
        sa.Column("health_status", sa.String(length=15), nullable=False),
        sa.Column("waiting_on", sa.String(length=6), nullable=False),
        sa.Column("support_plan", sa.String(length=8), nullable=False),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        sa.Column("launch_date", sa.Date(), nullable=True),
        sa.Column("launch_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["user.id"], ondelete="CASCADE", name="fk_project_client"),
    )
    op.create_index("ix_project_client_id", "project", ["client_id"])
    op.create_index("ix_project_status", "project", ["status"])

    # =========================
    # milestone
    # =========================
    op.create_table(
        "milestone",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=11), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["project.id"], ondelete="CASCADE", name="fk_milestone_project"),
    )
    op.create_index("ix_milestone_project_id", "milestone", ["project_id"])

    # =========================
    # contract
    # =========================
    op.create_table(
        "contract",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_signed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("signature_data", sa.Text(), nullable=True),
        sa.Column("signed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["user.id"], ondelete="CASCADE", name="fk_contract_client"),
        sa.ForeignKeyConstraint(["project_id"], ["project.id"], ondelete="CASCADE", name="fk_contract_project"),
    )
    op.create_index("ix_contract_client_id", "contract", ["client_id"])
    op.create_index("ix_contract_project_id", "contract", ["project_id"])
    op.create_index("ix_contract_is_signed", "contract", ["is_signed"])

    # =========================
    # deliverable
    # =========================
    op.create_table(
        "deliverable",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("file_url", sa.String(length=1000), nullable=True),
        sa.Column("file_type", sa.String(length=50), nullable=True),
        sa.Column("external_link", sa.String(length=1000), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_delivered", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("delivered_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["project.id"], ondelete="CASCADE", name="fk_deliverable_project"),
        sa.CheckConstraint(
            "file_url IS NOT NULL OR external_link IS NOT NULL",
            name="ck_deliverable_has_target",
        ),
    )
    op.create_index("ix_deliverable_project_id", "deliverable", ["project_id"])

    # =========================
    # invoice
    # amount in integer cents
    # =========================
    op.create_table(
        "invoice",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="usd"),
        sa.Column("status", sa.String(length=7), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["project.id"], ondelete="CASCADE", name="fk_invoice_project"),
        sa.ForeignKeyConstraint(["client_id"], ["user.id"], ondelete="CASCADE", name="fk_invoice_client"),
        sa.CheckConstraint("amount >= 0", name="ck_invoice_amount_non_negative"),
    )
    op.create_index("ix_invoice_project_id", "invoice", ["project_id"])
    op.create_index("ix_invoice_client_id", "invoice", ["client_id"])
    op.create_index("ix_invoice_status", "invoice", ["status"])

    # =========================
    # message
    # =========================
    op.create_table(
        "message",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["project.id"], ondelete="CASCADE", name="fk_message_project"),
        sa.ForeignKeyConstraint(["sender_id"], ["user.id"], ondelete="CASCADE", name="fk_message_sender"),
    )
    op.create_index("ix_message_project_id", "message", ["project_id"])
    op.create_index("ix_message_created_at", "message", ["created_at"])

    # =========================
    # milestone_approval
    # one per (project, approval_type)
    # =========================
    op.create_table(
        "milestone_approval",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("approval_type", sa.String(length=50), nullable=False),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["project.id"], ondelete="CASCADE", name="fk_milestone_approval_project"),
        sa.ForeignKeyConstraint(["approved_by"], ["user.id"], ondelete="SET NULL", name="fk_milestone_approval_user"),
        sa.UniqueConstraint("project_id", "approval_type", name="uq_milestone_approval_project_type"),
    )
    op.create_index("ix_milestone_approval_project_id", "milestone_approval", ["project_id"])


def downgrade():
    op.drop_index("ix_milestone_approval_project_id", table_name="milestone_approval")
    op.drop_table("milestone_approval")

    op.drop_index("ix_message_created_at", table_name="message")
    op.drop_index("ix_message_project_id", table_name="message")
    op.drop_table("message")

    op.drop_index("ix_invoice_status", table_name="invoice")
    op.drop_index("ix_invoice_client_id", table_name="invoice")
    op.drop_index("ix_invoice_project_id", table_name="invoice")
    op.drop_table("invoice")

    op.drop_index("ix_deliverable_project_id", table_name="deliverable")
    op.drop_table("deliverable")

    op.drop_index("ix_contract_is_signed", table_name="contract")
    op.drop_index("ix_contract_project_id", table_name="contract")
    op.drop_index("ix_contract_client_id", table_name="contract")
    op.drop_table("contract")

    op.drop_index("ix_milestone_project_id", table_name="milestone")
    op.drop_table("milestone")

    op.drop_index("ix_project_status", table_name="project")
    op.drop_index("ix_project_client_id", table_name="project")
    op.drop_table("project")

    op.drop_index("ix_client_onboarding_approval_status", table_name="client_onboarding")
    op.drop_table("client_onboarding")

    op.drop_index("ix_user_api_token", table_name="user")
    op.drop_table("user")
