# portal/services/access.py
from __future__ import annotations

"""
Client admission.

Which screen a user sees is derived on every request from a handful of
stored facts; nothing here is persisted.
"""

from dataclasses import dataclass
from typing import Union

from flask import g

from portal.extensions import db
from portal.models import ApprovalStatus, ClientOnboarding, Contract, Role, User


# =========================================================
# Access variants
# =========================================================
@dataclass(frozen=True)
class StudioAdmin:
    screen: str = "admin"


@dataclass(frozen=True)
class NoAccount:
    screen: str = "onboarding_form"


@dataclass(frozen=True)
class PendingReview:
    screen: str = "pending_review"


@dataclass(frozen=True)
class Rejected:
    screen: str = "rejected"


@dataclass(frozen=True)
class AwaitingContract:
    has_contract: bool = False

    @property
    def screen(self) -> str:
        return "sign_contract" if self.has_contract else "no_contract_yet"


@dataclass(frozen=True)
class Active:
    screen: str = "dashboard"


Access = Union[StudioAdmin, NoAccount, PendingReview, Rejected, AwaitingContract, Active]


def resolve_access(
    role: Role | None,
    approval_status: ApprovalStatus | None,
    submitted: bool,
    has_signed_contract: bool,
    has_contract: bool = False,
) -> Access:
    if role is Role.ADMIN:
        return StudioAdmin()

    if approval_status is None:
        return NoAccount()

    if approval_status is ApprovalStatus.REJECTED:
        return Rejected()

    if approval_status is ApprovalStatus.APPROVED:
        if has_signed_contract:
            return Active()
        return AwaitingContract(has_contract=has_contract)

    # pending
    return PendingReview() if submitted else NoAccount()


# =========================================================
# Per-request session
# =========================================================
@dataclass(frozen=True)
class PortalSession:
    user_id: int
    role: Role
    approval_status: ApprovalStatus | None
    submitted: bool
    has_signed_contract: bool
    has_contract: bool

    @property
    def access(self) -> Access:
        return resolve_access(
            self.role,
            self.approval_status,
            self.submitted,
            self.has_signed_contract,
            self.has_contract,
        )

    @property
    def is_admitted(self) -> bool:
        return isinstance(self.access, Active)

    def to_dict(self) -> dict:
        access = self.access
        return {
            "user_id": self.user_id,
            "role": self.role.value,
            "approval_status": self.approval_status.value if self.approval_status else None,
            "submitted": self.submitted,
            "has_signed_contract": self.has_signed_contract,
            "has_contract": self.has_contract,
            "access": type(access).__name__,
            "screen": access.screen,
        }


def build_session(user: User) -> PortalSession:
    onboarding = ClientOnboarding.query.filter_by(user_id=user.id).first()

    contracts = db.session.query(Contract.is_signed).filter(Contract.client_id == user.id)
    has_contract = db.session.query(contracts.exists()).scalar()
    has_signed = db.session.query(contracts.filter(Contract.is_signed.is_(True)).exists()).scalar()

    return PortalSession(
        user_id=user.id,
        role=user.role,
        approval_status=onboarding.approval_status if onboarding else None,
        submitted=bool(onboarding and onboarding.is_submitted),
        has_signed_contract=bool(has_signed),
        has_contract=bool(has_contract),
    )


def load_session(user: User, *, refresh: bool = False) -> PortalSession:
    """Cached on flask.g for the rest of the request; refresh after a mutation."""
    cached = getattr(g, "portal_session", None)
    if cached is not None and not refresh and cached.user_id == user.id:
        return cached

    session = build_session(user)
    g.portal_session = session
    return session
