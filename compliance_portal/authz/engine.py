"""
Authorization Policy Engine — pure decisions over (actor, action, resource).

Designation (seniority rank) and role (functional HR capability) are two
independent attributes of an actor; every predicate is a boolean
combination over both. Nothing here touches a store: callers check first,
then issue the store call only when allowed. Checks fail closed.

Also owns the document status state machine and the lifetime of signed
access grants.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from compliance_portal.core.constants import (
    Designation,
    DocumentStatus,
    PolicyCategory,
    ProfileRole,
)
from compliance_portal.core.errors import InvalidTransition, PermissionDenied


# ═══════════════════════════════════════════════════════════════════
#  Actors and resource references
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Actor:
    id: UUID
    designation: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None

    @classmethod
    def from_profile(cls, profile: Any) -> "Actor":
        return cls(
            id=profile.id,
            designation=_value(profile.designation),
            role=_value(profile.role),
            department=_value(profile.department),
        )


@dataclass(frozen=True)
class DocumentRef:
    id: UUID
    owner_id: UUID
    department: Optional[str]
    status: str = DocumentStatus.PENDING.value

    @classmethod
    def from_document(cls, document: Any) -> "DocumentRef":
        return cls(
            id=document.id,
            owner_id=document.uploaded_by,
            department=_value(document.department),
            status=_value(document.status) or DocumentStatus.PENDING.value,
        )


@dataclass(frozen=True)
class PolicyRef:
    id: UUID
    category: Optional[str]

    @classmethod
    def from_policy(cls, policy: Any) -> "PolicyRef":
        return cls(id=policy.id, category=_value(policy.category))


def _value(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    return raw.value if isinstance(raw, Enum) else str(raw)


# ═══════════════════════════════════════════════════════════════════
#  Role classification
# ═══════════════════════════════════════════════════════════════════

class ActorKind(str, Enum):
    GENERAL_MANAGER = "general_manager"
    MANAGER = "manager"
    HR = "hr"
    EMPLOYEE = "employee"


def is_general_manager(actor: Actor) -> bool:
    return actor.designation == Designation.GENERAL_MANAGER.value


def is_manager(actor: Actor) -> bool:
    return actor.designation == Designation.MANAGER.value


def is_hr(actor: Actor) -> bool:
    return actor.role == ProfileRole.HR.value


def classify(actor: Actor) -> ActorKind:
    """Display label only. Decisions use the predicates below."""
    if is_general_manager(actor):
        return ActorKind.GENERAL_MANAGER
    if is_manager(actor):
        return ActorKind.MANAGER
    if is_hr(actor):
        return ActorKind.HR
    return ActorKind.EMPLOYEE


def is_reviewer(actor: Actor) -> bool:
    return is_general_manager(actor) or is_hr(actor)


def can_manage_employees(actor: Actor) -> bool:
    return is_general_manager(actor) or is_manager(actor)


# ═══════════════════════════════════════════════════════════════════
#  Permission predicates
# ═══════════════════════════════════════════════════════════════════

def can_upload_document(actor: Actor) -> bool:
    # Uploads are always attributed to the actor, so ownership holds by construction.
    return actor.id is not None


def can_review_document(actor: Actor, document: DocumentRef) -> bool:
    return review_scope(actor).includes(document)


def can_view_document(actor: Actor, document: DocumentRef) -> bool:
    return (
        document.owner_id == actor.id
        or can_review_document(actor, document)
        or can_manage_employees(actor)
    )


def can_delete_document(actor: Actor, document: DocumentRef) -> bool:
    return document.owner_id == actor.id or can_review_document(actor, document)


def can_list_employees(actor: Actor) -> bool:
    return can_manage_employees(actor)


def can_delete_employee(actor: Actor, target_id: UUID) -> bool:
    return can_manage_employees(actor) and target_id != actor.id


def can_manage_policies(actor: Actor) -> bool:
    return can_manage_employees(actor)


def can_view_policies(actor: Actor) -> bool:
    return actor.id is not None


def can_view_audit_log(actor: Actor) -> bool:
    return can_manage_employees(actor) or is_hr(actor)


def authorize(allowed: bool, action: str) -> None:
    """Raise PermissionDenied unless the check passed."""
    if not allowed:
        raise PermissionDenied(f"Not permitted to {action}")


# ═══════════════════════════════════════════════════════════════════
#  Review scope (which documents a reviewer dashboard shows)
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ReviewScope:
    all_departments: bool = False
    department: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.all_departments and self.department is None

    def includes(self, document: DocumentRef) -> bool:
        if self.all_departments:
            return True
        return self.department is not None and document.department == self.department


def review_scope(actor: Actor) -> ReviewScope:
    if is_hr(actor):
        return ReviewScope(all_departments=True)
    if is_general_manager(actor) and actor.department:
        return ReviewScope(department=actor.department)
    return ReviewScope()


# ═══════════════════════════════════════════════════════════════════
#  Document status state machine
# ═══════════════════════════════════════════════════════════════════

class ReviewDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


TERMINAL_STATUSES = frozenset({DocumentStatus.APPROVED.value, DocumentStatus.REJECTED.value})


def is_terminal(status: str) -> bool:
    return _value(status) in TERMINAL_STATUSES


def transition(current_status: str, decision: ReviewDecision) -> str:
    """pending -> approved | rejected. Both targets are terminal."""
    current = _value(current_status)
    if current != DocumentStatus.PENDING.value:
        raise InvalidTransition(
            f"Document is already '{current}'; only pending documents can be reviewed"
        )
    return ReviewDecision(decision).value


# ═══════════════════════════════════════════════════════════════════
#  Access grant lifetimes (seconds)
# ═══════════════════════════════════════════════════════════════════

SENIOR_POLICY_VIEW_SECONDS = 7200
SENSITIVE_POLICY_VIEW_SECONDS = 1800
DEFAULT_POLICY_VIEW_SECONDS = 3600
POLICY_DOWNLOAD_SECONDS = 600

DOCUMENT_VIEW_SECONDS = 3600
DOCUMENT_DOWNLOAD_SECONDS = 600

SENSITIVE_POLICY_CATEGORIES = frozenset({
    PolicyCategory.COMPLIANCE.value,
    PolicyCategory.LEGAL.value,
})


def policy_view_duration(actor: Actor, policy: PolicyRef) -> int:
    if actor.designation in (Designation.GENERAL_MANAGER.value, Designation.MANAGER.value):
        return SENIOR_POLICY_VIEW_SECONDS
    if policy.category in SENSITIVE_POLICY_CATEGORIES:
        return SENSITIVE_POLICY_VIEW_SECONDS
    return DEFAULT_POLICY_VIEW_SECONDS


def policy_download_duration(actor: Actor, policy: PolicyRef) -> int:
    return POLICY_DOWNLOAD_SECONDS


def document_view_duration(actor: Actor, document: DocumentRef) -> int:
    # No role or category variance for personal documents.
    return DOCUMENT_VIEW_SECONDS


def document_download_duration(actor: Actor, document: DocumentRef) -> int:
    return DOCUMENT_DOWNLOAD_SECONDS
