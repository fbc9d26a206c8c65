"""
Shared enumerations and upload rules — mirrors the database check constraints.
"""
from enum import Enum
from typing import Optional


class Department(str, Enum):
    SYSTEMS = "systems"
    HUMAN_RESOURCES = "human_resources"
    FINANCE_ACCOUNTS = "finance_accounts"
    LEGAL = "legal"
    ADMINISTRATION = "administration"
    MINING_OPERATIONS = "mining_operations"
    MARKETING_SALES = "marketing_sales"
    MEDICAL = "medical"
    SECURITY = "security"


DEPARTMENT_LABELS = {
    Department.SYSTEMS: "Systems",
    Department.HUMAN_RESOURCES: "Human Resources",
    Department.FINANCE_ACCOUNTS: "Finance & Accounts",
    Department.LEGAL: "Legal",
    Department.ADMINISTRATION: "Administration",
    Department.MINING_OPERATIONS: "Mining & Operations",
    Department.MARKETING_SALES: "Marketing & Sales",
    Department.MEDICAL: "Medical",
    Department.SECURITY: "Security",
}


class Designation(str, Enum):
    """Seniority rank, declared from most to least senior."""
    GENERAL_MANAGER = "general_manager"
    MANAGER = "manager"
    ASSISTANT_MANAGER = "assistant_manager"
    DEPUTY_MANAGER = "deputy_manager"
    MANAGEMENT_TRAINEE = "management_trainee"
    SR_OFFICER = "sr_officer"
    OFFICER = "officer"

    @property
    def seniority(self) -> int:
        """Higher is more senior; officer is 1."""
        members = list(Designation)
        return len(members) - members.index(self)


DESIGNATION_LABELS = {
    Designation.GENERAL_MANAGER: "General Manager",
    Designation.MANAGER: "Manager",
    Designation.ASSISTANT_MANAGER: "Assistant Manager",
    Designation.DEPUTY_MANAGER: "Deputy Manager",
    Designation.MANAGEMENT_TRAINEE: "Management Trainee",
    Designation.SR_OFFICER: "Sr. Officer",
    Designation.OFFICER: "Officer",
}


def department_label(value: Optional[str]) -> Optional[str]:
    try:
        return DEPARTMENT_LABELS[Department(value)]
    except ValueError:
        return None


def designation_label(value: Optional[str]) -> Optional[str]:
    try:
        return DESIGNATION_LABELS[Designation(value)]
    except ValueError:
        return None


class ProfileRole(str, Enum):
    """Functional capability, orthogonal to designation."""
    EMPLOYEE = "employee"
    HR = "hr"


class DocumentCategory(str, Enum):
    MEDICAL = "Medical"
    CONTRACT = "Contract"
    TRAINING = "Training"
    SAFETY = "Safety"
    HR = "HR"
    INSURANCE = "Insurance"
    BACKGROUND_CHECK = "Background Check"
    OTHER = "Other"


class PolicyCategory(str, Enum):
    COMPLIANCE = "compliance"
    HR = "hr"
    SAFETY = "safety"
    FINANCE = "finance"
    OPERATIONS = "operations"
    LEGAL = "legal"
    BENEFITS = "benefits"
    TRAINING = "training"


class DocumentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# ── Storage layout ──
USER_UPLOADS_PREFIX = "user-uploads/"
POLICIES_PREFIX = "policies/"

# ── Allowed MIME types per upload kind ──
DOCUMENT_MIME_TYPES = frozenset({
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
})

POLICY_MIME_TYPES = frozenset({
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "image/png",
    "image/jpeg",
})

PICTURE_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
})
