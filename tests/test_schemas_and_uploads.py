"""
Tests for request schemas and upload validation helpers.
"""
import re
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from compliance_portal.core.constants import (
    DOCUMENT_MIME_TYPES,
    Department,
    Designation,
    DocumentCategory,
    department_label,
    designation_label,
)
from compliance_portal.core.errors import ValidationFailed
from compliance_portal.core.uploads import (
    UploadedBlob,
    document_path,
    policy_path,
    profile_picture_path,
    require_fields,
    sanitize_filename,
    validate_blob,
)
from compliance_portal.document.models import Document
from compliance_portal.document.schemas import DocumentCreate, DocumentResponse, ReviewRequest
from compliance_portal.profile.schemas import ProfileResponse, ProfileUpdate, RegisterRequest


# ═══════════════════════════════════════════════════════════════════
#  Schemas
# ═══════════════════════════════════════════════════════════════════

class TestRegisterRequest:

    def _data(self, **overrides):
        data = {
            "email": "esha@company.com",
            "password": "secret1",
            "first_name": " Esha ",
            "last_name": "Rao",
            "department": "systems",
            "designation": "officer",
        }
        data.update(overrides)
        return data

    def test_profile_values_exclude_credentials(self):
        values = RegisterRequest(**self._data(gender=" ")).profile_values()
        assert "email" not in values and "password" not in values
        assert values["first_name"] == "Esha"
        assert values["department"] == "systems"
        assert values["designation"] == "officer"
        assert values["gender"] is None

    def test_unknown_department(self):
        with pytest.raises(ValidationError):
            RegisterRequest(**self._data(department="astrology"))

    def test_unknown_designation(self):
        with pytest.raises(ValidationError):
            RegisterRequest(**self._data(designation="ceo"))

    def test_short_password(self):
        with pytest.raises(ValidationError):
            RegisterRequest(**self._data(password="12345"))

    def test_blank_name(self):
        with pytest.raises(ValidationError):
            RegisterRequest(**self._data(last_name="   "))


class TestProfileUpdate:

    @pytest.mark.parametrize("field", ["department", "designation", "role", "email"])
    def test_privileged_fields_not_self_editable(self, field):
        with pytest.raises(ValidationError):
            ProfileUpdate(**{field: "hr"})

    def test_bank_fields_editable(self):
        update = ProfileUpdate(bank_account_number="1234567890", ifsc_code="HDFC0001234")
        assert update.model_dump(exclude_unset=True) == {
            "bank_account_number": "1234567890",
            "ifsc_code": "HDFC0001234",
        }


class TestProfileResponse:

    def test_full_name_falls_back_to_email(self):
        profile = SimpleNamespace(
            id=uuid.uuid4(), email="e@company.com", full_name="e@company.com",
            role="employee", profile_completed=False,
        )
        assert ProfileResponse.model_validate(profile).full_name == "e@company.com"


class TestDocumentSchemas:

    def test_document_create(self):
        meta = DocumentCreate(title="  Medical certificate ", category="Medical", department="systems", description=" ")
        assert meta.title == "Medical certificate"
        assert meta.category == DocumentCategory.MEDICAL
        assert meta.department == Department.SYSTEMS
        assert meta.description is None

    def test_category_labels_are_exact(self):
        with pytest.raises(ValidationError):
            DocumentCreate(title="x", category="medical", department="systems")
        assert DocumentCreate(title="x", category="Background Check", department="legal")

    def test_blank_title(self):
        with pytest.raises(ValidationError):
            DocumentCreate(title="   ", category="Other", department="systems")

    def test_review_request(self):
        assert ReviewRequest(decision="approved").notes is None
        with pytest.raises(ValidationError):
            ReviewRequest(decision="pending")
        with pytest.raises(ValidationError):
            ReviewRequest(decision="approved", expected_version=0)

    def test_document_response_without_uploader(self):
        doc = Document(
            id=uuid.uuid4(), uploaded_by=uuid.uuid4(), title="t", category="Other", department="legal",
            filename="a.pdf", file_path="user-uploads/a.pdf", file_size=1, file_type="application/pdf",
            status="pending", version=1, created_at=datetime.now(timezone.utc),
        )
        response = DocumentResponse.model_validate(doc)
        assert response.uploader is None
        assert response.status.value == "pending"


class TestEnums:

    def test_designation_seniority(self):
        assert Designation.GENERAL_MANAGER.seniority == 7
        assert Designation.OFFICER.seniority == 1
        assert Designation.MANAGER.seniority > Designation.ASSISTANT_MANAGER.seniority

    def test_department_count(self):
        assert len(Department) == 9
        assert len(DocumentCategory) == 8

    def test_display_labels(self):
        assert department_label("mining_operations") == "Mining & Operations"
        assert designation_label("general_manager") == "General Manager"
        assert department_label(None) is None
        assert designation_label("ceo") is None


# ═══════════════════════════════════════════════════════════════════
#  Upload validation
# ═══════════════════════════════════════════════════════════════════

class TestValidateBlob:

    def test_accepts_allowed(self):
        validate_blob(UploadedBlob("a.pdf", "application/pdf", b"x"), DOCUMENT_MIME_TYPES, 10)

    def test_empty(self):
        with pytest.raises(ValidationFailed, match="empty"):
            validate_blob(UploadedBlob("a.pdf", "application/pdf", b""), DOCUMENT_MIME_TYPES, 10)

    def test_limit_is_inclusive(self):
        validate_blob(UploadedBlob("a.pdf", "application/pdf", b"x" * 10), DOCUMENT_MIME_TYPES, 10)
        with pytest.raises(ValidationFailed):
            validate_blob(UploadedBlob("a.pdf", "application/pdf", b"x" * 11), DOCUMENT_MIME_TYPES, 10)

    def test_require_fields_names_all_missing(self):
        with pytest.raises(ValidationFailed, match="title, department"):
            require_fields(title=" ", category="Other", department=None)
        require_fields(title="x", category="Other")


class TestPaths:

    def test_document_path(self):
        path = document_path(UploadedBlob("Scan 01.JPG", "image/jpeg", b"x"))
        assert re.fullmatch(r"user-uploads/\d+-[0-9a-f]{12}\.jpg", path)

    def test_document_paths_unique(self):
        blob = UploadedBlob("a.pdf", "application/pdf", b"x")
        assert document_path(blob) != document_path(blob)

    def test_policy_path_keeps_sanitised_name(self):
        path = policy_path(UploadedBlob("Leave Policy (v2).pdf", "application/pdf", b"x"))
        assert re.fullmatch(r"policies/\d+-Leave_Policy__v2_\.pdf", path)

    def test_profile_picture_path(self):
        user_id = uuid.uuid4()
        assert profile_picture_path(user_id, UploadedBlob("me.webp", "image/webp", b"x")) == f"{user_id}/profile-picture.webp"

    @pytest.mark.parametrize("raw,expected", [
        ("../../etc/passwd", "passwd"),
        ("", "unnamed_file"),
        ("résumé.pdf", "résumé.pdf"),
    ])
    def test_sanitize_filename(self, raw, expected):
        assert sanitize_filename(raw) == expected
