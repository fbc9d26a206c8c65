"""
HTTP surface tests: routing, error mapping and blob delivery.
The session dependency and the database are replaced; no server or
database is started.
"""
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from compliance_portal.database.postgresql import get_db
from compliance_portal.document.models import Document
from compliance_portal.main import app
from compliance_portal.middleware.auth_middleware import AuthContext, get_auth_context
from compliance_portal.profile.models import Profile
from compliance_portal.storage import ensure_buckets, set_object_storage
from compliance_portal.storage.local_backend import LocalObjectStorage


def make_profile(designation="officer", role="employee", department="systems"):
    return Profile(
        id=uuid.uuid4(), email="user@company.com", first_name="Test", last_name="User",
        designation=designation, role=role, department=department, profile_completed=True,
    )


def make_db(get=None):
    db = MagicMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.close = AsyncMock()
    db.delete = AsyncMock()
    db.get = AsyncMock(return_value=get)
    db.execute = AsyncMock(return_value=MagicMock(rowcount=1))
    return db


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def sign_in_as(profile, db=None):
    db = db or make_db()

    async def override_db():
        yield db

    async def override_ctx():
        return AuthContext(
            account_id=profile.id,
            session_id="test-session",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
            token="test-token",
            profile=profile,
        )

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_auth_context] = override_ctx
    return db


# ═══════════════════════════════════════════════════════════════════
#  Basics
# ═══════════════════════════════════════════════════════════════════

class TestBasics:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_root(self, client):
        body = client.get("/").json()
        assert body["status"] == "running"
        assert body["storage_backend"] in {"local", "s3"}

    def test_missing_bearer_is_401(self, client):
        async def override_db():
            yield make_db()

        app.dependency_overrides[get_db] = override_db
        response = client.get("/api/documents")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_session_endpoint(self, client):
        profile = make_profile("general_manager", department="legal")
        sign_in_as(profile)
        body = client.get("/api/auth/session").json()
        assert body["actor_kind"] == "general_manager"
        assert body["profile"]["department"] == "legal"


# ═══════════════════════════════════════════════════════════════════
#  Error mapping
# ═══════════════════════════════════════════════════════════════════

class TestErrorMapping:

    def test_manager_has_no_review_dashboard(self, client):
        db = sign_in_as(make_profile("manager", department="finance_accounts"))
        response = client.get("/api/documents/review")
        assert response.status_code == 403
        db.execute.assert_not_awaited()

    def test_upload_missing_fields_is_422(self, client):
        sign_in_as(make_profile())
        response = client.post(
            "/api/documents",
            data={"category": "Medical"},
            files={"file": ("a.pdf", b"%PDF", "application/pdf")},
        )
        assert response.status_code == 422
        assert "title" in response.json()["detail"]
        assert "department" in response.json()["detail"]

    def test_quick_approve_twice_is_409(self, client):
        profile = make_profile("general_manager", department="systems")
        document = Document(
            id=uuid.uuid4(), uploaded_by=uuid.uuid4(), title="t", category="Medical", department="systems",
            filename="a.pdf", file_path="user-uploads/a.pdf", file_size=1, file_type="application/pdf",
            status="approved", version=2, created_at=datetime.now(timezone.utc),
        )
        sign_in_as(profile, make_db(get=document))

        response = client.post(f"/api/documents/{document.id}/quick-review", json={"decision": "approved"})

        assert response.status_code == 409

    def test_quick_approve_pending(self, client):
        profile = make_profile("general_manager", department="systems")
        document = Document(
            id=uuid.uuid4(), uploaded_by=uuid.uuid4(), title="t", category="Medical", department="systems",
            filename="a.pdf", file_path="user-uploads/a.pdf", file_size=1, file_type="application/pdf",
            status="pending", version=1, created_at=datetime.now(timezone.utc),
        )
        sign_in_as(profile, make_db(get=document))

        with patch("compliance_portal.audit.service.record_audit", new_callable=AsyncMock):
            response = client.post(f"/api/documents/{document.id}/quick-review", json={"decision": "approved"})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "approved"
        assert body["reviewed_by"] == str(profile.id)
        assert body["version"] == 2

    def test_delete_self_is_403(self, client):
        profile = make_profile("manager")
        db = sign_in_as(profile)
        response = client.delete(f"/api/profiles/{profile.id}")
        assert response.status_code == 403
        db.delete.assert_not_awaited()

    def test_employee_cannot_list_employees(self, client):
        sign_in_as(make_profile())
        assert client.get("/api/profiles").status_code == 403

    def test_employee_cannot_read_audit_log(self, client):
        sign_in_as(make_profile())
        assert client.get("/api/audit").status_code == 403


# ═══════════════════════════════════════════════════════════════════
#  Blob delivery (local backend)
# ═══════════════════════════════════════════════════════════════════

class TestStorageRoutes:

    @pytest.fixture
    async def storage(self, tmp_path):
        local = LocalObjectStorage(root=str(tmp_path), signing_secret="secret", public_base_url="http://testserver")
        await ensure_buckets(local)
        set_object_storage(local)
        yield local
        set_object_storage(None)

    @pytest.mark.asyncio
    async def test_signed_url_serves_blob(self, client, storage):
        await storage.upload("documents", "policies/1-handbook.pdf", b"%PDF-handbook")
        grant = await storage.create_signed_url("documents", "policies/1-handbook.pdf", 600, download_name="handbook.pdf")

        response = client.get(grant.url.replace("http://testserver", ""))

        assert response.status_code == 200
        assert response.content == b"%PDF-handbook"
        assert response.headers["content-disposition"] == 'attachment; filename="handbook.pdf"'

    @pytest.mark.asyncio
    async def test_download_header_survives_quoted_filename(self, client, storage):
        owner = make_profile()
        document = Document(
            id=uuid.uuid4(), uploaded_by=owner.id, title="t", category="Medical", department="systems",
            filename='scan "final".pdf', file_path="user-uploads/1-abc.pdf", file_size=4,
            file_type="application/pdf", status="pending", version=1, created_at=datetime.now(timezone.utc),
        )
        await storage.upload("documents", document.file_path, b"%PDF")
        sign_in_as(owner, make_db(get=document))

        response = client.get(f"/api/documents/{document.id}/download")

        assert response.status_code == 200
        assert response.content == b"%PDF"
        assert response.headers["content-disposition"] == (
            "attachment; filename=\"scan__final_.pdf\"; filename*=UTF-8''scan%20%22final%22.pdf"
        )

    @pytest.mark.asyncio
    async def test_bad_token_is_403(self, client, storage):
        assert client.get("/api/storage/signed/not-a-token").status_code == 403

    @pytest.mark.asyncio
    async def test_public_bucket_only(self, client, storage):
        await storage.upload("profile-pictures", "u1/profile-picture.png", b"\x89PNG")
        await storage.upload("documents", "user-uploads/secret.pdf", b"%PDF")

        assert client.get("/api/storage/public/profile-pictures/u1/profile-picture.png").content == b"\x89PNG"
        assert client.get("/api/storage/public/documents/user-uploads/secret.pdf").status_code == 404


# ═══════════════════════════════════════════════════════════════════
#  Employee directory
# ═══════════════════════════════════════════════════════════════════

class TestEmployeeDirectory:

    def test_summary_carries_display_labels(self, client):
        employee = make_profile("sr_officer", department="finance_accounts")
        db = sign_in_as(make_profile("manager"))
        db.execute = AsyncMock(return_value=MagicMock(all=MagicMock(return_value=[(employee, 2)])))

        body = client.get("/api/profiles").json()

        assert body["total"] == 1
        summary = body["employees"][0]
        assert summary["department_label"] == "Finance & Accounts"
        assert summary["designation_label"] == "Sr. Officer"
        assert summary["documents_count"] == 2
