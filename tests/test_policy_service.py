"""
Tests for the company policy service.
Validates: manager-only upload/delete, blob lifecycle, listing filters
and the role/category dependent grant lifetimes.
"""
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from compliance_portal.authz.engine import Actor
from compliance_portal.core.constants import PolicyCategory
from compliance_portal.core.errors import NotFound, PermissionDenied, ValidationFailed
from compliance_portal.core.uploads import UploadedBlob
from compliance_portal.policy import service
from compliance_portal.policy.models import CompanyPolicy
from compliance_portal.policy.schemas import PolicyCreate
from compliance_portal.storage import ObjectStorageError, ensure_buckets
from compliance_portal.storage.local_backend import LocalObjectStorage


def make_actor(designation="officer", role="employee", department="systems"):
    return Actor(id=uuid.uuid4(), designation=designation, role=role, department=department)


def make_policy(category="legal", path="policies/1-code_of_conduct.pdf"):
    return CompanyPolicy(
        id=uuid.uuid4(),
        title="Code of Conduct",
        category=category,
        file_url=path,
        file_name="code of conduct.pdf",
        file_type="application/pdf",
        file_size=4,
    )


def make_db(policy=None):
    db = MagicMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    db.delete = AsyncMock()
    db.get = AsyncMock(return_value=policy)
    db.execute = AsyncMock(return_value=MagicMock(all=MagicMock(return_value=[])))
    return db


@pytest.fixture
async def storage(tmp_path):
    local = LocalObjectStorage(root=str(tmp_path), signing_secret="secret", public_base_url="http://files.test")
    await ensure_buckets(local)
    return local


@pytest.fixture
def audit_mock():
    with patch("compliance_portal.audit.service.record_audit", new_callable=AsyncMock) as mock:
        yield mock


BLOB = UploadedBlob(filename="code of conduct.pdf", content_type="application/pdf", data=b"%PDF")


# ═══════════════════════════════════════════════════════════════════
#  Upload and delete
# ═══════════════════════════════════════════════════════════════════

class TestUploadPolicy:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("designation", ["manager", "general_manager"])
    async def test_managers_upload(self, designation, storage, audit_mock):
        actor = make_actor(designation)
        meta = PolicyCreate(title="Code of Conduct", category=PolicyCategory.LEGAL)

        policy = await service.upload_policy(make_db(), actor, meta, BLOB, storage=storage)

        assert policy.uploaded_by == actor.id
        assert policy.category == "legal"
        assert policy.file_url.startswith("policies/")
        assert policy.file_url.endswith("-code_of_conduct.pdf")
        assert await storage.download("documents", policy.file_url) == b"%PDF"
        assert audit_mock.call_args.args[1] == "POLICY_UPLOADED"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("designation,role", [("officer", "employee"), ("officer", "hr")])
    async def test_others_denied_before_storage(self, designation, role, audit_mock):
        storage = MagicMock()
        storage.upload = AsyncMock()
        with pytest.raises(PermissionDenied):
            await service.upload_policy(
                make_db(), make_actor(designation, role), PolicyCreate(title="x"), BLOB, storage=storage
            )
        storage.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_type_restricted(self, storage, audit_mock):
        blob = UploadedBlob(filename="sheet.xlsx", content_type="application/vnd.ms-excel", data=b"x")
        with pytest.raises(ValidationFailed):
            await service.upload_policy(make_db(), make_actor("manager"), PolicyCreate(title="x"), blob, storage=storage)

    def test_default_category(self):
        assert PolicyCreate(title="Leave policy").category == PolicyCategory.COMPLIANCE


class TestDeletePolicy:

    @pytest.mark.asyncio
    async def test_deletes_row_and_blob(self, storage, audit_mock):
        policy = make_policy()
        await storage.upload("documents", policy.file_url, b"%PDF")
        db = make_db(policy)

        await service.delete_policy(db, make_actor("manager"), policy.id, storage=storage)

        db.delete.assert_awaited_once_with(policy)
        with pytest.raises(ObjectStorageError):
            await storage.download("documents", policy.file_url)
        assert audit_mock.call_args.args[1] == "POLICY_DELETED"

    @pytest.mark.asyncio
    async def test_blob_kept_when_audit_write_raises(self, storage, audit_mock):
        policy = make_policy()
        await storage.upload("documents", policy.file_url, b"%PDF")
        audit_mock.side_effect = RuntimeError("audit store down")

        with pytest.raises(RuntimeError):
            await service.delete_policy(make_db(policy), make_actor("manager"), policy.id, storage=storage)

        assert await storage.download("documents", policy.file_url) == b"%PDF"

    @pytest.mark.asyncio
    async def test_employee_cannot_delete(self, storage, audit_mock):
        db = make_db(make_policy())
        with pytest.raises(PermissionDenied):
            await service.delete_policy(db, make_actor(), uuid.uuid4(), storage=storage)
        db.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_policy(self, storage, audit_mock):
        with pytest.raises(NotFound):
            await service.delete_policy(make_db(None), make_actor("manager"), uuid.uuid4(), storage=storage)


class TestListPolicies:

    @pytest.mark.asyncio
    async def test_category_filter(self):
        db = make_db()
        await service.list_policies(db, make_actor(), category=PolicyCategory.SAFETY)
        sql = str(db.execute.call_args.args[0])
        assert "company_policies.category = " in sql
        assert "ORDER BY company_policies.created_at DESC" in sql

    @pytest.mark.asyncio
    async def test_no_filter(self):
        db = make_db()
        await service.list_policies(db, make_actor())
        assert "company_policies.category = " not in str(db.execute.call_args.args[0])


# ═══════════════════════════════════════════════════════════════════
#  Grants
# ═══════════════════════════════════════════════════════════════════

class TestPolicyGrants:

    @pytest.mark.asyncio
    async def test_officer_legal_policy(self, storage):
        policy = make_policy(category="legal")
        await storage.upload("documents", policy.file_url, b"%PDF")
        officer = make_actor("officer")
        db = make_db(policy)

        before = datetime.now(timezone.utc)
        view = await service.policy_view_grant(db, officer, policy.id, storage=storage)
        download = await service.policy_download_grant(db, officer, policy.id, storage=storage)

        assert view.expires_in == 1800
        assert abs((view.expires_at - before) - timedelta(seconds=1800)) < timedelta(seconds=5)
        assert download.expires_in == 600
        assert abs((download.expires_at - before) - timedelta(seconds=600)) < timedelta(seconds=5)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("designation,category,expected", [
        ("manager", "legal", 7200),
        ("general_manager", "hr", 7200),
        ("officer", "compliance", 1800),
        ("sr_officer", "safety", 3600),
    ])
    async def test_view_lifetimes(self, storage, designation, category, expected):
        policy = make_policy(category=category)
        await storage.upload("documents", policy.file_url, b"%PDF")
        grant = await service.policy_view_grant(make_db(policy), make_actor(designation), policy.id, storage=storage)
        assert grant.expires_in == expected

    @pytest.mark.asyncio
    async def test_download_carries_file_name(self, storage):
        policy = make_policy()
        await storage.upload("documents", policy.file_url, b"%PDF")
        grant = await service.policy_download_grant(make_db(policy), make_actor("manager"), policy.id, storage=storage)
        assert grant.expires_in == 600
        assert storage.verify_signed_token(grant.url.rsplit("/", 1)[1])[2] == "code of conduct.pdf"
