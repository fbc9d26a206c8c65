"""
Tests for settings validation and structured JSON logging.
"""
import json
import logging

import pytest
from pydantic import ValidationError

from compliance_portal.config import DEV_JWT_SECRET, DEV_SIGNING_SECRET, Settings
from compliance_portal.core.logging import JSONFormatter
from compliance_portal.database.postgresql import engine_options


def make_settings(**overrides):
    return Settings(_env_file=None, **overrides)


# ═══════════════════════════════════════════════════════════════════
#  Settings
# ═══════════════════════════════════════════════════════════════════

class TestSettings:

    def test_defaults(self):
        s = make_settings()
        assert s.STORAGE_BACKEND == "local"
        assert s.PROFILE_INSERT_ATTEMPTS == 5
        assert s.PROFILE_INSERT_BACKOFF_SECONDS == 2.0
        assert s.MAX_DOCUMENT_BYTES == 10 * 1024 * 1024
        assert s.MAX_PICTURE_BYTES == 5 * 1024 * 1024
        assert s.DOCUMENTS_BUCKET == "documents"
        assert s.PROFILE_PICTURES_BUCKET == "profile-pictures"

    def test_backend_is_normalised(self):
        assert make_settings(STORAGE_BACKEND=" LOCAL ").STORAGE_BACKEND == "local"

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValidationError, match="STORAGE_BACKEND"):
            make_settings(STORAGE_BACKEND="ftp")

    def test_s3_requires_keys(self):
        with pytest.raises(ValidationError, match="S3_ACCESS_KEY_ID"):
            make_settings(STORAGE_BACKEND="s3")
        s = make_settings(STORAGE_BACKEND="s3", S3_ACCESS_KEY_ID="key", S3_SECRET_ACCESS_KEY="secret")
        assert s.STORAGE_BACKEND == "s3"

    def test_production_refuses_dev_jwt_secret(self):
        with pytest.raises(ValidationError, match="JWT_SECRET"):
            make_settings(APP_ENV="production", SIGNING_SECRET="real-signing")
        assert make_settings().JWT_SECRET == DEV_JWT_SECRET

    def test_production_refuses_dev_signing_secret_for_local(self):
        with pytest.raises(ValidationError, match="SIGNING_SECRET"):
            make_settings(APP_ENV="production", JWT_SECRET="real-jwt")
        assert make_settings().SIGNING_SECRET == DEV_SIGNING_SECRET

    def test_production_with_real_secrets(self):
        s = make_settings(APP_ENV="production", JWT_SECRET="real-jwt", SIGNING_SECRET="real-signing")
        assert s.APP_ENV == "production"

    def test_attempts_must_be_positive(self):
        with pytest.raises(ValidationError, match="PROFILE_INSERT_ATTEMPTS"):
            make_settings(PROFILE_INSERT_ATTEMPTS=0)

    def test_hr_seed_needs_password(self):
        with pytest.raises(ValidationError, match="BOOTSTRAP_HR_PASSWORD"):
            make_settings(BOOTSTRAP_HR_EMAIL="hr@company.com", BOOTSTRAP_HR_PASSWORD="abc")
        s = make_settings(BOOTSTRAP_HR_EMAIL="hr@company.com", BOOTSTRAP_HR_PASSWORD="secret1")
        assert s.BOOTSTRAP_HR_EMAIL == "hr@company.com"

    def test_cors_origins_list(self):
        s = make_settings(CORS_ORIGINS="http://a.test, http://b.test,,")
        assert s.cors_origins_list == ["http://a.test", "http://b.test"]


# ═══════════════════════════════════════════════════════════════════
#  JSON logging
# ═══════════════════════════════════════════════════════════════════

def _record(msg="hello", **extra):
    record = logging.LogRecord("compliance_portal.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_base_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "compliance_portal.test"
        assert entry["message"] == "hello"
        assert "timestamp" in entry

    def test_extra_fields_included(self):
        entry = json.loads(JSONFormatter().format(_record(event="document_uploaded", attempt=3)))
        assert entry["event"] == "document_uploaded"
        assert entry["attempt"] == 3

    def test_unserialisable_extra_is_stringified(self):
        marker = object()
        entry = json.loads(JSONFormatter().format(_record(thing=marker)))
        assert entry["thing"] == str(marker)

    def test_exception_rendered(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            import sys
            record = _record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in entry["exception"]


# ═══════════════════════════════════════════════════════════════════
#  Database engine
# ═══════════════════════════════════════════════════════════════════

class TestEngineOptions:

    def test_postgres_gets_pool(self):
        options = engine_options("postgresql+asyncpg://u:p@db:5432/compliance_portal")
        assert options["pool_size"] == 10
        assert options["max_overflow"] == 20
        assert options["pool_pre_ping"] is True

    def test_sqlite_has_no_pool_sizing(self):
        options = engine_options("sqlite+aiosqlite:///./portal.db")
        assert "pool_size" not in options
        assert "max_overflow" not in options
