# =============================================================================
# tests/test_config.py - Settings and startup validation
# =============================================================================

import pytest
from pydantic import ValidationError
from structlog.testing import capture_logs

from weconnect import main
from weconnect.config import Settings


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None, DATABASE_URL="sqlite+aiosqlite://", JWT_SECRET="s")

        assert settings.JWT_EXPIRE_MINUTES == 10080
        assert settings.PORT == 3000
        assert settings.STORAGE_BUCKET == "post-images"
        assert settings.N8N_TIMEOUT_SECONDS == 30
        assert settings.DB_POOL_SIZE == 20
        assert settings.AUTH_RATE_LIMIT_MAX_ATTEMPTS == 5

    def test_allowed_origins_are_split(self):
        settings = Settings(
            _env_file=None,
            DATABASE_URL="sqlite+aiosqlite://",
            JWT_SECRET="s",
            ALLOWED_ORIGINS="https://app.weconnect.io, http://localhost:5173 ,",
        )
        assert settings.allowed_origins == ["https://app.weconnect.io", "http://localhost:5173"]

    def test_storage_configured_needs_both_values(self):
        only_url = Settings(_env_file=None, DATABASE_URL="x", JWT_SECRET="s", SUPABASE_URL="https://x.supabase.co")
        assert only_url.storage_configured is False

    @pytest.mark.parametrize("missing", ["JWT_SECRET", "DATABASE_URL"])
    def test_required_values(self, monkeypatch, missing):
        monkeypatch.delenv(missing, raising=False)
        values = {"DATABASE_URL": "sqlite+aiosqlite://", "JWT_SECRET": "s"}
        values.pop(missing)

        with pytest.raises(ValidationError):
            Settings(_env_file=None, **values)


class TestStartup:

    def test_missing_jwt_secret_refuses_to_start(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        monkeypatch.setattr(main.uvicorn, "run", lambda *a, **kw: pytest.fail("server must not start"))

        with capture_logs() as logs, pytest.raises(SystemExit) as exc_info:
            main.run()

        assert exc_info.value.code == 1
        assert any(e["event"] == "missing_required_configuration" and "JWT_SECRET" in e["fields"] for e in logs)
