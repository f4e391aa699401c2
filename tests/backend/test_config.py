"""
Configuration Tests for Hackathon Hub.

Tests for:
- Database URL settings
- Engine construction per dialect
"""

import pytest

from app.core.config import Settings
from app.core.database import build_engine


# ============== Settings Tests ==============


class TestDatabaseSettings:
    """Tests for the database URL setting."""

    def test_default_is_postgres(self, monkeypatch):
        """Deployments default to PostgreSQL over asyncpg."""
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.database_url.startswith("postgresql+asyncpg://")

    def test_sqlite_url_is_accepted(self):
        """A local SQLite URL loads without validation errors."""
        settings = Settings(_env_file=None, database_url="sqlite+aiosqlite:///./hackathons.db")

        assert settings.database_url == "sqlite+aiosqlite:///./hackathons.db"


# ============== Engine Tests ==============


class TestBuildEngine:
    """Tests for engine construction."""

    @pytest.mark.asyncio
    async def test_sqlite_engine_from_settings(self):
        """The SQLite branch is reachable through configuration."""
        settings = Settings(_env_file=None, database_url="sqlite+aiosqlite:///:memory:")
        engine = build_engine(settings.database_url)

        try:
            assert engine.dialect.name == "sqlite"
        finally:
            await engine.dispose()
