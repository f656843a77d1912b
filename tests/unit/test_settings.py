# =============================================================================
# tests/unit/test_settings.py
# Unit Tests for Settings Loading
# =============================================================================

import pytest

from babycare_core.api.transport import HttpTransport
from babycare_core.backend.row_store import InMemoryRowStore
from babycare_core.config.settings import Settings, build_gateway, build_row_store, load_settings
from babycare_core.errors import ConfigurationError


SECRETS = """
[backend]
url = "https://babies.example.com/api/sheets"
timeout = 12

[sync]
interval_minutes = 5

[storage]
db_path = "data/test.db"

[logging]
level = "DEBUG"
log_to_file = true
"""


class TestLoadSettings:
    """Test file and environment sources"""

    def test_defaults_without_file(self, tmp_path):
        settings = load_settings(tmp_path / "missing.toml", environ={})

        assert settings == Settings()
        assert settings.sync_interval_seconds == 1800

    def test_reads_file(self, tmp_path):
        path = tmp_path / "secrets.toml"
        path.write_text(SECRETS)

        settings = load_settings(path, environ={})

        assert settings.backend_url == "https://babies.example.com/api/sheets"
        assert settings.api_timeout == 12
        assert settings.sync_interval_seconds == 300
        assert settings.db_path == "data/test.db"
        assert settings.log_level == "DEBUG"
        assert settings.log_to_file is True

    def test_environment_overrides_file(self, tmp_path):
        path = tmp_path / "secrets.toml"
        path.write_text(SECRETS)

        settings = load_settings(path, environ={
            "BABYCARE_BACKEND_URL": "http://localhost:5000/api/sheets",
            "BABYCARE_SYNC_INTERVAL_MINUTES": "1",
            "SUPABASE_URL": "https://x.supabase.co",
            "SUPABASE_KEY": "anon",
        })

        assert settings.backend_url == "http://localhost:5000/api/sheets"
        assert settings.sync_interval_minutes == 1.0
        assert settings.supabase_url == "https://x.supabase.co"

    def test_settings_file_from_environment(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text('[storage]\ndb_path = "elsewhere.db"\n')

        settings = load_settings(environ={"BABYCARE_SETTINGS_FILE": str(path)})

        assert settings.db_path == "elsewhere.db"

    def test_malformed_file_raises(self, tmp_path):
        path = tmp_path / "secrets.toml"
        path.write_text("[backend\nurl = ")

        with pytest.raises(ConfigurationError):
            load_settings(path, environ={})

    def test_bad_value_type_raises(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_settings(tmp_path / "missing.toml", environ={"BABYCARE_API_TIMEOUT": "soon"})

    def test_unknown_backend_store_raises(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_settings(tmp_path / "missing.toml", environ={"BABYCARE_BACKEND_STORE": "excel"})


class TestFactories:
    """Test gateway and row store construction"""

    def test_gateway_unconfigured_without_url(self):
        assert not build_gateway(Settings()).is_configured

    def test_gateway_uses_http_transport(self):
        gateway = build_gateway(Settings(backend_url="http://localhost:5000/api/sheets", api_timeout=7))

        assert isinstance(gateway.transport, HttpTransport)
        assert gateway.transport.config.timeout == 7

    def test_memory_row_store(self):
        assert isinstance(build_row_store(Settings(backend_store="memory")), InMemoryRowStore)

    def test_supabase_without_credentials_is_none(self):
        assert build_row_store(Settings()) is None
