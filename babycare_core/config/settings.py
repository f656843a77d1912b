# =============================================================================
# babycare_core/config/settings.py
# Application Settings (secrets.toml + environment overrides)
# =============================================================================
"""
Settings are read from a TOML secrets file, then overridden by environment
variables.

Expected secrets.toml format:

    [backend]
    url = "https://example.com/api/sheets"
    timeout = 30
    store = "supabase"          # or "memory" for local development

    [sync]
    interval_minutes = 30

    [storage]
    db_path = "local_data/babycare.db"

    [logging]
    level = "INFO"
    log_to_file = false

    [supabase]
    url = "https://xxx.supabase.co"
    key = "..."
"""

from __future__ import annotations
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from babycare_core.api.gateway import RemoteCollectionGateway
from babycare_core.api.transport import APIConfig, HttpTransport
from babycare_core.backend.row_store import InMemoryRowStore, RowStore, SupabaseRowStore
from babycare_core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path(".babycare") / "secrets.toml"
SETTINGS_PATH_ENV = "BABYCARE_SETTINGS_FILE"

ROW_STORES = ("supabase", "memory")


@dataclass
class Settings:
    """Runtime configuration for the client and the backend."""
    backend_url: Optional[str] = None
    api_timeout: int = 30
    sync_interval_minutes: float = 30
    db_path: str = "local_data/babycare.db"
    log_level: str = "INFO"
    log_to_file: bool = False
    backend_store: str = "supabase"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    @property
    def sync_interval_seconds(self) -> float:
        return self.sync_interval_minutes * 60

    @property
    def has_backend(self) -> bool:
        return bool(self.backend_url)


# Environment variable -> (settings field, converter)
_ENV_OVERRIDES = {
    "BABYCARE_BACKEND_URL": ("backend_url", str),
    "BABYCARE_API_TIMEOUT": ("api_timeout", int),
    "BABYCARE_SYNC_INTERVAL_MINUTES": ("sync_interval_minutes", float),
    "BABYCARE_DB_PATH": ("db_path", str),
    "BABYCARE_LOG_LEVEL": ("log_level", str),
    "BABYCARE_BACKEND_STORE": ("backend_store", str),
    "SUPABASE_URL": ("supabase_url", str),
    "SUPABASE_KEY": ("supabase_key", str),
}

# TOML (section, key) -> (settings field, converter)
_FILE_FIELDS = {
    ("backend", "url"): ("backend_url", str),
    ("backend", "timeout"): ("api_timeout", int),
    ("backend", "store"): ("backend_store", str),
    ("sync", "interval_minutes"): ("sync_interval_minutes", float),
    ("storage", "db_path"): ("db_path", str),
    ("logging", "level"): ("log_level", str),
    ("logging", "log_to_file"): ("log_to_file", bool),
    ("supabase", "url"): ("supabase_url", str),
    ("supabase", "key"): ("supabase_key", str),
}


def _convert(value: Any, converter, config_key: str) -> Any:
    if converter is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false", "1", "0", "yes", "no"):
            return value.lower() in ("true", "1", "yes")
        raise ConfigurationError(f"Invalid value for {config_key}", config_key=config_key, expected_type="bool")
    try:
        return converter(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Invalid value for {config_key}: {value!r}",
            config_key=config_key,
            expected_type=converter.__name__,
        )


def _read_secrets_file(path: Path) -> Dict[str, Any]:
    """Load the TOML secrets file; a missing file yields no settings."""
    if not path.exists():
        logger.debug(f"No settings file at {path}, using defaults and environment")
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Malformed settings file {path}: {e}", config_key=str(path))


def load_settings(path: Optional[Union[str, Path]] = None, environ: Optional[Dict[str, str]] = None) -> Settings:
    """
    Build Settings from the secrets file, then environment overrides.

    Args:
        path: TOML file; defaults to $BABYCARE_SETTINGS_FILE or .babycare/secrets.toml
        environ: Environment mapping (defaults to os.environ)

    Raises:
        ConfigurationError: malformed file or a value of the wrong type
    """
    environ = os.environ if environ is None else environ
    path = Path(path or environ.get(SETTINGS_PATH_ENV) or DEFAULT_SETTINGS_PATH)

    values: Dict[str, Any] = {}
    secrets = _read_secrets_file(path)
    for (section, key), (field_name, converter) in _FILE_FIELDS.items():
        section_values = secrets.get(section, {})
        if not isinstance(section_values, dict):
            raise ConfigurationError(f"[{section}] must be a table", config_key=section, expected_type="table")
        if key in section_values:
            values[field_name] = _convert(section_values[key], converter, f"{section}.{key}")

    for env_name, (field_name, converter) in _ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw:
            values[field_name] = _convert(raw, converter, env_name)

    settings = Settings(**values)
    if settings.backend_store not in ROW_STORES:
        raise ConfigurationError(
            f"Unknown backend store {settings.backend_store!r}",
            config_key="backend.store",
            expected_type=" or ".join(ROW_STORES),
        )
    return settings


# =============================================================================
# FACTORIES
# =============================================================================

def build_gateway(settings: Settings) -> RemoteCollectionGateway:
    """HTTP gateway when a backend URL is set, otherwise an unconfigured one."""
    if not settings.has_backend:
        logger.info("No backend URL configured, cloud mode unavailable")
        return RemoteCollectionGateway(None)

    config = APIConfig(
        api_name="babycare-backend",
        base_url=settings.backend_url,
        timeout=settings.api_timeout,
    )
    return RemoteCollectionGateway(HttpTransport(config))


def build_row_store(settings: Settings) -> Optional[RowStore]:
    """
    Row store for the backend service.

    Returns None when Supabase is selected but its credentials are missing,
    so the backend answers "not configured".
    """
    if settings.backend_store == "memory":
        logger.warning("Using in-memory row store: backend data is lost on restart")
        return InMemoryRowStore()

    if not (settings.supabase_url and settings.supabase_key):
        logger.warning("Supabase credentials not found, backend is not configured")
        return None
    return SupabaseRowStore.from_credentials(settings.supabase_url, settings.supabase_key)
