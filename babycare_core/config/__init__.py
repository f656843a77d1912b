# =============================================================================
# babycare_core/config/__init__.py
# Application Settings
# =============================================================================

from babycare_core.config.settings import (
    Settings,
    build_gateway,
    build_row_store,
    load_settings,
)

__all__ = ["Settings", "build_gateway", "build_row_store", "load_settings"]
