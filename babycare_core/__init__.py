# =============================================================================
# babycare_core/__init__.py
# Baby-care record keeping: local store, cloud backend and sync
# =============================================================================
"""
babycare_core - offline-first record keeping for feedings, diaper changes,
cry analyses and pumping sessions, with optional cloud sharing through a
short owner identifier.

Entry points:
    babycare_core.services.baby_data_service.build_baby_data_service
    babycare_core.backend.routes.create_app
    babycare_core.cli.main
"""

__version__ = "1.0.0"
