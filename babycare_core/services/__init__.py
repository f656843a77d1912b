# =============================================================================
# babycare_core/services/__init__.py
# Service Layer for the baby-care core
# =============================================================================
"""
Service Layer

Separates the logging/sync business logic from whatever UI consumes it.

Usage Example:
-------------
    from babycare_core.services.baby_data_service import build_baby_data_service

    service = build_baby_data_service()
    service.start()

    result = service.add_feeding(90, "formula")
    if result.success:
        print(result.data.id)

``BabyDataService`` lives in its own module and is imported from there; this
package only re-exports the result primitives so the offline layer can use
them without import cycles.
"""

from .base_service import BaseService, ServiceResult

__all__ = [
    "BaseService",
    "ServiceResult",
]
