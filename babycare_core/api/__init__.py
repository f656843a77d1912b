# =============================================================================
# babycare_core/api/__init__.py
# Backend Client: transports and the remote collection gateway
# =============================================================================

from babycare_core.api.transport import (
    APIConfig,
    Transport,
    HttpTransport,
    LocalTransport,
)
from babycare_core.api.gateway import (
    RemoteCollectionGateway,
    OwnerProfile,
)

__all__ = [
    "APIConfig",
    "Transport",
    "HttpTransport",
    "LocalTransport",
    "RemoteCollectionGateway",
    "OwnerProfile",
]
