# =============================================================================
# babycare_core/api/gateway.py
# Remote Collection Gateway
# =============================================================================
"""
RemoteCollectionGateway - client side of the backend action protocol.

Every call returns a ServiceResult and never raises. Failures carry one of
these error codes:

    CONFIG            no backend configured (fails fast, no request sent)
    NETWORK           backend unreachable
    INVALID_RESPONSE  body is not a JSON object, or lacks the expected fields
    NOT_FOUND         backend reported the owner identifier as unknown
    BACKEND           any other response without ``success: true``
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

from babycare_core.api.transport import Transport
from babycare_core.data.records import CollectionSnapshot
from babycare_core.errors import InvalidResponseError, TransportError
from babycare_core.services.base_service import ServiceResult

logger = logging.getLogger(__name__)

CONFIG = "CONFIG"
NETWORK = "NETWORK"
INVALID_RESPONSE = "INVALID_RESPONSE"
NOT_FOUND = "NOT_FOUND"
BACKEND = "BACKEND"

RETRYABLE_CODES = frozenset({NETWORK, INVALID_RESPONSE, BACKEND})


@dataclass
class OwnerProfile:
    """Profile row held by the backend for one owner identifier."""
    owner_id: str
    birth_date: str
    display_name: Optional[str] = None

    @classmethod
    def from_wire(cls, data: Any) -> Optional[OwnerProfile]:
        if not isinstance(data, dict) or not data.get("babyId") or not data.get("birthDate"):
            return None
        return cls(
            owner_id=str(data["babyId"]),
            birth_date=str(data["birthDate"]),
            display_name=data.get("babyName") or None,
        )


def _failure(error: str, code: str) -> ServiceResult:
    return ServiceResult.fail(error, error_code=code, metadata={"retryable": code in RETRYABLE_CODES})


class RemoteCollectionGateway:
    """
    Remote persistence of the four collections for one owner identifier.

    Usage:
        gateway = RemoteCollectionGateway(HttpTransport(APIConfig("backend", url)))
        result = gateway.get_all_data("ABC234")
        if result:
            snapshot = result.data
    """

    NOT_CONFIGURED_MESSAGE = (
        "Cloud backend is not configured. Set BABYCARE_BACKEND_URL or the "
        "[backend] url setting to enable cloud mode."
    )

    def __init__(self, transport: Optional[Transport] = None):
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return self.transport is not None

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _call(self, action: str, **fields) -> ServiceResult:
        """Send one action; the result's data is the raw response payload."""
        if not self.is_configured:
            logger.warning(f"{action}: {self.NOT_CONFIGURED_MESSAGE}")
            return _failure(self.NOT_CONFIGURED_MESSAGE, CONFIG)

        body = {"action": action}
        body.update({k: v for k, v in fields.items() if v is not None})

        try:
            status, payload = self.transport.send(body)
        except TransportError as e:
            logger.warning(f"{action}: backend unreachable: {e.message}")
            return _failure(e.message, NETWORK)
        except InvalidResponseError as e:
            logger.warning(f"{action}: invalid backend response: {e.message}")
            return _failure(e.message, INVALID_RESPONSE)
        except Exception as e:
            logger.error(f"{action}: unexpected transport failure: {e}", exc_info=True)
            return _failure(str(e), NETWORK)

        error = payload.get("error") or f"Backend returned status {status}"
        if status == 404:
            return _failure(error, NOT_FOUND)
        if status >= 400 or payload.get("success") is not True:
            logger.warning(f"{action}: backend error ({status}): {error}")
            return _failure(error, BACKEND)

        return ServiceResult.ok(payload, metadata={"status_code": status})

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def create_owner(self, birth_date: str, display_name: Optional[str] = None) -> ServiceResult:
        """Ask the backend to allocate a new owner identifier."""
        result = self._call("createBaby", birthDate=birth_date, babyName=display_name or None)
        if not result:
            return result

        profile = OwnerProfile.from_wire(result.data.get("baby"))
        if profile is None:
            return _failure("createBaby response is missing the new identifier", INVALID_RESPONSE)
        logger.info(f"Created remote owner {profile.owner_id}")
        return ServiceResult.ok(profile)

    def get_owner(self, owner_id: str) -> ServiceResult:
        result = self._call("getBaby", babyId=owner_id)
        if not result:
            return result

        profile = OwnerProfile.from_wire(result.data.get("baby"))
        if profile is None:
            return _failure("getBaby response is missing the profile", INVALID_RESPONSE)
        return ServiceResult.ok(profile)

    def get_all_data(self, owner_id: str) -> ServiceResult:
        """
        Fetch all four collections.

        Parsing is lenient: a missing collection becomes an empty list and
        invalid records are dropped with a warning.
        """
        result = self._call("getData", babyId=owner_id)
        if not result:
            return result

        data = result.data.get("data")
        if not isinstance(data, dict):
            return _failure("getData response is missing the data object", INVALID_RESPONSE)

        snapshot = CollectionSnapshot.from_wire(data, source=f"remote:{owner_id}")
        return ServiceResult.ok(snapshot, metadata={"counts": snapshot.counts()})

    def replace_all_data(self, owner_id: str, snapshot: CollectionSnapshot) -> ServiceResult:
        """Replace the owner's remote collections with ``snapshot`` (full replace)."""
        result = self._call("syncData", babyId=owner_id, data=snapshot.to_wire())
        if not result:
            return result
        return ServiceResult.ok(metadata={"counts": snapshot.counts()})

    def delete_owner(self, owner_id: str) -> ServiceResult:
        result = self._call("deleteAllData", babyId=owner_id)
        if not result:
            return result
        logger.info(f"Deleted remote data for {owner_id}")
        return ServiceResult.ok()
