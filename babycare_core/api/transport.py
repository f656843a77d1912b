# =============================================================================
# babycare_core/api/transport.py
# Request Transports for the Record-Keeping Backend
# =============================================================================
"""
A transport sends one JSON action body to the backend and returns
``(status_code, payload)``. Non-2xx statuses are not errors at this level;
the gateway interprets them.
"""

from __future__ import annotations
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
import logging

import requests

from babycare_core.errors import InvalidResponseError, TransportError

logger = logging.getLogger(__name__)


@dataclass
class APIConfig:
    """Configuration for the backend connection"""
    api_name: str
    base_url: str
    headers: Optional[Dict[str, str]] = None
    timeout: int = 30


class Transport(ABC):
    """Abstract base class for backend transports"""

    @abstractmethod
    def send(self, body: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        """
        Send an action body.

        Raises:
            TransportError: backend unreachable
            InvalidResponseError: body is not a JSON object
        """
        pass


class HttpTransport(Transport):
    """JSON POST to the backend's ``/api/sheets`` URL over a requests session"""

    def __init__(self, config: APIConfig):
        self.config = config
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if config.headers:
            self.session.headers.update(config.headers)

    def send(self, body: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        try:
            response = self.session.post(
                self.config.base_url,
                json=body,
                timeout=self.config.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(
                f"API request failed for {self.config.api_name}: {str(e)}",
                endpoint=self.config.base_url,
            )

        try:
            payload = response.json()
        except ValueError:
            raise InvalidResponseError(
                f"{self.config.api_name} returned a non-JSON body",
                status_code=response.status_code,
            )
        if not isinstance(payload, dict):
            raise InvalidResponseError(
                f"{self.config.api_name} returned {type(payload).__name__} instead of an object",
                status_code=response.status_code,
            )
        return response.status_code, payload

    def close(self) -> None:
        self.session.close()


class LocalTransport(Transport):
    """
    In-process transport calling a backend service's ``handle`` directly.

    Request and response go through JSON encoding so the wire semantics are
    the same as over HTTP.
    """

    def __init__(self, service):
        self.service = service

    def send(self, body: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        request_body = json.loads(json.dumps(body))
        status, payload = self.service.handle(request_body)
        try:
            payload = json.loads(json.dumps(payload))
        except (TypeError, ValueError) as e:
            raise InvalidResponseError(f"Backend payload is not JSON: {e}", status_code=status)
        if not isinstance(payload, dict):
            raise InvalidResponseError("Backend payload is not an object", status_code=status)
        return status, payload
