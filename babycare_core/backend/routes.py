"""
Sheets Blueprint.

Exposes the record-keeping backend over HTTP:
- POST /api/sheets - action RPC (createBaby, getBaby, getData, syncData, deleteAllData)
"""

from __future__ import annotations
import logging
from typing import Optional

from flask import Blueprint, Flask, jsonify, request

from babycare_core.backend.sheets_service import SheetsBackendService

logger = logging.getLogger(__name__)

sheets_bp = Blueprint("sheets", __name__)

# Backend service reference - set by init function
_service: Optional[SheetsBackendService] = None


def init_sheets_bp(service: SheetsBackendService):
    """Initialize sheets blueprint with the backend service."""
    global _service
    _service = service


@sheets_bp.route("/api/sheets", methods=["POST"])
def sheets_action():
    body = request.get_json(silent=True)
    if _service is None:
        logger.error("Sheets endpoint called before the blueprint was initialized")
        return jsonify({"success": False, "error": SheetsBackendService.NOT_CONFIGURED_MESSAGE}), 500

    status, payload = _service.handle(body)
    if status >= 500:
        logger.warning(f"Sheets action failed with {status}: {payload.get('error')}")
    return jsonify(payload), status


def create_app(service: Optional[SheetsBackendService] = None, settings=None) -> Flask:
    """
    Build the backend Flask app.

    Without an explicit service the row store is built from settings; a
    missing row store yields the "not configured" 500 on every request.
    """
    if service is None:
        from babycare_core.config.settings import build_row_store, load_settings

        settings = settings or load_settings()
        service = SheetsBackendService(build_row_store(settings))

    app = Flask(__name__)
    init_sheets_bp(service)
    app.register_blueprint(sheets_bp)
    return app
