"""
HTTP hook receiving "latest telemetry changed" events.

The database change stream (a cloud trigger forwarding the write) posts each
event here. Events are queued to the worker pool and acknowledged at once;
processing outcomes are never reported back as errors, so the platform does
not replay an event that was already handled.
"""

from __future__ import annotations

import hmac
import logging
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request

from motoalert.runtime.alert_pipeline import TriggerInvocation
from motoalert.runtime.trigger_worker import TriggerWorkerPool


def _routing_id(body: dict, key: str) -> Optional[str]:
    val = body.get(key)
    if val is None:
        return None
    s = str(val).strip()
    return s or None


def create_app(workers: TriggerWorkerPool, token: Optional[str]) -> Flask:
    """
    Build the hook application.

    Parameters
    ----------
    workers
        Pool that runs accepted invocations.
    token
        Expected Bearer token; None disables authentication (local dev only).
    """
    app = Flask(__name__)
    log = logging.getLogger("motoalert.trigger")

    def require_bearer(fn):
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any):
            if token is None:
                return fn(*args, **kwargs)
            auth = request.headers.get("Authorization", "")
            if auth.startswith("Bearer "):
                presented = auth.removeprefix("Bearer ").strip()
                if hmac.compare_digest(presented.encode("utf-8"), token.encode("utf-8")):
                    return fn(*args, **kwargs)
                return jsonify({"error": "invalid token"}), 403
            return jsonify({"error": "unauthorized"}), 401
        return wrapper

    @app.post("/triggers/latest")
    @require_bearer
    def latest_written():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({"error": "expected a JSON object"}), 400

        user_id = _routing_id(body, "userId")
        motorcycle_id = _routing_id(body, "motorcycleId")
        if user_id is None or motorcycle_id is None:
            return jsonify({"error": "userId and motorcycleId are required"}), 400

        inv = TriggerInvocation(
            user_id=user_id,
            motorcycle_id=motorcycle_id,
            before=body.get("before"),
            after=body.get("after"),
        )
        if not workers.submit(inv):
            # Nothing was processed, a redelivery is safe.
            return jsonify({"status": "busy"}), 503

        log.debug("accepted trigger user=%s motorcycle=%s", user_id, motorcycle_id)
        return jsonify({"status": "accepted"}), 202

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"}), 200

    return app
