# Overview: Read-only collection snapshots and live change streams (server-sent events).

"""
Collection Routes

GET /api/collections/<name>          current snapshot
GET /api/collections/<name>/stream   text/event-stream; one "change" event
                                     per committed write to the collection

Clients re-read the snapshot when a change event arrives. The stream's
subscription is released when the client disconnects.
"""

import json
import queue

from flask import Blueprint, Response, g, jsonify, request, stream_with_context

from ..decorators import require_auth
from ..extensions import hub
from ..services import subscription_service
from ..services.subscription_service import SubscriptionError

collections_bp = Blueprint("collections", __name__, url_prefix="/api/collections")

# Seconds between keep-alive comments on an idle stream
KEEPALIVE_SECONDS = 15


def _restricted(name: str) -> bool:
    return name == "users"


@collections_bp.get("")
@require_auth
def list_collections_route():
    names = [n for n in subscription_service.collection_names() if g.current_user.is_admin or not _restricted(n)]
    return jsonify({"items": [{"name": n, "version": hub.version(n)} for n in names]})


@collections_bp.get("/<name>")
@require_auth
def snapshot_route(name: str):
    if _restricted(name) and not g.current_user.is_admin:
        return jsonify({"error": "Admin privileges required"}), 403
    try:
        items = subscription_service.snapshot(name)
    except SubscriptionError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"collection": name, "version": hub.version(name), "items": items, "count": len(items)})


def _format_event(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


@collections_bp.get("/<name>/stream")
@require_auth
def stream_route(name: str):
    if name not in subscription_service.collection_names():
        return jsonify({"error": f"Unknown collection: {name}"}), 404
    if _restricted(name) and not g.current_user.is_admin:
        return jsonify({"error": "Admin privileges required"}), 403

    # ?once=1 ends the stream after the first change (handy for polling clients)
    once = request.args.get("once") in ("1", "true")
    changes: "queue.Queue[int]" = queue.Queue()
    unsubscribe = hub.subscribe(name, lambda _collection, version: changes.put(version))

    def generate():
        try:
            yield _format_event("ready", {"collection": name, "version": hub.version(name)})
            while True:
                try:
                    version = changes.get(timeout=KEEPALIVE_SECONDS)
                except queue.Empty:
                    yield ": keep-alive\n\n"
                    continue
                yield _format_event("change", {"collection": name, "version": version})
                if once:
                    break
        finally:
            unsubscribe()

    response = Response(stream_with_context(generate()), mimetype="text/event-stream")
    response.headers["Cache-Control"] = "no-cache"
    response.headers["X-Accel-Buffering"] = "no"
    return response
