# Overview: Flask API routes for the change feed (snapshot + long-poll deltas).

from flask import Blueprint, jsonify, request

from ..services import change_feed
from .common import KNOWN_ERRORS, error_response


feed_bp = Blueprint("feed", __name__, url_prefix="/api/feed")


@feed_bp.get("/<collection>")
def snapshot_route(collection: str):
    """Current documents of a collection plus the cursor to poll from."""
    try:
        return jsonify(change_feed.snapshot(collection))
    except KNOWN_ERRORS as e:
        return error_response(e, "snapshot")


@feed_bp.get("/<collection>/changes")
def changes_route(collection: str):
    """
    Changes after ?cursor=N, oldest first.

    ?wait=S holds the request open up to S seconds (capped by
    FEED_MAX_WAIT_SECONDS) until at least one change exists.
    """
    cursor = request.args.get("cursor", 0, type=int)
    wait = request.args.get("wait", 0, type=float)
    limit = request.args.get("limit", change_feed.DEFAULT_LIMIT, type=int)
    try:
        return jsonify(change_feed.wait_for_changes(collection, cursor, wait=wait, limit=limit))
    except KNOWN_ERRORS as e:
        return error_response(e, "changes_since")
