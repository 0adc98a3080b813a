# Overview: Shared helpers for turning action results into JSON responses.

from flask import jsonify, request

from ..actions import ActionResult


def respond(result: ActionResult):
    return jsonify(result.to_dict()), result.http_status


def json_body():
    """Request body as parsed JSON; None when missing or not JSON."""
    return request.get_json(silent=True)
