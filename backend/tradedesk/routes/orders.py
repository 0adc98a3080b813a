# Overview: Flask API routes for sales orders; parses input and returns JSON responses.

"""Order API routes. Creation and status changes require ADMIN or STAFF."""

from flask import Blueprint, request, g

from .. import actions
from ..actions import run_action
from ..constants import WRITE_ROLES
from ..decorators import require_auth, require_role
from .common import json_body, respond


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orgs/<int:org_id>/orders")


@orders_bp.post("/")
@require_auth
@require_role(*WRITE_ROLES)
def create_order_route(org_id: int):
    """
    Create order.

    Body: customer_id, items [{product_id, quantity}], optional status,
    discount_cents, notes, delivery_type, address fields, payment_method,
    payment_reference. Prices come from the catalog, never from the client.
    """
    return respond(run_action(actions.create_order, org_id, g.current_user.id, json_body(), success_status=201))


@orders_bp.get("/")
@require_auth
@require_role()
def list_orders_route(org_id: int):
    """Query params: customer_id, status."""
    return respond(run_action(actions.list_orders, org_id, g.current_user.id, request.args.to_dict()))


@orders_bp.get("/<int:order_id>")
@require_auth
@require_role()
def get_order_route(org_id: int, order_id: int):
    return respond(run_action(actions.get_order, org_id, g.current_user.id, order_id))


@orders_bp.post("/<int:order_id>/status")
@require_auth
@require_role(*WRITE_ROLES)
def update_order_status_route(org_id: int, order_id: int):
    """Body: status, optional tracking_number, payment_reference."""
    return respond(run_action(actions.update_order_status, org_id, g.current_user.id, order_id, json_body()))


@orders_bp.get("/<int:order_id>/history")
@require_auth
@require_role()
def order_history_route(org_id: int, order_id: int):
    return respond(run_action(actions.get_order_history, org_id, g.current_user.id, order_id))
