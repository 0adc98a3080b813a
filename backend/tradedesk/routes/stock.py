# Overview: Flask API routes for stock purchases, batches and the stock ledger.

from flask import Blueprint, request, g

from .. import actions
from ..actions import run_action
from ..constants import WRITE_ROLES
from ..decorators import require_auth, require_role
from .common import json_body, respond


stock_bp = Blueprint("stock", __name__, url_prefix="/api/orgs/<int:org_id>/stock")


@stock_bp.post("/purchases")
@require_auth
@require_role(*WRITE_ROLES)
def add_stock_purchase_route(org_id: int):
    """Receive a batch: creates the batch and its PURCHASE ledger row."""
    return respond(run_action(actions.add_stock_purchase, org_id, g.current_user.id, json_body(), success_status=201))


@stock_bp.post("/adjustments")
@require_auth
@require_role(*WRITE_ROLES)
def adjust_stock_route(org_id: int):
    """Body: stock_id, quantity (signed), reason, optional product_id, notes, attachment_url."""
    return respond(run_action(actions.adjust_stock, org_id, g.current_user.id, json_body(), success_status=201))


@stock_bp.get("/low")
@require_auth
@require_role()
def low_stock_route(org_id: int):
    return respond(run_action(actions.get_low_stock_products, org_id, g.current_user.id))


@stock_bp.get("/products/<int:product_id>")
@require_auth
@require_role()
def stock_summary_route(org_id: int, product_id: int):
    return respond(run_action(actions.get_stock_summary, org_id, g.current_user.id, product_id))


@stock_bp.get("/products/<int:product_id>/batches")
@require_auth
@require_role()
def stock_batches_route(org_id: int, product_id: int):
    return respond(run_action(actions.get_stock_batches, org_id, g.current_user.id, product_id))


@stock_bp.get("/transactions")
@require_auth
@require_role()
def list_stock_transactions_route(org_id: int):
    """
    Query params: product_id, type, date_from, date_to (ISO-8601, inclusive),
    skip (default 0), take (default 25, max 100).
    """
    params = request.args.to_dict()
    return respond(run_action(actions.list_stock_transactions, org_id, g.current_user.id, params))
