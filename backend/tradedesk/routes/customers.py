# Overview: Flask API routes for customers and suppliers; parses input and returns JSON responses.

from flask import Blueprint, request, g

from .. import actions
from ..actions import run_action
from ..constants import WRITE_ROLES
from ..decorators import require_auth, require_role
from .common import json_body, respond


customers_bp = Blueprint("customers", __name__, url_prefix="/api/orgs/<int:org_id>")


@customers_bp.get("/customers")
@require_auth
@require_role()
def list_customers_route(org_id: int):
    return respond(run_action(actions.list_customers, org_id, g.current_user.id, request.args.get("q")))


@customers_bp.get("/customers/<int:customer_id>")
@require_auth
@require_role()
def get_customer_route(org_id: int, customer_id: int):
    return respond(run_action(actions.get_customer, org_id, g.current_user.id, customer_id))


@customers_bp.post("/customers")
@require_auth
@require_role(*WRITE_ROLES)
def create_customer_route(org_id: int):
    return respond(run_action(actions.create_customer, org_id, g.current_user.id, json_body(), success_status=201))


@customers_bp.patch("/customers/<int:customer_id>")
@require_auth
@require_role(*WRITE_ROLES)
def update_customer_route(org_id: int, customer_id: int):
    return respond(run_action(actions.update_customer, org_id, g.current_user.id, customer_id, json_body()))


@customers_bp.get("/suppliers")
@require_auth
@require_role()
def list_suppliers_route(org_id: int):
    return respond(run_action(actions.list_suppliers, org_id, g.current_user.id))


@customers_bp.post("/suppliers")
@require_auth
@require_role(*WRITE_ROLES)
def create_supplier_route(org_id: int):
    return respond(run_action(actions.create_supplier, org_id, g.current_user.id, json_body(), success_status=201))
