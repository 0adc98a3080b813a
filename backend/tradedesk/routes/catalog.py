# Overview: Flask API routes for categories and products; parses input and returns JSON responses.

from flask import Blueprint, request, g

from .. import actions
from ..actions import run_action
from ..constants import WRITE_ROLES
from ..decorators import require_auth, require_role
from .common import json_body, respond


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/orgs/<int:org_id>")


# =============================================================================
# Categories
# =============================================================================


@catalog_bp.get("/categories")
@require_auth
@require_role()
def list_categories_route(org_id: int):
    return respond(run_action(actions.list_categories, org_id, g.current_user.id))


@catalog_bp.post("/categories")
@require_auth
@require_role(*WRITE_ROLES)
def create_category_route(org_id: int):
    return respond(run_action(actions.create_category, org_id, g.current_user.id, json_body(), success_status=201))


@catalog_bp.patch("/categories/<int:category_id>")
@require_auth
@require_role(*WRITE_ROLES)
def update_category_route(org_id: int, category_id: int):
    return respond(run_action(actions.update_category, org_id, g.current_user.id, category_id, json_body()))


@catalog_bp.delete("/categories/<int:category_id>")
@require_auth
@require_role("ADMIN")
def delete_category_route(org_id: int, category_id: int):
    """Refused with 409 while products still use the category."""
    return respond(run_action(actions.delete_category, org_id, g.current_user.id, category_id))


# =============================================================================
# Products
# =============================================================================


@catalog_bp.get("/products")
@require_auth
@require_role()
def list_products_route(org_id: int):
    """Query params: category_id, active_only."""
    return respond(run_action(actions.list_products, org_id, g.current_user.id, request.args.to_dict()))


@catalog_bp.get("/products/<int:product_id>")
@require_auth
@require_role()
def get_product_route(org_id: int, product_id: int):
    return respond(run_action(actions.get_product, org_id, g.current_user.id, product_id))


@catalog_bp.post("/products")
@require_auth
@require_role(*WRITE_ROLES)
def create_product_route(org_id: int):
    return respond(run_action(actions.create_product, org_id, g.current_user.id, json_body(), success_status=201))


@catalog_bp.patch("/products/<int:product_id>")
@require_auth
@require_role(*WRITE_ROLES)
def update_product_route(org_id: int, product_id: int):
    return respond(run_action(actions.update_product, org_id, g.current_user.id, product_id, json_body()))


@catalog_bp.delete("/products/<int:product_id>")
@require_auth
@require_role(*WRITE_ROLES)
def deactivate_product_route(org_id: int, product_id: int):
    """Soft delete: the product is deactivated, never removed."""
    return respond(run_action(actions.deactivate_product, org_id, g.current_user.id, product_id))
