from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, jsonify, request

from app.crm.db import db_session
from app.crm.modules.customers.service import (
    create_customer,
    customer_with_addresses,
    delete_customer,
    get_customer,
    list_by_location,
    list_customers,
    list_filtered,
    update_customer,
)
from app.crm.query import parse_page

bp = Blueprint("customers", __name__)


def _json_body() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _location_args() -> dict[str, str | None]:
    return {
        "city": request.args.get("city"),
        "state": request.args.get("state"),
        "pin_code": request.args.get("pinCode"),
    }


@bp.get("")
def customers_list():
    s = db_session()
    page = parse_page(
        request.args.get("page"),
        request.args.get("limit"),
        default_limit=current_app.config.get("DEFAULT_PAGE_SIZE", 10),
    )
    result = list_customers(s, page=page, search=request.args.get("search"), **_location_args())
    return jsonify(result)


@bp.get("/filtered")
def customers_filtered():
    s = db_session()
    return jsonify(list_filtered(s, **_location_args()))


@bp.get("/filter-by-location")
def customers_filter_by_location():
    s = db_session()
    return jsonify(list_by_location(s, **_location_args()))


@bp.get("/<int:customer_id>")
def customer_detail(customer_id: int):
    s = db_session()
    c = get_customer(s, customer_id)
    return jsonify(customer_with_addresses(s, c))


@bp.post("")
def customers_create():
    s = db_session()
    c = create_customer(s, _json_body())
    s.commit()
    current_app.logger.info("Customer created id=%s", c.id)
    return jsonify({"message": "Customer created successfully", "customer": customer_with_addresses(s, c)}), 201


@bp.put("/<int:customer_id>")
def customers_update(customer_id: int):
    s = db_session()
    update_customer(s, customer_id, _json_body())
    s.commit()
    return jsonify({"message": "Customer updated successfully"})


@bp.delete("/<int:customer_id>")
def customers_delete(customer_id: int):
    s = db_session()
    deleted_addresses = delete_customer(s, customer_id)
    s.commit()
    current_app.logger.info("Customer deleted id=%s addresses=%s", customer_id, deleted_addresses)
    return jsonify({"message": "Customer deleted successfully", "deletedAddresses": deleted_addresses})
