from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify, request

from app.crm.db import db_session
from app.crm.modules.addresses.service import create_address, delete_address, list_addresses, update_address

bp = Blueprint("addresses", __name__)


def _json_body() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


@bp.get("")
def addresses_list():
    s = db_session()
    rows = list_addresses(
        s,
        city=request.args.get("city"),
        state=request.args.get("state"),
        pin_code=request.args.get("pinCode"),
        customer_id=request.args.get("customerId"),
    )
    return jsonify(rows)


@bp.post("")
def addresses_create():
    s = db_session()
    a = create_address(s, _json_body())
    s.commit()
    return jsonify({"message": "Address added successfully", "addressId": a.id}), 201


@bp.put("/<int:address_id>")
def addresses_update(address_id: int):
    s = db_session()
    update_address(s, address_id, _json_body())
    s.commit()
    return jsonify({"message": "Address updated successfully"})


@bp.delete("/<int:address_id>")
def addresses_delete(address_id: int):
    s = db_session()
    delete_address(s, address_id)
    s.commit()
    return jsonify({"message": "Address deleted successfully"})
