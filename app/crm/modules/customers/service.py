"""
Customer reads and writes.

Listings join customers to their addresses so location filters and per-customer
aggregates (address count, concatenated locations) come from one statement; the
full address list of each returned customer is then fetched in a second pass and
merged back by customer id.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, outerjoin
from sqlalchemy.sql import ColumnElement

from app.crm.errors import ConflictError, NotFoundError, ValidationError
from app.crm.modules.addresses.models import Address
from app.crm.modules.addresses.service import addresses_by_customer, address_fields, missing_required
from app.crm.modules.customers.models import Customer
from app.crm.query import FilterClause, Page, concat_distinct, count_distinct

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "First name, last name, and phone are required"


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


def validate_customer_payload(payload: dict[str, Any]) -> dict[str, str | None]:
    fields = {
        "first_name": _clean(payload.get("firstName")),
        "last_name": _clean(payload.get("lastName")),
        "email": _clean(payload.get("email")),
        "phone": _clean(payload.get("phone")),
    }
    if not (fields["first_name"] and fields["last_name"] and fields["phone"]):
        raise ValidationError(REQUIRED_MESSAGE)
    return fields


def phone_taken(s: Session, phone: str, *, exclude_id: int | None = None) -> bool:
    stmt = select(Customer.id).where(Customer.phone == phone)
    if exclude_id is not None:
        stmt = stmt.where(Customer.id != exclude_id)
    return s.execute(stmt.limit(1)).first() is not None


def location_label() -> ColumnElement[str]:
    """'city, state pinCode' for one address row."""
    return Address.city + ", " + Address.state + " " + Address.pin_code


def location_filters(city: str | None, state: str | None, pin_code: str | None) -> FilterClause:
    return (
        FilterClause()
        .contains(Address.city, city)
        .contains(Address.state, state)
        .contains(Address.pin_code, pin_code)
    )


def customer_filters(
    search: str | None,
    city: str | None,
    state: str | None,
    pin_code: str | None,
) -> FilterClause:
    filters = FilterClause().contains_any(
        [Customer.first_name, Customer.last_name, Customer.email, Customer.phone],
        search,
    )
    filters.contains(Address.city, city).contains(Address.state, state).contains(Address.pin_code, pin_code)
    return filters


def list_customers(
    s: Session,
    *,
    page: Page,
    search: str | None = None,
    city: str | None = None,
    state: str | None = None,
    pin_code: str | None = None,
) -> dict[str, Any]:
    filters = customer_filters(search, city, state, pin_code)
    joined = outerjoin(Customer, Address, Address.customer_id == Customer.id)

    stmt = select(
        Customer,
        func.count(Address.id).label("addressCount"),
        concat_distinct(s, location_label()).label("locations"),
    ).select_from(joined)
    stmt = filters.apply(stmt).group_by(Customer.id).order_by(Customer.id.asc())
    rows = s.execute(page.apply(stmt)).all()

    addresses = addresses_by_customer(s, [c.id for c, _count, _locations in rows])
    customers = []
    for c, address_count, locations in rows:
        item = c.to_dict()
        item["addressCount"] = int(address_count or 0)
        item["locations"] = locations
        item["addresses"] = [a.to_dict() for a in addresses[c.id]]
        item["cities"] = locations or ""
        customers.append(item)

    total = count_distinct(s, Customer.id, joined, filters)
    return {
        "customers": customers,
        "totalPages": page.total_pages(total),
        "currentPage": page.page,
        "totalCount": total,
    }


def get_customer(s: Session, customer_id: int) -> Customer:
    c = s.get(Customer, customer_id)
    if c is None:
        raise NotFoundError("Customer not found")
    return c


def customer_with_addresses(s: Session, c: Customer) -> dict[str, Any]:
    item = c.to_dict()
    item["addresses"] = [a.to_dict() for a in addresses_by_customer(s, [c.id])[c.id]]
    return item


def _add_inline_address(s: Session, customer_id: int, payload: Any) -> None:
    """
    Best effort: the customer stays created whether or not this address lands.
    """
    if not isinstance(payload, dict):
        logger.warning("Inline address for customer id=%s ignored: not an object", customer_id)
        return
    fields = address_fields(payload)
    if missing_required(fields):
        logger.warning("Inline address for customer id=%s not saved: required fields missing", customer_id)
        return
    try:
        with s.begin_nested():
            s.add(Address(customer_id=customer_id, is_primary=True, **fields))
            s.flush()
    except SQLAlchemyError as e:
        logger.error("Error adding address for customer id=%s: %s", customer_id, e)


def create_customer(s: Session, payload: dict[str, Any]) -> Customer:
    fields = validate_customer_payload(payload)
    if phone_taken(s, fields["phone"]):
        raise ConflictError("Phone number already exists")

    c = Customer(**fields)
    s.add(c)
    s.flush()

    address = payload.get("address")
    if address is not None:
        _add_inline_address(s, c.id, address)
    return c


def update_customer(s: Session, customer_id: int, payload: dict[str, Any]) -> Customer:
    fields = validate_customer_payload(payload)
    if phone_taken(s, fields["phone"], exclude_id=customer_id):
        raise ConflictError("Phone number already exists for another customer")

    c = get_customer(s, customer_id)
    for attr, value in fields.items():
        setattr(c, attr, value)
    s.flush()
    return c


def delete_customer(s: Session, customer_id: int) -> int:
    """
    Delete a customer; the store cascades to its addresses.
    Returns how many addresses the customer had just before the delete.
    """
    c = get_customer(s, customer_id)
    address_count = s.execute(
        select(func.count(Address.id)).where(Address.customer_id == customer_id)
    ).scalar_one()
    s.delete(c)
    s.flush()
    return int(address_count or 0)


def list_filtered(
    s: Session,
    *,
    city: str | None = None,
    state: str | None = None,
    pin_code: str | None = None,
) -> list[dict[str, Any]]:
    """Customers with at least one address matching every given location filter."""
    filters = location_filters(city, state, pin_code)
    stmt = select(Customer).join(Address, Address.customer_id == Customer.id)
    stmt = filters.apply(stmt).distinct().order_by(Customer.id.asc())
    customers = list(s.execute(stmt).scalars())

    addresses = addresses_by_customer(s, [c.id for c in customers])
    out = []
    for c in customers:
        item = c.to_dict()
        item["addresses"] = [a.to_dict() for a in addresses[c.id]]
        item["addressCount"] = len(addresses[c.id])
        out.append(item)
    return out


def list_by_location(
    s: Session,
    *,
    city: str | None = None,
    state: str | None = None,
    pin_code: str | None = None,
) -> list[dict[str, Any]]:
    """One aggregate row per matching customer: count and concatenated locations of the matching addresses."""
    filters = location_filters(city, state, pin_code)
    stmt = select(
        Customer,
        func.count(Address.id).label("addressCount"),
        concat_distinct(s, location_label()).label("cities"),
    ).join(Address, Address.customer_id == Customer.id)
    stmt = filters.apply(stmt).group_by(Customer.id).order_by(Customer.id.asc())

    out = []
    for c, address_count, cities in s.execute(stmt).all():
        item = c.to_dict()
        item["addressCount"] = int(address_count or 0)
        item["cities"] = cities
        out.append(item)
    return out
