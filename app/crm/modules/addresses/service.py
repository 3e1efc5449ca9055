from __future__ import annotations

from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from app.crm.errors import NotFoundError, ValidationError
from app.crm.modules.addresses.models import Address
from app.crm.modules.customers.models import Customer
from app.crm.query import FilterClause

CREATE_REQUIRED_MESSAGE = "Customer ID, address line 1, city, state, and pin code are required"
UPDATE_REQUIRED_MESSAGE = "Address line 1, city, state, and pin code are required"


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


def as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def parse_customer_id(raw: Any) -> int | None:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, bool):
        raise ValidationError("Customer ID must be a number")
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValidationError("Customer ID must be a number") from None


def address_fields(payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "address_line1": _clean(payload.get("addressLine1")),
        "address_line2": _clean(payload.get("addressLine2")) or "",
        "city": _clean(payload.get("city")),
        "state": _clean(payload.get("state")),
        "pin_code": _clean(payload.get("pinCode")),
    }


def missing_required(fields: dict[str, Any]) -> bool:
    return not all(fields[k] for k in ("address_line1", "city", "state", "pin_code"))


def addresses_by_customer(s: Session, customer_ids: list[int]) -> dict[int, list[Address]]:
    """
    All addresses of the given customers, keyed by customer id, each list in id order.
    Every requested id gets a key, customers without addresses map to [].
    """
    grouped: dict[int, list[Address]] = {cid: [] for cid in customer_ids}
    if not customer_ids:
        return grouped
    stmt = select(Address).where(Address.customer_id.in_(customer_ids)).order_by(Address.id.asc())
    for a in s.execute(stmt).scalars():
        grouped[a.customer_id].append(a)
    return grouped


def list_addresses(
    s: Session,
    *,
    city: str | None = None,
    state: str | None = None,
    pin_code: str | None = None,
    customer_id: Any = None,
) -> list[dict[str, Any]]:
    filters = (
        FilterClause()
        .exact(Address.city, city)
        .exact(Address.state, state)
        .exact(Address.pin_code, pin_code)
        .exact(Address.customer_id, parse_customer_id(customer_id))
    )
    stmt = select(Address, Customer.first_name, Customer.last_name).join(Customer, Address.customer_id == Customer.id)
    stmt = filters.apply(stmt).order_by(Address.id.asc())
    out = []
    for a, first_name, last_name in s.execute(stmt).all():
        row = a.to_dict()
        row["firstName"] = first_name
        row["lastName"] = last_name
        out.append(row)
    return out


def clear_primary(s: Session, customer_id: int, *, exclude_id: int | None = None) -> int:
    """Drop the primary flag from a customer's addresses, optionally sparing one."""
    stmt = update(Address).where(Address.customer_id == customer_id)
    if exclude_id is not None:
        stmt = stmt.where(Address.id != exclude_id)
    result = s.execute(stmt.values(is_primary=False))
    return result.rowcount or 0


def create_address(s: Session, payload: dict[str, Any]) -> Address:
    customer_id = parse_customer_id(payload.get("customerId"))
    fields = address_fields(payload)
    if customer_id is None or missing_required(fields):
        raise ValidationError(CREATE_REQUIRED_MESSAGE)

    if s.get(Customer, customer_id) is None:
        raise NotFoundError("Customer not found")

    is_primary = as_bool(payload.get("isPrimary"))
    if is_primary:
        clear_primary(s, customer_id)

    a = Address(customer_id=customer_id, is_primary=is_primary, **fields)
    s.add(a)
    s.flush()
    return a


def update_address(s: Session, address_id: int, payload: dict[str, Any]) -> Address:
    fields = address_fields(payload)
    if missing_required(fields):
        raise ValidationError(UPDATE_REQUIRED_MESSAGE)

    a = s.get(Address, address_id)
    if a is None:
        raise NotFoundError("Address not found")

    is_primary = as_bool(payload.get("isPrimary"))
    if is_primary:
        clear_primary(s, a.customer_id, exclude_id=a.id)

    for attr, value in fields.items():
        setattr(a, attr, value)
    a.is_primary = is_primary
    s.flush()
    return a


def delete_address(s: Session, address_id: int) -> None:
    result = s.execute(delete(Address).where(Address.id == address_id))
    if not result.rowcount:
        raise NotFoundError("Address not found")


def find_primary_conflicts(s: Session) -> dict[int, list[int]]:
    """Customers holding more than one primary address, mapped to those address ids (ascending)."""
    stmt = (
        select(Address.customer_id, Address.id)
        .where(Address.is_primary.is_(True))
        .order_by(Address.customer_id.asc(), Address.id.asc())
    )
    primaries: dict[int, list[int]] = {}
    for customer_id, address_id in s.execute(stmt).all():
        primaries.setdefault(customer_id, []).append(address_id)
    return {cid: ids for cid, ids in primaries.items() if len(ids) > 1}


def repair_primary(s: Session, customer_id: int) -> int | None:
    """Keep the highest-id primary address of a customer and clear the rest. Returns the kept id."""
    keep = s.execute(
        select(func.max(Address.id)).where(Address.customer_id == customer_id, Address.is_primary.is_(True))
    ).scalar_one_or_none()
    if keep is None:
        return None
    clear_primary(s, customer_id, exclude_id=keep)
    return keep
