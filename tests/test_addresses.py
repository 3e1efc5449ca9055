"""Tests for the addresses API and the primary-address rule."""
import pytest

from app.crm import create_app
from app.crm.db import session_scope
from app.crm.modules.addresses.models import Address
from app.crm.modules.addresses.service import find_primary_conflicts, repair_primary


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    return create_app()


@pytest.fixture()
def client(app):
    return app.test_client()


def _customer(client, phone="555-0100", first_name="Ana"):
    r = client.post("/api/customers", json={"firstName": first_name, "lastName": "Lee", "phone": phone})
    assert r.status_code == 201
    return r.json["customer"]["id"]


def _address_body(customer_id, **overrides):
    body = {
        "customerId": customer_id,
        "addressLine1": "1 Main St",
        "addressLine2": "Apt 2",
        "city": "Austin",
        "state": "TX",
        "pinCode": "73301",
    }
    body.update(overrides)
    return body


def _addresses(client, customer_id):
    return client.get(f"/api/addresses?customerId={customer_id}").json


def _primary_ids(client, customer_id):
    return [a["id"] for a in _addresses(client, customer_id) if a["isPrimary"]]


def test_create_address(client):
    cid = _customer(client)
    r = client.post("/api/addresses", json=_address_body(cid))
    assert r.status_code == 201
    assert r.json["message"] == "Address added successfully"

    rows = _addresses(client, cid)
    assert [a["id"] for a in rows] == [r.json["addressId"]]
    assert rows[0]["addressLine2"] == "Apt 2"
    assert rows[0]["isPrimary"] is False
    assert rows[0]["firstName"] == "Ana"
    assert rows[0]["lastName"] == "Lee"


@pytest.mark.parametrize("missing", ["customerId", "addressLine1", "city", "state", "pinCode"])
def test_create_requires_fields(client, missing):
    cid = _customer(client)
    body = _address_body(cid)
    del body[missing]
    r = client.post("/api/addresses", json=body)
    assert r.status_code == 400
    assert r.json["message"] == "Customer ID, address line 1, city, state, and pin code are required"
    assert _addresses(client, cid) == []


def test_create_for_unknown_customer_404(client):
    r = client.post("/api/addresses", json=_address_body(999))
    assert r.status_code == 404
    assert r.json["message"] == "Customer not found"


def test_non_numeric_customer_id_rejected(client):
    assert client.post("/api/addresses", json=_address_body("abc")).status_code == 400
    assert client.get("/api/addresses?customerId=abc").status_code == 400


def test_setting_primary_clears_siblings(client):
    cid = _customer(client)
    ids = []
    for city in ("Austin", "Dallas", "Houston"):
        r = client.post("/api/addresses", json=_address_body(cid, city=city, isPrimary=True))
        ids.append(r.json["addressId"])
        assert _primary_ids(client, cid) == [ids[-1]]

    r = client.put(f"/api/addresses/{ids[0]}", json=_address_body(cid, isPrimary=True))
    assert r.status_code == 200
    assert _primary_ids(client, cid) == [ids[0]]


def test_primary_rule_is_per_customer(client):
    ana = _customer(client)
    bo = _customer(client, phone="555-0199", first_name="Bo")
    bo_primary = client.post("/api/addresses", json=_address_body(bo, isPrimary=True)).json["addressId"]

    client.post("/api/addresses", json=_address_body(ana, isPrimary=True))
    client.post("/api/addresses", json=_address_body(ana, isPrimary="true"))

    assert len(_primary_ids(client, ana)) == 1
    assert _primary_ids(client, bo) == [bo_primary]


def test_non_primary_write_leaves_siblings_alone(client):
    cid = _customer(client)
    primary = client.post("/api/addresses", json=_address_body(cid, isPrimary=True)).json["addressId"]
    other = client.post("/api/addresses", json=_address_body(cid, city="Dallas")).json["addressId"]

    client.put(f"/api/addresses/{other}", json=_address_body(cid, city="Waco", isPrimary=False))
    assert _primary_ids(client, cid) == [primary]


def test_update_address(client):
    cid = _customer(client)
    aid = client.post("/api/addresses", json=_address_body(cid)).json["addressId"]
    body = {"addressLine1": "9 Elm St", "city": "Dallas", "state": "TX", "pinCode": "75001"}
    r = client.put(f"/api/addresses/{aid}", json=body)
    assert r.status_code == 200
    assert r.json["message"] == "Address updated successfully"

    row = _addresses(client, cid)[0]
    assert row["addressLine1"] == "9 Elm St"
    assert row["addressLine2"] == ""
    assert row["city"] == "Dallas"
    assert row["customerId"] == cid


def test_update_validation_before_lookup(client):
    r = client.put("/api/addresses/999", json={"addressLine1": "9 Elm St"})
    assert r.status_code == 400
    assert r.json["message"] == "Address line 1, city, state, and pin code are required"

    r = client.put("/api/addresses/999", json={"addressLine1": "9 Elm St", "city": "Dallas", "state": "TX", "pinCode": "75001"})
    assert r.status_code == 404
    assert r.json["message"] == "Address not found"


def test_delete_address(client):
    cid = _customer(client)
    aid = client.post("/api/addresses", json=_address_body(cid)).json["addressId"]
    r = client.delete(f"/api/addresses/{aid}")
    assert r.status_code == 200
    assert r.json["message"] == "Address deleted successfully"
    assert _addresses(client, cid) == []
    assert client.delete(f"/api/addresses/{aid}").status_code == 404


def test_list_filters_are_exact(client):
    ana = _customer(client)
    bo = _customer(client, phone="555-0199", first_name="Bo")
    a1 = client.post("/api/addresses", json=_address_body(ana)).json["addressId"]
    a2 = client.post("/api/addresses", json=_address_body(bo, city="Dallas", pinCode="75001")).json["addressId"]

    assert [a["id"] for a in client.get("/api/addresses").json] == [a1, a2]
    assert [a["id"] for a in client.get("/api/addresses?state=TX").json] == [a1, a2]
    assert [a["id"] for a in client.get("/api/addresses?city=Dallas").json] == [a2]
    assert client.get("/api/addresses?city=Dal").json == []
    assert [a["id"] for a in client.get("/api/addresses?pinCode=73301&customerId=" + str(ana)).json] == [a1]
    assert client.get(f"/api/addresses?pinCode=73301&customerId={bo}").json == []


def test_repair_primary_conflicts(app, client):
    cid = _customer(client)
    with session_scope(app) as s:
        s.add_all(
            [
                Address(customer_id=cid, address_line1="1 Main St", city="Austin", state="TX", pin_code="73301", is_primary=True),
                Address(customer_id=cid, address_line1="2 Main St", city="Austin", state="TX", pin_code="73301", is_primary=True),
            ]
        )

    with session_scope(app) as s:
        conflicts = find_primary_conflicts(s)
        assert list(conflicts) == [cid]
        kept = repair_primary(s, cid)
        assert kept == max(conflicts[cid])

    with session_scope(app) as s:
        assert find_primary_conflicts(s) == {}
    assert _primary_ids(client, cid) == [kept]
