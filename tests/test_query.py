"""
Unit tests for filter composition and pagination.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import sqlite

from app.crm.errors import ValidationError
from app.crm.modules.addresses.models import Address
from app.crm.modules.customers.models import Customer
from app.crm.query import MAX_PAGE_VALUE, FilterClause, Page, parse_page


def _bound_values(stmt):
    """Values the statement binds, in the order the placeholders appear."""
    compiled = stmt.compile(dialect=sqlite.dialect())
    return [compiled.params[name] for name in compiled.positiontup]


class TestFilterClause:
    def test_no_filters_matches_everything(self):
        f = FilterClause().contains(Address.city, None).exact(Address.pin_code, "").contains(Address.state, "   ")
        assert f.conditions == []
        assert f.where() is None
        assert _bound_values(f.apply(select(Address.id))) == []

    def test_substring_values_are_wrapped(self):
        f = FilterClause().contains(Address.city, "Austin")
        assert len(f.conditions) == 1
        assert _bound_values(f.apply(select(Address.id))) == ["%Austin%"]

    def test_exact_values_are_bound_as_is(self):
        f = FilterClause().exact(Address.customer_id, 7).exact(Address.pin_code, "73301")
        assert _bound_values(f.apply(select(Address.id))) == [7, "73301"]

    def test_values_follow_call_order(self):
        f = (
            FilterClause()
            .contains(Address.city, "Austin")
            .contains(Address.state, None)
            .contains(Address.pin_code, "733")
        )
        assert len(f.conditions) == 2
        assert _bound_values(f.apply(select(Address.id))) == ["%Austin%", "%733%"]

    def test_search_binds_one_value_per_column(self):
        cols = [Customer.first_name, Customer.last_name, Customer.email, Customer.phone]
        f = FilterClause().contains_any(cols, "lee")
        assert len(f.conditions) == 1
        assert _bound_values(f.apply(select(Customer.id))) == ["%lee%"] * 4

    def test_conditions_are_conjunctive(self):
        f = FilterClause().contains(Address.city, "Austin").contains(Address.state, "TX")
        sql = str(f.where())
        assert " AND " in sql
        assert " OR " not in sql

    def test_user_input_is_never_inlined(self):
        f = FilterClause().contains(Address.city, "x'; DROP TABLE customers; --")
        stmt = f.apply(select(Address.id))
        assert "DROP TABLE" not in str(stmt.compile(dialect=sqlite.dialect()))
        assert _bound_values(stmt) == ["%x'; DROP TABLE customers; --%"]

    def test_window_binds_limit_then_offset_after_filters(self):
        f = FilterClause().contains(Address.city, "Austin")
        stmt = Page(page=3, limit=5).apply(f.apply(select(Address.id)))
        assert _bound_values(stmt) == ["%Austin%", 5, 10]


class TestPage:
    def test_defaults(self):
        p = parse_page(None, None)
        assert (p.page, p.limit, p.offset) == (1, 10, 0)

    def test_offset(self):
        assert Page(page=3, limit=10).offset == 20

    def test_total_pages_rounds_up(self):
        p = Page(limit=10)
        assert p.total_pages(0) == 0
        assert p.total_pages(10) == 1
        assert p.total_pages(21) == 3

    def test_parses_numeric_strings(self):
        p = parse_page("2", "25")
        assert (p.page, p.limit, p.offset) == (2, 25, 25)

    def test_default_limit_is_configurable(self):
        assert parse_page("1", None, default_limit=50).limit == 50

    @pytest.mark.parametrize(
        "page,limit",
        [
            ("abc", None),
            ("0", None),
            (None, "-1"),
            ("1", "ten"),
            (str(MAX_PAGE_VALUE + 1), None),
            ("1", "99999999999999999999999"),
        ],
    )
    def test_invalid_values_rejected(self, page, limit):
        with pytest.raises(ValidationError):
            parse_page(page, limit)

    def test_largest_accepted_value(self):
        p = parse_page(str(MAX_PAGE_VALUE), str(MAX_PAGE_VALUE))
        assert (p.page, p.limit) == (MAX_PAGE_VALUE, MAX_PAGE_VALUE)
