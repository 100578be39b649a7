"""
Input validation and document numbering tests.
"""

from decimal import Decimal

import pytest

from backoffice.models import Order
from backoffice.services.document_service import DocumentNumberError, next_document_number
from backoffice.validation import (
    ValidationError,
    coerce_decimal,
    coerce_int,
    require_price,
    require_quantity,
    require_text,
    to_money_str,
)


class TestCoercion:

    @pytest.mark.parametrize("raw,expected", [(3, 3), ("42", 42), (" 7 ", 7), (4.0, 4)])
    def test_coerce_int(self, raw, expected):
        assert coerce_int("quantity", raw) == expected

    @pytest.mark.parametrize("raw", ["1e3", "2.5", "", 2.5, True, None, [1]])
    def test_coerce_int_rejects(self, raw):
        with pytest.raises(ValidationError):
            coerce_int("quantity", raw)

    @pytest.mark.parametrize(
        "raw,expected",
        [("12000", Decimal("12000.00")), (19.999, Decimal("20.00")), ("0.125", Decimal("0.13"))],
    )
    def test_coerce_decimal(self, raw, expected):
        assert coerce_decimal("price", raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "NaN", "Infinity", False, None])
    def test_coerce_decimal_rejects(self, raw):
        with pytest.raises(ValidationError):
            coerce_decimal("price", raw)


class TestFieldHelpers:

    def test_quantity_bounds(self):
        assert require_quantity({"quantity": 999_999}) == 999_999
        with pytest.raises(ValidationError):
            require_quantity({"quantity": 1_000_000})
        with pytest.raises(ValidationError):
            require_quantity({})

    def test_price_bounds(self):
        assert require_price({"price": "999999.99"}) == Decimal("999999.99")
        with pytest.raises(ValidationError):
            require_price({"price": "-1"})

    def test_text(self):
        assert require_text({"name": "  Rice "}, "name", max_length=10) == "Rice"
        assert require_text({}, "notes", max_length=10, required=False) is None
        with pytest.raises(ValidationError):
            require_text({"name": "x" * 11}, "name", max_length=10)
        with pytest.raises(ValidationError):
            require_text({"name": 5}, "name", max_length=10)

    def test_money_str(self):
        assert to_money_str(Decimal("5")) == "5.00"
        assert to_money_str(None) is None


class TestDocumentNumbers:

    def test_format(self, db_session):
        assert next_document_number("order", now_ms=1700000000000) == "ORD-1700000000000"
        assert next_document_number("invoice", now_ms=5) == "INV-5"

    def test_collision_bumps_millisecond(self, db_session):
        db_session.add(Order(order_number="ORD-1000", status="draft", total_amount=Decimal("0")))
        db_session.commit()
        assert next_document_number("order", now_ms=1000) == "ORD-1001"

    def test_prefix_from_config(self, app, db_session):
        app.config["RETURN_NUMBER_PREFIX"] = "RTN"
        try:
            assert next_document_number("return", now_ms=7) == "RTN-7"
        finally:
            app.config["RETURN_NUMBER_PREFIX"] = "RET"

    def test_unknown_type(self, db_session):
        with pytest.raises(DocumentNumberError):
            next_document_number("receipt")
