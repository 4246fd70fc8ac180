import pytest
from decimal import Decimal
from pydantic import ValidationError
from schemas.staging import StagingRowCreate


def _record(**overrides):
    record = {
        "SalesOrderNumber": "SO43697",
        "SalesOrderLineNumber": 1,
        "CustomerKey": 21768,
        "ProductKey": 310,
        "OrderDateKey": 20101229,
        "SalesAmount": "3578.2700",
    }
    record.update(overrides)
    return record


def test_projects_source_record():
    row = StagingRowCreate.model_validate(_record()).to_row()

    assert row == {
        "SalesOrderNumber": "SO43697",
        "CustomerKey": 21768,
        "ProductKey": 310,
        "OrderDateKey": 20101229,
        "SalesAmount": Decimal("3578.27"),
    }


def test_numeric_strings_are_coerced():
    row = StagingRowCreate.model_validate(
        _record(CustomerKey="21768", OrderDateKey="20101229")
    )
    assert row.CustomerKey == 21768
    assert row.OrderDateKey == 20101229


@pytest.mark.parametrize("amount,expected", [
    ("699.0982", Decimal("699.10")),
    ("0.005", Decimal("0.01")),
    ("-0.005", Decimal("-0.01")),
    ("12", Decimal("12.00")),
])
def test_sales_amount_rounds_half_up_to_cents(amount, expected):
    assert StagingRowCreate.model_validate(_record(SalesAmount=amount)).SalesAmount == expected


def test_order_number_is_stripped():
    row = StagingRowCreate.model_validate(_record(SalesOrderNumber="  SO1  "))
    assert row.SalesOrderNumber == "SO1"


@pytest.mark.parametrize("field,value", [
    ("SalesAmount", "not-a-number"),
    ("SalesAmount", "1e20"),
    ("SalesAmount", "1E+30"),
    ("SalesAmount", "-9.9E+99"),
    ("SalesAmount", None),
    ("OrderDateKey", "yesterday"),
    ("OrderDateKey", 99999999999),
    ("CustomerKey", -2 ** 31 - 1),
    ("ProductKey", 2 ** 31),
    ("CustomerKey", None),
    ("SalesOrderNumber", ""),
    ("SalesOrderNumber", "X" * 21),
])
def test_invalid_values_are_rejected(field, value):
    with pytest.raises(ValidationError) as exc_info:
        StagingRowCreate.model_validate(_record(**{field: value}))

    assert exc_info.value.errors()[0]["loc"][0] == field


def test_missing_field_is_rejected():
    record = _record()
    del record["ProductKey"]

    with pytest.raises(ValidationError):
        StagingRowCreate.model_validate(record)


def test_keys_at_int4_bounds_are_accepted():
    row = StagingRowCreate.model_validate(
        _record(CustomerKey=-2 ** 31, ProductKey=2 ** 31 - 1)
    )
    assert row.CustomerKey == -2 ** 31
    assert row.ProductKey == 2 ** 31 - 1


def test_zero_with_large_exponent_is_accepted():
    row = StagingRowCreate.model_validate(_record(SalesAmount="0E+50"))
    assert row.SalesAmount == Decimal("0.00")
