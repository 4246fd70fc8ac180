"""
Pydantic schema projecting source rows onto the staging shape
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict
from pydantic import BaseModel, Field, field_validator
from models.base import SALES_ORDER_NUMBER_LENGTH

# decimal(18,2): at most 16 digits before the point
_SALES_AMOUNT_DIGITS = 16
_SALES_AMOUNT_LIMIT = Decimal(10) ** _SALES_AMOUNT_DIGITS
_CENTS = Decimal("0.01")

# Staging keys are int4 columns
_INT4_MIN = -2 ** 31
_INT4_MAX = 2 ** 31 - 1


class StagingRowCreate(BaseModel):
    """
    One InternetSales_Staging row built from a FactInternetSales record.

    Ensures:
    - Required fields are present
    - Keys are integers that fit the int4 staging columns
    - SalesAmount fits decimal(18,2), rounded half-up to cents
    """

    SalesOrderNumber: str = Field(..., min_length=1, max_length=SALES_ORDER_NUMBER_LENGTH)
    CustomerKey: int = Field(..., ge=_INT4_MIN, le=_INT4_MAX)
    ProductKey: int = Field(..., ge=_INT4_MIN, le=_INT4_MAX)
    OrderDateKey: int = Field(..., ge=_INT4_MIN, le=_INT4_MAX)
    SalesAmount: Decimal

    @field_validator("SalesOrderNumber", mode="before")
    @classmethod
    def clean_order_number(cls, v):
        """Strip padding from char-typed order numbers"""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("SalesAmount")
    @classmethod
    def round_sales_amount(cls, v: Decimal) -> Decimal:
        """Round to cents and reject values that overflow decimal(18,2)"""
        if not v.is_finite():
            raise ValueError("SalesAmount must be a finite number")
        # quantize cannot represent more than 28 digits; reject by magnitude first
        if v and v.adjusted() >= _SALES_AMOUNT_DIGITS:
            raise ValueError("SalesAmount does not fit decimal(18,2)")
        v = v.quantize(_CENTS, rounding=ROUND_HALF_UP)
        if abs(v) >= _SALES_AMOUNT_LIMIT:
            raise ValueError("SalesAmount does not fit decimal(18,2)")
        return v

    class Config:
        extra = "ignore"

    def to_row(self) -> Dict[str, Any]:
        """Column mapping for a staging insert"""
        return self.model_dump()
