"""
Pydantic schemas for data validation and serialization.

Schemas:
    staging: StagingRowCreate - projection of a source record onto the staging shape
    api: API endpoint response schemas

Features:
    - Type coercion and conversion of source values
    - Validation errors reported per field for the rejected-row channel
    - OpenAPI schema generation for FastAPI

Usage:
    from schemas.staging import StagingRowCreate
    from schemas.api import HealthCheckResponse, RunListResponse

Example:
    row = StagingRowCreate.model_validate({
        "SalesOrderNumber": "SO43697",
        "CustomerKey": 21768,
        "ProductKey": 310,
        "OrderDateKey": 20101229,
        "SalesAmount": "3578.2700"
    })

    assert row.SalesAmount == Decimal("3578.27")
"""

__all__ = [
    "StagingRowCreate",
    "LoadLogEntryInfo",
    "RunListResponse",
    "RunTriggerResponse",
    "WatermarkResponse",
    "HealthCheckResponse",
]
