from datetime import datetime
from sqlalchemy import Column, Table, String, Integer, Numeric, DateTime, Index, func
from models.base import Base, SALES_ORDER_NUMBER_LENGTH

# Append-only landing relation with no primary key (Core table, not mapped)
internet_sales_staging = Table(
    "InternetSales_Staging",
    Base.metadata,
    Column("SalesOrderNumber", String(SALES_ORDER_NUMBER_LENGTH)),
    Column("CustomerKey", Integer),
    Column("ProductKey", Integer),
    Column("OrderDateKey", Integer),
    Column("SalesAmount", Numeric(18, 2)),
    Column("LoadDate", DateTime, default=datetime.utcnow, server_default=func.now()),
    Index("idx_staging_order_date_key", "OrderDateKey"),
)

STAGING_COLUMNS = (
    "SalesOrderNumber",
    "CustomerKey",
    "ProductKey",
    "OrderDateKey",
    "SalesAmount",
)
