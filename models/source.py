from sqlalchemy import MetaData, Table, Column, String, Integer, Numeric

# The source fact table is owned by the warehouse, not by this job.
# It lives on its own MetaData so schema creation never touches it;
# development and test setups create it explicitly.
source_metadata = MetaData()

fact_internet_sales = Table(
    "FactInternetSales",
    source_metadata,
    Column("SalesOrderNumber", String(20), primary_key=True),
    Column("SalesOrderLineNumber", Integer, primary_key=True, autoincrement=False),
    Column("CustomerKey", Integer, nullable=False),
    Column("ProductKey", Integer, nullable=False),
    Column("OrderDateKey", Integer, nullable=False, index=True),
    Column("SalesAmount", Numeric(19, 4), nullable=False),
)
