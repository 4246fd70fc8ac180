from sqlalchemy import Column, Table, String, Integer, DateTime
from models.base import Base, RUN_ID_LENGTH

# Singleton watermark row: exactly one row, seeded with 0 at schema creation.
load_tracking = Table(
    "InternetSales_LoadTracking",
    Base.metadata,
    Column("LastOrderDateKey", Integer, nullable=False),
)

# One row per lease name; Holder is NULL while nobody runs the load.
load_lease = Table(
    "InternetSales_LoadLease",
    Base.metadata,
    Column("LeaseName", String(50), primary_key=True),
    Column("Holder", String(RUN_ID_LENGTH), nullable=True),
    Column("AcquiredAt", DateTime, nullable=True),
    Column("ExpiresAt", DateTime, nullable=True),
)

INITIAL_WATERMARK = 0
DEFAULT_LEASE_NAME = "internet_sales"
