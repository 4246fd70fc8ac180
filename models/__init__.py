"""
SQLAlchemy models for the delta load's database tables.

Models:
    base: Base declarative class, LoadStatus enum and persisted column widths
    staging: InternetSales_Staging landing table (Core table, no primary key)
    load_tracking: Watermark singleton and run lease tables
    load_log: Append-only run log (mapped class)
    source: FactInternetSales, the external read-only source

Database Schema:
    The staging, tracking, lease and log tables are registered on
    Base.metadata and created by the schema store. The source table sits on
    a separate MetaData because the warehouse owns it.

Usage:
    from models.load_log import LoadLogEntry
    from models.base import LoadStatus
    from models.staging import internet_sales_staging

Example:
    # Append a log entry
    entry = LoadLogEntry(status=LoadStatus.STARTED.value, message="manual run")
    session.add(entry)
    await session.commit()
"""

__all__ = [
    "Base",
    "LoadStatus",
    "LoadLogEntry",
    "internet_sales_staging",
    "load_tracking",
    "load_lease",
    "fact_internet_sales",
    "source_metadata",
]
