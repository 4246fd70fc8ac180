"""
Watermark-based delta load of FactInternetSales into InternetSales_Staging.

Modules:
    schema: Schema store (create tables, seed the watermark and lease rows)
    watermark: WatermarkTracker - read/advance the singleton watermark
    lease: RunLease - exclusive, time-bounded claim preventing concurrent runs
    run_log: RunLogger - Started/Succeeded/Failed entries with run handles
    sources: SalesSource base class, the SQL source over FactInternetSales and a CSV source
    extractor: IncrementalExtractor - project and stage rows newer than the watermark
    runner: LoadRunner - one run from lease to terminal log entry
    procedures: Thin wrappers for host job runners
    scheduler: APScheduler integration for periodic runs

Architecture:
    A run follows a fixed sequence:

    1. Lease    - refuse to start while another run is active
    2. Started  - log entry carrying a fresh run id
    3. Extract  - stage every source row newer than the watermark
    4. Advance  - move the watermark to the highest staged key
    5. Finish   - Succeeded entry, or Failed with the error detail

Usage:
    from delta_load.runner import LoadRunner
    from delta_load.sources import SqlSalesSource

Example:
    runner = LoadRunner(session, source=SqlSalesSource(session))
    result = await runner.run(note="manual")

    print(f"Loaded {result['records_loaded']} rows")

Error Handling:
    Components raise the exceptions in core.exceptions. Row projection
    failures are skipped and counted unless ROW_ERROR_POLICY=abort; every
    other failure ends the run with a Failed log entry.
"""

__all__ = [
    "LoadRunner",
    "IncrementalExtractor",
    "WatermarkTracker",
    "RunLease",
    "RunLogger",
    "SqlSalesSource",
    "LoadScheduler",
]
