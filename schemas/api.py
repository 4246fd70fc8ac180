"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from models.base import LoadStatus


# ============================================================================
# Run Log Schemas
# ============================================================================

class LoadLogEntryInfo(BaseModel):
    """One InternetSales_LoadLog entry"""
    log_id: int
    load_date: datetime
    status: LoadStatus
    message: Optional[str] = None
    run_id: Optional[str] = None

    class Config:
        from_attributes = True
        use_enum_values = True


class RunListResponse(BaseModel):
    """Recent run log entries, newest first"""
    request_id: str
    count: int
    entries: List[LoadLogEntryInfo] = Field(default_factory=list)


class RunTriggerResponse(BaseModel):
    """Outcome of a manually triggered run"""
    request_id: str
    status: str
    run_id: str
    records_extracted: int
    records_loaded: int
    records_skipped: int
    watermark_before: int
    watermark_after: int
    message: str
    rejected: List[Dict[str, Any]] = Field(default_factory=list)


# ============================================================================
# Watermark Schemas
# ============================================================================

class WatermarkResponse(BaseModel):
    """Current watermark and lease state"""
    last_order_date_key: int
    lease_holder: Optional[str] = None
    lease_expires_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "last_order_date_key": 20140128,
                "lease_holder": None,
                "lease_expires_at": None
            }
        }


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    watermark: Optional[int] = None
    last_run_status: Optional[LoadStatus] = None
    last_run_at: Optional[datetime] = None
    orphaned_runs: int = 0

    @model_validator(mode="after")
    def determine_status(self):
        """Determine overall health status"""
        if not self.database_connected or self.watermark is None:
            self.status = "unhealthy"
        elif self.last_run_status == LoadStatus.FAILED or self.orphaned_runs > 0:
            self.status = "degraded"
        else:
            self.status = "healthy"
        return self

    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "watermark": 20140128,
                "last_run_status": "Succeeded",
                "last_run_at": "2024-01-15T10:00:00Z",
                "orphaned_runs": 0
            }
        }
