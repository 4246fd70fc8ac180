from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class LoadStatus(str, enum.Enum):
    """Run log status"""
    STARTED = "Started"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self is not LoadStatus.STARTED


# Persisted column widths
SALES_ORDER_NUMBER_LENGTH = 20
STATUS_LENGTH = 50
MESSAGE_MAX_LENGTH = 4000
RUN_ID_LENGTH = 36
