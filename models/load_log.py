from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint, Index, func
from datetime import datetime
from models.base import Base, LoadStatus, STATUS_LENGTH, MESSAGE_MAX_LENGTH, RUN_ID_LENGTH


class LoadLogEntry(Base):
    """
    Append-only run log for the Internet Sales delta load.

    Purpose:
    - Single source of truth for run outcome
    - One Started and exactly one terminal (Succeeded/Failed) entry per run
    - Orphaned Started entries reveal runs that crashed before their terminal write

    Design:
    - RunID correlates the entries of one run; it is nullable so that
      host-job inserts without a run keep working
    - Message holds diagnostic text truncated to 4000 characters
    """
    __tablename__ = "InternetSales_LoadLog"

    log_id = Column("LogID", Integer, primary_key=True, autoincrement=True)
    load_date = Column(
        "LoadDate", DateTime, nullable=False,
        default=datetime.utcnow, server_default=func.now()
    )
    status = Column("Status", String(STATUS_LENGTH), nullable=False)
    message = Column("Message", String(MESSAGE_MAX_LENGTH), nullable=True)
    run_id = Column("RunID", String(RUN_ID_LENGTH), nullable=True)

    __table_args__ = (
        CheckConstraint(
            status.in_([s.value for s in LoadStatus]),
            name="ck_load_log_status",
        ),
        Index("idx_load_log_run", run_id, status),
        Index("idx_load_log_date", load_date),
    )

    def __repr__(self) -> str:
        return (
            f"<LoadLogEntry(log_id={self.log_id}, status='{self.status}', "
            f"run_id='{self.run_id}')>"
        )
