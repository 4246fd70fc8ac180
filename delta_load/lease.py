"""
Exclusive, time-bounded run lease
"""

from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession
from models.load_tracking import load_lease, DEFAULT_LEASE_NAME
from core.config import settings
from core.exceptions import ConcurrentRunDetectedError, NotInitializedError
import logging

logger = logging.getLogger(__name__)


class RunLease:
    """
    Claim on the watermark for the duration of one run.

    The claim is a single conditional UPDATE: it succeeds only when the lease
    row is unheld or its previous holder's lease has expired. An expired lease
    belongs to a run that crashed without releasing it.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        name: str = DEFAULT_LEASE_NAME,
        ttl_seconds: Optional[int] = None
    ):
        self.db = db_session
        self.name = name
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.LEASE_TTL_SECONDS

    async def acquire(self, holder: str) -> datetime:
        """
        Take the lease for ``holder``.

        Returns:
            Expiry time of the acquired lease

        Raises:
            ConcurrentRunDetectedError: If another holder has a live lease
            NotInitializedError: If the lease row does not exist
        """
        now = datetime.utcnow()
        expires_at = now + timedelta(seconds=self.ttl_seconds)

        result = await self.db.execute(
            update(load_lease)
            .where(
                load_lease.c.LeaseName == self.name,
                or_(load_lease.c.Holder.is_(None), load_lease.c.ExpiresAt < now)
            )
            .values(Holder=holder, AcquiredAt=now, ExpiresAt=expires_at)
        )

        if result.rowcount == 1:
            await self.db.commit()
            logger.info(f"Lease '{self.name}' acquired by run {holder} until {expires_at.isoformat()}")
            return expires_at

        await self.db.rollback()

        current = (
            await self.db.execute(
                select(load_lease.c.Holder, load_lease.c.ExpiresAt)
                .where(load_lease.c.LeaseName == self.name)
            )
        ).one_or_none()

        if current is None:
            raise NotInitializedError(
                f"Lease row '{self.name}' is missing; run scripts/init_db.py to repair the schema",
                context={"table_name": load_lease.name, "operation": "acquire"}
            )

        raise ConcurrentRunDetectedError(
            f"Another run holds the load lease '{self.name}'",
            context={
                "holder": current.Holder,
                "expires_at": current.ExpiresAt.isoformat() if current.ExpiresAt else None,
                "requested_by": holder
            }
        )

    async def release(self, holder: str) -> bool:
        """Give the lease back. Returns False if ``holder`` no longer held it."""
        result = await self.db.execute(
            update(load_lease)
            .where(load_lease.c.LeaseName == self.name, load_lease.c.Holder == holder)
            .values(Holder=None, AcquiredAt=None, ExpiresAt=None)
        )
        await self.db.commit()

        released = result.rowcount == 1
        if released:
            logger.info(f"Lease '{self.name}' released by run {holder}")
        else:
            logger.warning(f"Run {holder} no longer held lease '{self.name}' at release")
        return released
