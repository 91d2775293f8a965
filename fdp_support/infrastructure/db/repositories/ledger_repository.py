"""
Family Support Ledger Repository

Physical running total per family. Every reservation is a single
conditional UPDATE so two sessions can never both push the total past the
cap: the database serializes the row, and the loser sees rowcount 0.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fdp_support.domain.errors import TransientStoreError
from fdp_support.domain.models import LedgerReservation
from fdp_support.infrastructure.db.models import FamilySupportLedgerModel as Ledger
from fdp_support.utils.time import now_local_naive

logger = logging.getLogger(__name__)


class LedgerRepository:
    """Repository for the per-family committed total"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_committed(self, family_id: str) -> Optional[Decimal]:
        """Current committed total, or None when the family has no ledger row"""
        result = await self.session.execute(
            select(Ledger.committed_total).where(Ledger.family_id == family_id)
        )
        value = result.scalar_one_or_none()
        return Decimal(str(value)) if value is not None else None

    async def open(self, family_id: str, opening_total: Decimal, cap: Decimal) -> None:
        """
        Create the ledger row seeded with the family's current aggregate.

        Raises:
            TransientStoreError: another session created the row first
        """
        self.session.add(
            Ledger(
                family_id=family_id,
                committed_total=opening_total,
                support_cap=cap,
                version=1,
            )
        )
        try:
            await self.session.flush()
        except IntegrityError:
            logger.warning("Concurrent ledger creation for family %s", family_id)
            raise TransientStoreError(
                f"Budget ledger for family {family_id} was created concurrently; retry the request"
            )
        logger.info("Opened ledger for family %s at %s (cap %s)", family_id, opening_total, cap)

    async def try_reserve(self, family_id: str, delta: Decimal, cap: Decimal) -> LedgerReservation:
        """
        Atomically add ``delta`` to the committed total if it stays <= cap.

        A delta <= 0 (an edit that lowers the contribution) always succeeds.
        """
        delta = Decimal(delta)
        stmt = (
            update(Ledger)
            .where(Ledger.family_id == family_id)
            .values(
                committed_total=Ledger.committed_total + delta,
                support_cap=cap,
                version=Ledger.version + 1,
                updated_at=now_local_naive(),
            )
            .execution_options(synchronize_session=False)
        )
        if delta > 0:
            stmt = stmt.where(Ledger.committed_total + delta <= cap)

        result = await self.session.execute(stmt)
        committed = await self.get_committed(family_id)
        return LedgerReservation(
            accepted=result.rowcount == 1,
            committed_total=committed if committed is not None else Decimal("0"),
        )

    async def release(self, family_id: str, amount: Decimal) -> Decimal:
        """Give back a reservation (rejection, deactivation)"""
        await self.session.execute(
            update(Ledger)
            .where(Ledger.family_id == family_id)
            .values(
                committed_total=Ledger.committed_total - Decimal(amount),
                version=Ledger.version + 1,
                updated_at=now_local_naive(),
            )
            .execution_options(synchronize_session=False)
        )
        committed = await self.get_committed(family_id)
        return committed if committed is not None else Decimal("0")

    async def reset(self, family_id: str, total: Decimal, cap: Decimal) -> Decimal:
        """Overwrite the committed total with a freshly computed aggregate"""
        result = await self.session.execute(
            update(Ledger)
            .where(Ledger.family_id == family_id)
            .values(
                committed_total=total,
                support_cap=cap,
                version=Ledger.version + 1,
                updated_at=now_local_naive(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.open(family_id, total, cap)
        return Decimal(total)
