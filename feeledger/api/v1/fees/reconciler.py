"""Status reconciler: write a derived fee status back to the store when it drifted."""

import logging
from typing import Dict, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from feeledger.core.enums import FeeStatus
from feeledger.core.ledger import FeeRecord

from .repository import FeeRepository

logger = logging.getLogger(__name__)


class StatusReconciler:
    """
    Persists effective statuses computed by the ledger.
    WAIVED fees are never touched. A failed write is logged and rolled back; callers keep
    showing the locally derived status and nothing is retried.
    """

    def __init__(self, repository: FeeRepository) -> None:
        self.repository = repository
        # fee id -> (stored status seen, status written) for writes already applied
        self._applied: Dict[UUID, Tuple[FeeStatus, FeeStatus]] = {}

    async def reconcile(self, fee: FeeRecord, effective_status: FeeStatus) -> bool:
        """Returns True when a corrective update was written."""
        if fee.status == FeeStatus.WAIVED or fee.status == effective_status:
            return False
        if self._applied.get(fee.id) == (fee.status, effective_status):
            return False
        try:
            changed = await self.repository.update_status(fee, effective_status)
            await self.repository.commit()
        except SQLAlchemyError:
            logger.exception(
                "Failed to reconcile student fee %s from %s to %s",
                fee.id,
                fee.status.value,
                effective_status.value,
            )
            await self.repository.rollback()
            return False
        self._applied[fee.id] = (fee.status, effective_status)
        if changed:
            logger.info(
                "Reconciled student fee %s: %s -> %s", fee.id, fee.status.value, effective_status.value
            )
        return changed
