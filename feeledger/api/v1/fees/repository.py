"""Fee repository: the only place student_fees and payments rows are read or written.

Rows are decoded into immutable records (FeeRecord, PaymentRecord) on the way
out, so services and the ledger never work on live ORM objects. Writes queue a
change event which is published to the change feed once the transaction
commits; a rollback discards them.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from feeledger.core.changes import Change, ChangeFeed
from feeledger.core.enums import ChangeEvent, FeeStatus
from feeledger.core.ledger import FeeRecord, PaymentRecord
from feeledger.core.models import Payment, StudentFee

from .schemas import AcademicPeriodBrief, BatchBrief, FeeEntry, FeeTypeBrief, StudentBrief

STUDENT_FEES_TABLE = "student_fees"
PAYMENTS_TABLE = "payments"


def _decode_entry(fee: StudentFee) -> FeeEntry:
    return FeeEntry(
        record=FeeRecord.model_validate(fee),
        payments=[PaymentRecord.model_validate(p) for p in fee.payments],
        student=StudentBrief.model_validate(fee.student) if fee.student else None,
        fee_type=FeeTypeBrief.model_validate(fee.fee_type) if fee.fee_type else None,
        academic_period=(
            AcademicPeriodBrief.model_validate(fee.academic_period) if fee.academic_period else None
        ),
        batch=BatchBrief.model_validate(fee.batch) if fee.batch else None,
    )


class FeeRepository:
    def __init__(self, db: AsyncSession, change_feed: Optional[ChangeFeed] = None) -> None:
        self.db = db
        self.change_feed = change_feed
        self._pending: List[Change] = []

    def _ledger_query(self):
        return (
            select(StudentFee)
            .options(
                selectinload(StudentFee.student),
                selectinload(StudentFee.fee_type),
                selectinload(StudentFee.academic_period),
                selectinload(StudentFee.batch),
                selectinload(StudentFee.payments),
            )
            .execution_options(populate_existing=True)
        )

    def _queue(self, table: str, event: ChangeEvent, record_id: UUID) -> None:
        self._pending.append(Change(table=table, event=event, record_id=record_id))

    # --- Reads ---
    async def get_fee(self, fee_id: UUID) -> Optional[FeeEntry]:
        result = await self.db.execute(self._ledger_query().where(StudentFee.id == fee_id))
        fee = result.scalar_one_or_none()
        return _decode_entry(fee) if fee else None

    async def list_fees(
        self,
        student_id: Optional[int] = None,
        batch_id: Optional[UUID] = None,
        fee_type_id: Optional[UUID] = None,
        academic_period_id: Optional[UUID] = None,
        due_from: Optional[date] = None,
        due_to: Optional[date] = None,
    ) -> List[FeeEntry]:
        """Fees ordered by due date, newest first. Due-date bounds are exclusive."""
        stmt = self._ledger_query()
        if student_id is not None:
            stmt = stmt.where(StudentFee.student_id == student_id)
        if batch_id is not None:
            stmt = stmt.where(StudentFee.batch_id == batch_id)
        if fee_type_id is not None:
            stmt = stmt.where(StudentFee.fee_type_id == fee_type_id)
        if academic_period_id is not None:
            stmt = stmt.where(StudentFee.academic_period_id == academic_period_id)
        if due_from is not None:
            stmt = stmt.where(StudentFee.due_date > due_from)
        if due_to is not None:
            stmt = stmt.where(StudentFee.due_date < due_to)
        stmt = stmt.order_by(StudentFee.due_date.desc(), StudentFee.created_at)
        result = await self.db.execute(stmt)
        return [_decode_entry(f) for f in result.scalars().all()]

    # --- Writes ---
    async def add_fee(
        self,
        student_id: int,
        fee_type_id: UUID,
        total_amount: Decimal,
        due_date: date,
        description: Optional[str] = None,
        academic_period_id: Optional[UUID] = None,
        batch_id: Optional[UUID] = None,
    ) -> FeeRecord:
        fee = StudentFee(
            student_id=student_id,
            fee_type_id=fee_type_id,
            academic_period_id=academic_period_id,
            batch_id=batch_id,
            description=description,
            total_amount=total_amount,
            due_date=due_date,
            status=FeeStatus.PENDING.value,
            version=1,
        )
        self.db.add(fee)
        await self.db.flush()
        self._queue(STUDENT_FEES_TABLE, ChangeEvent.INSERT, fee.id)
        return FeeRecord.model_validate(fee)

    async def update_status(self, fee: FeeRecord, new_status: FeeStatus) -> bool:
        """
        Set a derived status computed from ``fee``. The row is only written while it is still
        at the version and status ``fee`` was read with, and never when WAIVED.
        Returns True if a row changed.
        """
        fee_id = fee.id
        result = await self.db.execute(
            update(StudentFee)
            .where(
                StudentFee.id == fee_id,
                StudentFee.version == fee.version,
                StudentFee.status == fee.status.value,
                StudentFee.status != new_status.value,
                StudentFee.status != FeeStatus.WAIVED.value,
            )
            .values(status=new_status.value, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        changed = result.rowcount > 0
        if changed:
            self._queue(STUDENT_FEES_TABLE, ChangeEvent.UPDATE, fee_id)
        return changed

    async def compare_and_set(self, fee_id: UUID, expected_version: int, new_status: FeeStatus) -> bool:
        """Bump the fee's version and set its status, only if nobody else bumped it first."""
        result = await self.db.execute(
            update(StudentFee)
            .where(StudentFee.id == fee_id, StudentFee.version == expected_version)
            .values(
                version=expected_version + 1,
                status=new_status.value,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False
        self._queue(STUDENT_FEES_TABLE, ChangeEvent.UPDATE, fee_id)
        return True

    async def add_payment(
        self,
        fee_id: UUID,
        amount: Decimal,
        payment_method: str,
        payment_date: datetime,
        transaction_reference: Optional[str] = None,
        receipt_number: Optional[str] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> PaymentRecord:
        payment = Payment(
            student_fee_id=fee_id,
            amount=amount,
            payment_method=payment_method,
            payment_date=payment_date,
            transaction_reference=transaction_reference,
            receipt_number=receipt_number,
            notes=notes,
            created_by=created_by,
        )
        self.db.add(payment)
        await self.db.flush()
        self._queue(PAYMENTS_TABLE, ChangeEvent.INSERT, payment.id)
        return PaymentRecord.model_validate(payment)

    # --- Transaction ---
    async def commit(self) -> None:
        await self.db.commit()
        pending, self._pending = self._pending, []
        if self.change_feed is None:
            return
        for change in pending:
            await self.change_feed.publish(change)

    async def rollback(self) -> None:
        self._pending = []
        await self.db.rollback()
