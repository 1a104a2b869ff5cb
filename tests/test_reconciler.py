"""Status reconciler and fee repository against a real (SQLite) database."""

import logging
from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from feeledger.api.v1.fees import service
from feeledger.api.v1.fees.reconciler import StatusReconciler
from feeledger.api.v1.fees.repository import FeeRepository
from feeledger.api.v1.fees.schemas import PaymentCreate
from feeledger.core.enums import FeeStatus
from feeledger.core.ledger import aggregate
from feeledger.core.models import FeeType, Student, StudentFee


class CountingRepository(FeeRepository):
    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db)
        self.status_writes = 0

    async def update_status(self, fee, new_status):
        self.status_writes += 1
        return await super().update_status(fee, new_status)


class BrokenRepository(FeeRepository):
    async def update_status(self, fee, new_status):
        raise OperationalError("UPDATE student_fees", {}, Exception("database is locked"))


async def _seed_fee(db: AsyncSession, due_date: date, status: FeeStatus = FeeStatus.PENDING) -> StudentFee:
    student = Student(roll_no=7, first_name="Asha", last_name="Rao", email="asha@example.com")
    fee_type = FeeType(name="Tuition")
    db.add_all([student, fee_type])
    await db.flush()
    fee = StudentFee(
        student_id=student.student_id,
        fee_type_id=fee_type.id,
        total_amount=Decimal("1000.00"),
        due_date=due_date,
        status=status.value,
    )
    db.add(fee)
    await db.commit()
    return fee


async def _stored_status(db: AsyncSession, fee_id) -> str:
    result = await db.execute(select(StudentFee.status).where(StudentFee.id == fee_id))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_reconcile_promotes_pending_to_overdue(db_session: AsyncSession) -> None:
    fee = await _seed_fee(db_session, due_date=date.today() - timedelta(days=3))
    repo = FeeRepository(db_session)
    entry = await repo.get_fee(fee.id)
    summary = aggregate(entry.record, entry.payments)
    assert summary.effective_status == FeeStatus.OVERDUE

    written = await StatusReconciler(repo).reconcile(entry.record, summary.effective_status)

    assert written is True
    assert await _stored_status(db_session, fee.id) == "OVERDUE"


@pytest.mark.asyncio
async def test_reconcile_twice_writes_once(db_session: AsyncSession) -> None:
    fee = await _seed_fee(db_session, due_date=date.today() - timedelta(days=3))
    repo = CountingRepository(db_session)
    reconciler = StatusReconciler(repo)
    entry = await repo.get_fee(fee.id)

    first = await reconciler.reconcile(entry.record, FeeStatus.OVERDUE)
    second = await reconciler.reconcile(entry.record, FeeStatus.OVERDUE)

    assert (first, second) == (True, False)
    assert repo.status_writes == 1


@pytest.mark.asyncio
async def test_reconcile_consistent_record_is_noop(db_session: AsyncSession) -> None:
    fee = await _seed_fee(db_session, due_date=date.today() + timedelta(days=3))
    repo = CountingRepository(db_session)
    entry = await repo.get_fee(fee.id)

    assert await StatusReconciler(repo).reconcile(entry.record, FeeStatus.PENDING) is False
    assert repo.status_writes == 0


@pytest.mark.asyncio
async def test_reconcile_never_touches_waived(db_session: AsyncSession) -> None:
    fee = await _seed_fee(db_session, due_date=date.today() - timedelta(days=3), status=FeeStatus.WAIVED)
    repo = CountingRepository(db_session)
    entry = await repo.get_fee(fee.id)

    assert await StatusReconciler(repo).reconcile(entry.record, FeeStatus.OVERDUE) is False
    assert repo.status_writes == 0
    assert await _stored_status(db_session, fee.id) == "WAIVED"


@pytest.mark.asyncio
async def test_update_status_skips_waived_rows(db_session: AsyncSession) -> None:
    fee = await _seed_fee(db_session, due_date=date.today(), status=FeeStatus.WAIVED)
    repo = FeeRepository(db_session)
    entry = await repo.get_fee(fee.id)

    assert await repo.update_status(entry.record, FeeStatus.PAID) is False
    await repo.commit()
    assert await _stored_status(db_session, fee.id) == "WAIVED"


@pytest.mark.asyncio
async def test_reconcile_failure_is_logged_not_raised(db_session: AsyncSession, caplog) -> None:
    fee = await _seed_fee(db_session, due_date=date.today() - timedelta(days=3))
    fee_id = fee.id
    repo = BrokenRepository(db_session)
    entry = await repo.get_fee(fee_id)

    with caplog.at_level(logging.ERROR, logger="feeledger.api.v1.fees.reconciler"):
        written = await StatusReconciler(repo).reconcile(entry.record, FeeStatus.OVERDUE)

    assert written is False
    assert "Failed to reconcile student fee" in caplog.text
    assert await _stored_status(db_session, fee_id) == "PENDING"


@pytest.mark.asyncio
async def test_repository_decodes_joins_and_payments(db_session: AsyncSession) -> None:
    fee = await _seed_fee(db_session, due_date=date.today())
    repo = FeeRepository(db_session)
    await repo.add_payment(
        fee_id=fee.id,
        amount=Decimal("250.00"),
        payment_method="UPI",
        payment_date=fee.created_at,
    )
    await repo.commit()

    entry = await repo.get_fee(fee.id)

    assert entry.record.status == FeeStatus.PENDING
    assert entry.student.first_name == "Asha"
    assert entry.fee_type.name == "Tuition"
    assert [p.amount for p in entry.payments] == [Decimal("250.00")]
    assert aggregate(entry.record, entry.payments).effective_status == FeeStatus.PARTIAL


@pytest.mark.asyncio
async def test_compare_and_set_rejects_stale_version(db_session: AsyncSession) -> None:
    fee = await _seed_fee(db_session, due_date=date.today())
    repo = FeeRepository(db_session)

    assert await repo.compare_and_set(fee.id, 1, FeeStatus.PARTIAL) is True
    assert await repo.compare_and_set(fee.id, 1, FeeStatus.PAID) is False
    await repo.commit()

    entry = await repo.get_fee(fee.id)
    assert entry.record.version == 2
    assert entry.record.status == FeeStatus.PARTIAL


@pytest.mark.asyncio
async def test_reconcile_does_not_overwrite_newer_status(db_session: AsyncSession) -> None:
    today = date.today()
    fee = await _seed_fee(db_session, due_date=today - timedelta(days=3))
    listing_repo = CountingRepository(db_session)
    stale = await listing_repo.get_fee(fee.id)
    assert aggregate(stale.record, stale.payments, today).effective_status == FeeStatus.OVERDUE

    # A collector records a payment between the listing's read and its write.
    await service.record_payment(FeeRepository(db_session), fee.id, PaymentCreate(amount=Decimal("400")), today)

    written = await StatusReconciler(listing_repo).reconcile(stale.record, FeeStatus.OVERDUE)

    assert written is False
    assert listing_repo.status_writes == 1
    assert await _stored_status(db_session, fee.id) == "PARTIAL"
    fresh = await listing_repo.get_fee(fee.id)
    assert aggregate(fresh.record, fresh.payments, today).effective_status == FeeStatus.PARTIAL
    assert fresh.record.version == 2
