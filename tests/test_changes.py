import logging
import uuid
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from feeledger.api.v1.fees.repository import PAYMENTS_TABLE, STUDENT_FEES_TABLE, FeeRepository
from feeledger.core.changes import Change, ChangeFeed
from feeledger.core.enums import ChangeEvent
from feeledger.core.models import FeeType, Student


def _change(table: str = STUDENT_FEES_TABLE, event: ChangeEvent = ChangeEvent.UPDATE) -> Change:
    return Change(table=table, event=event, record_id=uuid.uuid4())


@pytest.mark.asyncio
async def test_subscriber_receives_changes_for_its_table_only() -> None:
    feed = ChangeFeed()
    seen = []
    feed.subscribe(STUDENT_FEES_TABLE, seen.append)

    fee_change = _change(STUDENT_FEES_TABLE)
    await feed.publish(fee_change)
    await feed.publish(_change(PAYMENTS_TABLE, ChangeEvent.INSERT))

    assert seen == [fee_change]


@pytest.mark.asyncio
async def test_async_callbacks_are_awaited() -> None:
    feed = ChangeFeed()
    seen = []

    async def on_change(change: Change) -> None:
        seen.append(change.record_id)

    feed.subscribe(PAYMENTS_TABLE, on_change)
    change = _change(PAYMENTS_TABLE, ChangeEvent.INSERT)
    await feed.publish(change)

    assert seen == [change.record_id]


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery() -> None:
    feed = ChangeFeed()
    seen = []
    subscription = feed.subscribe(STUDENT_FEES_TABLE, seen.append)
    assert feed.subscriber_count(STUDENT_FEES_TABLE) == 1

    subscription.unsubscribe()
    subscription.unsubscribe()
    await feed.publish(_change())

    assert seen == []
    assert feed.subscriber_count() == 0


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_block_others(caplog) -> None:
    feed = ChangeFeed()
    seen = []

    def broken(change: Change) -> None:
        raise RuntimeError("boom")

    feed.subscribe(STUDENT_FEES_TABLE, broken)
    feed.subscribe(STUDENT_FEES_TABLE, seen.append)

    with caplog.at_level(logging.ERROR, logger="feeledger.core.changes"):
        await feed.publish(_change())

    assert len(seen) == 1
    assert "Change subscriber failed" in caplog.text


async def _seed(db: AsyncSession):
    student = Student(roll_no=3, first_name="Ravi", last_name="Menon", email="ravi@example.com")
    fee_type = FeeType(name="Library")
    db.add_all([student, fee_type])
    await db.commit()
    return student, fee_type


@pytest.mark.asyncio
async def test_repository_publishes_only_after_commit(db_session: AsyncSession) -> None:
    student, fee_type = await _seed(db_session)
    feed = ChangeFeed()
    seen = []
    feed.subscribe(STUDENT_FEES_TABLE, seen.append)
    feed.subscribe(PAYMENTS_TABLE, seen.append)
    repo = FeeRepository(db_session, feed)

    fee = await repo.add_fee(
        student_id=student.student_id,
        fee_type_id=fee_type.id,
        total_amount=Decimal("500.00"),
        due_date=date(2030, 1, 1),
    )
    payment = await repo.add_payment(
        fee_id=fee.id,
        amount=Decimal("100.00"),
        payment_method="CASH",
        payment_date=datetime(2029, 12, 1, 9, 30),
    )
    assert seen == []

    await repo.commit()

    assert [(c.table, c.event, c.record_id) for c in seen] == [
        (STUDENT_FEES_TABLE, ChangeEvent.INSERT, fee.id),
        (PAYMENTS_TABLE, ChangeEvent.INSERT, payment.id),
    ]


@pytest.mark.asyncio
async def test_repository_rollback_discards_pending_changes(db_session: AsyncSession) -> None:
    student, fee_type = await _seed(db_session)
    student_id, fee_type_id = student.student_id, fee_type.id
    feed = ChangeFeed()
    seen = []
    feed.subscribe(STUDENT_FEES_TABLE, seen.append)
    repo = FeeRepository(db_session, feed)

    await repo.add_fee(
        student_id=student_id,
        fee_type_id=fee_type_id,
        total_amount=Decimal("500.00"),
        due_date=date(2030, 1, 1),
    )
    await repo.rollback()
    await repo.commit()

    assert seen == []
    assert await repo.list_fees(student_id=student_id) == []
