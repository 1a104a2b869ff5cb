from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from feeledger.core.changes import ChangeFeed
from feeledger.core.enums import FeeStatus
from feeledger.db.session import get_db

from .repository import FeeRepository
from .schemas import FeeFilters


def get_change_feed(request: Request) -> ChangeFeed:
    return request.app.state.change_feed


async def get_fee_repository(
    db: AsyncSession = Depends(get_db),
    change_feed: ChangeFeed = Depends(get_change_feed),
) -> FeeRepository:
    return FeeRepository(db, change_feed)


def get_fee_filters(
    search: Optional[str] = Query(None, description="Student name, email, roll number, fee type or description"),
    student_id: Optional[int] = Query(None),
    batch_id: Optional[UUID] = Query(None),
    fee_type_id: Optional[UUID] = Query(None),
    academic_period_id: Optional[UUID] = Query(None),
    fee_status: Optional[FeeStatus] = Query(None, alias="status"),
    due_from: Optional[date] = Query(None, description="Only fees due strictly after this date"),
    due_to: Optional[date] = Query(None, description="Only fees due strictly before this date"),
) -> FeeFilters:
    return FeeFilters(
        search=search,
        student_id=student_id,
        batch_id=batch_id,
        fee_type_id=fee_type_id,
        academic_period_id=academic_period_id,
        status=fee_status,
        due_from=due_from,
        due_to=due_to,
    )
