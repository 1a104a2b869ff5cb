import logging
from typing import List
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from feeledger.api.v1.fee_types.service import required_total
from feeledger.api.v1.fees.repository import FeeRepository
from feeledger.core.exceptions import ServiceError
from feeledger.core.models import AcademicPeriod, Batch, FeeType, Student

from .schemas import AcademicPeriodCreate, AcademicPeriodCreatedResponse, AcademicPeriodResponse

logger = logging.getLogger(__name__)


async def create_academic_period(
    repo: FeeRepository,
    payload: AcademicPeriodCreate,
) -> AcademicPeriodCreatedResponse:
    """Create a period for a batch and optionally assign a fee to all its active students, in one transaction."""
    db = repo.db
    batch = await db.get(Batch, payload.batch_id)
    if not batch:
        raise ServiceError("Invalid batch", status.HTTP_400_BAD_REQUEST)

    fee_type = None
    if payload.fee_assignment is not None:
        fee_type = await db.get(FeeType, payload.fee_assignment.fee_type_id)
        if not fee_type or not fee_type.is_active:
            raise ServiceError("Invalid fee type", status.HTTP_400_BAD_REQUEST)

    period = AcademicPeriod(
        batch_id=batch.id,
        semester_number=payload.semester_number,
        name=(payload.name or "").strip() or f"Semester {payload.semester_number}",
        start_date=payload.start_date,
        end_date=payload.end_date,
        is_active=payload.is_active,
    )
    db.add(period)
    assigned: List[UUID] = []
    try:
        await db.flush()
        if fee_type is not None:
            total = await required_total(db, fee_type.id)
            students = (
                await db.execute(
                    select(Student.student_id)
                    .where(Student.batch_id == batch.id, Student.is_active.is_(True))
                    .order_by(Student.roll_no)
                )
            ).scalars().all()
            for student_id in students:
                record = await repo.add_fee(
                    student_id=student_id,
                    fee_type_id=fee_type.id,
                    total_amount=total,
                    due_date=payload.fee_assignment.due_date,
                    description=f"{fee_type.name} for {period.name}",
                    academic_period_id=period.id,
                    batch_id=batch.id,
                )
                assigned.append(record.id)
        await repo.commit()
    except IntegrityError:
        await repo.rollback()
        raise ServiceError("Could not create academic period", status.HTTP_409_CONFLICT)
    if assigned:
        logger.info("Assigned %s fees for %s of batch %s", len(assigned), period.name, batch.batch_code)
    await db.refresh(period)
    response = AcademicPeriodResponse.model_validate(period)
    return AcademicPeriodCreatedResponse(**response.model_dump(), assigned_fee_ids=assigned)


async def list_academic_periods(repo: FeeRepository, batch_id: UUID) -> List[AcademicPeriodResponse]:
    result = await repo.db.execute(
        select(AcademicPeriod)
        .where(AcademicPeriod.batch_id == batch_id)
        .order_by(AcademicPeriod.semester_number)
    )
    return [AcademicPeriodResponse.model_validate(p) for p in result.scalars().all()]
