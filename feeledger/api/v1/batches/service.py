from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from feeledger.core.exceptions import ServiceError
from feeledger.core.models import Batch

from .schemas import BatchCreate, BatchResponse


async def create_batch(db: AsyncSession, payload: BatchCreate) -> BatchResponse:
    code = payload.batch_code.strip().upper()
    existing = await db.execute(select(Batch.id).where(Batch.batch_code == code))
    if existing.scalar_one_or_none():
        raise ServiceError(f"Batch '{code}' already exists", status.HTTP_409_CONFLICT)
    batch = Batch(
        batch_code=code,
        intake_session=payload.intake_session.strip(),
        program_code=payload.program_code.strip().upper(),
        number_of_students=payload.number_of_students,
    )
    db.add(batch)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(f"Batch '{code}' already exists", status.HTTP_409_CONFLICT)
    await db.refresh(batch)
    return BatchResponse.model_validate(batch)


async def list_batches(db: AsyncSession) -> List[BatchResponse]:
    result = await db.execute(select(Batch).order_by(Batch.batch_code))
    return [BatchResponse.model_validate(b) for b in result.scalars().all()]


async def get_batch(db: AsyncSession, batch_id: UUID) -> Optional[BatchResponse]:
    batch = await db.get(Batch, batch_id)
    return BatchResponse.model_validate(batch) if batch else None
