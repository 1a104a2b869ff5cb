from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from feeledger.core.exceptions import ServiceError
from feeledger.core.models import Batch, Student

from .schemas import StudentCreate, StudentResponse, StudentUpdate


async def _validate_batch(db: AsyncSession, batch_id: Optional[UUID]) -> None:
    if batch_id is not None and not await db.get(Batch, batch_id):
        raise ServiceError("Invalid batch", status.HTTP_400_BAD_REQUEST)


async def create_student(db: AsyncSession, payload: StudentCreate) -> StudentResponse:
    await _validate_batch(db, payload.batch_id)
    student = Student(
        roll_no=payload.roll_no,
        batch_id=payload.batch_id,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        email=str(payload.email).lower(),
        phone=(payload.phone or "").strip() or None,
        is_active=payload.is_active,
    )
    db.add(student)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            f"Roll number {payload.roll_no} is already taken in this batch",
            status.HTTP_409_CONFLICT,
        )
    await db.refresh(student)
    return StudentResponse.model_validate(student)


async def list_students(
    db: AsyncSession,
    batch_id: Optional[UUID] = None,
    active_only: bool = False,
) -> List[StudentResponse]:
    stmt = select(Student)
    if batch_id is not None:
        stmt = stmt.where(Student.batch_id == batch_id)
    if active_only:
        stmt = stmt.where(Student.is_active.is_(True))
    stmt = stmt.order_by(Student.roll_no)
    result = await db.execute(stmt)
    return [StudentResponse.model_validate(s) for s in result.scalars().all()]


async def get_student(db: AsyncSession, student_id: int) -> Optional[StudentResponse]:
    student = await db.get(Student, student_id)
    return StudentResponse.model_validate(student) if student else None


async def update_student(
    db: AsyncSession,
    student_id: int,
    payload: StudentUpdate,
) -> Optional[StudentResponse]:
    student = await db.get(Student, student_id)
    if not student:
        return None
    data = payload.model_dump(exclude_unset=True)
    if "batch_id" in data:
        await _validate_batch(db, data["batch_id"])
    for key in ("first_name", "last_name"):
        if data.get(key) is not None:
            data[key] = data[key].strip()
    if data.get("email") is not None:
        data["email"] = str(data["email"]).lower()
    if "phone" in data:
        data["phone"] = (data["phone"] or "").strip() or None
    for key, value in data.items():
        setattr(student, key, value)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Roll number is already taken in this batch", status.HTTP_409_CONFLICT)
    await db.refresh(student)
    return StudentResponse.model_validate(student)
