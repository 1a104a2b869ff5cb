from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from feeledger.core.enums import FeeFrequency
from feeledger.core.exceptions import ServiceError
from feeledger.core.ledger import from_minor_units, to_minor_units
from feeledger.core.models import FeeComponent, FeeType

from .schemas import (
    FeeComponentResponse,
    FeeTypeCreate,
    FeeTypeDashboardResponse,
    FeeTypeResponse,
    FeeTypeUpdate,
    MostExpensiveFee,
)


def _sum_components(components: List[FeeComponent], optional: bool) -> Decimal:
    units = sum(
        to_minor_units(c.amount)
        for c in components
        if c.is_active and bool(c.is_optional) == optional
    )
    return from_minor_units(units)


def _to_response(ft: FeeType) -> FeeTypeResponse:
    active = [c for c in ft.components if c.is_active]
    return FeeTypeResponse(
        id=ft.id,
        name=ft.name,
        description=ft.description,
        is_recurring=ft.is_recurring,
        frequency=ft.frequency,
        is_active=ft.is_active,
        total_amount=_sum_components(active, optional=False),
        optional_amount=_sum_components(active, optional=True),
        components=[FeeComponentResponse.model_validate(c) for c in active],
        created_at=ft.created_at,
        updated_at=ft.updated_at,
    )


async def _load_fee_type(db: AsyncSession, fee_type_id: UUID) -> Optional[FeeType]:
    result = await db.execute(
        select(FeeType)
        .options(selectinload(FeeType.components))
        .where(FeeType.id == fee_type_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def required_total(db: AsyncSession, fee_type_id: UUID) -> Optional[Decimal]:
    """Sum of the active, non-optional components of a fee type. None if the fee type does not exist."""
    ft = await _load_fee_type(db, fee_type_id)
    if ft is None:
        return None
    return _sum_components(ft.components, optional=False)


async def create_fee_type(db: AsyncSession, payload: FeeTypeCreate) -> FeeTypeResponse:
    name = payload.name.strip()
    existing = await db.execute(select(FeeType.id).where(FeeType.name == name))
    if existing.scalar_one_or_none():
        raise ServiceError(f"Fee type '{name}' already exists", status.HTTP_409_CONFLICT)
    ft = FeeType(
        name=name,
        description=(payload.description or "").strip() or None,
        is_recurring=payload.is_recurring,
        frequency=payload.frequency.value if payload.frequency else None,
        is_active=payload.is_active,
    )
    db.add(ft)
    try:
        await db.flush()
        for component in payload.components:
            db.add(
                FeeComponent(
                    fee_type_id=ft.id,
                    name=component.name.strip(),
                    description=(component.description or "").strip() or None,
                    amount=component.amount,
                    is_optional=component.is_optional,
                    is_active=True,
                )
            )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(f"Fee type '{name}' already exists", status.HTTP_409_CONFLICT)
    return _to_response(await _load_fee_type(db, ft.id))


async def list_fee_types(db: AsyncSession, active_only: bool = False) -> List[FeeTypeResponse]:
    stmt = select(FeeType).options(selectinload(FeeType.components)).execution_options(populate_existing=True)
    if active_only:
        stmt = stmt.where(FeeType.is_active.is_(True))
    stmt = stmt.order_by(FeeType.name)
    result = await db.execute(stmt)
    return [_to_response(ft) for ft in result.scalars().all()]


async def get_fee_type(db: AsyncSession, fee_type_id: UUID) -> Optional[FeeTypeResponse]:
    ft = await _load_fee_type(db, fee_type_id)
    return _to_response(ft) if ft else None


async def update_fee_type(
    db: AsyncSession,
    fee_type_id: UUID,
    payload: FeeTypeUpdate,
) -> Optional[FeeTypeResponse]:
    ft = await _load_fee_type(db, fee_type_id)
    if not ft:
        return None
    if payload.name is not None:
        ft.name = payload.name.strip()
    if payload.description is not None:
        ft.description = payload.description.strip() or None
    if payload.is_active is not None:
        ft.is_active = payload.is_active
    if payload.is_recurring is not None:
        ft.is_recurring = payload.is_recurring
    if payload.frequency is not None:
        ft.frequency = payload.frequency.value
    if not ft.is_recurring:
        ft.frequency = None
    elif ft.frequency is None:
        await db.rollback()
        raise ServiceError("frequency is required for recurring fee types", status.HTTP_400_BAD_REQUEST)

    if payload.components is not None:
        by_id = {c.id: c for c in ft.components}
        keep = set()
        for item in payload.components:
            if item.id is None:
                db.add(
                    FeeComponent(
                        fee_type_id=ft.id,
                        name=item.name.strip(),
                        description=(item.description or "").strip() or None,
                        amount=item.amount,
                        is_optional=item.is_optional,
                        is_active=True,
                    )
                )
                continue
            component = by_id.get(item.id)
            if component is None:
                await db.rollback()
                raise ServiceError("Fee component does not belong to this fee type", status.HTTP_400_BAD_REQUEST)
            component.name = item.name.strip()
            component.description = (item.description or "").strip() or None
            component.amount = item.amount
            component.is_optional = item.is_optional
            component.is_active = True
            keep.add(item.id)
        for component in ft.components:
            if component.id not in keep:
                component.is_active = False
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Fee type name already in use", status.HTTP_409_CONFLICT)
    return _to_response(await _load_fee_type(db, ft.id))


async def get_fee_type_dashboard(db: AsyncSession) -> FeeTypeDashboardResponse:
    """Totals across active fee types, plus their distribution by frequency."""
    fee_types = await list_fee_types(db, active_only=True)
    total_units = sum(to_minor_units(ft.total_amount) for ft in fee_types)
    most_expensive = MostExpensiveFee(name=None, amount=Decimal("0.00"))
    by_frequency: Dict[str, int] = {}
    for ft in fee_types:
        if ft.total_amount > most_expensive.amount:
            most_expensive = MostExpensiveFee(name=ft.name, amount=ft.total_amount)
        frequency = (ft.frequency or "other") if ft.is_recurring else FeeFrequency.ONE_TIME.value
        by_frequency[frequency] = by_frequency.get(frequency, 0) + 1
    return FeeTypeDashboardResponse(
        active_fee_types=len(fee_types),
        total_fee_amount=from_minor_units(total_units),
        most_expensive_fee=most_expensive,
        total_components=sum(len(ft.components) for ft in fee_types),
        by_frequency=by_frequency,
    )
