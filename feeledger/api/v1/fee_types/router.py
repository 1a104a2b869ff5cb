"""Fee types router: fee type master with components, totals and dashboard stats."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from feeledger.core.exceptions import ServiceError
from feeledger.db.session import get_db

from .schemas import FeeTypeCreate, FeeTypeDashboardResponse, FeeTypeResponse, FeeTypeUpdate
from . import service

router = APIRouter(prefix="/api/v1/fee-types", tags=["fee-types"])


@router.post("", response_model=FeeTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_fee_type(
    payload: FeeTypeCreate,
    db: AsyncSession = Depends(get_db),
) -> FeeTypeResponse:
    try:
        return await service.create_fee_type(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[FeeTypeResponse])
async def list_fee_types(
    active_only: bool = Query(False, description="Return only active fee types"),
    db: AsyncSession = Depends(get_db),
) -> List[FeeTypeResponse]:
    return await service.list_fee_types(db, active_only=active_only)


@router.get("/dashboard", response_model=FeeTypeDashboardResponse)
async def get_fee_type_dashboard(
    db: AsyncSession = Depends(get_db),
) -> FeeTypeDashboardResponse:
    return await service.get_fee_type_dashboard(db)


@router.get("/{fee_type_id}", response_model=FeeTypeResponse)
async def get_fee_type(
    fee_type_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> FeeTypeResponse:
    result = await service.get_fee_type(db, fee_type_id)
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fee type not found")
    return result


@router.patch("/{fee_type_id}", response_model=FeeTypeResponse)
async def update_fee_type(
    fee_type_id: UUID,
    payload: FeeTypeUpdate,
    db: AsyncSession = Depends(get_db),
) -> FeeTypeResponse:
    try:
        result = await service.update_fee_type(db, fee_type_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fee type not found")
    return result
