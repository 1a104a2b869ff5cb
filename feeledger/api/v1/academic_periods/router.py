from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from feeledger.api.v1.fees.dependencies import get_fee_repository
from feeledger.api.v1.fees.repository import FeeRepository
from feeledger.core.exceptions import ServiceError

from .schemas import AcademicPeriodCreate, AcademicPeriodCreatedResponse, AcademicPeriodResponse
from . import service

router = APIRouter(prefix="/api/v1/academic-periods", tags=["academic-periods"])


@router.post("", response_model=AcademicPeriodCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_academic_period(
    payload: AcademicPeriodCreate,
    repo: FeeRepository = Depends(get_fee_repository),
) -> AcademicPeriodCreatedResponse:
    try:
        return await service.create_academic_period(repo, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[AcademicPeriodResponse])
async def list_academic_periods(
    batch_id: UUID = Query(...),
    repo: FeeRepository = Depends(get_fee_repository),
) -> List[AcademicPeriodResponse]:
    return await service.list_academic_periods(repo, batch_id)
