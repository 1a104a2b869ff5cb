"""Fees router: assignment, ledger listing and summary, payments, receipts, waiver."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from feeledger.core.exceptions import ServiceError

from .dependencies import get_fee_filters, get_fee_repository
from .repository import FeeRepository
from .schemas import (
    FeeFilters,
    FeeSummaryResponse,
    PaymentCreate,
    PaymentRecordedResponse,
    PaymentResponse,
    ReceiptResponse,
    StudentFeeAssign,
    StudentFeeDetailResponse,
    StudentFeeLedgerResponse,
    StudentFeeResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/fees", tags=["fees"])


# --- Assignment ---
@router.post("/assign", response_model=StudentFeeResponse, status_code=status.HTTP_201_CREATED)
async def assign_fee(
    payload: StudentFeeAssign,
    repo: FeeRepository = Depends(get_fee_repository),
) -> StudentFeeResponse:
    try:
        return await service.assign_fee(repo, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Ledger ---
@router.get("", response_model=List[StudentFeeLedgerResponse])
async def list_student_fees(
    filters: FeeFilters = Depends(get_fee_filters),
    repo: FeeRepository = Depends(get_fee_repository),
) -> List[StudentFeeLedgerResponse]:
    return await service.list_student_fees(repo, filters)


@router.get("/summary", response_model=FeeSummaryResponse)
async def get_fee_summary(
    filters: FeeFilters = Depends(get_fee_filters),
    repo: FeeRepository = Depends(get_fee_repository),
) -> FeeSummaryResponse:
    return await service.get_fee_summary(repo, filters)


@router.get("/students/{student_id}/payments", response_model=List[PaymentResponse])
async def get_payment_history(
    student_id: int,
    repo: FeeRepository = Depends(get_fee_repository),
) -> List[PaymentResponse]:
    return await service.get_payment_history(repo, student_id)


@router.get("/{fee_id}", response_model=StudentFeeDetailResponse)
async def get_student_fee(
    fee_id: UUID,
    repo: FeeRepository = Depends(get_fee_repository),
) -> StudentFeeDetailResponse:
    result = await service.get_student_fee(repo, fee_id)
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student fee not found")
    return result


# --- Payment ---
@router.post(
    "/{fee_id}/payments",
    response_model=PaymentRecordedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    fee_id: UUID,
    payload: PaymentCreate,
    repo: FeeRepository = Depends(get_fee_repository),
) -> PaymentRecordedResponse:
    try:
        return await service.record_payment(repo, fee_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{fee_id}/payments/{payment_id}/receipt", response_model=ReceiptResponse)
async def get_receipt(
    fee_id: UUID,
    payment_id: UUID,
    repo: FeeRepository = Depends(get_fee_repository),
) -> ReceiptResponse:
    result = await service.get_receipt(repo, fee_id, payment_id)
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
    return result


# --- Waiver ---
@router.post("/{fee_id}/waive", response_model=StudentFeeLedgerResponse)
async def waive_fee(
    fee_id: UUID,
    repo: FeeRepository = Depends(get_fee_repository),
) -> StudentFeeLedgerResponse:
    try:
        return await service.waive_fee(repo, fee_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
