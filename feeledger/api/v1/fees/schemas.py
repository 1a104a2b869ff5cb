"""Fees schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from feeledger.core.enums import FeeStatus, PaymentMethod
from feeledger.core.ledger import FeeRecord, LedgerSummary, PaymentRecord


# --- Related rows (decoded joins) ---
class StudentBrief(BaseModel):
    student_id: int
    roll_no: int
    first_name: str
    last_name: str
    email: str

    class Config:
        from_attributes = True
        frozen = True


class FeeTypeBrief(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True
        frozen = True


class AcademicPeriodBrief(BaseModel):
    id: UUID
    name: str
    semester_number: int

    class Config:
        from_attributes = True
        frozen = True


class BatchBrief(BaseModel):
    id: UUID
    batch_code: str

    class Config:
        from_attributes = True
        frozen = True


class FeeEntry(BaseModel):
    """One student fee as read from the store: the record, its joins and its full payment history."""

    record: FeeRecord
    payments: List[PaymentRecord] = Field(default_factory=list)
    student: Optional[StudentBrief] = None
    fee_type: Optional[FeeTypeBrief] = None
    academic_period: Optional[AcademicPeriodBrief] = None
    batch: Optional[BatchBrief] = None


# --- Assignment ---
class StudentFeeAssign(BaseModel):
    student_id: int
    fee_type_id: UUID
    academic_period_id: Optional[UUID] = None
    batch_id: Optional[UUID] = None
    description: Optional[str] = None
    total_amount: Optional[Decimal] = Field(None, ge=0, description="Defaults to the fee type's required total")
    due_date: date


class StudentFeeResponse(BaseModel):
    id: UUID
    student_id: int
    fee_type_id: UUID
    academic_period_id: Optional[UUID] = None
    batch_id: Optional[UUID] = None
    description: Optional[str] = None
    total_amount: Decimal
    due_date: date
    status: FeeStatus

    class Config:
        from_attributes = True


# --- Ledger views ---
class LedgerResponse(BaseModel):
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    overpaid_amount: Decimal
    status: FeeStatus


class PaymentResponse(BaseModel):
    id: UUID
    student_fee_id: UUID
    amount: Decimal
    payment_date: datetime
    payment_method: str
    transaction_reference: Optional[str] = None
    receipt_number: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None

    class Config:
        from_attributes = True


class StudentFeeLedgerResponse(BaseModel):
    id: UUID
    student_id: int
    student_name: Optional[str] = None
    roll_no: Optional[int] = None
    fee_type_id: UUID
    fee_type_name: Optional[str] = None
    academic_period_id: Optional[UUID] = None
    academic_period_name: Optional[str] = None
    batch_id: Optional[UUID] = None
    batch_code: Optional[str] = None
    description: Optional[str] = None
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    due_date: date
    status: FeeStatus


class StudentFeeDetailResponse(StudentFeeLedgerResponse):
    overpaid_amount: Decimal
    payments: List[PaymentResponse]


class FeeSummaryResponse(BaseModel):
    total: int
    by_status: Dict[FeeStatus, int]
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal


# --- Payment ---
class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_date: Optional[datetime] = None
    transaction_reference: Optional[str] = Field(None, max_length=100)
    receipt_number: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    created_by: Optional[str] = Field(None, max_length=100)


class PaymentRecordedResponse(BaseModel):
    payment: PaymentResponse
    ledger: LedgerResponse


class ReceiptResponse(BaseModel):
    receipt_number: Optional[str] = None
    student: Optional[StudentBrief] = None
    fee: StudentFeeLedgerResponse
    payment: PaymentResponse


def ledger_response(summary: LedgerSummary) -> LedgerResponse:
    return LedgerResponse(
        total_amount=summary.total_amount,
        paid_amount=summary.paid_amount,
        remaining_amount=summary.remaining_amount,
        overpaid_amount=summary.overpaid_amount,
        status=summary.effective_status,
    )


# --- Filters ---
class FeeFilters(BaseModel):
    search: Optional[str] = None
    student_id: Optional[int] = None
    batch_id: Optional[UUID] = None
    fee_type_id: Optional[UUID] = None
    academic_period_id: Optional[UUID] = None
    status: Optional[FeeStatus] = None
    due_from: Optional[date] = Field(None, description="Only fees due strictly after this date")
    due_to: Optional[date] = Field(None, description="Only fees due strictly before this date")
