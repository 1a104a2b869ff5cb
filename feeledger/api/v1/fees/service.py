"""Fees service: assignment, ledger listing with reconciliation, payment collection, waiver."""

import logging
import time
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID
from zoneinfo import ZoneInfo

from fastapi import status
from sqlalchemy.exc import IntegrityError

from feeledger.api.v1.fee_types.service import required_total
from feeledger.core.config import settings
from feeledger.core.enums import FeeStatus
from feeledger.core.exceptions import ServiceError, StaleLedgerError
from feeledger.core.ledger import CENT, LedgerSummary, aggregate, derive_status, from_minor_units, to_minor_units
from feeledger.core.models import AcademicPeriod, FeeType, Student

from .reconciler import StatusReconciler
from .repository import FeeRepository
from .schemas import (
    FeeEntry,
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
    ledger_response,
)

logger = logging.getLogger(__name__)


def current_date() -> date:
    """Today's date in the configured fee timezone."""
    return datetime.now(ZoneInfo(settings.fee_timezone)).date()


def _ledger_row(entry: FeeEntry, summary: LedgerSummary) -> StudentFeeLedgerResponse:
    fee = entry.record
    student = entry.student
    return StudentFeeLedgerResponse(
        id=fee.id,
        student_id=fee.student_id,
        student_name=f"{student.first_name} {student.last_name}" if student else None,
        roll_no=student.roll_no if student else None,
        fee_type_id=fee.fee_type_id,
        fee_type_name=entry.fee_type.name if entry.fee_type else None,
        academic_period_id=fee.academic_period_id,
        academic_period_name=entry.academic_period.name if entry.academic_period else None,
        batch_id=fee.batch_id,
        batch_code=entry.batch.batch_code if entry.batch else None,
        description=fee.description,
        total_amount=summary.total_amount,
        paid_amount=summary.paid_amount,
        remaining_amount=summary.remaining_amount,
        due_date=fee.due_date,
        status=summary.effective_status,
    )


def _matches_search(entry: FeeEntry, search: str) -> bool:
    needle = search.strip().lower()
    if not needle:
        return True
    haystack = []
    if entry.student:
        haystack += [
            entry.student.first_name,
            entry.student.last_name,
            entry.student.email,
            str(entry.student.roll_no),
        ]
    if entry.fee_type:
        haystack.append(entry.fee_type.name)
    if entry.record.description:
        haystack.append(entry.record.description)
    return any(needle in value.lower() for value in haystack)


async def _derive_ledgers(
    repo: FeeRepository,
    entries: List[FeeEntry],
    today: date,
) -> List[Tuple[FeeEntry, LedgerSummary]]:
    """Aggregate every entry; persist drifted statuses when reconcile-on-read is enabled."""
    reconciler = StatusReconciler(repo) if settings.reconcile_on_read else None
    out = []
    for entry in entries:
        summary = aggregate(entry.record, entry.payments, today)
        if reconciler is not None:
            await reconciler.reconcile(entry.record, summary.effective_status)
        out.append((entry, summary))
    return out


async def _filtered_ledgers(
    repo: FeeRepository,
    filters: FeeFilters,
    today: Optional[date],
) -> List[Tuple[FeeEntry, LedgerSummary]]:
    entries = await repo.list_fees(
        student_id=filters.student_id,
        batch_id=filters.batch_id,
        fee_type_id=filters.fee_type_id,
        academic_period_id=filters.academic_period_id,
        due_from=filters.due_from,
        due_to=filters.due_to,
    )
    if filters.search:
        entries = [e for e in entries if _matches_search(e, filters.search)]
    ledgers = await _derive_ledgers(repo, entries, today or current_date())
    if filters.status is not None:
        ledgers = [(e, s) for e, s in ledgers if s.effective_status == filters.status]
    return ledgers


def _paid_at_key(payment) -> datetime:
    paid_at = payment.payment_date
    if paid_at.tzinfo is not None:
        paid_at = paid_at.astimezone(timezone.utc).replace(tzinfo=None)
    return paid_at


def _receipt_number(roll_no: Optional[int]) -> str:
    suffix = str(int(time.time() * 1000))[-6:]
    return f"{settings.receipt_prefix}-{roll_no if roll_no is not None else '000'}-{suffix}"


# --- Assignment ---
async def assign_fee(repo: FeeRepository, payload: StudentFeeAssign) -> StudentFeeResponse:
    """Assign one fee to one student. Total defaults to the fee type's required total."""
    db = repo.db
    student = await db.get(Student, payload.student_id)
    if not student:
        raise ServiceError("Invalid student", status.HTTP_400_BAD_REQUEST)
    fee_type = await db.get(FeeType, payload.fee_type_id)
    if not fee_type or not fee_type.is_active:
        raise ServiceError("Invalid fee type", status.HTTP_400_BAD_REQUEST)
    batch_id = payload.batch_id or student.batch_id
    if payload.academic_period_id is not None:
        period = await db.get(AcademicPeriod, payload.academic_period_id)
        if not period:
            raise ServiceError("Invalid academic period", status.HTTP_400_BAD_REQUEST)
        if batch_id is not None and period.batch_id != batch_id:
            raise ServiceError("Academic period belongs to another batch", status.HTTP_400_BAD_REQUEST)
        batch_id = period.batch_id

    total_amount = payload.total_amount
    if total_amount is None:
        total_amount = await required_total(db, fee_type.id)
    total_amount = Decimal(total_amount).quantize(CENT)

    try:
        record = await repo.add_fee(
            student_id=student.student_id,
            fee_type_id=fee_type.id,
            total_amount=total_amount,
            due_date=payload.due_date,
            description=(payload.description or "").strip() or fee_type.name,
            academic_period_id=payload.academic_period_id,
            batch_id=batch_id,
        )
        await repo.commit()
    except IntegrityError:
        await repo.rollback()
        raise ServiceError("Could not assign fee", status.HTTP_409_CONFLICT)
    return StudentFeeResponse.model_validate(record)


# --- Ledger reads ---
async def list_student_fees(
    repo: FeeRepository,
    filters: FeeFilters,
    today: Optional[date] = None,
) -> List[StudentFeeLedgerResponse]:
    ledgers = await _filtered_ledgers(repo, filters, today)
    return [_ledger_row(entry, summary) for entry, summary in ledgers]


async def get_fee_summary(
    repo: FeeRepository,
    filters: FeeFilters,
    today: Optional[date] = None,
) -> FeeSummaryResponse:
    ledgers = await _filtered_ledgers(repo, filters, today)
    by_status: Dict[FeeStatus, int] = {s: 0 for s in FeeStatus}
    total_units = paid_units = remaining_units = 0
    for _, summary in ledgers:
        by_status[summary.effective_status] += 1
        total_units += to_minor_units(summary.total_amount)
        paid_units += to_minor_units(summary.paid_amount)
        remaining_units += to_minor_units(summary.remaining_amount)
    return FeeSummaryResponse(
        total=len(ledgers),
        by_status=by_status,
        total_amount=from_minor_units(total_units),
        paid_amount=from_minor_units(paid_units),
        remaining_amount=from_minor_units(remaining_units),
    )


async def get_student_fee(
    repo: FeeRepository,
    fee_id: UUID,
    today: Optional[date] = None,
) -> Optional[StudentFeeDetailResponse]:
    entry = await repo.get_fee(fee_id)
    if not entry:
        return None
    [(entry, summary)] = await _derive_ledgers(repo, [entry], today or current_date())
    row = _ledger_row(entry, summary)
    payments = sorted(entry.payments, key=_paid_at_key, reverse=True)
    return StudentFeeDetailResponse(
        **row.model_dump(),
        overpaid_amount=summary.overpaid_amount,
        payments=[PaymentResponse.model_validate(p) for p in payments],
    )


async def get_payment_history(repo: FeeRepository, student_id: int) -> List[PaymentResponse]:
    entries = await repo.list_fees(student_id=student_id)
    payments = [p for e in entries for p in e.payments]
    payments.sort(key=_paid_at_key, reverse=True)
    return [PaymentResponse.model_validate(p) for p in payments]


async def get_receipt(
    repo: FeeRepository,
    fee_id: UUID,
    payment_id: UUID,
    today: Optional[date] = None,
) -> Optional[ReceiptResponse]:
    entry = await repo.get_fee(fee_id)
    if not entry:
        return None
    payment = next((p for p in entry.payments if p.id == payment_id), None)
    if payment is None:
        return None
    summary = aggregate(entry.record, entry.payments, today or current_date())
    return ReceiptResponse(
        receipt_number=payment.receipt_number,
        student=entry.student,
        fee=_ledger_row(entry, summary),
        payment=PaymentResponse.model_validate(payment),
    )


# --- Payment ---
async def record_payment(
    repo: FeeRepository,
    fee_id: UUID,
    payload: PaymentCreate,
    today: Optional[date] = None,
) -> PaymentRecordedResponse:
    """
    Collect a payment against a fee. The amount may not exceed the remaining balance;
    the fee's version is compare-and-swapped in the same transaction so two collectors
    working from the same balance cannot both succeed.
    """
    today = today or current_date()
    amount = payload.amount.quantize(CENT)
    if amount <= 0:
        raise ServiceError("Payment amount must be at least 0.01", status.HTTP_400_BAD_REQUEST)

    entry = await repo.get_fee(fee_id)
    if not entry:
        raise ServiceError("Student fee not found", status.HTTP_404_NOT_FOUND)
    fee = entry.record
    if fee.status == FeeStatus.WAIVED:
        raise ServiceError("Cannot collect payment for a waived fee", status.HTTP_400_BAD_REQUEST)

    before = aggregate(fee, entry.payments, today)
    if amount > before.remaining_amount:
        raise ServiceError(
            f"Payment amount cannot exceed remaining balance of {before.remaining_amount}",
            status.HTTP_400_BAD_REQUEST,
        )
    new_status = derive_status(before.total_amount, fee.due_date, before.paid_amount + amount, today)

    try:
        if not await repo.compare_and_set(fee.id, fee.version, new_status):
            await repo.rollback()
            raise StaleLedgerError()
        payment = await repo.add_payment(
            fee_id=fee.id,
            amount=amount,
            payment_method=payload.payment_method.value,
            payment_date=payload.payment_date or datetime.utcnow(),
            transaction_reference=(payload.transaction_reference or "").strip() or None,
            receipt_number=(payload.receipt_number or "").strip()
            or _receipt_number(entry.student.roll_no if entry.student else None),
            notes=(payload.notes or "").strip() or None,
            created_by=(payload.created_by or "").strip() or settings.default_collector,
        )
        await repo.commit()
    except IntegrityError:
        await repo.rollback()
        raise ServiceError("Could not record payment", status.HTTP_409_CONFLICT)

    after = aggregate(fee, [*entry.payments, payment], today)
    logger.info(
        "Recorded payment %s of %s against student fee %s (%s -> %s)",
        payment.id,
        amount,
        fee.id,
        fee.status.value,
        after.effective_status.value,
    )
    return PaymentRecordedResponse(
        payment=PaymentResponse.model_validate(payment),
        ledger=ledger_response(after),
    )


# --- Waiver ---
async def waive_fee(
    repo: FeeRepository,
    fee_id: UUID,
    today: Optional[date] = None,
) -> StudentFeeLedgerResponse:
    """Mark a fee WAIVED. Terminal; paid fees cannot be waived."""
    today = today or current_date()
    entry = await repo.get_fee(fee_id)
    if not entry:
        raise ServiceError("Student fee not found", status.HTTP_404_NOT_FOUND)
    fee = entry.record
    if fee.status != FeeStatus.WAIVED:
        summary = aggregate(fee, entry.payments, today)
        if summary.effective_status == FeeStatus.PAID:
            raise ServiceError("Cannot waive a fee that is already paid", status.HTTP_400_BAD_REQUEST)
        if not await repo.compare_and_set(fee.id, fee.version, FeeStatus.WAIVED):
            await repo.rollback()
            raise StaleLedgerError()
        await repo.commit()
        logger.info("Waived student fee %s (was %s)", fee.id, fee.status.value)
        fee = fee.model_copy(update={"status": FeeStatus.WAIVED, "version": fee.version + 1})
    return _ledger_row(entry, aggregate(fee, entry.payments, today))
