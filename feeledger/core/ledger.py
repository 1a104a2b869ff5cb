"""Fee ledger derivation.

A student fee's paid amount, balance and status are never stored as running
counters: they are re-derived from the fee record and its full payment
history every time the ledger is read. Amounts are summed in integer minor
units (paise/cents) so that no floating point drift creeps into the totals.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional
from uuid import UUID

from pydantic import BaseModel

from feeledger.core.enums import FeeStatus

CENT = Decimal("0.01")
MINOR_UNITS_PER_MAJOR = 100


def to_minor_units(amount) -> int:
    """Convert a decimal-ish amount to integer minor units, rounding half up."""
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * MINOR_UNITS_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(units: int) -> Decimal:
    return (Decimal(units) / MINOR_UNITS_PER_MAJOR).quantize(CENT)


class FeeRecord(BaseModel):
    """Decoded student_fees row."""

    id: UUID
    student_id: int
    fee_type_id: UUID
    academic_period_id: Optional[UUID] = None
    batch_id: Optional[UUID] = None
    description: Optional[str] = None
    total_amount: Decimal
    due_date: date
    status: FeeStatus
    version: int = 1

    class Config:
        from_attributes = True
        frozen = True


class PaymentRecord(BaseModel):
    """Decoded payments row."""

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
        frozen = True


class LedgerSummary(BaseModel):
    fee_id: UUID
    total_amount: Decimal
    paid_amount: Decimal
    # total - paid, unclamped; negative means the fee was overpaid
    balance: Decimal
    effective_status: FeeStatus

    class Config:
        frozen = True

    @property
    def remaining_amount(self) -> Decimal:
        return max(self.balance, Decimal("0.00"))

    @property
    def overpaid_amount(self) -> Decimal:
        return max(-self.balance, Decimal("0.00"))

    @property
    def is_overpaid(self) -> bool:
        return self.balance < 0


def derive_status(
    total_amount: Decimal,
    due_date: date,
    paid_amount: Decimal,
    today: date,
    current_status: Optional[FeeStatus] = None,
) -> FeeStatus:
    """Status implied by the totals. Precedence: WAIVED > PAID > PARTIAL > OVERDUE > PENDING."""
    if current_status == FeeStatus.WAIVED:
        return FeeStatus.WAIVED
    if paid_amount >= total_amount:
        return FeeStatus.PAID
    if paid_amount > 0:
        return FeeStatus.PARTIAL
    if today > due_date:
        return FeeStatus.OVERDUE
    return FeeStatus.PENDING


def aggregate(
    fee: FeeRecord,
    payments: Iterable[PaymentRecord],
    today: Optional[date] = None,
) -> LedgerSummary:
    """Sum the payment history of one fee and derive its effective status.

    ``payments`` is the complete, unordered history of payments referencing
    ``fee``; the caller is responsible for not mixing in other fees' payments.
    """
    if today is None:
        today = date.today()
    total_units = to_minor_units(fee.total_amount)
    paid_units = sum(to_minor_units(p.amount) for p in payments)
    paid = from_minor_units(paid_units)
    total = from_minor_units(total_units)
    return LedgerSummary(
        fee_id=fee.id,
        total_amount=total,
        paid_amount=paid,
        balance=from_minor_units(total_units - paid_units),
        effective_status=derive_status(total, fee.due_date, paid, today, fee.status),
    )
