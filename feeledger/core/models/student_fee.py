"""Student fee: one concrete obligation assigned to a student."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from feeledger.core.enums import FeeStatus
from feeledger.db.session import Base


class StudentFee(Base):
    """
    Amount owed by a student for one fee type.
    status is derived from the payments and reconciled on read; WAIVED is a manual override.
    version is bumped by every payment and waiver (compare-and-swap guard against double collection).
    """

    __tablename__ = "student_fees"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="chk_student_fee_total_amount"),
        CheckConstraint(
            "status IN ('PENDING','PARTIAL','PAID','OVERDUE','WAIVED')",
            name="chk_student_fee_status",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Integer, ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False, index=True)
    fee_type_id = Column(Uuid(as_uuid=True), ForeignKey("fee_types.id", ondelete="RESTRICT"), nullable=False)
    academic_period_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("academic_periods.id", ondelete="SET NULL"),
        nullable=True,
    )
    batch_id = Column(Uuid(as_uuid=True), ForeignKey("batches.id", ondelete="SET NULL"), nullable=True, index=True)
    description = Column(Text, nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=FeeStatus.PENDING.value)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student")
    fee_type = relationship("FeeType")
    academic_period = relationship("AcademicPeriod")
    batch = relationship("Batch")
    payments = relationship("Payment", back_populates="student_fee", order_by="Payment.payment_date")
