import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from feeledger.db.session import Base


class AcademicPeriod(Base):
    """Semester/term window of a batch. Fees may be assigned to a whole batch per period."""

    __tablename__ = "academic_periods"
    __table_args__ = (
        CheckConstraint("semester_number >= 1", name="chk_academic_period_semester_number"),
        CheckConstraint("end_date > start_date", name="chk_academic_period_dates"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_id = Column(Uuid(as_uuid=True), ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    semester_number = Column(Integer, nullable=False)
    name = Column(String(100), nullable=False)  # e.g. "Semester 1"
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    batch = relationship("Batch", backref="academic_periods")
