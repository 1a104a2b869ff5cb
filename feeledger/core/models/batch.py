import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Uuid

from feeledger.db.session import Base


class Batch(Base):
    """A cohort of students admitted together under one program/intake."""

    __tablename__ = "batches"
    __table_args__ = (
        CheckConstraint("number_of_students >= 0", name="chk_batch_number_of_students"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_code = Column(String(50), nullable=False, unique=True)  # e.g. "BCS-2024-FALL"
    intake_session = Column(String(50), nullable=False)
    program_code = Column(String(50), nullable=False)
    number_of_students = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
