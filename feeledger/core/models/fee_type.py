"""Fee type master (Tuition, Hostel, Exam...) and its line-item components."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from feeledger.db.session import Base


class FeeType(Base):
    """Category of obligation. Soft delete via is_active."""

    __tablename__ = "fee_types"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    frequency = Column(String(20), nullable=True)  # only set for recurring fee types
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    components = relationship(
        "FeeComponent",
        back_populates="fee_type",
        order_by="FeeComponent.created_at",
    )


class FeeComponent(Base):
    """Line item of a fee type. Optional components are excluded from the required total."""

    __tablename__ = "fee_components"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="chk_fee_component_amount"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    fee_type_id = Column(Uuid(as_uuid=True), ForeignKey("fee_types.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    is_optional = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    fee_type = relationship("FeeType", back_populates="components")
