from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class PeriodFeeAssignment(BaseModel):
    """Assign one fee type to every active student of the batch when the period is created."""

    fee_type_id: UUID
    due_date: date


class AcademicPeriodCreate(BaseModel):
    batch_id: UUID
    semester_number: int = Field(..., ge=1)
    name: Optional[str] = Field(None, max_length=100)
    start_date: date
    end_date: date
    is_active: bool = False
    fee_assignment: Optional[PeriodFeeAssignment] = None

    @model_validator(mode="after")
    def end_after_start(self) -> "AcademicPeriodCreate":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class AcademicPeriodResponse(BaseModel):
    id: UUID
    batch_id: UUID
    semester_number: int
    name: str
    start_date: date
    end_date: date
    is_active: bool

    class Config:
        from_attributes = True


class AcademicPeriodCreatedResponse(AcademicPeriodResponse):
    assigned_fee_ids: List[UUID] = Field(default_factory=list)
