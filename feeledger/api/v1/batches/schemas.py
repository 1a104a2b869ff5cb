from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class BatchCreate(BaseModel):
    batch_code: str = Field(..., min_length=1, max_length=50)
    intake_session: str = Field(..., min_length=1, max_length=50)
    program_code: str = Field(..., min_length=1, max_length=50)
    number_of_students: int = Field(0, ge=0)


class BatchResponse(BaseModel):
    id: UUID
    batch_code: str
    intake_session: str
    program_code: str
    number_of_students: int
    created_at: datetime

    class Config:
        from_attributes = True
