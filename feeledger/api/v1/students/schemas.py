from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class StudentCreate(BaseModel):
    roll_no: int = Field(..., ge=1)
    batch_id: Optional[UUID] = None
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=30)
    is_active: bool = True


class StudentUpdate(BaseModel):
    roll_no: Optional[int] = Field(None, ge=1)
    batch_id: Optional[UUID] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    is_active: Optional[bool] = None

    @field_validator("roll_no", "first_name", "last_name", "email", "is_active", mode="before")
    @classmethod
    def not_null(cls, value):
        # Omit a field to leave it unchanged; only phone and batch_id can be cleared.
        if value is None:
            raise ValueError("may not be null")
        return value


class StudentResponse(BaseModel):
    student_id: int
    roll_no: int
    batch_id: Optional[UUID] = None
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True
