"""Fee type schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from feeledger.core.enums import FeeFrequency


class FeeComponentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    is_optional: bool = False


class FeeComponentUpdate(FeeComponentCreate):
    """Component row in an update payload. Rows without id are added."""

    id: Optional[UUID] = None


class FeeComponentResponse(BaseModel):
    id: UUID
    fee_type_id: UUID
    name: str
    description: Optional[str] = None
    amount: Decimal
    is_optional: bool
    is_active: bool

    class Config:
        from_attributes = True


class FeeTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    is_recurring: bool = False
    frequency: Optional[FeeFrequency] = None
    is_active: bool = True
    components: List[FeeComponentCreate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def frequency_only_when_recurring(self) -> "FeeTypeCreate":
        if not self.is_recurring:
            self.frequency = None
        elif self.frequency is None:
            raise ValueError("frequency is required for recurring fee types")
        return self


class FeeTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_recurring: Optional[bool] = None
    frequency: Optional[FeeFrequency] = None
    is_active: Optional[bool] = None
    # When given, replaces the active component set: listed ids are updated,
    # rows without id are added, omitted active components are deactivated.
    components: Optional[List[FeeComponentUpdate]] = Field(None, min_length=1)


class FeeTypeResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    is_recurring: bool
    frequency: Optional[str] = None
    is_active: bool
    total_amount: Decimal
    optional_amount: Decimal
    components: List[FeeComponentResponse]
    created_at: datetime
    updated_at: datetime


class MostExpensiveFee(BaseModel):
    name: Optional[str] = None
    amount: Decimal


class FeeTypeDashboardResponse(BaseModel):
    active_fee_types: int
    total_fee_amount: Decimal
    most_expensive_fee: MostExpensiveFee
    total_components: int
    by_frequency: Dict[str, int]
