"""
Pydantic schemas for lease terms.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator


class LeaseCreate(BaseModel):
    tenant_id: str = Field(min_length=1, max_length=64)
    tenant_name: str | None = Field(default=None, max_length=150)
    residence_id: str = Field(min_length=1, max_length=64)
    room: str | None = Field(default=None, max_length=50)
    room_rate: Decimal = Field(gt=0, decimal_places=2)
    admin_fee: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    deposit_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    lease_start: date
    lease_end: date

    @model_validator(mode="after")
    def end_not_before_start(self) -> "LeaseCreate":
        if self.lease_end < self.lease_start:
            raise ValueError("lease_end must not be before lease_start")
        return self


class LeaseResponse(BaseModel):
    id: int
    tenant_id: str
    tenant_name: str | None
    residence_id: str
    room: str | None
    room_rate: Decimal
    admin_fee: Decimal
    deposit_amount: Decimal
    lease_start: date
    lease_end: date
    created_at: datetime

    model_config = {"from_attributes": True}
