from __future__ import annotations

from datetime import datetime, date
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ConsumeIn(BaseModel):
    item_id: int
    quantity: Decimal = Field(..., ge=Decimal("0.001"), decimal_places=3)
    ref_type: Optional[Literal["visit", "appointment"]] = None
    ref_id: Optional[int] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _ref_pair(self):
        if (self.ref_type is None) != (self.ref_id is None):
            raise ValueError("ref_type and ref_id must be given together")
        return self


class BatchAllocationOut(BaseModel):
    batch_id: int
    qty: Decimal


class ConsumeOut(BaseModel):
    item_id: int
    consumed_total: Decimal
    allocations: List[BatchAllocationOut]


class BatchOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: int
    batch_number: Optional[str] = None
    lot_number: Optional[str] = None
    expiry_date: Optional[date] = None
    qty_on_hand: Decimal
    received_at: datetime


class MovementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: int
    batch_id: Optional[int] = None
    type: str
    quantity_change: Decimal
    ref_type: Optional[str] = None
    ref_id: Optional[int] = None
    user_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime
