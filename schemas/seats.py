from datetime import datetime
from decimal import Decimal
from typing import Optional, Literal

from pydantic import Field

from schemas.common import CamelModel, MAX_AMOUNT

SeatStatus = Literal["available", "occupied", "reserved", "maintenance"]
SeatType = Literal["standard", "premium", "handicap", "other"]


class SeatCreate(CamelModel):
    property_id: int
    seat_number: str = Field(..., min_length=1)
    row: int = 0
    column: int = 0
    type: SeatType = "standard"
    status: SeatStatus = "available"
    notes: Optional[str] = None


class SeatUpdate(CamelModel):
    seat_number: Optional[str] = None
    row: Optional[int] = None
    column: Optional[int] = None
    type: Optional[SeatType] = None
    status: Optional[SeatStatus] = None
    reserved_until: Optional[datetime] = None
    notes: Optional[str] = None


class SeatAssign(CamelModel):
    student_id: int
    shift_id: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    monthly_rent: Optional[Decimal] = Field(None, gt=0, le=MAX_AMOUNT)


class SeatRelease(CamelModel):
    student_id: Optional[int] = None
    shift_id: Optional[int] = None
    cancel: bool = False
