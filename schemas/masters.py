from decimal import Decimal
from typing import Optional

from pydantic import Field

from schemas.common import CamelModel, MAX_AMOUNT


class PropertyCreate(CamelModel):
    name: str = Field(..., min_length=1)
    type: str = "library"
    address: str = Field(..., min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None
    opening_hours: Optional[str] = None
    total_seats: int = 0


class PropertyUpdate(CamelModel):
    name: Optional[str] = None
    type: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None
    opening_hours: Optional[str] = None
    total_seats: Optional[int] = None


class ShiftCreate(CamelModel):
    name: str = Field(..., min_length=1)
    start_time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    end_time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    fee: Decimal = Field(..., ge=0, le=MAX_AMOUNT)
    property_id: int


class ShiftUpdate(CamelModel):
    name: Optional[str] = None
    start_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    end_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    fee: Optional[Decimal] = Field(None, ge=0, le=MAX_AMOUNT)
