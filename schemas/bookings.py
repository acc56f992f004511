from datetime import datetime
from typing import Optional

from schemas.common import CamelModel


class BookingCreate(CamelModel):
    student_id: int
    seat_id: int
    shift_id: Optional[int] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    purpose: Optional[str] = None


class BookingUpdate(CamelModel):
    shift_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    purpose: Optional[str] = None


class BookingClose(CamelModel):
    reason: Optional[str] = None
    notes: Optional[str] = None
