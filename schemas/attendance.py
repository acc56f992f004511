import datetime as dt
from typing import Optional, Literal

from schemas.common import CamelModel

AttendanceStatus = Literal["present", "absent", "late", "excused"]


class AttendanceCreate(CamelModel):
    student_id: int
    seat_id: Optional[int] = None
    date: dt.date
    status: AttendanceStatus
    check_in: Optional[dt.datetime] = None
    check_out: Optional[dt.datetime] = None
    notes: Optional[str] = None
    verification_method: Literal["manual", "card_swipe", "biometric", "other"] = "manual"


class AttendanceUpdate(CamelModel):
    status: Optional[AttendanceStatus] = None
    check_in: Optional[dt.datetime] = None
    check_out: Optional[dt.datetime] = None
    notes: Optional[str] = None
