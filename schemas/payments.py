from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from schemas.common import CamelModel, MAX_AMOUNT


# 1. Collect against a student's seat (find-or-create ledger)
class PaymentCreate(CamelModel):
    student_id: int
    seat_no: str
    collected_amount: Decimal = Field(..., le=MAX_AMOUNT)
    payment_method: str
    payment_date: Optional[datetime] = None
    collected_by: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=500)


# 2. Append to an existing payment
class InstallmentCreate(CamelModel):
    amount: Decimal = Field(..., le=MAX_AMOUNT)
    payment_method: str
    payment_date: Optional[datetime] = None
    collected_by: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=500)


class PeriodIn(CamelModel):
    start: datetime
    end: datetime


# 3. Non-ledger fields only
class PaymentUpdate(CamelModel):
    due_date: Optional[datetime] = None
    description: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=500)
    fee_type: Optional[str] = None
    period: Optional[PeriodIn] = None


class PaymentComplete(CamelModel):
    payment_method: str
    payment_date: Optional[datetime] = None
    collected_by: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class PaymentRefund(CamelModel):
    refund_amount: Optional[Decimal] = Field(None, le=MAX_AMOUNT)
    reason: Optional[str] = None
    processed_by: Optional[str] = None
