from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from utils import utcnow

BOOKING_STATUSES = ("active", "completed", "cancelled")


# Short-term seat reservation; not part of the fee ledger
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    seat_id = Column(Integer, ForeignKey("seats.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    shift_id = Column(Integer, ForeignKey("shifts.id"), nullable=True)

    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=True)
    status = Column(String(20), default="active", index=True)
    purpose = Column(String(255), nullable=True)

    cancellation_reason = Column(String(255), nullable=True)
    completion_notes = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    seat = relationship("Seat")
    student = relationship("Student")
    shift = relationship("Shift")

    @property
    def is_terminal(self):
        return self.status in ("completed", "cancelled")
