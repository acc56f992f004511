from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from utils import utcnow

ATTENDANCE_STATUSES = ("present", "absent", "late", "excused")


class Attendance(Base):
    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    seat_id = Column(Integer, ForeignKey("seats.id"), nullable=True)
    date = Column(Date, nullable=False, index=True)

    status = Column(String(10), nullable=False, index=True)
    check_in = Column(DateTime, nullable=True)
    check_out = Column(DateTime, nullable=True)
    duration = Column(Integer, default=0)  # minutes
    notes = Column(String(255), nullable=True)
    verification_method = Column(String(20), default="manual")
    created_at = Column(DateTime, default=utcnow)

    # One record per student per day
    __table_args__ = (
        UniqueConstraint("student_id", "date", name="uq_attendance_student_date"),
    )

    student = relationship("Student")
    seat = relationship("Seat")

    def calculate_duration(self):
        if self.check_in and self.check_out:
            self.duration = max(round((self.check_out - self.check_in).total_seconds() / 60), 0)
        return self.duration
