from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from utils import utcnow
import config

ASSIGNMENT_STATUSES = ("active", "completed", "cancelled")


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)

    # --- PERSONAL INFO ---
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=True)
    email = Column(String(120), nullable=False, unique=True, index=True)
    phone = Column(String(15), nullable=False)
    aadhar_number = Column(String(12), nullable=True)

    # --- STUDY INFO ---
    institution = Column(String(150), nullable=True)
    course = Column(String(100), nullable=True)

    status = Column(String(10), default="active")  # active / inactive
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # --- RELATIONSHIPS ---
    assignments = relationship(
        "SeatAssignment", back_populates="student", order_by="SeatAssignment.id"
    )

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name or ''}".strip()

    @property
    def current_assignments(self):
        return [a for a in self.assignments if a.status == "active"]

    @property
    def assignment_history(self):
        return [a for a in self.assignments if a.status != "active"]

    def active_assignment_for_seat(self, seat_id):
        for assignment in self.assignments:
            if assignment.status == "active" and assignment.seat_id == seat_id:
                return assignment
        return None


# A student's claim on seat + shift for a date range. Payments bill one of these.
class SeatAssignment(Base):
    __tablename__ = "seat_assignments"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    seat_id = Column(Integer, ForeignKey("seats.id"), nullable=False, index=True)
    shift_id = Column(Integer, ForeignKey("shifts.id"), nullable=False)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False)

    start_date = Column(DateTime, nullable=False, default=utcnow)
    end_date = Column(DateTime, nullable=True)
    status = Column(String(20), default="active", index=True)
    monthly_rent = Column(Numeric(10, 2), nullable=False, default=config.DEFAULT_MONTHLY_RENT)
    created_at = Column(DateTime, default=utcnow)

    student = relationship("Student", back_populates="assignments")
    seat = relationship("Seat", back_populates="assignments")
    shift = relationship("Shift")
    property_val = relationship("Property")
    payments = relationship("Payment", back_populates="assignment", order_by="Payment.id")

    @property
    def latest_payment(self):
        return self.payments[-1] if self.payments else None

    def close(self, status="completed"):
        self.status = status
        self.end_date = utcnow()
