from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from utils import utcnow

SEAT_STATUSES = ("available", "occupied", "reserved", "maintenance")
SEAT_TYPES = ("standard", "premium", "handicap", "other")


class Seat(Base):
    __tablename__ = "seats"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    seat_number = Column(String(20), nullable=False, index=True)
    row = Column(Integer, nullable=False, default=0)
    column = Column(Integer, nullable=False, default=0)
    type = Column(String(20), default="standard")
    status = Column(String(20), default="available", index=True)
    reserved_until = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    # Non-owning back-reference; the assignment row is the source of truth
    current_student_id = Column(Integer, ForeignKey("students.id"), nullable=True)
    last_assigned_at = Column(DateTime, nullable=True)

    deleted_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # One seat number per property
    __table_args__ = (
        UniqueConstraint("property_id", "seat_number", name="uq_property_seat_number"),
    )

    property_val = relationship("Property", back_populates="seats")
    current_student = relationship("Student", foreign_keys=[current_student_id])
    assignments = relationship("SeatAssignment", back_populates="seat")

    def is_available(self):
        return self.status == "available" and self.deleted_at is None

    def occupy(self, student_id):
        self.status = "occupied"
        self.current_student_id = student_id
        self.last_assigned_at = utcnow()

    def release(self):
        self.status = "available"
        self.current_student_id = None

    def soft_delete(self):
        self.release()
        self.status = "maintenance"
        self.deleted_at = utcnow()
