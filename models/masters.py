from sqlalchemy import Column, Integer, String, Numeric, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from utils import utcnow

# 1. PROPERTY TABLE (a library / study space)
class Property(Base):
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    type = Column(String(50), nullable=False, default="library")
    address = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    email = Column(String(120), nullable=True)
    description = Column(Text, nullable=True)
    opening_hours = Column(String(100), nullable=True)
    total_seats = Column(Integer, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    shifts = relationship("Shift", back_populates="property_val")
    seats = relationship("Seat", back_populates="property_val")

# 2. SHIFT TABLE (time partition of a property, e.g. Morning 06:00-12:00)
class Shift(Base):
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    start_time = Column(String(5), nullable=False)  # "08:00"
    end_time = Column(String(5), nullable=False)    # "17:00"
    fee = Column(Numeric(10, 2), nullable=False, default=0)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)

    property_val = relationship("Property", back_populates="shifts")
