"""
Reports Router - cross-resource dashboards (payments, seats, students, bookings).
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import config
from database import get_db
from models.fee_models import Payment
from services import reporting
from utils import utcnow, success

router = APIRouter(prefix=f"{config.API_PREFIX}/reports", tags=["Reports"])


@router.get("/summary")
def summary_report(property_id: Optional[int] = Query(None, alias="propertyId"), db: Session = Depends(get_db)):
    now = utcnow()
    conditions = [Payment.property_id == property_id] if property_id else []

    occupancy = reporting.seat_occupancy(db, property_id)
    total_seats = sum(o["totalSeats"] for o in occupancy)
    occupied = sum(o["occupied"] for o in occupancy)
    today = now.date()

    return success({
        "payments": {
            **reporting.dashboard_summary(db, conditions, now),
            **reporting.summarize_payments(db, conditions),
        },
        "students": reporting.student_stats(db, property_id),
        "seats": {
            "totalSeats": total_seats,
            "occupied": occupied,
            "available": sum(o["available"] for o in occupancy),
            "occupancyRate": round(occupied * 100 / total_seats, 2) if total_seats else 0,
        },
        "bookings": reporting.booking_stats(db),
        "attendanceToday": reporting.attendance_stats(db, start=today, end=today),
        "generatedAt": now.isoformat(),
    })


@router.get("/revenue")
def revenue_report(
    property_id: Optional[int] = Query(None, alias="propertyId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    months = reporting.property_revenue(db, property_id, start_date, end_date)
    return success(months, summary={
        "totalRevenue": round(sum(m["totalRevenue"] for m in months), 2),
        "months": len(months),
    })


@router.get("/occupancy")
def occupancy_report(property_id: Optional[int] = Query(None, alias="propertyId"), db: Session = Depends(get_db)):
    return success(reporting.seat_occupancy(db, property_id))
