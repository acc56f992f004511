"""
Bookings Router - short-term seat reservations.

An active booking puts its seat in "reserved". Bookings on the same seat may
not overlap in time (per shift when a shift is given). Cancelling or
completing the last active booking hands the seat back as "available".
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

import config
from database import get_db
from errors import NotFoundError, BadRequestError
from models.bookings import Booking
from models.masters import Shift
from models.seats import Seat
from models.students import Student
from schemas.bookings import BookingCreate, BookingUpdate, BookingClose
from services import reporting
from utils import iso, as_datetime, page_params, pagination, success

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{config.API_PREFIX}/bookings", tags=["Bookings"])


def booking_out(booking):
    return {
        "id": booking.id,
        "seatId": booking.seat_id,
        "seatNumber": booking.seat.seat_number if booking.seat else None,
        "studentId": booking.student_id,
        "studentName": booking.student.full_name if booking.student else None,
        "shiftId": booking.shift_id,
        "shiftName": booking.shift.name if booking.shift else None,
        "startDate": iso(booking.start_date),
        "endDate": iso(booking.end_date),
        "status": booking.status,
        "purpose": booking.purpose,
        "cancellationReason": booking.cancellation_reason,
        "completionNotes": booking.completion_notes,
        "createdAt": iso(booking.created_at),
    }


def get_booking_or_404(db: Session, booking_id: int) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def _check_window(start, end):
    if end is not None and end <= start:
        raise BadRequestError("End date must be after start date")


def _overlapping(db: Session, seat_id, start, end, shift_id=None, exclude_id=None):
    """Active bookings on the seat whose window intersects [start, end). Open ends run forever."""
    query = db.query(Booking).filter(
        Booking.seat_id == seat_id,
        Booking.status == "active",
        or_(Booking.end_date.is_(None), Booking.end_date > start),
    )
    if end is not None:
        query = query.filter(Booking.start_date < end)
    if shift_id:
        query = query.filter(or_(Booking.shift_id.is_(None), Booking.shift_id == shift_id))
    if exclude_id:
        query = query.filter(Booking.id != exclude_id)
    return query.first()


def _free_seat_if_idle(db: Session, seat):
    still_booked = db.query(Booking.id).filter(
        Booking.seat_id == seat.id, Booking.status == "active"
    ).first()
    if not still_booked and seat.status == "reserved":
        seat.release()
        seat.reserved_until = None


# ===============================
#   1. LISTS & STATS
# ===============================

@router.get("")
def list_bookings(
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
    status: Optional[str] = None,
    student_id: Optional[int] = Query(None, alias="studentId"),
    seat_id: Optional[int] = Query(None, alias="seatId"),
    db: Session = Depends(get_db),
):
    page, limit, offset = page_params(page, limit)
    query = db.query(Booking)
    if status:
        query = query.filter(Booking.status == status)
    if student_id:
        query = query.filter(Booking.student_id == student_id)
    if seat_id:
        query = query.filter(Booking.seat_id == seat_id)

    total = query.count()
    bookings = query.order_by(Booking.start_date.desc(), Booking.id.desc()).offset(offset).limit(limit).all()
    return success([booking_out(b) for b in bookings], pagination=pagination(page, limit, total))


@router.get("/stats")
def booking_stats(db: Session = Depends(get_db)):
    return success(reporting.booking_stats(db))


# ===============================
#   2. CRUD
# ===============================

@router.get("/{booking_id}")
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    return success(booking_out(get_booking_or_404(db, booking_id)))


@router.post("", status_code=201)
def create_booking(item: BookingCreate, db: Session = Depends(get_db)):
    seat = db.query(Seat).filter(Seat.id == item.seat_id, Seat.deleted_at.is_(None)).first()
    if not seat:
        raise NotFoundError("Seat not found")
    if not db.query(Student.id).filter(Student.id == item.student_id).first():
        raise NotFoundError("Student not found")
    if item.shift_id and not db.query(Shift.id).filter(Shift.id == item.shift_id).first():
        raise NotFoundError("Shift not found")

    if seat.status not in ("available", "reserved"):
        raise BadRequestError(f"Seat {seat.seat_number} is not available for booking ({seat.status})")

    start, end = as_datetime(item.start_date), as_datetime(item.end_date)
    _check_window(start, end)
    clash = _overlapping(db, seat.id, start, end, shift_id=item.shift_id)
    if clash:
        raise BadRequestError(
            f"Seat {seat.seat_number} is already booked for an overlapping period",
            {"conflictingBookingId": clash.id},
        )

    booking = Booking(
        seat_id=seat.id,
        student_id=item.student_id,
        shift_id=item.shift_id,
        start_date=start,
        end_date=end,
        purpose=item.purpose,
    )
    db.add(booking)
    seat.status = "reserved"
    if end and (seat.reserved_until is None or end > seat.reserved_until):
        seat.reserved_until = end
    db.commit()
    db.refresh(booking)
    logger.info("Booked seat %s for student %s from %s", seat.seat_number, item.student_id, start)
    return success(booking_out(booking), message="Booking created successfully")


@router.put("/{booking_id}")
def update_booking(booking_id: int, item: BookingUpdate, db: Session = Depends(get_db)):
    booking = get_booking_or_404(db, booking_id)
    if booking.is_terminal:
        raise BadRequestError(f"Cannot update a {booking.status} booking")

    updates = item.model_dump(exclude_unset=True)
    start = as_datetime(updates.get("start_date")) or booking.start_date
    end = as_datetime(updates["end_date"]) if "end_date" in updates else booking.end_date
    shift_id = updates.get("shift_id", booking.shift_id)
    _check_window(start, end)

    clash = _overlapping(db, booking.seat_id, start, end, shift_id=shift_id, exclude_id=booking.id)
    if clash:
        raise BadRequestError(
            "Updated period overlaps another active booking",
            {"conflictingBookingId": clash.id},
        )

    booking.start_date = start
    booking.end_date = end
    booking.shift_id = shift_id
    if "purpose" in updates:
        booking.purpose = updates["purpose"]
    db.commit()
    db.refresh(booking)
    return success(booking_out(booking), message="Booking updated successfully")


@router.put("/{booking_id}/cancel")
def cancel_booking(booking_id: int, item: Optional[BookingClose] = None, db: Session = Depends(get_db)):
    booking = get_booking_or_404(db, booking_id)
    if booking.status != "active":
        raise BadRequestError("Only active bookings can be cancelled")

    booking.status = "cancelled"
    booking.cancellation_reason = item.reason if item else None
    db.flush()
    _free_seat_if_idle(db, booking.seat)
    db.commit()
    db.refresh(booking)
    logger.info("Cancelled booking %s", booking_id)
    return success(booking_out(booking), message="Booking cancelled successfully")


@router.put("/{booking_id}/complete")
def complete_booking(booking_id: int, item: Optional[BookingClose] = None, db: Session = Depends(get_db)):
    booking = get_booking_or_404(db, booking_id)
    if booking.status != "active":
        raise BadRequestError("Only active bookings can be completed")

    booking.status = "completed"
    booking.completion_notes = item.notes if item else None
    db.flush()
    _free_seat_if_idle(db, booking.seat)
    db.commit()
    db.refresh(booking)
    return success(booking_out(booking), message="Booking completed successfully")
