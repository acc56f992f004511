"""
Seats Router - seat inventory per property plus assign / release.

A seat can hold one active assignment per shift. Its status is "occupied"
while any assignment on it is active and goes back to "available" when the
last one is released.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import config
from database import get_db
from errors import NotFoundError, BadRequestError, ConflictError
from models.masters import Property, Shift
from models.seats import Seat
from models.students import Student, SeatAssignment
from schemas.seats import SeatCreate, SeatUpdate, SeatAssign, SeatRelease
from services import reporting
from utils import utcnow, iso, money_out, as_datetime, page_params, pagination, success

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{config.API_PREFIX}/seats", tags=["Seats"])


def assignment_out(assignment):
    payment = assignment.latest_payment
    return {
        "id": assignment.id,
        "studentId": assignment.student_id,
        "studentName": assignment.student.full_name if assignment.student else None,
        "seatId": assignment.seat_id,
        "seatNumber": assignment.seat.seat_number if assignment.seat else None,
        "shiftId": assignment.shift_id,
        "shiftName": assignment.shift.name if assignment.shift else None,
        "propertyId": assignment.property_id,
        "startDate": iso(assignment.start_date),
        "endDate": iso(assignment.end_date),
        "status": assignment.status,
        "monthlyRent": money_out(assignment.monthly_rent),
        "feeStatus": payment.display_status() if payment else "unbilled",
        "balanceAmount": money_out(payment.balance_amount) if payment else money_out(assignment.monthly_rent),
    }


def seat_out(seat):
    return {
        "id": seat.id,
        "propertyId": seat.property_id,
        "propertyName": seat.property_val.name if seat.property_val else None,
        "seatNumber": seat.seat_number,
        "row": seat.row,
        "column": seat.column,
        "type": seat.type,
        "status": seat.status,
        "reservedUntil": iso(seat.reserved_until),
        "notes": seat.notes,
        "currentStudent": {
            "id": seat.current_student.id,
            "name": seat.current_student.full_name,
        } if seat.current_student else None,
        "lastAssignedAt": iso(seat.last_assigned_at),
        "createdAt": iso(seat.created_at),
    }


def get_seat_or_404(db: Session, seat_id: int) -> Seat:
    seat = db.query(Seat).filter(Seat.id == seat_id, Seat.deleted_at.is_(None)).first()
    if not seat:
        raise NotFoundError("Seat not found")
    return seat


def _active_assignments(db: Session, seat_id, shift_id=None, student_id=None):
    query = db.query(SeatAssignment).filter(
        SeatAssignment.seat_id == seat_id,
        SeatAssignment.status == "active",
    )
    if shift_id:
        query = query.filter(SeatAssignment.shift_id == shift_id)
    if student_id:
        query = query.filter(SeatAssignment.student_id == student_id)
    return query.order_by(SeatAssignment.id).all()


# ===============================
#   1. LISTS & STATS
# ===============================

@router.get("")
def list_seats(
    page: int = 1,
    limit: int = config.MAX_PAGE_SIZE,
    property_id: Optional[int] = Query(None, alias="propertyId"),
    status: Optional[str] = None,
    type: Optional[str] = None,
    db: Session = Depends(get_db),
):
    page, limit, offset = page_params(page, limit)
    query = db.query(Seat).filter(Seat.deleted_at.is_(None))
    if property_id:
        query = query.filter(Seat.property_id == property_id)
    if status:
        query = query.filter(Seat.status == status)
    if type:
        query = query.filter(Seat.type == type)

    total = query.count()
    seats = query.order_by(Seat.property_id, Seat.row, Seat.column, Seat.seat_number).offset(offset).limit(limit).all()
    return success([seat_out(s) for s in seats], pagination=pagination(page, limit, total))


@router.get("/availability")
def seat_availability(
    property_id: int = Query(..., alias="propertyId"),
    shift_id: Optional[int] = Query(None, alias="shiftId"),
    db: Session = Depends(get_db),
):
    """Seats of a property that can take a new assignment (optionally for one shift)."""
    seats = db.query(Seat).filter(
        Seat.property_id == property_id,
        Seat.deleted_at.is_(None),
        Seat.status.in_(("available", "occupied")),
    ).order_by(Seat.row, Seat.column, Seat.seat_number).all()

    taken = db.query(SeatAssignment.seat_id).filter(
        SeatAssignment.property_id == property_id,
        SeatAssignment.status == "active",
    )
    if shift_id:
        taken = taken.filter(SeatAssignment.shift_id == shift_id)
    taken_ids = {row[0] for row in taken.all()}

    free = [seat_out(s) for s in seats if s.id not in taken_ids]
    return success(free, summary={"available": len(free), "total": len(seats)})


@router.get("/stats")
def seat_stats(property_id: Optional[int] = Query(None, alias="propertyId"), db: Session = Depends(get_db)):
    return success(reporting.seat_occupancy(db, property_id))


# ===============================
#   2. CRUD
# ===============================

@router.get("/{seat_id}")
def get_seat(seat_id: int, db: Session = Depends(get_db)):
    seat = get_seat_or_404(db, seat_id)
    data = seat_out(seat)
    data["assignments"] = [assignment_out(a) for a in _active_assignments(db, seat.id)]
    return success(data)


@router.post("", status_code=201)
def create_seat(item: SeatCreate, db: Session = Depends(get_db)):
    if not db.query(Property.id).filter(Property.id == item.property_id).first():
        raise NotFoundError("Property not found")
    duplicate = db.query(Seat.id).filter(
        Seat.property_id == item.property_id,
        Seat.seat_number == item.seat_number,
    ).first()
    if duplicate:
        raise ConflictError(f"Seat {item.seat_number} already exists in this property")

    seat = Seat(**item.model_dump())
    db.add(seat)
    db.commit()
    db.refresh(seat)
    logger.info("Created seat %s in property %s", seat.seat_number, seat.property_id)
    return success(seat_out(seat), message="Seat created successfully")


@router.put("/{seat_id}")
def update_seat(seat_id: int, item: SeatUpdate, db: Session = Depends(get_db)):
    seat = get_seat_or_404(db, seat_id)
    updates = item.model_dump(exclude_unset=True)

    new_number = updates.get("seat_number")
    if new_number and new_number != seat.seat_number:
        duplicate = db.query(Seat.id).filter(
            Seat.property_id == seat.property_id,
            Seat.seat_number == new_number,
        ).first()
        if duplicate:
            raise ConflictError(f"Seat {new_number} already exists in this property")

    if "reserved_until" in updates:
        updates["reserved_until"] = as_datetime(updates["reserved_until"])
    for key, value in updates.items():
        setattr(seat, key, value)
    db.commit()
    db.refresh(seat)
    return success(seat_out(seat), message="Seat updated successfully")


@router.delete("/{seat_id}")
def delete_seat(seat_id: int, db: Session = Depends(get_db)):
    seat = get_seat_or_404(db, seat_id)
    if _active_assignments(db, seat.id):
        raise BadRequestError("Release the seat's active assignments before deleting it")
    seat.soft_delete()
    db.commit()
    logger.info("Soft-deleted seat %s", seat_id)
    return success({"id": seat_id}, message="Seat deleted successfully")


# ===============================
#   3. ASSIGN / RELEASE
# ===============================

@router.post("/{seat_id}/assign", status_code=201)
def assign_seat(seat_id: int, item: SeatAssign, db: Session = Depends(get_db)):
    seat = get_seat_or_404(db, seat_id)

    student = db.query(Student).filter(Student.id == item.student_id).first()
    if not student:
        raise NotFoundError("Student not found")
    if student.status != "active":
        raise BadRequestError("Cannot assign a seat to an inactive student")

    shift = db.query(Shift).filter(Shift.id == item.shift_id).first()
    if not shift:
        raise NotFoundError("Shift not found")
    if shift.property_id != seat.property_id:
        raise BadRequestError("Shift does not belong to the seat's property")

    if seat.status not in ("available", "occupied"):
        raise BadRequestError(f"Seat {seat.seat_number} is not available ({seat.status})")
    if _active_assignments(db, seat.id, shift_id=shift.id):
        raise BadRequestError(f"Seat {seat.seat_number} is already assigned for the {shift.name} shift")

    assignment = SeatAssignment(
        student_id=student.id,
        seat_id=seat.id,
        shift_id=shift.id,
        property_id=seat.property_id,
        start_date=as_datetime(item.start_date) or utcnow(),
        end_date=as_datetime(item.end_date),
        monthly_rent=item.monthly_rent or config.DEFAULT_MONTHLY_RENT,
    )
    db.add(assignment)
    seat.occupy(student.id)
    db.commit()
    db.refresh(assignment)
    logger.info("Assigned seat %s (%s shift) to student %s", seat.seat_number, shift.name, student.id)
    return success(assignment_out(assignment), message="Seat assigned successfully")


@router.post("/{seat_id}/release")
def release_seat(seat_id: int, item: Optional[SeatRelease] = None, db: Session = Depends(get_db)):
    seat = get_seat_or_404(db, seat_id)
    item = item or SeatRelease()

    closing = _active_assignments(db, seat.id, shift_id=item.shift_id, student_id=item.student_id)
    if not closing:
        raise NotFoundError("No active assignment found for this seat")

    for assignment in closing:
        assignment.close("cancelled" if item.cancel else "completed")
    db.flush()

    remaining = _active_assignments(db, seat.id)
    if remaining:
        seat.current_student_id = remaining[-1].student_id
    else:
        seat.release()
    db.commit()
    db.refresh(seat)
    logger.info("Released %d assignment(s) on seat %s", len(closing), seat.seat_number)
    return success(
        {"seat": seat_out(seat), "released": [assignment_out(a) for a in closing]},
        message="Seat released successfully",
    )
