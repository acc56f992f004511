import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import config
from database import get_db
from errors import NotFoundError, BadRequestError
from models.attendance import Attendance
from models.seats import Seat
from models.students import Student
from schemas.attendance import AttendanceCreate, AttendanceUpdate
from services import reporting
from utils import iso, as_datetime, page_params, pagination, success

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{config.API_PREFIX}/attendance", tags=["Attendance"])


def attendance_out(record):
    return {
        "id": record.id,
        "studentId": record.student_id,
        "studentName": record.student.full_name if record.student else None,
        "seatId": record.seat_id,
        "seatNumber": record.seat.seat_number if record.seat else None,
        "date": record.date.isoformat(),
        "status": record.status,
        "checkIn": iso(record.check_in),
        "checkOut": iso(record.check_out),
        "duration": record.duration or 0,
        "notes": record.notes,
        "verificationMethod": record.verification_method,
    }


def get_record_or_404(db: Session, record_id: int) -> Attendance:
    record = db.query(Attendance).filter(Attendance.id == record_id).first()
    if not record:
        raise NotFoundError("Attendance record not found")
    return record


def _check_times(check_in, check_out):
    if check_in and check_out and check_out < check_in:
        raise BadRequestError("Check-out time cannot be before check-in time")


@router.get("")
def list_attendance(
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
    student_id: Optional[int] = Query(None, alias="studentId"),
    seat_id: Optional[int] = Query(None, alias="seatId"),
    status: Optional[str] = None,
    start_date: Optional[datetime.date] = Query(None, alias="startDate"),
    end_date: Optional[datetime.date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    page, limit, offset = page_params(page, limit)
    query = db.query(Attendance)
    if student_id:
        query = query.filter(Attendance.student_id == student_id)
    if seat_id:
        query = query.filter(Attendance.seat_id == seat_id)
    if status:
        query = query.filter(Attendance.status == status)
    if start_date:
        query = query.filter(Attendance.date >= start_date)
    if end_date:
        query = query.filter(Attendance.date <= end_date)

    total = query.count()
    records = query.order_by(Attendance.date.desc(), Attendance.id.desc()).offset(offset).limit(limit).all()
    return success([attendance_out(r) for r in records], pagination=pagination(page, limit, total))


@router.get("/stats/{student_id}")
def student_attendance_stats(
    student_id: int,
    start_date: Optional[datetime.date] = Query(None, alias="startDate"),
    end_date: Optional[datetime.date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    if not db.query(Student.id).filter(Student.id == student_id).first():
        raise NotFoundError("Student not found")

    stats = reporting.attendance_stats(db, student_id, start_date, end_date)
    attended = stats["byStatus"].get("present", 0) + stats["byStatus"].get("late", 0)
    total = stats["totalRecords"]
    stats["attendanceRate"] = round(attended * 100 / total, 2) if total else 0
    return success(stats)


@router.get("/{record_id}")
def get_attendance(record_id: int, db: Session = Depends(get_db)):
    return success(attendance_out(get_record_or_404(db, record_id)))


@router.post("", status_code=201)
def mark_attendance(item: AttendanceCreate, db: Session = Depends(get_db)):
    if not db.query(Student.id).filter(Student.id == item.student_id).first():
        raise NotFoundError("Student not found")
    if item.seat_id and not db.query(Seat.id).filter(Seat.id == item.seat_id).first():
        raise NotFoundError("Seat not found")

    existing = db.query(Attendance.id).filter(
        Attendance.student_id == item.student_id,
        Attendance.date == item.date,
    ).first()
    if existing:
        raise BadRequestError(
            f"Attendance already marked for {item.date.isoformat()}",
            {"attendanceId": existing[0]},
        )

    check_in, check_out = as_datetime(item.check_in), as_datetime(item.check_out)
    _check_times(check_in, check_out)

    record = Attendance(
        student_id=item.student_id,
        seat_id=item.seat_id,
        date=item.date,
        status=item.status,
        check_in=check_in,
        check_out=check_out,
        notes=item.notes,
        verification_method=item.verification_method,
    )
    record.calculate_duration()
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Marked %s for student %s on %s", record.status, record.student_id, record.date)
    return success(attendance_out(record), message="Attendance marked successfully")


@router.put("/{record_id}")
def update_attendance(record_id: int, item: AttendanceUpdate, db: Session = Depends(get_db)):
    record = get_record_or_404(db, record_id)
    updates = item.model_dump(exclude_unset=True)
    for key in ("check_in", "check_out"):
        if key in updates:
            updates[key] = as_datetime(updates[key])

    _check_times(updates.get("check_in", record.check_in), updates.get("check_out", record.check_out))
    for key, value in updates.items():
        setattr(record, key, value)
    record.calculate_duration()
    db.commit()
    db.refresh(record)
    return success(attendance_out(record), message="Attendance updated successfully")


@router.delete("/{record_id}")
def delete_attendance(record_id: int, db: Session = Depends(get_db)):
    record = get_record_or_404(db, record_id)
    db.delete(record)
    db.commit()
    return success({"id": record_id}, message="Attendance record deleted successfully")
