import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

import config
from database import get_db
from errors import NotFoundError, BadRequestError, ConflictError
from models.students import Student, SeatAssignment
from routers.seats import assignment_out
from schemas.students import StudentCreate, StudentUpdate
from services import reporting
from utils import iso, like_pattern, money_out, page_params, pagination, success

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{config.API_PREFIX}/students", tags=["Students"])


def student_out(student):
    return {
        "id": student.id,
        "firstName": student.first_name,
        "lastName": student.last_name,
        "fullName": student.full_name,
        "email": student.email,
        "phone": student.phone,
        "aadharNumber": student.aadhar_number,
        "institution": student.institution,
        "course": student.course,
        "status": student.status,
        "notes": student.notes,
        "createdAt": iso(student.created_at),
        "updatedAt": iso(student.updated_at),
    }


def fee_details(student):
    """Fee position per active assignment, read off its latest payment."""
    details = []
    for assignment in student.current_assignments:
        payment = assignment.latest_payment
        details.append({
            "assignmentId": assignment.id,
            "seatNumber": assignment.seat.seat_number if assignment.seat else None,
            "monthlyRent": money_out(assignment.monthly_rent),
            "paymentId": str(payment.id) if payment else None,
            "status": payment.display_status() if payment else "unbilled",
            "totalAmount": money_out(payment.total_amount if payment else assignment.monthly_rent),
            "totalCollected": money_out(payment.total_collected if payment else 0),
            "balanceAmount": money_out(payment.balance_amount if payment else assignment.monthly_rent),
            "dueDate": iso(payment.due_date) if payment else None,
        })
    return details


def get_student_or_404(db: Session, student_id: int) -> Student:
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise NotFoundError("Student not found")
    return student


# ===============================
#   1. SPECIFIC ROUTES
# ===============================

@router.get("")
def list_students(
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
    search: Optional[str] = None,
    status: Optional[str] = None,
    property_id: Optional[int] = Query(None, alias="propertyId"),
    db: Session = Depends(get_db),
):
    page, limit, offset = page_params(page, limit)
    query = db.query(Student)

    if status:
        query = query.filter(Student.status == status)
    if search:
        pattern = like_pattern(search)
        query = query.filter(or_(
            Student.first_name.ilike(pattern, escape="\\"),
            Student.last_name.ilike(pattern, escape="\\"),
            Student.email.ilike(pattern, escape="\\"),
            Student.phone.ilike(pattern, escape="\\"),
        ))
    if property_id:
        query = query.filter(Student.assignments.any(
            (SeatAssignment.property_id == property_id) & (SeatAssignment.status == "active")
        ))

    total = query.count()
    students = query.order_by(Student.first_name, Student.id).offset(offset).limit(limit).all()

    data = []
    for s in students:
        row = student_out(s)
        row["seats"] = [a.seat.seat_number for a in s.current_assignments if a.seat]
        data.append(row)
    return success(data, pagination=pagination(page, limit, total))


@router.get("/stats")
def student_stats(property_id: Optional[int] = Query(None, alias="propertyId"), db: Session = Depends(get_db)):
    return success(reporting.student_stats(db, property_id))


# ===============================
#   2. CRUD
# ===============================

@router.get("/{student_id}")
def get_student(student_id: int, db: Session = Depends(get_db)):
    student = get_student_or_404(db, student_id)
    data = student_out(student)
    data["currentAssignments"] = [assignment_out(a) for a in student.current_assignments]
    data["assignmentHistory"] = [assignment_out(a) for a in student.assignment_history]
    data["feeDetails"] = fee_details(student)
    return success(data)


@router.post("", status_code=201)
def create_student(item: StudentCreate, db: Session = Depends(get_db)):
    email = item.email.lower()
    if db.query(Student.id).filter(Student.email == email).first():
        raise ConflictError(f"A student with email {email} already exists")

    student = Student(**item.model_dump(exclude={"email"}), email=email)
    db.add(student)
    db.commit()
    db.refresh(student)
    logger.info("Registered student %s (%s)", student.id, student.full_name)
    return success(student_out(student), message="Student created successfully")


@router.put("/{student_id}")
def update_student(student_id: int, item: StudentUpdate, db: Session = Depends(get_db)):
    student = get_student_or_404(db, student_id)
    updates = item.model_dump(exclude_unset=True)

    if updates.get("email"):
        updates["email"] = updates["email"].lower()
        clash = db.query(Student.id).filter(
            Student.email == updates["email"], Student.id != student_id
        ).first()
        if clash:
            raise ConflictError(f"A student with email {updates['email']} already exists")

    for key, value in updates.items():
        setattr(student, key, value)
    db.commit()
    db.refresh(student)
    return success(student_out(student), message="Student updated successfully")


@router.delete("/{student_id}")
def deactivate_student(student_id: int, db: Session = Depends(get_db)):
    """Students are never hard-deleted; payments keep pointing at them."""
    student = get_student_or_404(db, student_id)
    if student.current_assignments:
        raise BadRequestError("Release the student's seats before deactivating")
    student.status = "inactive"
    db.commit()
    logger.info("Deactivated student %s", student_id)
    return success(student_out(student), message="Student deactivated successfully")
