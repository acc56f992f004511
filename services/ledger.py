"""
Payment ledger operations used by the payments router.

Resolves student + seat + assignment into a Payment (creating it lazily),
records installments with generated receipt numbers, builds list filters,
and shapes payments/receipts for the dashboard.
"""
import logging
import secrets
import time
from datetime import timedelta

from sqlalchemy import or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import config
from errors import NotFoundError, BadRequestError
from models.fee_models import Payment, PaymentInstallment, OPEN_STATUSES, STORAGE_METHODS
from models.masters import Property
from models.seats import Seat
from models.students import Student
from utils import utcnow, to_money, money_out, iso, as_datetime, like_pattern

logger = logging.getLogger(__name__)


# =====================
# PAYMENT METHOD VOCABULARY
# =====================

UI_TO_STORAGE_METHOD = {
    "CASH": "cash",
    "PHONEPE": "online",
    "PAYTM": "online",
    "UPI": "online",
    "CARD": "card",
    "BANK_TRANSFER": "bank_transfer",
}

STORAGE_TO_UI_METHOD = {
    "cash": "CASH",
    "online": "UPI",
    "card": "CARD",
    "bank_transfer": "BANK_TRANSFER",
}


def to_storage_method(ui_method):
    """UI label (PHONEPE, UPI, ...) -> stored method. Unknown values fall back to cash."""
    if not ui_method:
        return "cash"
    value = str(ui_method).strip()
    if value.lower() in STORAGE_METHODS:
        return value.lower()
    return UI_TO_STORAGE_METHOD.get(value.upper(), "cash")


def to_ui_method(storage_method):
    return STORAGE_TO_UI_METHOD.get(storage_method, "CASH")


def payment_mode(storage_method):
    return "Cash" if storage_method in (None, "cash") else "Digital"


# =====================
# RECEIPTS
# =====================

def generate_reference(prefix):
    """RCPT-<epoch ms>-<0..999>, TXN-<epoch ms>-<0..999>"""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.randbelow(1000)}"


def generate_receipt_number(db: Session) -> str:
    receipt_no = generate_reference("RCPT")
    while db.query(PaymentInstallment.id).filter(PaymentInstallment.receipt_number == receipt_no).first():
        receipt_no = generate_reference("RCPT")
    return receipt_no


_ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
         "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
         "Seventeen", "Eighteen", "Nineteen"]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]


def _words(num):
    parts = []
    for size, label in ((10000000, "Crore"), (100000, "Lakh"), (1000, "Thousand")):
        if num >= size:
            parts.append(f"{_words(num // size)} {label}")
            num %= size
    if num >= 100:
        parts.append(f"{_ONES[num // 100]} Hundred")
        num %= 100
    if num >= 20:
        parts.append(_TENS[num // 10])
        num %= 10
    if num > 0:
        parts.append(_ONES[num])
    return " ".join(parts)


def amount_in_words(amount):
    """Indian numbering: 125000 -> 'Rupees One Lakh Twenty Five Thousand Only'"""
    rupees = int(to_money(amount))
    if rupees == 0:
        return "Rupees Zero Only"
    return f"Rupees {_words(rupees)} Only"


# =====================
# RESOLUTION / FIND-OR-CREATE
# =====================

def resolve_billing_target(db: Session, student_id, seat_number):
    """student + seat number -> (student, seat, property, active assignment); 404 on any miss."""
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise NotFoundError("Student not found")

    # Seat numbers are unique per property only; pick the one this student holds
    seats = db.query(Seat).filter(
        Seat.seat_number == str(seat_number),
        Seat.deleted_at.is_(None),
    ).order_by(Seat.id).all()
    if not seats:
        raise NotFoundError(f"Seat {seat_number} not found")

    seat, assignment = seats[0], None
    for candidate in seats:
        assignment = student.active_assignment_for_seat(candidate.id)
        if assignment:
            seat = candidate
            break

    prop = db.query(Property).filter(Property.id == seat.property_id).first()
    if not prop:
        raise NotFoundError("Property not found")
    if not assignment:
        raise NotFoundError("No active assignment found for this student and seat")

    return student, seat, prop, assignment


def _latest_payment_for(db: Session, assignment_id):
    return db.query(Payment).filter(
        Payment.assignment_id == assignment_id
    ).order_by(Payment.id.desc()).first()


def find_or_create_payment(db: Session, student, seat, assignment, created_by=None, description=None):
    """
    Return (payment, created). The newest payment for the assignment is reused,
    so a completed ledger keeps rejecting further collections with balance 0.
    """
    payment = _latest_payment_for(db, assignment.id)
    if payment:
        return payment, False

    now = utcnow()
    due_date = now + timedelta(days=config.PAYMENT_DUE_DAYS)
    total = to_money(assignment.monthly_rent or config.DEFAULT_MONTHLY_RENT)

    payment = Payment(
        student_id=student.id,
        seat_id=seat.id,
        shift_id=assignment.shift_id,
        property_id=seat.property_id,
        assignment_id=assignment.id,
        total_amount=total,
        total_collected=to_money(0),
        balance_amount=total,
        status="pending",
        transaction_id=generate_reference("TXN"),
        due_date=due_date,
        period_start=as_datetime(assignment.start_date) or now,
        period_end=as_datetime(assignment.end_date) or due_date,
        fee_type="seat_rent",
        description=description,
        created_by=created_by,
    )
    db.add(payment)
    try:
        db.flush()
    except IntegrityError:
        # Another request opened the ledger for this assignment first
        db.rollback()
        existing = _latest_payment_for(db, assignment.id)
        if existing is None:
            raise
        logger.info("Reusing concurrently created payment %s for assignment %s", existing.id, assignment.id)
        return existing, False

    logger.info("Opened payment for assignment %s: total %s due %s", assignment.id, total, due_date.date())
    return payment, True


def record_installment(db: Session, payment, amount, payment_method, payment_date=None,
                       collected_by=None, description=None, notes=None):
    """Append one installment and commit. Returns the new installment."""
    receipt_number = generate_receipt_number(db)
    try:
        installment = payment.add_installment(
            amount,
            to_storage_method(payment_method),
            payment_date=as_datetime(payment_date),
            collected_by=collected_by,
            description=description,
            receipt_number=receipt_number,
            notes=notes,
        )
    except BadRequestError as exc:
        logger.warning("Installment rejected for payment %s: %s", payment.id, exc.message)
        raise

    db.commit()
    db.refresh(payment)
    logger.info(
        "Recorded %s on payment %s (%s): collected %s, balance %s, status %s",
        installment.amount, payment.id, receipt_number,
        payment.total_collected, payment.balance_amount, payment.status,
    )
    return installment


# =====================
# LIST FILTERS
# =====================

def overdue_condition(now):
    return and_(Payment.status.in_(OPEN_STATUSES), Payment.due_date < now)


def build_payment_filters(db: Session, status=None, payment_method=None, property_id=None,
                          student_id=None, start_date=None, end_date=None, search=None, now=None):
    """Translate list query params into SQLAlchemy conditions on Payment."""
    now = now or utcnow()
    conditions = []

    if student_id:
        conditions.append(Payment.student_id == student_id)

    if status and status != "all":
        if status == "pending":
            # pending also covers the overdue view
            conditions.append(or_(Payment.status == "pending", overdue_condition(now)))
        elif status == "overdue":
            conditions.append(overdue_condition(now))
        else:
            conditions.append(Payment.status == status)

    if payment_method and payment_method != "all":
        method = to_storage_method(payment_method)
        conditions.append(Payment.installments.any(PaymentInstallment.payment_method == method))

    if property_id:
        conditions.append(Payment.property_id == property_id)

    if start_date:
        conditions.append(Payment.created_at >= as_datetime(start_date))
    if end_date:
        conditions.append(Payment.created_at <= as_datetime(end_date))

    if search:
        pattern = like_pattern(search)
        student_ids = [row.id for row in db.query(Student.id).filter(
            or_(
                Student.first_name.ilike(pattern, escape="\\"),
                Student.last_name.ilike(pattern, escape="\\"),
                Student.email.ilike(pattern, escape="\\"),
                Student.phone.ilike(pattern, escape="\\"),
            )
        ).all()]
        conditions.append(or_(
            Payment.student_id.in_(student_ids),
            Payment.transaction_id.ilike(pattern, escape="\\"),
        ))

    return conditions


# =====================
# RESPONSE SHAPES
# =====================

def _student_block(student):
    if not student:
        return {"studentId": "", "studentName": "Unknown Student", "studentEmail": "", "studentPhone": ""}
    return {
        "studentId": str(student.id),
        "studentName": student.full_name,
        "studentEmail": student.email or "",
        "studentPhone": student.phone or "",
    }


def transform_installment(installment):
    return {
        "id": installment.id,
        "amount": money_out(installment.amount),
        "paymentMethod": to_ui_method(installment.payment_method),
        "paymentMode": payment_mode(installment.payment_method),
        "paymentDate": iso(installment.payment_date),
        "collectedBy": installment.collected_by,
        "description": installment.description,
        "receiptNumber": installment.receipt_number,
        "notes": installment.notes,
    }


def transform_payment(payment, now=None):
    now = now or utcnow()
    latest = payment.latest_installment
    method = latest.payment_method if latest else None
    data = {
        "id": str(payment.id),
        **_student_block(payment.student),
        "seatNo": payment.seat.seat_number if payment.seat else "N/A",
        "seatDetails": {
            "seatNumber": payment.seat.seat_number,
            "row": payment.seat.row,
            "column": payment.seat.column,
        } if payment.seat else None,
        "shift": {
            "name": payment.shift.name,
            "startTime": payment.shift.start_time,
            "endTime": payment.shift.end_time,
        } if payment.shift else None,
        "property": {
            "id": payment.property_val.id,
            "name": payment.property_val.name,
            "address": payment.property_val.address,
        } if payment.property_val else None,
        "assignmentId": payment.assignment_id,
        "amount": money_out(payment.total_amount),
        "totalAmount": money_out(payment.total_amount),
        "dueAmount": money_out(payment.total_amount),
        "collectedAmount": money_out(payment.total_collected),
        "totalCollected": money_out(payment.total_collected),
        "balanceAmount": money_out(payment.balance_amount),
        "paymentMethod": to_ui_method(method),
        "paymentMode": payment_mode(method),
        "status": payment.status,
        "displayStatus": payment.display_status(now),
        "isOverdue": payment.is_overdue(now),
        "overdueDays": payment.overdue_days(now),
        "date": iso(payment.payment_date or payment.created_at),
        "paymentDate": iso(payment.payment_date),
        "dueDate": iso(payment.due_date),
        "period": {"start": iso(payment.period_start), "end": iso(payment.period_end)},
        "feeType": payment.fee_type,
        "description": payment.description,
        "notes": payment.notes,
        "transactionId": payment.transaction_id,
        "receiptNumber": latest.receipt_number if latest else None,
        "installments": [transform_installment(i) for i in payment.installments],
        "createdBy": payment.created_by,
        "createdAt": iso(payment.created_at),
        "updatedAt": iso(payment.updated_at),
    }
    if payment.status == "refunded":
        data["refundDetails"] = {
            "amount": money_out(payment.refund_amount),
            "reason": payment.refund_reason,
            "refundDate": iso(payment.refund_date),
            "processedBy": payment.refunded_by,
        }
    return data


def build_receipt(payment, installment=None):
    """Receipt view for one installment (the latest one by default)."""
    installment = installment or payment.latest_installment
    if installment is None:
        raise NotFoundError("No installments recorded for this payment")

    student = payment.student
    prop = payment.property_val
    return {
        "receiptNumber": installment.receipt_number,
        "transactionId": payment.transaction_id,
        "paymentId": str(payment.id),
        **_student_block(student),
        "seatNo": payment.seat.seat_number if payment.seat else "N/A",
        "propertyName": prop.name if prop else "N/A",
        "propertyAddress": prop.address if prop else "N/A",
        "shiftName": payment.shift.name if payment.shift else "N/A",
        "dueAmount": money_out(payment.total_amount),
        "amountPaid": money_out(installment.amount),
        "amountInWords": amount_in_words(installment.amount),
        "collectedAmount": money_out(payment.total_collected),
        "balanceAmount": money_out(payment.balance_amount),
        "paymentMethod": to_ui_method(installment.payment_method),
        "paymentMode": payment_mode(installment.payment_method),
        "paymentDate": iso(installment.payment_date),
        "collectedBy": installment.collected_by or "System",
        "description": installment.description or payment.description,
        "period": {"start": iso(payment.period_start), "end": iso(payment.period_end)},
        "status": payment.status,
        "installments": [transform_installment(i) for i in payment.installments],
        "timestamp": iso(utcnow()),
    }
