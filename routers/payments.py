"""
Payments Router - installment-based fee collection per seat assignment
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import config
from database import get_db
from errors import NotFoundError, BadRequestError
from models.fee_models import Payment, FEE_TYPES
from models.students import Student
from schemas.payments import (
    PaymentCreate, InstallmentCreate, PaymentUpdate, PaymentComplete, PaymentRefund,
)
from services.ledger import (
    resolve_billing_target, find_or_create_payment, record_installment,
    build_payment_filters, overdue_condition, transform_payment, build_receipt,
)
from services import reporting
from utils import utcnow, to_money, money_out, as_datetime, page_params, pagination, success

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{config.API_PREFIX}/payments", tags=["Payments"])

SORT_COLUMNS = {
    "createdAt": Payment.created_at,
    "updatedAt": Payment.updated_at,
    "dueDate": Payment.due_date,
    "paymentDate": Payment.payment_date,
    "amount": Payment.total_amount,
    "totalAmount": Payment.total_amount,
    "collectedAmount": Payment.total_collected,
    "balanceAmount": Payment.balance_amount,
    "status": Payment.status,
}


def get_payment_or_404(db: Session, payment_id: int) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


def _ledger_response(payment, installment):
    return {
        "payment": transform_payment(payment),
        "receipt": build_receipt(payment, installment),
        "progress": payment.get_payment_progress(),
    }


# ===============================
#   1. SPECIFIC ROUTES (before /{payment_id})
# ===============================

@router.get("")
def list_payments(
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
    status: Optional[str] = None,
    payment_method: Optional[str] = Query(None, alias="paymentMethod"),
    property_id: Optional[int] = Query(None, alias="propertyId"),
    student_id: Optional[int] = Query(None, alias="studentId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    search: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: Session = Depends(get_db),
):
    """
    List payments with filters, pagination and a summary over the whole
    filtered set (not just the page).
    """
    page, limit, offset = page_params(page, limit)
    now = utcnow()
    conditions = build_payment_filters(
        db,
        status=status,
        payment_method=payment_method,
        property_id=property_id,
        student_id=student_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
        now=now,
    )

    column = SORT_COLUMNS.get(sort_by, Payment.created_at)
    order = column.asc() if sort_order == "asc" else column.desc()
    tiebreak = Payment.id.asc() if sort_order == "asc" else Payment.id.desc()

    query = db.query(Payment).filter(*conditions)
    total = query.count()
    payments = query.order_by(order, tiebreak).offset(offset).limit(limit).all()

    return success(
        [transform_payment(p, now) for p in payments],
        pagination=pagination(page, limit, total),
        summary=reporting.summarize_payments(db, conditions),
    )


@router.get("/stats/dashboard")
def dashboard_stats(
    property_id: Optional[int] = Query(None, alias="propertyId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    now = utcnow()
    conditions = build_payment_filters(
        db, property_id=property_id, start_date=start_date, end_date=end_date, now=now
    )
    return success({
        "summary": reporting.dashboard_summary(db, conditions, now),
        "stats": reporting.status_breakdown(db, conditions),
        "monthlyTrend": reporting.daily_collection_trend(db, property_id, now),
        "recentPayments": reporting.recent_payments(db),
    })


@router.get("/stats/payment-stats")
def payment_stats(
    property_id: Optional[int] = Query(None, alias="propertyId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    now = utcnow()
    conditions = build_payment_filters(
        db, property_id=property_id, start_date=start_date, end_date=end_date, now=now
    )
    summary = reporting.summarize_payments(db, conditions)
    return success({
        "stats": reporting.status_breakdown(db, conditions),
        "paymentMethods": reporting.method_breakdown(db, conditions),
        "totalPayments": summary["paymentCount"],
        "totalAmount": summary["totalAmount"],
        "totalCollected": summary["totalCollected"],
        "totalBalance": summary["totalBalance"],
        "overduePayments": reporting.overdue_count(db, conditions, now),
    })


@router.get("/overdue")
def overdue_payments(
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
    property_id: Optional[int] = Query(None, alias="propertyId"),
    db: Session = Depends(get_db),
):
    """Open payments (pending/partial) whose due date has passed, oldest first."""
    page, limit, offset = page_params(page, limit)
    now = utcnow()
    conditions = [overdue_condition(now)]
    if property_id:
        conditions.append(Payment.property_id == property_id)

    query = db.query(Payment).filter(*conditions)
    total = query.count()
    payments = query.order_by(Payment.due_date.asc(), Payment.id.asc()).offset(offset).limit(limit).all()

    totals = reporting.summarize_payments(db, conditions)
    due_dates = [row[0] for row in db.query(Payment.due_date).filter(*conditions).all()]
    overdue_days = [(now - d).total_seconds() / 86400 for d in due_dates]

    return success(
        [transform_payment(p, now) for p in payments],
        pagination=pagination(page, limit, total),
        summary={
            "totalOverdue": total,
            "totalOverdueAmount": totals["totalAmount"],
            "totalCollected": totals["totalCollected"],
            "totalBalance": totals["totalBalance"],
            "averageOverdueDays": round(sum(overdue_days) / len(overdue_days), 1) if overdue_days else 0,
        },
    )


@router.get("/report")
def payment_report(
    report_type: str = Query("monthly", alias="reportType"),
    property_id: Optional[int] = Query(None, alias="propertyId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    if report_type not in reporting.REPORT_TYPES:
        raise BadRequestError(f"reportType must be one of {', '.join(reporting.REPORT_TYPES)}")

    conditions = [Payment.status.in_(("partial", "completed"))]
    if property_id:
        conditions.append(Payment.property_id == property_id)

    series = reporting.collection_time_series(db, report_type, conditions, start_date, end_date)
    installments = sum(e["installmentCount"] for e in series)
    collected = round(sum(e["totalCollections"] for e in series), 2)

    return success({
        "reportType": report_type,
        "period": {
            "startDate": start_date.isoformat() if start_date else "Beginning",
            "endDate": end_date.isoformat() if end_date else "Current",
        },
        "summary": {
            "totalCollections": collected,
            "totalInstallments": installments,
            "averageInstallment": round(collected / installments, 2) if installments else 0,
        },
        "timeSeries": series,
        "paymentMethodDistribution": reporting.method_breakdown(db, conditions),
        "statusDistribution": reporting.status_breakdown(db, conditions),
        "generatedAt": utcnow().isoformat(),
    })


@router.get("/student/{student_id}")
def student_payments(
    student_id: int,
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
):
    if not db.query(Student.id).filter(Student.id == student_id).first():
        raise NotFoundError("Student not found")

    page, limit, offset = page_params(page, limit)
    conditions = build_payment_filters(db, student_id=student_id, status=status)
    query = db.query(Payment).filter(*conditions)
    total = query.count()
    payments = query.order_by(Payment.created_at.desc(), Payment.id.desc()).offset(offset).limit(limit).all()

    stats = reporting.status_breakdown(db, [Payment.student_id == student_id])
    return success(
        [transform_payment(p) for p in payments],
        pagination=pagination(page, limit, total),
        summary={
            "totalPayments": total,
            "totalAmount": round(sum(s["totalAmount"] for s in stats), 2),
            "totalCollected": round(sum(s["totalCollected"] for s in stats), 2),
            "totalBalance": round(sum(s["totalBalance"] for s in stats), 2),
            "paymentCounts": {s["status"]: s["count"] for s in stats},
        },
    )


# ===============================
#   2. LEDGER WRITES
# ===============================

@router.post("", status_code=201)
def create_payment(data: PaymentCreate, db: Session = Depends(get_db)):
    """
    Collect money against a student's seat. The payment for the active
    assignment is created on first use (total = monthly rent, due in 30 days).
    """
    student, seat, prop, assignment = resolve_billing_target(db, data.student_id, data.seat_no)
    payment, created = find_or_create_payment(
        db, student, seat, assignment, created_by=data.collected_by, description=data.description
    )

    amount = to_money(data.collected_amount)
    balance = to_money(payment.balance_amount)
    if amount > balance:
        raise BadRequestError(
            f"Collected amount {amount} exceeds remaining balance {balance}",
            {"collectedAmount": float(amount), "balanceAmount": float(balance)},
        )

    installment = record_installment(
        db, payment, amount, data.payment_method,
        payment_date=data.payment_date,
        collected_by=data.collected_by,
        description=data.description or "Seat Rent Payment",
        notes=data.notes,
    )
    return success(
        _ledger_response(payment, installment),
        message="Payment recorded successfully" if not created else "Payment created and recorded successfully",
    )


@router.post("/{payment_id}/installments", status_code=201)
def add_installment(payment_id: int, data: InstallmentCreate, db: Session = Depends(get_db)):
    payment = get_payment_or_404(db, payment_id)
    installment = record_installment(
        db, payment, data.amount, data.payment_method,
        payment_date=data.payment_date,
        collected_by=data.collected_by,
        description=data.description,
        notes=data.notes,
    )
    return success(_ledger_response(payment, installment), message="Installment recorded successfully")


@router.put("/{payment_id}/complete")
def complete_payment(payment_id: int, data: PaymentComplete, db: Session = Depends(get_db)):
    """Settle a pending payment in one go by collecting the remaining balance."""
    payment = get_payment_or_404(db, payment_id)
    if payment.status != "pending":
        raise BadRequestError("Only pending payments can be completed")

    installment = record_installment(
        db, payment, payment.balance_amount, data.payment_method,
        payment_date=data.payment_date,
        collected_by=data.collected_by,
        description="Balance settlement",
        notes=data.notes,
    )
    return success(_ledger_response(payment, installment), message="Payment completed successfully")


@router.put("/{payment_id}/refund")
def refund_payment(payment_id: int, data: PaymentRefund, db: Session = Depends(get_db)):
    payment = get_payment_or_404(db, payment_id)
    payment.refund(data.refund_amount, data.reason, data.processed_by)
    db.commit()
    db.refresh(payment)
    logger.info("Refunded %s on payment %s", payment.refund_amount, payment.id)
    return success(
        transform_payment(payment),
        message=f"Payment refunded successfully. Amount: {money_out(payment.refund_amount)}",
    )


@router.put("/{payment_id}")
def update_payment(payment_id: int, data: PaymentUpdate, db: Session = Depends(get_db)):
    """Update descriptive fields. Amounts and status only change through installments."""
    payment = get_payment_or_404(db, payment_id)
    if payment.status in ("completed", "refunded"):
        raise BadRequestError("Cannot update a completed or refunded payment")

    updates = data.model_dump(exclude_unset=True)
    if "fee_type" in updates and updates["fee_type"] not in FEE_TYPES:
        raise BadRequestError(f"feeType must be one of {', '.join(FEE_TYPES)}")
    if updates.get("due_date"):
        payment.due_date = as_datetime(updates["due_date"])
    for field in ("description", "notes", "fee_type"):
        if field in updates:
            setattr(payment, field, updates[field])
    if data.period is not None:
        if data.period.start > data.period.end:
            raise BadRequestError("Period start must be before period end")
        payment.period_start = as_datetime(data.period.start)
        payment.period_end = as_datetime(data.period.end)

    db.commit()
    db.refresh(payment)
    return success(transform_payment(payment), message="Payment updated successfully")


@router.delete("/{payment_id}")
def delete_payment(payment_id: int, db: Session = Depends(get_db)):
    payment = get_payment_or_404(db, payment_id)
    if payment.status in ("completed", "refunded"):
        raise BadRequestError("Cannot delete completed or refunded payments")
    if payment.assignment and payment.assignment.status == "active":
        raise BadRequestError("Cannot delete a payment while its seat assignment is active")

    transaction_id = payment.transaction_id
    db.delete(payment)
    db.commit()
    logger.info("Deleted payment %s (%s)", payment_id, transaction_id)
    return success({"id": str(payment_id), "transactionId": transaction_id}, message="Payment deleted successfully")


# ===============================
#   3. SINGLE PAYMENT READS
# ===============================

@router.get("/{payment_id}")
def get_payment(payment_id: int, db: Session = Depends(get_db)):
    return success(transform_payment(get_payment_or_404(db, payment_id)))


@router.get("/{payment_id}/receipt")
def get_receipt(
    payment_id: int,
    receipt_number: Optional[str] = Query(None, alias="receiptNumber"),
    db: Session = Depends(get_db),
):
    payment = get_payment_or_404(db, payment_id)
    installment = None
    if receipt_number:
        installment = next((i for i in payment.installments if i.receipt_number == receipt_number), None)
        if installment is None:
            raise NotFoundError("Receipt not found")
    return success(build_receipt(payment, installment))
