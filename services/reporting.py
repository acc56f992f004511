"""
Read-only aggregations over payments, installments, seats, bookings and attendance.
Nothing here writes to the session.
"""
import datetime
from collections import OrderedDict

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.attendance import Attendance
from models.bookings import Booking
from models.fee_models import Payment, PaymentInstallment
from models.masters import Property
from models.seats import Seat
from models.students import Student, SeatAssignment
from services.ledger import overdue_condition, to_ui_method
from utils import utcnow, money_out, as_datetime

REPORT_TYPES = ("daily", "weekly", "monthly", "yearly")


# =====================
# PAYMENTS
# =====================

def summarize_payments(db: Session, conditions):
    """Totals over the filtered query (not the page)."""
    row = db.query(
        func.coalesce(func.sum(Payment.total_amount), 0),
        func.coalesce(func.sum(Payment.total_collected), 0),
        func.coalesce(func.sum(Payment.balance_amount), 0),
        func.count(Payment.id),
    ).filter(*conditions).one()
    pending = db.query(
        func.coalesce(func.sum(Payment.total_amount), 0)
    ).filter(*conditions).filter(Payment.status == "pending").scalar()

    return {
        "totalAmount": money_out(row[0]),
        "totalCollected": money_out(row[1]),
        "totalPending": money_out(pending),
        "totalBalance": money_out(row[2]),
        "paymentCount": row[3],
    }


def status_breakdown(db: Session, conditions=()):
    rows = db.query(
        Payment.status,
        func.count(Payment.id),
        func.coalesce(func.sum(Payment.total_amount), 0),
        func.coalesce(func.sum(Payment.total_collected), 0),
        func.coalesce(func.sum(Payment.balance_amount), 0),
    ).filter(*conditions).group_by(Payment.status).all()
    return [
        {
            "status": status,
            "count": count,
            "totalAmount": money_out(total),
            "totalCollected": money_out(collected),
            "totalBalance": money_out(balance),
        }
        for status, count, total, collected, balance in rows
    ]


def method_breakdown(db: Session, conditions=()):
    """Installment totals per payment method (UI vocabulary)."""
    rows = db.query(
        PaymentInstallment.payment_method,
        func.count(PaymentInstallment.id),
        func.coalesce(func.sum(PaymentInstallment.amount), 0),
    ).join(Payment, PaymentInstallment.payment_id == Payment.id).filter(
        *conditions
    ).group_by(PaymentInstallment.payment_method).all()
    return [
        {"paymentMethod": to_ui_method(method), "count": count, "totalCollected": money_out(total)}
        for method, count, total in rows
    ]


def overdue_count(db: Session, conditions=(), now=None):
    return db.query(func.count(Payment.id)).filter(*conditions).filter(
        overdue_condition(now or utcnow())
    ).scalar()


def _bucket(moment, report_type):
    if report_type == "daily":
        return {"year": moment.year, "month": moment.month, "day": moment.day}
    if report_type == "weekly":
        year, week, _ = moment.isocalendar()
        return {"year": year, "week": week}
    if report_type == "yearly":
        return {"year": moment.year}
    return {"year": moment.year, "month": moment.month}


def _installments_in_range(db: Session, conditions=(), start=None, end=None):
    query = db.query(PaymentInstallment).join(
        Payment, PaymentInstallment.payment_id == Payment.id
    ).filter(*conditions)
    if start:
        query = query.filter(PaymentInstallment.payment_date >= as_datetime(start))
    if end:
        query = query.filter(PaymentInstallment.payment_date <= as_datetime(end))
    return query.order_by(PaymentInstallment.payment_date).all()


def collection_time_series(db: Session, report_type="monthly", conditions=(), start=None, end=None):
    """Collections grouped by installment date into day/ISO-week/month/year buckets."""
    if report_type not in REPORT_TYPES:
        report_type = "monthly"

    series = OrderedDict()
    for inst in _installments_in_range(db, conditions, start, end):
        key_dict = _bucket(inst.payment_date, report_type)
        key = tuple(key_dict.values())
        entry = series.setdefault(key, {
            "period": key_dict,
            "totalCollections": 0.0,
            "installmentCount": 0,
            "payments": set(),
            "minInstallment": None,
            "maxInstallment": None,
        })
        amount = money_out(inst.amount)
        entry["totalCollections"] += amount
        entry["installmentCount"] += 1
        entry["payments"].add(inst.payment_id)
        entry["minInstallment"] = amount if entry["minInstallment"] is None else min(entry["minInstallment"], amount)
        entry["maxInstallment"] = amount if entry["maxInstallment"] is None else max(entry["maxInstallment"], amount)

    result = []
    for entry in series.values():
        count = entry["installmentCount"]
        entry["paymentCount"] = len(entry.pop("payments"))
        entry["totalCollections"] = round(entry["totalCollections"], 2)
        entry["averageInstallment"] = round(entry["totalCollections"] / count, 2) if count else 0
        result.append(entry)
    return result


def daily_collection_trend(db: Session, property_id=None, now=None):
    """Per-day collections for the current month."""
    now = now or utcnow()
    month_start = datetime.datetime(now.year, now.month, 1)
    conditions = [Payment.property_id == property_id] if property_id else []
    return [
        {"date": datetime.date(**entry["period"]).isoformat(),
         "dailyCollection": entry["totalCollections"],
         "paymentCount": entry["installmentCount"]}
        for entry in collection_time_series(db, "daily", conditions, month_start, now)
    ]


def recent_payments(db: Session, limit=5):
    payments = db.query(Payment).filter(
        Payment.status.in_(("completed", "partial"))
    ).order_by(Payment.updated_at.desc(), Payment.id.desc()).limit(limit).all()
    return [
        {
            "id": str(p.id),
            "studentName": p.student.full_name if p.student else "Unknown",
            "seatNo": p.seat.seat_number if p.seat else "N/A",
            "propertyName": p.property_val.name if p.property_val else "N/A",
            "amount": money_out(p.total_collected),
            "date": (p.payment_date or p.updated_at or p.created_at).isoformat(),
            "status": p.status,
        }
        for p in payments
    ]


def dashboard_summary(db: Session, conditions=(), now=None):
    """Due vs collected split used by the dashboard cards."""
    due = 0.0
    collections = 0.0
    for stat in status_breakdown(db, conditions):
        if stat["status"] == "pending":
            due += stat["totalAmount"]
        elif stat["status"] == "partial":
            due += stat["totalBalance"]
            collections += stat["totalCollected"]
        elif stat["status"] == "completed":
            collections += stat["totalCollected"]
    return {
        "duePayments": round(due, 2),
        "collections": round(collections, 2),
        "overduePayments": overdue_count(db, conditions, now),
    }


def property_revenue(db: Session, property_id=None, start=None, end=None):
    conditions = [Payment.property_id == property_id] if property_id else []
    return [
        {"year": e["period"]["year"], "month": e["period"]["month"],
         "totalRevenue": e["totalCollections"], "paymentCount": e["paymentCount"]}
        for e in collection_time_series(db, "monthly", conditions, start, end)
    ]


# =====================
# SEATS / BOOKINGS / ATTENDANCE / STUDENTS
# =====================

def seat_occupancy(db: Session, property_id=None):
    query = db.query(Seat.property_id, Seat.status, func.count(Seat.id)).filter(Seat.deleted_at.is_(None))
    if property_id:
        query = query.filter(Seat.property_id == property_id)

    names = {p.id: p.name for p in db.query(Property).all()}
    result = {}
    for prop_id, status, count in query.group_by(Seat.property_id, Seat.status).all():
        entry = result.setdefault(prop_id, {
            "propertyId": prop_id,
            "propertyName": names.get(prop_id, "N/A"),
            "totalSeats": 0,
            "available": 0, "occupied": 0, "reserved": 0, "maintenance": 0,
        })
        entry[status] = entry.get(status, 0) + count
        entry["totalSeats"] += count

    for entry in result.values():
        total = entry["totalSeats"]
        entry["occupancyRate"] = round(entry["occupied"] * 100 / total, 2) if total else 0
    return list(result.values())


def booking_stats(db: Session):
    rows = db.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
    counts = {status: count for status, count in rows}

    durations = {}
    for booking in db.query(Booking).filter(Booking.end_date.isnot(None)).all():
        days = (booking.end_date - booking.start_date).total_seconds() / 86400
        durations[booking.status] = durations.get(booking.status, 0) + days

    return {
        "stats": [
            {"status": status, "count": count, "totalDurationDays": round(durations.get(status, 0), 2)}
            for status, count in counts.items()
        ],
        "totalBookings": sum(counts.values()),
        "activeBookings": counts.get("active", 0),
        "completedBookings": counts.get("completed", 0),
        "cancelledBookings": counts.get("cancelled", 0),
    }


def attendance_stats(db: Session, student_id=None, start=None, end=None):
    query = db.query(Attendance.status, func.count(Attendance.id))
    if student_id:
        query = query.filter(Attendance.student_id == student_id)
    if start:
        query = query.filter(Attendance.date >= start)
    if end:
        query = query.filter(Attendance.date <= end)
    counts = {status: count for status, count in query.group_by(Attendance.status).all()}
    return {"totalRecords": sum(counts.values()), "byStatus": counts}


def student_stats(db: Session, property_id=None):
    total = db.query(func.count(Student.id)).scalar()
    active = db.query(func.count(Student.id)).filter(Student.status == "active").scalar()

    assigned = db.query(func.count(func.distinct(SeatAssignment.student_id))).filter(
        SeatAssignment.status == "active"
    )
    if property_id:
        assigned = assigned.filter(SeatAssignment.property_id == property_id)

    return {
        "totalStudents": total,
        "activeStudents": active,
        "inactiveStudents": total - active,
        "studentsWithSeats": assigned.scalar(),
    }
