"""
Fee Ledger Models - one Payment per seat assignment, settled by installments.

The installment rows are the ledger. total_collected, balance_amount and status
are stored for cheap reads but are always re-derived from the installments by
recompute(); nothing increments them independently. The version column makes a
concurrent append against a stale balance fail at flush time (StaleDataError)
instead of silently over-collecting.
"""
import math

from sqlalchemy import Column, Integer, String, Numeric, Text, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from database import Base
from errors import BadRequestError
from utils import utcnow, to_money, money_out

PAYMENT_STATUSES = ("pending", "partial", "completed", "refunded")
OPEN_STATUSES = ("pending", "partial")
FEE_TYPES = ("seat_rent", "security_deposit", "maintenance", "other")
STORAGE_METHODS = ("cash", "card", "online", "bank_transfer")


# 1. PAYMENT - the fee obligation for one seat assignment
class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    seat_id = Column(Integer, ForeignKey("seats.id"), nullable=False)
    shift_id = Column(Integer, ForeignKey("shifts.id"), nullable=False)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    assignment_id = Column(Integer, ForeignKey("seat_assignments.id"), nullable=False, index=True)

    # Amounts (total fixed at creation, the rest derived from installments)
    total_amount = Column(Numeric(10, 2), nullable=False)
    total_collected = Column(Numeric(10, 2), nullable=False, default=0)
    balance_amount = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending", index=True)

    transaction_id = Column(String(40), nullable=True, index=True)
    payment_date = Column(DateTime, nullable=True)  # set when the balance reaches zero
    due_date = Column(DateTime, nullable=False, index=True)
    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)
    fee_type = Column(String(30), default="seat_rent")
    description = Column(String(500), nullable=True)
    notes = Column(String(500), nullable=True)

    # Refund annotations (only allowed once completed)
    refund_amount = Column(Numeric(10, 2), nullable=True)
    refund_reason = Column(String(255), nullable=True)
    refund_date = Column(DateTime, nullable=True)
    refunded_by = Column(String(100), nullable=True)

    # Audit Trail
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    version = Column(Integer, nullable=False)

    __table_args__ = (
        # At most one open ledger per assignment
        Index(
            "uq_open_payment_per_assignment",
            "assignment_id",
            unique=True,
            sqlite_where=text("status IN ('pending', 'partial')"),
            postgresql_where=text("status IN ('pending', 'partial')"),
        ),
        Index("ix_payments_student_status", "student_id", "status"),
        Index("ix_payments_property_status", "property_id", "status"),
    )
    __mapper_args__ = {"version_id_col": version}

    installments = relationship(
        "PaymentInstallment",
        back_populates="payment",
        order_by="PaymentInstallment.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    student = relationship("Student")
    seat = relationship("Seat")
    shift = relationship("Shift")
    property_val = relationship("Property")
    assignment = relationship("SeatAssignment", back_populates="payments")

    # --- LEDGER ---

    def collected_from_installments(self):
        return to_money(sum((to_money(i.amount) for i in self.installments), to_money(0)))

    def recompute(self):
        """Re-derive collected, balance and status from total + installments."""
        total = to_money(self.total_amount)
        collected = self.collected_from_installments()
        self.total_collected = collected
        self.balance_amount = total - collected

        if self.status == "refunded":
            return self
        if collected <= 0:
            self.status = "pending"
        elif collected < total:
            self.status = "partial"
        else:
            self.status = "completed"
            if self.payment_date is None:
                self.payment_date = self.installments[-1].payment_date or utcnow()
        return self

    def add_installment(self, amount, payment_method, payment_date=None, collected_by=None,
                        description=None, receipt_number=None, notes=None):
        amount = to_money(amount)
        if amount <= 0:
            raise BadRequestError("Installment amount must be greater than zero", {"amount": float(amount)})
        if self.status == "refunded":
            raise BadRequestError("Cannot add installments to a refunded payment")

        total = to_money(self.total_amount)
        collected = self.collected_from_installments()
        balance = total - collected
        if amount > balance:
            raise BadRequestError(
                f"Amount {amount} exceeds remaining balance of {balance} "
                f"(total {total}, already collected {collected})",
                {
                    "amount": float(amount),
                    "balanceAmount": float(balance),
                    "totalAmount": float(total),
                    "totalCollected": float(collected),
                },
            )

        installment = PaymentInstallment(
            amount=amount,
            payment_method=payment_method,
            payment_date=payment_date or utcnow(),
            collected_by=collected_by,
            description=description,
            receipt_number=receipt_number,
            notes=notes,
        )
        self.installments.append(installment)
        self.recompute()
        return installment

    def get_payment_progress(self):
        total = to_money(self.total_amount)
        collected = self.collected_from_installments()
        return {
            "totalAmount": money_out(total),
            "totalCollected": money_out(collected),
            "balanceAmount": money_out(total - collected),
            "installmentsCount": len(self.installments),
        }

    def refund(self, amount=None, reason=None, processed_by=None):
        if self.status != "completed":
            raise BadRequestError("Only completed payments can be refunded")
        collected = self.collected_from_installments()
        amount = collected if amount is None else to_money(amount)
        if amount <= 0:
            raise BadRequestError("Refund amount must be greater than zero")
        if amount > collected:
            raise BadRequestError(f"Refund amount {amount} cannot exceed collected amount {collected}")

        self.status = "refunded"
        self.refund_amount = amount
        self.refund_reason = reason or "Payment refund"
        self.refund_date = utcnow()
        self.refunded_by = processed_by
        return self

    # --- OVERDUE VIEW (never persisted) ---

    def is_overdue(self, now=None):
        now = now or utcnow()
        return self.status in OPEN_STATUSES and self.due_date is not None and now > self.due_date

    def overdue_days(self, now=None):
        now = now or utcnow()
        if not self.is_overdue(now):
            return 0
        return math.ceil((now - self.due_date).total_seconds() / 86400)

    def display_status(self, now=None):
        return "overdue" if self.is_overdue(now) else self.status

    @property
    def latest_installment(self):
        return self.installments[-1] if self.installments else None


# 2. PAYMENT INSTALLMENT - append-only ledger entry
class PaymentInstallment(Base):
    __tablename__ = "payment_installments"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=False, index=True)

    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(20), nullable=False)  # storage vocabulary: cash, online, ...
    payment_date = Column(DateTime, default=utcnow, index=True)
    collected_by = Column(String(100), nullable=True)
    description = Column(String(500), nullable=True)
    receipt_number = Column(String(40), unique=True, nullable=True, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    payment = relationship("Payment", back_populates="installments")
