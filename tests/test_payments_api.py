from datetime import timedelta
from decimal import Decimal

from models.fee_models import Payment
from utils import utcnow

API = "/smlekha"


def test_installments_accumulate_until_completed(make_assignment, collect):
    target = make_assignment(seat_number="A12")

    first = collect(target, 600, "PHONEPE")
    assert first.status_code == 201, first.text
    data = first.json()["data"]
    assert data["payment"]["totalAmount"] == 1600.0
    assert data["payment"]["totalCollected"] == 600.0
    assert data["payment"]["balanceAmount"] == 1000.0
    assert data["payment"]["status"] == "partial"
    assert data["payment"]["installments"][0]["paymentMethod"] == "UPI"
    assert data["receipt"]["receiptNumber"].startswith("RCPT-")
    assert data["receipt"]["amountPaid"] == 600.0
    assert data["progress"]["installmentsCount"] == 1

    second = collect(target, 1000, "CASH")
    assert second.status_code == 201
    payment = second.json()["data"]["payment"]
    assert payment["id"] == data["payment"]["id"]
    assert payment["totalCollected"] == 1600.0
    assert payment["balanceAmount"] == 0.0
    assert payment["status"] == "completed"
    assert payment["paymentDate"] is not None

    third = collect(target, 100)
    assert third.status_code == 400
    body = third.json()
    assert body["success"] is False
    assert body["statusCode"] == 400
    assert "0.00" in body["message"]
    assert body["details"]["balanceAmount"] == 0.0


def test_over_balance_first_collection_leaves_nothing_behind(client, make_assignment, collect):
    target = make_assignment()

    resp = collect(target, 1600.01)
    assert resp.status_code == 400
    assert "1600.01" in resp.json()["message"]
    assert "1600.00" in resp.json()["message"]

    listing = client.get(f"{API}/payments").json()
    assert listing["pagination"]["total"] == 0


def test_zero_and_negative_collections_are_rejected(make_assignment, collect):
    target = make_assignment()
    assert collect(target, 0).status_code == 400
    assert collect(target, -50).status_code == 400


def test_oversized_amounts_are_validation_errors(client, make_assignment, collect):
    target = make_assignment()
    resp = collect(target, 1e30)
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"
    assert "collectedAmount" in resp.json()["details"]["errors"]

    payment_id = collect(target, 600).json()["data"]["payment"]["id"]
    resp = client.post(f"{API}/payments/{payment_id}/installments", json={"amount": 1e30, "paymentMethod": "CASH"})
    assert resp.status_code == 400
    assert client.get(f"{API}/payments/{payment_id}").json()["data"]["totalCollected"] == 600.0


def test_collection_uses_assignment_rent(make_assignment, collect):
    target = make_assignment(monthly_rent=2000)
    payment = collect(target, 500).json()["data"]["payment"]
    assert payment["totalAmount"] == 2000.0
    assert payment["balanceAmount"] == 1500.0


def test_unknown_student_or_seat_is_404(make_assignment, collect):
    target = make_assignment()
    assert collect({**target, "student_id": 9999}, 100).status_code == 404
    assert collect({**target, "seat_number": "Z99"}, 100).status_code == 404


def test_student_without_assignment_on_seat_is_404(client, make_assignment, collect):
    target = make_assignment(seat_number="B1")
    other = client.post(f"{API}/students", json={
        "firstName": "Ravi", "email": "ravi@example.com", "phone": "9123456780",
    }).json()["data"]

    resp = collect({**target, "student_id": other["id"]}, 100)
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


def test_missing_fields_are_validation_errors(client):
    resp = client.post(f"{API}/payments", json={"seatNo": "A12"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "validation_error"
    assert "studentId" in body["details"]["errors"]


def test_overdue_listing(client, db, make_assignment, collect):
    late = make_assignment(seat_number="C1", first_name="Late")
    paid = make_assignment(seat_number="C2", first_name="Paid")
    fresh = make_assignment(seat_number="C3", first_name="Fresh")

    late_id = collect(late, 600).json()["data"]["payment"]["id"]
    paid_id = collect(paid, 1600).json()["data"]["payment"]["id"]
    fresh_id = collect(fresh, 100).json()["data"]["payment"]["id"]

    yesterday = utcnow() - timedelta(days=1)
    for payment_id in (late_id, paid_id):
        db.query(Payment).filter(Payment.id == int(payment_id)).update(
            {"due_date": yesterday}, synchronize_session=False
        )
    db.commit()

    overdue = client.get(f"{API}/payments/overdue").json()
    ids = [p["id"] for p in overdue["data"]]
    assert ids == [late_id]
    assert overdue["data"][0]["displayStatus"] == "overdue"
    assert overdue["data"][0]["status"] == "partial"
    assert overdue["summary"]["totalOverdue"] == 1

    filtered = client.get(f"{API}/payments", params={"status": "overdue"}).json()
    assert [p["id"] for p in filtered["data"]] == [late_id]

    # Stored status is never rewritten
    assert client.get(f"{API}/payments/{late_id}").json()["data"]["status"] == "partial"
    assert fresh_id not in ids


def test_pending_payment_past_due_is_listed_overdue(client, db, make_assignment, collect):
    waiting = make_assignment(seat_number="D1", first_name="Waiting")
    done = make_assignment(seat_number="D2", first_name="Done")
    yesterday = utcnow() - timedelta(days=1)

    pending = Payment(
        student_id=waiting["student_id"],
        seat_id=waiting["seat_id"],
        shift_id=waiting["shift_id"],
        property_id=waiting["property_id"],
        assignment_id=waiting["assignment_id"],
        total_amount=Decimal("1600"),
        total_collected=Decimal("0"),
        balance_amount=Decimal("1600"),
        status="pending",
        due_date=yesterday,
        period_start=yesterday - timedelta(days=30),
        period_end=yesterday,
    )
    db.add(pending)
    db.commit()

    completed_id = collect(done, 1600).json()["data"]["payment"]["id"]
    db.query(Payment).filter(Payment.id == int(completed_id)).update(
        {"due_date": yesterday}, synchronize_session=False
    )
    db.commit()

    overdue = client.get(f"{API}/payments/overdue").json()
    assert [p["id"] for p in overdue["data"]] == [str(pending.id)]
    assert overdue["data"][0]["status"] == "pending"
    assert overdue["data"][0]["displayStatus"] == "overdue"
    assert overdue["summary"]["totalOverdueAmount"] == 1600.0


def test_pending_filter_includes_overdue_view(client, db, make_assignment, collect):
    target = make_assignment()
    payment_id = collect(target, 600).json()["data"]["payment"]["id"]

    assert client.get(f"{API}/payments", params={"status": "pending"}).json()["data"] == []

    db.query(Payment).filter(Payment.id == int(payment_id)).update(
        {"due_date": utcnow() - timedelta(days=3) + timedelta(hours=1)}, synchronize_session=False
    )
    db.commit()

    pending = client.get(f"{API}/payments", params={"status": "pending"}).json()
    assert [p["id"] for p in pending["data"]] == [payment_id]
    assert pending["data"][0]["overdueDays"] == 3


def test_payment_method_filter_uses_storage_vocabulary(client, make_assignment, collect):
    upi = make_assignment(seat_number="D1")
    card = make_assignment(seat_number="D2")
    upi_id = collect(upi, 600, "PHONEPE").json()["data"]["payment"]["id"]
    collect(card, 600, "CARD")

    for label in ("PHONEPE", "UPI", "PAYTM"):
        listing = client.get(f"{API}/payments", params={"paymentMethod": label}).json()
        assert [p["id"] for p in listing["data"]] == [upi_id]

    assert client.get(f"{API}/payments", params={"paymentMethod": "all"}).json()["pagination"]["total"] == 2


def test_list_summary_and_search(client, make_assignment, collect):
    asha = make_assignment(seat_number="E1", first_name="Asha")
    ravi = make_assignment(seat_number="E2", first_name="Ravi")
    collect(asha, 600)
    collect(ravi, 1600)

    listing = client.get(f"{API}/payments", params={"limit": 1}).json()
    assert listing["pagination"] == {"page": 1, "limit": 1, "total": 2, "totalPages": 2}
    assert listing["summary"]["totalAmount"] == 3200.0
    assert listing["summary"]["totalCollected"] == 2200.0
    assert listing["summary"]["totalBalance"] == 1000.0
    assert listing["summary"]["paymentCount"] == 2

    found = client.get(f"{API}/payments", params={"search": "rav"}).json()
    assert [p["studentName"] for p in found["data"]] == ["Ravi Verma"]

    for wildcard in ("%", "_", "a%a"):
        assert client.get(f"{API}/payments", params={"search": wildcard}).json()["data"] == []


def test_add_installment_by_payment_id(client, make_assignment, collect):
    target = make_assignment()
    payment_id = collect(target, 600).json()["data"]["payment"]["id"]

    resp = client.post(f"{API}/payments/{payment_id}/installments", json={
        "amount": 400, "paymentMethod": "BANK_TRANSFER", "collectedBy": "desk",
    })
    assert resp.status_code == 201
    payment = resp.json()["data"]["payment"]
    assert payment["totalCollected"] == 1000.0
    assert payment["installments"][-1]["paymentMethod"] == "BANK_TRANSFER"

    assert client.post(f"{API}/payments/9999/installments", json={
        "amount": 1, "paymentMethod": "CASH",
    }).status_code == 404


def test_update_is_rejected_once_completed(client, make_assignment, collect):
    target = make_assignment()
    payment_id = collect(target, 600).json()["data"]["payment"]["id"]

    ok = client.put(f"{API}/payments/{payment_id}", json={"notes": "Paying rest next week"})
    assert ok.status_code == 200
    assert ok.json()["data"]["notes"] == "Paying rest next week"

    bad_type = client.put(f"{API}/payments/{payment_id}", json={"feeType": "lunch"})
    assert bad_type.status_code == 400

    collect(target, 1000)
    resp = client.put(f"{API}/payments/{payment_id}", json={"notes": "too late"})
    assert resp.status_code == 400


def test_complete_requires_pending_and_method(client, db, make_assignment, collect):
    target = make_assignment()
    partial_id = collect(target, 600).json()["data"]["payment"]["id"]
    assert client.put(f"{API}/payments/{partial_id}/complete", json={"paymentMethod": "CASH"}).status_code == 400

    other = make_assignment(seat_number="F2")
    pending = Payment(
        student_id=other["student_id"],
        seat_id=other["seat_id"],
        shift_id=other["shift_id"],
        property_id=other["property_id"],
        assignment_id=other["assignment_id"],
        total_amount=Decimal("1600"),
        total_collected=Decimal("0"),
        balance_amount=Decimal("1600"),
        status="pending",
        due_date=utcnow() + timedelta(days=30),
        period_start=utcnow(),
        period_end=utcnow() + timedelta(days=30),
    )
    db.add(pending)
    db.commit()

    missing_method = client.put(f"{API}/payments/{pending.id}/complete", json={})
    assert missing_method.status_code == 400
    assert missing_method.json()["error"] == "validation_error"

    done = client.put(f"{API}/payments/{pending.id}/complete", json={"paymentMethod": "CARD"})
    assert done.status_code == 200
    payment = done.json()["data"]["payment"]
    assert payment["status"] == "completed"
    assert payment["balanceAmount"] == 0.0
    assert payment["installments"][0]["amount"] == 1600.0
    assert payment["installments"][0]["paymentMethod"] == "CARD"


def test_refund_only_from_completed(client, make_assignment, collect):
    target = make_assignment()
    payment_id = collect(target, 600).json()["data"]["payment"]["id"]
    assert client.put(f"{API}/payments/{payment_id}/refund", json={}).status_code == 400

    collect(target, 1000)
    resp = client.put(f"{API}/payments/{payment_id}/refund", json={"refundAmount": 800, "reason": "Moved out"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "refunded"
    assert data["refundDetails"]["amount"] == 800.0
    assert data["refundDetails"]["reason"] == "Moved out"


def test_delete_rules(client, make_assignment, collect):
    target = make_assignment()
    payment_id = collect(target, 600).json()["data"]["payment"]["id"]

    # assignment still active
    assert client.delete(f"{API}/payments/{payment_id}").status_code == 400

    client.post(f"{API}/seats/{target['seat_id']}/release", json={})
    resp = client.delete(f"{API}/payments/{payment_id}")
    assert resp.status_code == 200
    assert client.get(f"{API}/payments/{payment_id}").status_code == 404


def test_receipt_lookup(client, make_assignment, collect):
    target = make_assignment()
    first = collect(target, 600).json()["data"]
    collect(target, 400)
    payment_id = first["payment"]["id"]

    latest = client.get(f"{API}/payments/{payment_id}/receipt").json()["data"]
    assert latest["amountPaid"] == 400.0
    assert latest["amountInWords"] == "Rupees Four Hundred Only"

    named = client.get(f"{API}/payments/{payment_id}/receipt",
                       params={"receiptNumber": first["receipt"]["receiptNumber"]}).json()["data"]
    assert named["amountPaid"] == 600.0

    missing = client.get(f"{API}/payments/{payment_id}/receipt", params={"receiptNumber": "RCPT-0-0"})
    assert missing.status_code == 404


def test_student_payments_and_stats(client, make_assignment, collect):
    target = make_assignment()
    collect(target, 600, "UPI")

    mine = client.get(f"{API}/payments/student/{target['student_id']}").json()
    assert mine["pagination"]["total"] == 1
    assert mine["summary"]["paymentCounts"] == {"partial": 1}
    assert client.get(f"{API}/payments/student/9999").status_code == 404

    stats = client.get(f"{API}/payments/stats/payment-stats").json()["data"]
    assert stats["totalPayments"] == 1
    assert stats["totalCollected"] == 600.0
    assert stats["paymentMethods"] == [{"paymentMethod": "UPI", "count": 1, "totalCollected": 600.0}]

    dashboard = client.get(f"{API}/payments/stats/dashboard").json()["data"]
    assert dashboard["summary"]["collections"] == 600.0
    assert dashboard["summary"]["duePayments"] == 1000.0
    assert dashboard["monthlyTrend"][0]["dailyCollection"] == 600.0

    report = client.get(f"{API}/payments/report", params={"reportType": "daily"}).json()["data"]
    assert report["summary"]["totalCollections"] == 600.0
    assert report["summary"]["totalInstallments"] == 1
    assert client.get(f"{API}/payments/report", params={"reportType": "hourly"}).status_code == 400
