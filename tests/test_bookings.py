import pytest

API = "/smlekha"


@pytest.fixture
def seat_and_students(client):
    prop = client.post(f"{API}/properties", json={"name": "Reading Room", "address": "4 Park St"}).json()["data"]
    seat = client.post(f"{API}/seats", json={"propertyId": prop["id"], "seatNumber": "R1"}).json()["data"]
    students = [
        client.post(f"{API}/students", json={
            "firstName": name, "email": f"{name.lower()}@example.com", "phone": "9000000000",
        }).json()["data"]
        for name in ("Meera", "Kabir")
    ]
    return seat, students


def book(client, seat, student, start, end=None):
    body = {"seatId": seat["id"], "studentId": student["id"], "startDate": start}
    if end:
        body["endDate"] = end
    return client.post(f"{API}/bookings", json=body)


def test_overlapping_booking_is_rejected(client, seat_and_students):
    seat, (meera, kabir) = seat_and_students

    first = book(client, seat, meera, "2026-03-01T09:00:00", "2026-03-05T09:00:00")
    assert first.status_code == 201
    assert client.get(f"{API}/seats/{seat['id']}").json()["data"]["status"] == "reserved"

    clash = book(client, seat, kabir, "2026-03-04T09:00:00", "2026-03-08T09:00:00")
    assert clash.status_code == 400
    assert clash.json()["details"]["conflictingBookingId"] == first.json()["data"]["id"]

    # touching windows do not overlap
    after = book(client, seat, kabir, "2026-03-05T09:00:00", "2026-03-08T09:00:00")
    assert after.status_code == 201


def test_open_ended_booking_blocks_later_windows(client, seat_and_students):
    seat, (meera, kabir) = seat_and_students
    assert book(client, seat, meera, "2026-03-01T09:00:00").status_code == 201
    assert book(client, seat, kabir, "2027-01-01T09:00:00", "2027-01-02T09:00:00").status_code == 400


def test_end_before_start_is_rejected(client, seat_and_students):
    seat, (meera, _) = seat_and_students
    resp = book(client, seat, meera, "2026-03-05T09:00:00", "2026-03-01T09:00:00")
    assert resp.status_code == 400


def test_cancel_and_complete_release_the_seat(client, seat_and_students):
    seat, (meera, kabir) = seat_and_students
    first = book(client, seat, meera, "2026-03-01T09:00:00", "2026-03-02T09:00:00").json()["data"]
    second = book(client, seat, kabir, "2026-03-03T09:00:00", "2026-03-04T09:00:00").json()["data"]

    cancelled = client.put(f"{API}/bookings/{first['id']}/cancel", json={"reason": "Exam postponed"})
    assert cancelled.status_code == 200
    assert cancelled.json()["data"]["cancellationReason"] == "Exam postponed"
    # still one active booking
    assert client.get(f"{API}/seats/{seat['id']}").json()["data"]["status"] == "reserved"

    done = client.put(f"{API}/bookings/{second['id']}/complete", json={"notes": "ok"})
    assert done.status_code == 200
    assert client.get(f"{API}/seats/{seat['id']}").json()["data"]["status"] == "available"

    # terminal bookings stay terminal
    assert client.put(f"{API}/bookings/{first['id']}/complete").status_code == 400
    assert client.put(f"{API}/bookings/{second['id']}", json={"purpose": "again"}).status_code == 400


def test_update_rechecks_overlap(client, seat_and_students):
    seat, (meera, kabir) = seat_and_students
    book(client, seat, meera, "2026-03-01T09:00:00", "2026-03-02T09:00:00")
    later = book(client, seat, kabir, "2026-03-03T09:00:00", "2026-03-04T09:00:00").json()["data"]

    resp = client.put(f"{API}/bookings/{later['id']}", json={"startDate": "2026-03-01T12:00:00"})
    assert resp.status_code == 400

    ok = client.put(f"{API}/bookings/{later['id']}", json={"endDate": "2026-03-06T09:00:00", "purpose": "Finals"})
    assert ok.status_code == 200
    assert ok.json()["data"]["purpose"] == "Finals"


def test_occupied_seat_cannot_be_booked(client, make_assignment):
    target = make_assignment()
    resp = client.post(f"{API}/bookings", json={
        "seatId": target["seat_id"], "studentId": target["student_id"], "startDate": "2026-03-01T09:00:00",
    })
    assert resp.status_code == 400


def test_booking_stats(client, seat_and_students):
    seat, (meera, kabir) = seat_and_students
    first = book(client, seat, meera, "2026-03-01T00:00:00", "2026-03-03T00:00:00").json()["data"]
    book(client, seat, kabir, "2026-03-05T00:00:00", "2026-03-06T00:00:00")
    client.put(f"{API}/bookings/{first['id']}/cancel")

    stats = client.get(f"{API}/bookings/stats").json()["data"]
    assert stats["totalBookings"] == 2
    assert stats["activeBookings"] == 1
    assert stats["cancelledBookings"] == 1
    by_status = {s["status"]: s["totalDurationDays"] for s in stats["stats"]}
    assert by_status == {"cancelled": 2.0, "active": 1.0}
