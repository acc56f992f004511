import os
import sys

# Override env vars for testing (must happen before config is imported)
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_TOKEN"] = ""
os.environ["JWT_SECRET"] = ""
os.environ["ADMIN_PASSWORD"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_FILE"] = ""

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from fastapi.testclient import TestClient

from database import Base, engine, SessionLocal
from main import app

API = "/smlekha"


@pytest.fixture
def client():
    """Fresh schema per test on the shared in-memory database."""
    Base.metadata.create_all(bind=engine)
    with TestClient(app) as test_client:
        yield test_client
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(client):
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def make_assignment(client):
    """
    Create property -> shift -> seat -> student and assign the seat.
    Returns the ids needed by payment tests.
    """
    counter = {"n": 0}

    def _make(seat_number="A12", monthly_rent=None, first_name="Asha"):
        counter["n"] += 1
        n = counter["n"]
        prop = client.post(f"{API}/properties", json={
            "name": f"Central Library {n}",
            "address": "12 Station Road",
        }).json()["data"]
        shift = client.post(f"{API}/shifts", json={
            "name": "Morning",
            "startTime": "06:00",
            "endTime": "12:00",
            "fee": 900,
            "propertyId": prop["id"],
        }).json()["data"]
        seat = client.post(f"{API}/seats", json={
            "propertyId": prop["id"],
            "seatNumber": seat_number,
        }).json()["data"]
        student = client.post(f"{API}/students", json={
            "firstName": first_name,
            "lastName": "Verma",
            "email": f"student{n}@example.com",
            "phone": "9876543210",
        }).json()["data"]

        body = {"studentId": student["id"], "shiftId": shift["id"]}
        if monthly_rent is not None:
            body["monthlyRent"] = monthly_rent
        resp = client.post(f"{API}/seats/{seat['id']}/assign", json=body)
        assert resp.status_code == 201, resp.text

        return {
            "property_id": prop["id"],
            "shift_id": shift["id"],
            "seat_id": seat["id"],
            "seat_number": seat_number,
            "student_id": student["id"],
            "assignment_id": resp.json()["data"]["id"],
        }

    return _make


@pytest.fixture
def collect(client):
    """POST /payments for a student's seat."""
    def _collect(target, amount, method="CASH", **extra):
        body = {
            "studentId": target["student_id"],
            "seatNo": target["seat_number"],
            "collectedAmount": amount,
            "paymentMethod": method,
        }
        body.update(extra)
        return client.post(f"{API}/payments", json=body)

    return _collect
