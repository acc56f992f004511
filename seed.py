from decimal import Decimal

from database import SessionLocal, engine, Base
from models.masters import Property, Shift
from models.seats import Seat
from models.students import Student, SeatAssignment
from models.fee_models import Payment, PaymentInstallment
from models.bookings import Booking
from models.attendance import Attendance

# Creates any missing tables
Base.metadata.create_all(bind=engine)

db = SessionLocal()

ROWS = "ABC"
SEATS_PER_ROW = 12


def seed_data():
    print("🌱 Seeding master data...")

    # 1. PROPERTY
    prop = db.query(Property).filter_by(name="Smlekha Central Library").first()
    if not prop:
        prop = Property(
            name="Smlekha Central Library",
            type="library",
            address="12 Station Road",
            phone="9876543210",
            opening_hours="06:00-22:00",
            total_seats=len(ROWS) * SEATS_PER_ROW,
        )
        db.add(prop)
        db.commit()
        db.refresh(prop)
        print(f"✅ Added property: {prop.name}")
    else:
        print(f"ℹ️  Exists: {prop.name}")

    # 2. SHIFTS
    shifts = [
        {"name": "Morning", "start": "06:00", "end": "12:00", "fee": "900"},
        {"name": "Evening", "start": "12:00", "end": "18:00", "fee": "900"},
        {"name": "Full Day", "start": "06:00", "end": "22:00", "fee": "1600"},
    ]
    for s in shifts:
        exists = db.query(Shift).filter_by(property_id=prop.id, name=s["name"]).first()
        if not exists:
            db.add(Shift(
                name=s["name"],
                start_time=s["start"],
                end_time=s["end"],
                fee=Decimal(s["fee"]),
                property_id=prop.id,
            ))
            print(f"  └── Shift {s['name']} added")
    db.commit()

    # 3. SEATS (A1..C12)
    added = 0
    for row_index, row in enumerate(ROWS, start=1):
        for col in range(1, SEATS_PER_ROW + 1):
            number = f"{row}{col}"
            exists = db.query(Seat).filter_by(property_id=prop.id, seat_number=number).first()
            if not exists:
                db.add(Seat(property_id=prop.id, seat_number=number, row=row_index, column=col))
                added += 1
    db.commit()
    print(f"💺 Added {added} seats")

    print("\n🎉 All data seeded successfully!")
    db.close()


if __name__ == "__main__":
    seed_data()
