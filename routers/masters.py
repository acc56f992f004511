import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

import config
from database import get_db
from errors import NotFoundError, ConflictError
from models.masters import Property, Shift
from models.seats import Seat
from schemas.masters import PropertyCreate, PropertyUpdate, ShiftCreate, ShiftUpdate
from utils import iso, money_out, success

logger = logging.getLogger(__name__)

router = APIRouter(prefix=config.API_PREFIX, tags=["Properties & Shifts"])


def property_out(prop, seat_count=None):
    return {
        "id": prop.id,
        "name": prop.name,
        "type": prop.type,
        "address": prop.address,
        "phone": prop.phone,
        "email": prop.email,
        "description": prop.description,
        "openingHours": prop.opening_hours,
        "totalSeats": prop.total_seats if seat_count is None else seat_count,
        "createdAt": iso(prop.created_at),
        "updatedAt": iso(prop.updated_at),
    }


def shift_out(shift):
    return {
        "id": shift.id,
        "name": shift.name,
        "startTime": shift.start_time,
        "endTime": shift.end_time,
        "fee": money_out(shift.fee),
        "propertyId": shift.property_id,
    }


def get_property_or_404(db: Session, property_id: int) -> Property:
    prop = db.query(Property).filter(Property.id == property_id).first()
    if not prop:
        raise NotFoundError("Property not found")
    return prop


def get_shift_or_404(db: Session, shift_id: int) -> Shift:
    shift = db.query(Shift).filter(Shift.id == shift_id).first()
    if not shift:
        raise NotFoundError("Shift not found")
    return shift


# =======================
# 1. PROPERTY APIs
# =======================
@router.get("/properties")
def list_properties(db: Session = Depends(get_db)):
    counts = dict(
        db.query(Seat.property_id, func.count(Seat.id))
        .filter(Seat.deleted_at.is_(None))
        .group_by(Seat.property_id)
        .all()
    )
    props = db.query(Property).order_by(Property.name).all()
    return success([property_out(p, counts.get(p.id, 0)) for p in props])


@router.get("/properties/{property_id}")
def get_property(property_id: int, db: Session = Depends(get_db)):
    prop = get_property_or_404(db, property_id)
    data = property_out(prop)
    data["shifts"] = [shift_out(s) for s in prop.shifts]
    return success(data)


@router.post("/properties", status_code=201)
def create_property(item: PropertyCreate, db: Session = Depends(get_db)):
    prop = Property(**item.model_dump())
    db.add(prop)
    db.commit()
    db.refresh(prop)
    logger.info("Created property %s (%s)", prop.id, prop.name)
    return success(property_out(prop), message="Property created successfully")


@router.put("/properties/{property_id}")
def update_property(property_id: int, item: PropertyUpdate, db: Session = Depends(get_db)):
    prop = get_property_or_404(db, property_id)
    for key, value in item.model_dump(exclude_unset=True).items():
        setattr(prop, key, value)
    db.commit()
    db.refresh(prop)
    return success(property_out(prop), message="Property updated successfully")


@router.delete("/properties/{property_id}")
def delete_property(property_id: int, db: Session = Depends(get_db)):
    prop = get_property_or_404(db, property_id)
    if db.query(Seat.id).filter(Seat.property_id == property_id).first():
        raise ConflictError("Cannot delete a property that still has seats")
    for shift in prop.shifts:
        db.delete(shift)
    db.delete(prop)
    db.commit()
    logger.info("Deleted property %s", property_id)
    return success({"id": property_id}, message="Property deleted successfully")


# =======================
# 2. SHIFT APIs
# =======================
@router.get("/shifts")
def list_shifts(property_id: Optional[int] = None, db: Session = Depends(get_db)):
    query = db.query(Shift)
    if property_id:
        query = query.filter(Shift.property_id == property_id)
    return success([shift_out(s) for s in query.order_by(Shift.start_time).all()])


@router.get("/shifts/{shift_id}")
def get_shift(shift_id: int, db: Session = Depends(get_db)):
    return success(shift_out(get_shift_or_404(db, shift_id)))


@router.post("/shifts", status_code=201)
def create_shift(item: ShiftCreate, db: Session = Depends(get_db)):
    get_property_or_404(db, item.property_id)
    shift = Shift(**item.model_dump())
    db.add(shift)
    db.commit()
    db.refresh(shift)
    return success(shift_out(shift), message="Shift created successfully")


@router.put("/shifts/{shift_id}")
def update_shift(shift_id: int, item: ShiftUpdate, db: Session = Depends(get_db)):
    shift = get_shift_or_404(db, shift_id)
    for key, value in item.model_dump(exclude_unset=True).items():
        setattr(shift, key, value)
    db.commit()
    db.refresh(shift)
    return success(shift_out(shift), message="Shift updated successfully")


@router.delete("/shifts/{shift_id}")
def delete_shift(shift_id: int, db: Session = Depends(get_db)):
    shift = get_shift_or_404(db, shift_id)
    db.delete(shift)
    db.commit()
    return success({"id": shift_id}, message="Shift deleted successfully")
