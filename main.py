import logging

from fastapi import FastAPI, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import config
from database import engine, Base, get_db
from errors import register_error_handlers, error_response, UnauthorizedError
from services.auth import auth_enabled, authorize_header

# --- IMPORT ROUTERS (APIs) ---
from routers import auth, masters, seats, students, payments, bookings, attendance, reports

# --- IMPORT MODELS (registers every table on Base.metadata) ---
from models.masters import Property, Shift
from models.seats import Seat
from models.students import Student, SeatAssignment
from models.fee_models import Payment, PaymentInstallment
from models.bookings import Booking
from models.attendance import Attendance
from utils import utcnow

config.configure_logging()
logger = logging.getLogger(__name__)

# --- CREATE DATABASE TABLES ---
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Smlekha Admin API")
register_error_handlers(app)

PUBLIC_PATHS = {f"{config.API_PREFIX}/health", f"{config.API_PREFIX}/auth/login"}


# ==========================================
# SECURITY MIDDLEWARE
# ==========================================
@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    """Once a token is configured, every /smlekha route except health and login needs it."""
    path = request.url.path

    if auth_enabled() and path.startswith(config.API_PREFIX) and path not in PUBLIC_PATHS \
            and request.method != "OPTIONS":
        try:
            authorize_header(request.headers.get("authorization"))
        except UnauthorizedError as exc:
            logger.warning("Rejected %s %s: %s", request.method, path, exc.message)
            return error_response(exc.status_code, exc.error_code, exc.message)

    return await call_next(request)


# ==========================================
# CORS MIDDLEWARE (dashboard origins)
# ==========================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- REGISTER ROUTERS ---
app.include_router(auth.router)
app.include_router(masters.router)
app.include_router(seats.router)
app.include_router(students.router)
app.include_router(payments.router)
app.include_router(bookings.router)
app.include_router(attendance.router)
app.include_router(reports.router)


@app.get(f"{config.API_PREFIX}/health")
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check failed")
        return error_response(503, "server_error", "Database error")
    return {
        "success": True,
        "data": {"status": "ok", "database": "ok", "timestamp": utcnow().isoformat()},
    }
