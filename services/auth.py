"""
Bearer-token checks for the admin API.

Two kinds of token are accepted on the Authorization header: the static
API_TOKEN (service-to-service) and HS256 JWTs signed with JWT_SECRET, issued
by POST /smlekha/auth/login. With neither configured the API is open.
"""
import secrets
from datetime import timedelta

from jose import JWTError, jwt

import config
from errors import UnauthorizedError
from utils import utcnow


def auth_enabled():
    return bool(config.API_TOKEN or config.JWT_SECRET)


def create_access_token(subject, role="admin"):
    if not config.JWT_SECRET:
        raise UnauthorizedError("Token login is not configured")
    expire = utcnow() + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": str(subject), "role": role, "exp": expire}
    return jwt.encode(claims, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token):
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise UnauthorizedError("Session expired, please login again")
    if payload.get("sub") is None or payload.get("role") != "admin":
        raise UnauthorizedError("Unauthorized role")
    return payload


def check_credentials(username, password):
    if not config.ADMIN_PASSWORD:
        raise UnauthorizedError("Token login is not configured")
    user_ok = secrets.compare_digest((username or "").encode(), config.ADMIN_USERNAME.encode())
    pass_ok = secrets.compare_digest((password or "").encode(), config.ADMIN_PASSWORD.encode())
    if not (user_ok and pass_ok):
        raise UnauthorizedError("Invalid username or password")


def authorize_header(header):
    """Raise UnauthorizedError unless the Authorization header carries a valid token."""
    scheme, _, token = (header or "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError("Not authorized to access this route")

    if config.API_TOKEN and secrets.compare_digest(token.encode(), config.API_TOKEN.encode()):
        return {"sub": "service", "role": "admin"}
    if config.JWT_SECRET:
        return decode_access_token(token)
    raise UnauthorizedError("Not authorized to access this route")
