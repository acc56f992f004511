import logging

from fastapi import APIRouter, Request

import config
from errors import UnauthorizedError
from schemas.common import CamelModel
from services.auth import check_credentials, create_access_token, authorize_header
from utils import success

logger = logging.getLogger(__name__)

# ✅ Router setup with prefix
router = APIRouter(prefix=f"{config.API_PREFIX}/auth", tags=["Authentication"])


class LoginSchema(CamelModel):
    username: str
    password: str


# 1. Login (exchanges admin credentials for a JWT)
@router.post("/login")
def login(data: LoginSchema):
    try:
        check_credentials(data.username, data.password)
    except UnauthorizedError:
        logger.warning("Failed login for %s", data.username)
        raise

    token = create_access_token(data.username)
    logger.info("Issued access token for %s", data.username)
    return success({
        "accessToken": token,
        "tokenType": "bearer",
        "expiresIn": config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }, message="Login successful")


# 2. Who am I (token is validated again here so the route also works with auth off)
@router.get("/me")
def me(request: Request):
    header = request.headers.get("authorization")
    if not header:
        return success({"username": None, "role": "anonymous"})
    claims = authorize_header(header)
    return success({"username": claims["sub"], "role": claims["role"]})
