"""Small helpers shared by routers: money, time, pagination, response envelope."""
import datetime
import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

import config
from errors import BadRequestError

CENT = Decimal("0.01")


def utcnow():
    """Naive UTC timestamp, matching what the DateTime columns store."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def to_money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    try:
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise BadRequestError("Invalid amount", {"amount": str(value)})


def money_out(value):
    """Decimal -> float for JSON bodies."""
    return float(to_money(value))


def iso(value):
    return value.isoformat() if value else None


def as_datetime(value):
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
        return value
    return datetime.datetime.combine(value, datetime.time.min)


def like_pattern(term):
    """Substring pattern for ilike(..., escape="\\") with % and _ matched literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def page_params(page, limit):
    page = max(int(page or 1), 1)
    limit = int(limit or config.DEFAULT_PAGE_SIZE)
    limit = min(max(limit, 1), config.MAX_PAGE_SIZE)
    return page, limit, (page - 1) * limit


def pagination(page, limit, total):
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def success(data=None, message=None, **extra):
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    body.update({k: v for k, v in extra.items() if v is not None})
    return body
