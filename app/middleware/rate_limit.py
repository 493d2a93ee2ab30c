from fastapi import Request
from fastapi.responses import JSONResponse
from prometheus_client import Counter
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from core.environment import is_rate_limit_enabled
from core.prometheus_metrics import REGISTRY

RATE_LIMIT_MESSAGE = "تم تجاوز عدد المحاولات المسموح بها، يرجى المحاولة لاحقاً"
RETRY_AFTER_SECONDS = 60


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop when behind the proxy, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(key_func=client_ip, enabled=is_rate_limit_enabled())

rate_limit_exceeded_counter = Counter(
    'bakery_rate_limit_exceeded_total',
    'Requests refused by the rate limiter',
    ['endpoint'],
    registry=REGISTRY,
)


def custom_rate_limit_exceeded(request: Request, exc: RateLimitExceeded):
    route = request.scope.get("route")
    rate_limit_exceeded_counter.labels(endpoint=getattr(route, "path", request.url.path)).inc()
    return JSONResponse(
        status_code=429,
        content={"success": False, "message": RATE_LIMIT_MESSAGE, "data": {"limit": str(exc.detail)}},
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )
