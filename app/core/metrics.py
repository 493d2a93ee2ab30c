import time
import uuid
import logging
from functools import wraps
from typing import Any, Optional
from contextlib import asynccontextmanager

from core.prometheus_metrics import prometheus_collector
from models.user import User

logger = logging.getLogger(__name__)


def _acting_user_id(args, kwargs) -> Optional[int]:
    """Services take the acting user as a plain argument."""
    for value in list(kwargs.values()) + list(args[1:]):
        if isinstance(value, User):
            return value.id
    return kwargs.get("user_id")


def _outcome(exc: Optional[BaseException]) -> str:
    # domain errors below 500 are rejections
    if exc is None:
        return "success"
    return "rejected" if getattr(exc, "status_code", 500) < 500 else "error"


def _describe(result: Any) -> dict:
    if isinstance(result, dict):
        return {"result_keys": list(result.keys())}
    if isinstance(result, tuple):
        return {"result_size": len(result)}
    if hasattr(result, "id"):
        return {"entity": type(result).__name__, "entity_id": result.id}
    return {}


def _record(service_name: str, method_name: str, started: float, exc, user_id, extra: dict):
    duration_seconds = time.perf_counter() - started
    status = _outcome(exc)
    prometheus_collector.record_service_call(
        service_name=service_name,
        method_name=method_name,
        duration_seconds=duration_seconds,
        status=status,
    )
    logger.info(
        f"{service_name}.{method_name} finished with {status}",
        extra={
            "service_name": service_name,
            "method_name": method_name,
            "duration_ms": round(duration_seconds * 1000, 2),
            "status": status,
            "user_id": user_id,
            **extra,
        },
    )


def track_performance(service_name: Optional[str] = None, include_metadata: bool = False):
    """
    Time a service coroutine, count its outcome and log one line per call.

    Outcomes are success, rejected (a domain error below 500, such as a
    failed business rule) and error. With include_metadata the log line also
    describes the returned value.

    Usage:
    @track_performance(service_name="OrderService")
    async def create_order(self, data, user):
        ...
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            actual_service_name = service_name or (type(args[0]).__name__ if args else "Unknown")
            user_id = _acting_user_id(args, kwargs)
            extra = {"correlation_id": str(uuid.uuid4())}
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                if _outcome(exc) == "error":
                    logger.error(f"Error in {actual_service_name}.{func.__name__}: {exc}")
                _record(actual_service_name, func.__name__, started, exc, user_id, extra)
                raise
            if include_metadata:
                extra.update(_describe(result))
            _record(actual_service_name, func.__name__, started, None, user_id, extra)
            return result

        return wrapper
    return decorator


@asynccontextmanager
async def metrics_context(service_name: str, method_name: str, user_id: Optional[int] = None):
    """Track a block that is not a whole service method, e.g. a nested scheduling run."""
    started = time.perf_counter()
    try:
        yield
    except Exception as exc:
        _record(service_name, method_name, started, exc, user_id, {})
        raise
    _record(service_name, method_name, started, None, user_id, {})
