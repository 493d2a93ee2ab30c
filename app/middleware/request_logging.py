import logging
import time

from fastapi import Request

from core.prometheus_metrics import prometheus_collector

logger = logging.getLogger("bakery.requests")


async def log_requests(request: Request, call_next):
    """Logs every request with its duration and counts it for Prometheus."""
    start_time = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start_time) * 1000, 2)

    route = request.scope.get("route")
    path = getattr(route, "path", request.url.path)
    prometheus_collector.record_http_request(request.method, path, response.status_code)

    logger.info(
        f"{request.method} {request.url.path} {response.status_code}",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
            "user_id": getattr(request.state, "user_id", None),
        },
    )
    return response
