from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

import models  # noqa: F401  registers every table on Base.metadata
from core.db import init_models
from core.environment import get_cors_origins
from core.logging import setup_logging
from exceptions import register_exception_handlers
from middleware.rate_limit import custom_rate_limit_exceeded, limiter
from middleware.request_logging import log_requests
from routers import (
    auth,
    auto_scheduling,
    distribution_trips,
    health,
    metrics,
    orders,
    pricing,
    products,
    stores,
    users,
    vehicles,
)

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    logger.info("Bakery distribution API started")
    yield
    logger.info("Bakery distribution API stopped")


app = FastAPI(title="Bakery Distribution API", lifespan=lifespan)

# Register exception handlers
register_exception_handlers(app)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, custom_rate_limit_exceeded)

app.middleware("http")(log_requests)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],   # Allows POST, GET, OPTIONS, etc
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(metrics.router)
for api_router in (
    auth.router,
    users.router,
    vehicles.router,
    stores.router,
    products.router,
    orders.router,
    auto_scheduling.router,
    distribution_trips.router,
    pricing.router,
):
    app.include_router(api_router, prefix="/api")


@app.get("/", tags=["root"])
def root():
    return {"success": True, "message": "Bakery Distribution API"}
