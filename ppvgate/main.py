"""
Main FastAPI application for the PPV gate.
Serves checkout, payment webhooks, access checks, stream URLs, health and metrics.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ppvgate.api.errors import register_error_handlers
from ppvgate.api.middleware import RequestContextMiddleware
from ppvgate.api.routes import events, health, ppv, webhooks
from ppvgate.core.config import settings
from ppvgate.core.logging import configure_logging
from ppvgate.db.session import init_db
from ppvgate.services.factory import build_collaborators
from ppvgate.utils.metrics import router as metrics_router
from ppvgate.workers.tasks.grants import enqueue_grant_retry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if settings.db_create_tables:
        init_db()
    app.state.collaborators = build_collaborators(settings)
    app.state.grant_retry_queue = enqueue_grant_retry
    logger.info("app_started")
    try:
        yield
    finally:
        app.state.collaborators.close()


app = FastAPI(
    title="PPV Gate API",
    description="Pay-per-view checkout, fulfillment and stream access",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)

register_error_handlers(app)

# Routers
app.include_router(health.router, tags=["health"])
app.include_router(ppv.router)
app.include_router(events.router)
app.include_router(webhooks.router)
app.include_router(metrics_router)
