import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from prometheus_client import make_asgi_app

import storefront.models  # noqa: F401  registers tables on Base.metadata
from storefront.config import settings
from storefront.database import Base, engine
from storefront.middleware.metrics import MetricsMiddleware
from storefront.middleware.request_id import RequestIDMiddleware
from storefront.routers import (
    admin_customers,
    admin_events,
    admin_orders,
    admin_products,
    checkout,
    cron,
    public,
    webhooks,
)
from storefront.utils.logging import setup_logging
from storefront.utils.tracing import setup_tracing

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

tracing_enabled = setup_tracing("storefront", settings.otlp_endpoint)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up, creating database tables")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if tracing_enabled:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)
    logger.info("Startup complete")

    yield

    await engine.dispose()
    logger.info("Shutting down")


app = FastAPI(
    title="Storefront",
    description="Pre-order drops: menu, checkout, payment confirmation and pickup reminders",
    version="1.0.0",
    lifespan=lifespan,
)

if tracing_enabled:
    FastAPIInstrumentor.instrument_app(app)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(public.router, prefix="/api", tags=["public"])
app.include_router(checkout.router, prefix="/api/checkout", tags=["checkout"])
app.include_router(webhooks.router, prefix="/api/stripe", tags=["webhooks"])
app.include_router(admin_events.router, prefix="/api/admin/events", tags=["admin"])
app.include_router(admin_products.router, prefix="/api/admin/products", tags=["admin"])
app.include_router(admin_orders.router, prefix="/api/admin/orders", tags=["admin"])
app.include_router(admin_customers.router, prefix="/api/admin/customers", tags=["admin"])
app.include_router(cron.router, prefix="/api/cron", tags=["cron"])

# Expose Prometheus metrics at /metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
