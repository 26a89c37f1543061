"""API routes."""

from disbursement_engine.api.routes.health import router as health_router
from disbursement_engine.api.routes.salary import router as salary_router
from disbursement_engine.api.routes.webhooks import router as webhooks_router

__all__ = ["health_router", "salary_router", "webhooks_router"]
