"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from hohema_loans.api.middleware import RequestIDMiddleware, MetricsMiddleware
from hohema_loans.api.v1 import loan_applications, profile, system_settings
from hohema_loans.infrastructure.cache.pin_store import InMemoryPinStore
from hohema_loans.infrastructure.observability.logging import setup_logging
from hohema_loans.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Ho Hema Loans",
        description="Micro-loan origination: affordability, loan terms and the application wizard",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Process-local signing PINs; set PIN_STORE_BACKEND=database when running several instances
    app.state.pin_store = InMemoryPinStore()

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(system_settings.router, prefix="/api", tags=["settings"])
    app.include_router(profile.router, prefix="/api", tags=["affordability"])
    app.include_router(loan_applications.router, prefix="/api", tags=["loan applications"])

    return app


app = create_app()
