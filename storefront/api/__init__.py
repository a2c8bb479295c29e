# storefront/api/__init__.py
from fastapi import FastAPI

from storefront.api.errors import register_exception_handlers
from storefront.api.routers import health, orders


def create_app(**kwargs) -> FastAPI:
    app = FastAPI(
        title="Storefront Order Service",
        version="1.0.0",
        **kwargs,
    )

    # Include routers
    app.include_router(health.router)
    app.include_router(orders.router)

    register_exception_handlers(app)
    return app
