# marketplace/api/__init__.py
from fastapi import FastAPI

from marketplace.api.routers import carts, health, notifications, orders, payments, wallet


def create_app() -> FastAPI:
    app = FastAPI(
        title="Marketplace Settlement Service",
        version="1.0.0",
    )

    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(payments.router)
    app.include_router(orders.router)
    app.include_router(wallet.router)
    app.include_router(notifications.router)

    return app
