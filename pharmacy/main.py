import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pharmacy.config import Settings, get_settings
from pharmacy.core.http_errors import register_exception_handlers
from pharmacy.core.logging import setup_logging
from pharmacy.database.session import Store
from pharmacy.routers import (
    auth_router,
    customers_router,
    health_router,
    inbounds_router,
    medicines_router,
    reports_router,
    sales_router,
    search_router,
    stock_router,
    suppliers_router,
    system_router,
    users_router,
)
from pharmacy.services.catalog_service import seed_admin
from pharmacy.services.db_config_service import resolve_database_url

logger = logging.getLogger(__name__)

API_ROUTERS = (
    auth_router,
    reports_router,
    users_router,
    medicines_router,
    customers_router,
    suppliers_router,
    inbounds_router,
    sales_router,
    stock_router,
    system_router,
    search_router,
)


def open_store(settings: Settings) -> Store:
    """Connect, create the schema and seed the admin; a dead database leaves the store disconnected."""
    store = Store(resolve_database_url(settings), busy_timeout_seconds=settings.DB_BUSY_TIMEOUT_SECONDS)
    if store.initialize():
        db = store.session()
        try:
            seed_admin(db)
        finally:
            db.close()
        logger.info("Database ready (%s)", store.engine.url.render_as_string(hide_password=True))
    else:
        logger.warning("Starting without a database; configure it under /api/system/database")
    return store


def create_app(store: Optional[Store] = None) -> FastAPI:
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "store", None) is None:
            app.state.store = open_store(settings)
        try:
            yield
        finally:
            app.state.store.dispose()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.store = store
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Authorization"],
    )
    register_exception_handlers(app)

    app.include_router(health_router)
    for router in API_ROUTERS:
        app.include_router(router, prefix=settings.API_PREFIX)
    return app


setup_logging()
app = create_app()


__all__ = ["app", "create_app", "open_store"]
