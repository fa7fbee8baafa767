from pharmacy.routers.auth import router as auth_router
from pharmacy.routers.customers import router as customers_router
from pharmacy.routers.health import router as health_router
from pharmacy.routers.inbounds import router as inbounds_router
from pharmacy.routers.medicines import router as medicines_router
from pharmacy.routers.reports import router as reports_router
from pharmacy.routers.sales import router as sales_router
from pharmacy.routers.search import router as search_router
from pharmacy.routers.stock import router as stock_router
from pharmacy.routers.suppliers import router as suppliers_router
from pharmacy.routers.system import router as system_router
from pharmacy.routers.users import router as users_router

__all__ = [
    "auth_router",
    "customers_router",
    "health_router",
    "inbounds_router",
    "medicines_router",
    "reports_router",
    "sales_router",
    "search_router",
    "stock_router",
    "suppliers_router",
    "system_router",
    "users_router",
]
