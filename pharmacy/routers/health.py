from fastapi import APIRouter, Depends

from pharmacy.config import get_settings
from pharmacy.core.dates import utc_now
from pharmacy.database.session import Store
from pharmacy.dependencies import get_store

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(store: Store = Depends(get_store)):
    settings = get_settings()
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "time": utc_now().isoformat(),
        "database": {"connected": store.connected},
    }
