import logging

from fastapi import APIRouter, Depends, HTTPException

from pharmacy.core.security import OFFLINE_TOKEN, SESSION_TOKEN, verify_offline_admin, verify_password
from pharmacy.database.session import Store
from pharmacy.dependencies import get_store
from pharmacy.schemas.user import LoginRequest, LoginResponse, UserRead
from pharmacy.services.catalog_service import find_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, store: Store = Depends(get_store)):
    if not store.connected:
        # Lets the admin reach the database settings page.
        if verify_offline_admin(payload.username, payload.password):
            logger.warning("Offline admin login while the database is disconnected")
            offline_user = UserRead(id=0, username=payload.username.strip(), real_name="Administrator", role="admin")
            return LoginResponse(message="Logged in (offline mode)", token=OFFLINE_TOKEN, user=offline_user)
        raise HTTPException(status_code=401, detail="Database is not connected; only the admin can log in")

    db = store.session()
    try:
        user = find_user(db, payload.username)
    finally:
        db.close()
    if user is None or not verify_password(payload.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid username or password")

    return LoginResponse(message="Login successful", token=SESSION_TOKEN, user=UserRead.model_validate(user))


__all__ = ["router"]
