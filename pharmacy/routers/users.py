from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pharmacy.core.constants import USER_ROLES
from pharmacy.dependencies import get_db
from pharmacy.models.user import User
from pharmacy.schemas.user import UserCreate, UserRead, UserUpdate
from pharmacy.services.catalog_service import create_user, delete_record, find_user, get_record, list_records, update_user

router = APIRouter(prefix="/users", tags=["Users"])


def _check_role(role):
    if role is not None and role not in USER_ROLES:
        raise HTTPException(status_code=400, detail="role must be one of: {}".format(", ".join(USER_ROLES)))


@router.get("", response_model=list[UserRead])
def list_users(db: Session = Depends(get_db)):
    return list_records(db, User)


@router.post("", response_model=UserRead, status_code=201)
def add_user(payload: UserCreate, db: Session = Depends(get_db)):
    _check_role(payload.role)
    if find_user(db, payload.username) is not None:
        raise HTTPException(status_code=409, detail="Username already exists")
    return create_user(db, **payload.model_dump())


@router.put("/{user_id}", response_model=UserRead)
def edit_user(user_id: int, payload: UserUpdate, db: Session = Depends(get_db)):
    _check_role(payload.role)
    user = get_record(db, User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if payload.username:
        existing = find_user(db, payload.username)
        if existing is not None and existing.id != user.id:
            raise HTTPException(status_code=409, detail="Username already exists")
    return update_user(db, user, payload.model_dump(exclude_unset=True))


@router.delete("/{user_id}")
def remove_user(user_id: int, db: Session = Depends(get_db)):
    if not delete_record(db, User, user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return {"message": "User deleted"}


__all__ = ["router"]
