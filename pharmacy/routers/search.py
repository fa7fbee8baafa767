from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pharmacy.dependencies import get_db
from pharmacy.schemas.customer import CustomerRead
from pharmacy.schemas.supplier import SupplierRead
from pharmacy.schemas.user import UserRead
from pharmacy.services.catalog_service import search_customers, search_suppliers, search_users

router = APIRouter(prefix="/search", tags=["Search"])


@router.get("/users", response_model=list[UserRead])
def find_users(keyword: str = Query("", description="Username or real name fragment"), db: Session = Depends(get_db)):
    return search_users(db, keyword)


@router.get("/customers", response_model=list[CustomerRead])
def find_customers(keyword: str = Query("", description="Name or phone fragment"), db: Session = Depends(get_db)):
    return search_customers(db, keyword)


@router.get("/suppliers", response_model=list[SupplierRead])
def find_suppliers(keyword: str = Query("", description="Name or contact fragment"), db: Session = Depends(get_db)):
    return search_suppliers(db, keyword)


__all__ = ["router"]
