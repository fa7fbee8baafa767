from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pharmacy.dependencies import get_db
from pharmacy.models.customer import Customer
from pharmacy.schemas.customer import CustomerCreate, CustomerRead, CustomerUpdate
from pharmacy.services.catalog_service import create_customer, delete_record, get_record, list_records, update_record

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.get("", response_model=list[CustomerRead])
def list_customers(db: Session = Depends(get_db)):
    return list_records(db, Customer)


@router.post("", response_model=CustomerRead, status_code=201)
def add_customer(payload: CustomerCreate, db: Session = Depends(get_db)):
    return create_customer(db, payload.model_dump())


@router.put("/{customer_id}", response_model=CustomerRead)
def edit_customer(customer_id: int, payload: CustomerUpdate, db: Session = Depends(get_db)):
    customer = get_record(db, Customer, customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return update_record(db, customer, payload.model_dump(exclude_unset=True))


@router.delete("/{customer_id}")
def remove_customer(customer_id: int, db: Session = Depends(get_db)):
    if not delete_record(db, Customer, customer_id):
        raise HTTPException(status_code=404, detail="Customer not found")
    return {"message": "Customer deleted"}


__all__ = ["router"]
