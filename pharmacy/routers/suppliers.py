from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pharmacy.dependencies import get_db
from pharmacy.models.supplier import Supplier
from pharmacy.schemas.supplier import SupplierCreate, SupplierRead, SupplierUpdate
from pharmacy.services.catalog_service import create_supplier, delete_record, get_record, list_records, update_record

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])


@router.get("", response_model=list[SupplierRead])
def list_suppliers(db: Session = Depends(get_db)):
    return list_records(db, Supplier)


@router.post("", response_model=SupplierRead, status_code=201)
def add_supplier(payload: SupplierCreate, db: Session = Depends(get_db)):
    return create_supplier(db, payload.model_dump())


@router.put("/{supplier_id}", response_model=SupplierRead)
def edit_supplier(supplier_id: int, payload: SupplierUpdate, db: Session = Depends(get_db)):
    supplier = get_record(db, Supplier, supplier_id)
    if supplier is None:
        raise HTTPException(status_code=404, detail="Supplier not found")
    return update_record(db, supplier, payload.model_dump(exclude_unset=True))


@router.delete("/{supplier_id}")
def remove_supplier(supplier_id: int, db: Session = Depends(get_db)):
    if not delete_record(db, Supplier, supplier_id):
        raise HTTPException(status_code=404, detail="Supplier not found")
    return {"message": "Supplier deleted"}


__all__ = ["router"]
