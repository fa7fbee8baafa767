from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pharmacy.core.constants import MEDICINE_STATUSES
from pharmacy.dependencies import get_db
from pharmacy.models.medicine import Medicine
from pharmacy.schemas.medicine import MedicineCreate, MedicineRead, MedicineUpdate
from pharmacy.services.catalog_service import (
    create_medicine,
    delete_record,
    find_medicine_by_code,
    get_record,
    list_medicines,
    update_medicine,
)

router = APIRouter(prefix="/medicines", tags=["Medicines"])


def _check_status(status):
    if status is not None and status not in MEDICINE_STATUSES:
        raise HTTPException(
            status_code=400,
            detail="status must be one of: {}".format(", ".join(MEDICINE_STATUSES)),
        )


@router.get("", response_model=list[MedicineRead])
def get_medicines(
    search: Optional[str] = Query(None, description="Name or code fragment"),
    db: Session = Depends(get_db),
):
    return list_medicines(db, search)


@router.post("", response_model=MedicineRead, status_code=201)
def add_medicine(payload: MedicineCreate, db: Session = Depends(get_db)):
    _check_status(payload.status)
    if find_medicine_by_code(db, payload.code) is not None:
        raise HTTPException(status_code=409, detail="Medicine code already exists")
    return create_medicine(db, payload.model_dump())


@router.put("/{medicine_id}", response_model=MedicineRead)
def edit_medicine(medicine_id: int, payload: MedicineUpdate, db: Session = Depends(get_db)):
    _check_status(payload.status)
    medicine = get_record(db, Medicine, medicine_id)
    if medicine is None:
        raise HTTPException(status_code=404, detail="Medicine not found")
    if payload.code:
        existing = find_medicine_by_code(db, payload.code)
        if existing is not None and existing.id != medicine.id:
            raise HTTPException(status_code=409, detail="Medicine code already exists")
    return update_medicine(db, medicine, payload.model_dump(exclude_unset=True))


@router.delete("/{medicine_id}")
def remove_medicine(medicine_id: int, db: Session = Depends(get_db)):
    # Medicines with inbound or sales history fail the foreign key check (409).
    if not delete_record(db, Medicine, medicine_id):
        raise HTTPException(status_code=404, detail="Medicine not found")
    return {"message": "Medicine deleted"}


__all__ = ["router"]
