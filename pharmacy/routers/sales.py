from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pharmacy.dependencies import get_db, get_ledger
from pharmacy.schemas.ledger import SaleCreate, SaleDetail, SaleRead
from pharmacy.services.ledger_service import StockLedger
from pharmacy.services.report_service import sale_records

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.get("", response_model=list[SaleDetail])
def list_sales(db: Session = Depends(get_db)):
    return sale_records(db)


@router.post("", response_model=SaleRead, status_code=201)
def sell_stock(payload: SaleCreate, ledger: StockLedger = Depends(get_ledger)):
    return ledger.sell_stock(payload.medicine_id, payload.customer_id, payload.quantity)


__all__ = ["router"]
