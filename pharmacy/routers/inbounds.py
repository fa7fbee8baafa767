from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pharmacy.dependencies import get_db, get_ledger
from pharmacy.schemas.ledger import InboundCreate, InboundDetail, InboundRead
from pharmacy.services.ledger_service import StockLedger
from pharmacy.services.report_service import inbound_records

router = APIRouter(prefix="/inbounds", tags=["Inbound"])


@router.get("", response_model=list[InboundDetail])
def list_inbounds(db: Session = Depends(get_db)):
    return inbound_records(db)


@router.post("", response_model=InboundRead, status_code=201)
def receive_stock(payload: InboundCreate, ledger: StockLedger = Depends(get_ledger)):
    return ledger.receive_stock(payload.medicine_id, payload.supplier_id, payload.quantity, payload.price)


__all__ = ["router"]
