from fastapi import APIRouter, Depends

from pharmacy.dependencies import get_ledger
from pharmacy.schemas.ledger import (
    PurchaseReturnRequest,
    PurchaseReturnResponse,
    SalesReturnRequest,
    SalesReturnResponse,
    StockAdjustRequest,
    StockAdjustResponse,
)
from pharmacy.services.ledger_service import StockLedger

router = APIRouter(tags=["Stock"])


@router.post("/returns/sales", response_model=SalesReturnResponse)
def return_sale(payload: SalesReturnRequest, ledger: StockLedger = Depends(get_ledger)):
    reversal = ledger.reverse_sale(payload.sale_id, reason=payload.reason)
    return SalesReturnResponse(
        message="Sales return processed",
        returned_quantity=reversal.quantity,
        refund_amount=float(reversal.refund_amount),
    )


@router.post("/returns/purchase", response_model=PurchaseReturnResponse)
def return_purchase(payload: PurchaseReturnRequest, ledger: StockLedger = Depends(get_ledger)):
    reversal = ledger.reverse_purchase(payload.inbound_id, reason=payload.reason)
    return PurchaseReturnResponse(message="Purchase return processed", returned_quantity=reversal.quantity)


@router.post("/stock/adjust", response_model=StockAdjustResponse)
def adjust_stock(payload: StockAdjustRequest, ledger: StockLedger = Depends(get_ledger)):
    adjustment = ledger.adjust_stock(payload.medicine_id, payload.new_stock, reason=payload.reason)
    return StockAdjustResponse(
        message="Stock adjusted",
        old_stock=adjustment.old_stock,
        new_stock=adjustment.new_stock,
        difference=adjustment.difference,
    )


__all__ = ["router"]
