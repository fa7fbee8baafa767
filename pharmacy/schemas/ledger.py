from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from pharmacy.schemas.customer import CustomerRead
from pharmacy.schemas.medicine import MedicineRead
from pharmacy.schemas.supplier import SupplierRead

# Quantities are range-checked by StockLedger so that a bad value is a 400
# with the ledger's message rather than a schema error.


class InboundCreate(BaseModel):
    medicine_id: int
    supplier_id: Optional[int] = None
    quantity: int
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)


class InboundRead(BaseModel):
    id: int
    medicine_id: int
    supplier_id: Optional[int] = None
    quantity: int
    price: float
    inbound_date: datetime

    model_config = ConfigDict(from_attributes=True)


class InboundDetail(InboundRead):
    medicine: Optional[MedicineRead] = None
    supplier: Optional[SupplierRead] = None


class SaleCreate(BaseModel):
    medicine_id: int
    customer_id: Optional[int] = None
    quantity: int


class SaleRead(BaseModel):
    id: int
    order_id: str
    medicine_id: int
    customer_id: Optional[int] = None
    quantity: int
    total_price: float
    sale_date: datetime

    model_config = ConfigDict(from_attributes=True)


class SaleDetail(SaleRead):
    medicine: Optional[MedicineRead] = None
    customer: Optional[CustomerRead] = None


class SalesReturnRequest(BaseModel):
    sale_id: int
    reason: str = ""


class SalesReturnResponse(BaseModel):
    message: str
    returned_quantity: int
    refund_amount: float


class PurchaseReturnRequest(BaseModel):
    inbound_id: int
    reason: str = ""


class PurchaseReturnResponse(BaseModel):
    message: str
    returned_quantity: int


class StockAdjustRequest(BaseModel):
    medicine_id: int
    new_stock: int
    reason: str = ""


class StockAdjustResponse(BaseModel):
    message: str
    old_stock: int
    new_stock: int
    difference: int
