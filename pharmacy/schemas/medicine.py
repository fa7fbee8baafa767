from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MedicineBase(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=32)
    spec: str = ""
    manufacturer: str = ""
    status: str = "active"


class MedicineCreate(MedicineBase):
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    # Opening balance; afterwards stock moves only through the ledger.
    stock: int = Field(0, ge=0)


class MedicineUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=64)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[str] = Field(None, min_length=1, max_length=32)
    spec: Optional[str] = None
    manufacturer: Optional[str] = None
    status: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)


class MedicineRead(MedicineBase):
    id: int
    price: float
    stock: int

    model_config = ConfigDict(from_attributes=True)
