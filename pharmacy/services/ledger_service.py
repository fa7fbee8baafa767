"""Stock ledger: every stock movement driven by inbound receipts and sales.

Each public method is one all-or-nothing unit of work on the store: the
medicine row is locked, the current stock is read and checked, the new stock
is written together with the paired inbound/sale row (or its deletion), and
the transaction commits. Any failure rolls the whole unit back and surfaces as
a :class:`~pharmacy.core.errors.LedgerError`.
"""
from __future__ import annotations

import logging
import secrets
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterator, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pharmacy.core.constants import MAX_AMOUNT_DIGITS, MAX_QUANTITY, ORDER_ID_PREFIX
from pharmacy.core.dates import utc_now
from pharmacy.core.errors import InsufficientStock, Internal, InvalidInput, LedgerError, NotFound
from pharmacy.database.session import Store
from pharmacy.models.inbound import Inbound
from pharmacy.models.medicine import Medicine
from pharmacy.models.sale import Sale

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_MAX_AMOUNT = Decimal(10) ** (MAX_AMOUNT_DIGITS - 2) - _CENT


@dataclass(frozen=True)
class SaleReversal:
    sale_id: int
    medicine_id: int
    quantity: int
    refund_amount: Decimal


@dataclass(frozen=True)
class PurchaseReversal:
    inbound_id: int
    medicine_id: int
    quantity: int


@dataclass(frozen=True)
class StockAdjustment:
    medicine_id: int
    old_stock: int
    new_stock: int

    @property
    def difference(self) -> int:
        return self.new_stock - self.old_stock


def new_order_id(now: Optional[datetime] = None) -> str:
    now = now or utc_now()
    return "{}-{}-{}".format(ORDER_ID_PREFIX, now.strftime("%Y%m%d%H%M%S"), secrets.token_hex(4))


def to_money(value) -> Decimal:
    try:
        amount = Decimal(str(value))
        if amount.is_finite():
            amount = amount.quantize(_CENT)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidInput("Invalid amount: {!r}".format(value)) from exc
    if not amount.is_finite():
        raise InvalidInput("Invalid amount: {!r}".format(value))
    if abs(amount) > _MAX_AMOUNT:
        raise InvalidInput("Amount must have at most {} digits".format(MAX_AMOUNT_DIGITS))
    return amount


def _require_positive_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidInput("Quantity must be an integer")
    if quantity <= 0:
        raise InvalidInput("Quantity must be positive")
    if quantity > MAX_QUANTITY:
        raise InvalidInput("Quantity must not exceed {}".format(MAX_QUANTITY))
    return quantity


def _checked_stock(stock: int) -> int:
    if stock > MAX_QUANTITY:
        raise InvalidInput("Stock must not exceed {}".format(MAX_QUANTITY))
    return stock


def ledger_balance(db: Session, medicine_id: int) -> int:
    """Net stock implied by the ledger rows of one medicine."""
    received = db.execute(
        select(func.coalesce(func.sum(Inbound.quantity), 0)).where(Inbound.medicine_id == medicine_id)
    ).scalar_one()
    sold = db.execute(
        select(func.coalesce(func.sum(Sale.quantity), 0)).where(Sale.medicine_id == medicine_id)
    ).scalar_one()
    return int(received) - int(sold)


class StockLedger:
    def __init__(self, store: Store):
        self._store = store

    @contextmanager
    def _unit(self, operation: str) -> Iterator[Session]:
        try:
            with self._store.transaction(immediate=True) as db:
                yield db
        except LedgerError as exc:
            logger.warning("%s rolled back: %s", operation, exc.message)
            raise
        except SQLAlchemyError as exc:
            logger.exception("%s failed in the database", operation)
            raise Internal("{} failed, no changes were saved".format(operation)) from exc

    @staticmethod
    def _lock_medicine(db: Session, medicine_id: int) -> Medicine:
        medicine = db.execute(
            select(Medicine).where(Medicine.id == medicine_id).with_for_update()
        ).scalar_one_or_none()
        if medicine is None:
            raise NotFound("Medicine not found")
        return medicine

    def receive_stock(self, medicine_id: int, supplier_id: Optional[int], quantity: int, unit_price) -> Inbound:
        quantity = _require_positive_quantity(quantity)
        price = to_money(unit_price)
        if price < 0:
            raise InvalidInput("Unit price must not be negative")

        with self._unit("Receive stock") as db:
            medicine = self._lock_medicine(db, medicine_id)
            old_stock = medicine.stock
            medicine.stock = _checked_stock(old_stock + quantity)
            inbound = Inbound(
                medicine_id=medicine.id,
                supplier_id=supplier_id,
                quantity=quantity,
                price=price,
                inbound_date=utc_now(),
            )
            db.add(inbound)
            db.flush()

        logger.info(
            "Received %s of medicine %s (stock %s -> %s), inbound %s",
            quantity,
            medicine_id,
            old_stock,
            old_stock + quantity,
            inbound.id,
        )
        return inbound

    def sell_stock(self, medicine_id: int, customer_id: Optional[int], quantity: int) -> Sale:
        quantity = _require_positive_quantity(quantity)

        with self._unit("Sell stock") as db:
            medicine = self._lock_medicine(db, medicine_id)
            old_stock = medicine.stock
            if old_stock < quantity:
                raise InsufficientStock(
                    "Insufficient stock",
                    available=old_stock,
                    requested=quantity,
                )
            total_price = (Decimal(medicine.price) * quantity).quantize(_CENT)
            if total_price > _MAX_AMOUNT:
                raise InvalidInput("Sale total must have at most {} digits".format(MAX_AMOUNT_DIGITS))
            medicine.stock = old_stock - quantity
            sale = Sale(
                order_id=new_order_id(),
                medicine_id=medicine.id,
                customer_id=customer_id,
                quantity=quantity,
                total_price=total_price,
                sale_date=utc_now(),
            )
            db.add(sale)
            db.flush()

        logger.info(
            "Sold %s of medicine %s (stock %s -> %s), order %s",
            quantity,
            medicine_id,
            old_stock,
            old_stock - quantity,
            sale.order_id,
        )
        return sale

    def reverse_sale(self, sale_id: int, *, reason: str = "") -> SaleReversal:
        with self._unit("Sales return") as db:
            sale = db.execute(select(Sale).where(Sale.id == sale_id).with_for_update()).scalar_one_or_none()
            if sale is None:
                raise NotFound("Sale not found")
            medicine = self._lock_medicine(db, sale.medicine_id)
            medicine.stock = _checked_stock(medicine.stock + sale.quantity)
            result = SaleReversal(
                sale_id=sale.id,
                medicine_id=medicine.id,
                quantity=sale.quantity,
                refund_amount=Decimal(sale.total_price),
            )
            db.delete(sale)

        logger.info(
            "Returned sale %s: %s of medicine %s back in stock (reason: %s)",
            sale_id,
            result.quantity,
            result.medicine_id,
            reason or "-",
        )
        return result

    def reverse_purchase(self, inbound_id: int, *, reason: str = "") -> PurchaseReversal:
        with self._unit("Purchase return") as db:
            inbound = db.execute(
                select(Inbound).where(Inbound.id == inbound_id).with_for_update()
            ).scalar_one_or_none()
            if inbound is None:
                raise NotFound("Inbound record not found")
            medicine = self._lock_medicine(db, inbound.medicine_id)
            if medicine.stock < inbound.quantity:
                raise InsufficientStock(
                    "Insufficient stock for return",
                    available=medicine.stock,
                    requested=inbound.quantity,
                )
            medicine.stock = medicine.stock - inbound.quantity
            result = PurchaseReversal(
                inbound_id=inbound.id,
                medicine_id=medicine.id,
                quantity=inbound.quantity,
            )
            db.delete(inbound)

        logger.info(
            "Returned inbound %s: %s of medicine %s sent back (reason: %s)",
            inbound_id,
            result.quantity,
            result.medicine_id,
            reason or "-",
        )
        return result

    def adjust_stock(self, medicine_id: int, new_stock: int, *, reason: str = "") -> StockAdjustment:
        if isinstance(new_stock, bool) or not isinstance(new_stock, int):
            raise InvalidInput("New stock must be an integer")
        if new_stock < 0:
            raise InvalidInput("New stock must not be negative")
        _checked_stock(new_stock)

        with self._unit("Stock adjustment") as db:
            medicine = self._lock_medicine(db, medicine_id)
            result = StockAdjustment(medicine_id=medicine.id, old_stock=medicine.stock, new_stock=new_stock)
            medicine.stock = new_stock

        # Not ledger-derived: later ledger sums start from this count.
        logger.warning(
            "Stock of medicine %s set %s -> %s by adjustment (reason: %s)",
            medicine_id,
            result.old_stock,
            result.new_stock,
            reason or "-",
        )
        return result


__all__ = [
    "PurchaseReversal",
    "SaleReversal",
    "StockAdjustment",
    "StockLedger",
    "ledger_balance",
    "new_order_id",
    "to_money",
]
