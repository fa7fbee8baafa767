from typing import Iterator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from pharmacy.database.session import Store
from pharmacy.services.ledger_service import StockLedger


def get_store(request: Request) -> Store:
    return request.app.state.store


def require_database(store: Store = Depends(get_store)) -> Store:
    if not store.connected:
        raise HTTPException(status_code=503, detail="Database is not connected")
    return store


def get_db(store: Store = Depends(require_database)) -> Iterator[Session]:
    db = store.session()
    try:
        yield db
    finally:
        db.close()


def get_ledger(store: Store = Depends(require_database)) -> StockLedger:
    return StockLedger(store)


__all__ = ["get_db", "get_ledger", "get_store", "require_database"]
