from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pharmacy.config import get_settings
from pharmacy.core.constants import REPORT_TYPES
from pharmacy.core.dates import date_range_bounds
from pharmacy.dependencies import get_db
from pharmacy.services import report_service

router = APIRouter(tags=["Reports"])


def parse_date_range(
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
):
    try:
        return date_range_bounds(start_date, end_date)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/dashboard/stats")
def dashboard_stats(db: Session = Depends(get_db)):
    return report_service.dashboard_stats(db, low_stock_threshold=get_settings().LOW_STOCK_THRESHOLD)


@router.get("/reports/inbound")
def inbound_report(date_range=Depends(parse_date_range), db: Session = Depends(get_db)):
    return report_service.inbound_report(db, *date_range)


@router.get("/reports/sales")
def sales_report(date_range=Depends(parse_date_range), db: Session = Depends(get_db)):
    return report_service.sales_report(db, *date_range)


@router.get("/reports/inventory")
def inventory_report(db: Session = Depends(get_db)):
    return report_service.inventory_report(db, low_stock_threshold=get_settings().LOW_STOCK_THRESHOLD)


@router.get("/reports/financial")
def financial_report(
    report_type: Optional[str] = Query(None, alias="type", description="daily | monthly"),
    db: Session = Depends(get_db),
):
    if report_type is not None:
        report_type = report_type.strip().lower() or None
    if report_type is not None and report_type not in REPORT_TYPES:
        raise HTTPException(status_code=400, detail="type must be daily or monthly")
    return report_service.financial_report(db, report_type)


@router.get("/analysis/top-selling")
def top_selling(
    date_range=Depends(parse_date_range),
    sort_by: str = Query("total_sold"),
    order: str = Query("DESC"),
    limit: int = Query(10, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    try:
        return report_service.top_selling(db, *date_range, sort_by=sort_by, order=order, limit=limit)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/analysis/trend")
def sales_trend(date_range=Depends(parse_date_range), db: Session = Depends(get_db)):
    try:
        return report_service.sales_trend(db, *date_range)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


__all__ = ["router"]
