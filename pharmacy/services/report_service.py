"""Read-only aggregates over medicines and the inbound/sales ledger."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from pharmacy.core.constants import MAX_TREND_DAYS, SORT_ORDERS, TOP_SELLING_SORT_KEYS
from pharmacy.core.dates import day_sequence, normalize_date, one_month_before, period_start, utc_now
from pharmacy.models.inbound import Inbound
from pharmacy.models.medicine import Medicine
from pharmacy.models.sale import Sale
from pharmacy.schemas.ledger import InboundDetail, SaleDetail
from pharmacy.schemas.medicine import MedicineRead


def _money(value) -> float:
    if value is None:
        return 0.0
    return round(float(value), 2)


def _between(column, start: Optional[datetime], end: Optional[datetime]):
    clauses = []
    if start is not None:
        clauses.append(column >= start)
    if end is not None:
        clauses.append(column < end)
    return clauses


def average_inbound_costs(db: Session) -> dict[int, Decimal]:
    """Average purchase price per medicine, used as the cost of goods sold."""
    rows = db.execute(
        select(Inbound.medicine_id, func.avg(Inbound.price)).group_by(Inbound.medicine_id)
    ).all()
    return {medicine_id: Decimal(str(avg_cost)) for medicine_id, avg_cost in rows if avg_cost is not None}


def dashboard_stats(db: Session, *, low_stock_threshold: int, now: Optional[datetime] = None) -> dict:
    now = now or utc_now()
    total_stock = db.execute(select(func.coalesce(func.sum(Medicine.stock), 0))).scalar_one()
    month_sales = db.execute(
        select(func.coalesce(func.sum(Sale.total_price), 0)).where(Sale.sale_date > one_month_before(now))
    ).scalar_one()
    low_stock = db.execute(
        select(func.count(Medicine.id)).where(Medicine.stock < low_stock_threshold)
    ).scalar_one()
    return {
        "total_stock": int(total_stock),
        "month_sales": _money(month_sales),
        "low_stock": int(low_stock),
    }


def inbound_records(db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list[Inbound]:
    """Inbound rows, newest first, with medicine and supplier loaded."""
    stmt = (
        select(Inbound)
        .options(selectinload(Inbound.medicine), selectinload(Inbound.supplier))
        .where(*_between(Inbound.inbound_date, start, end))
        .order_by(Inbound.inbound_date.desc(), Inbound.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def sale_records(db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list[Sale]:
    stmt = (
        select(Sale)
        .options(selectinload(Sale.medicine), selectinload(Sale.customer))
        .where(*_between(Sale.sale_date, start, end))
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def inbound_report(db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
    inbounds = inbound_records(db, start, end)

    total_quantity = 0
    total_amount = Decimal("0")
    records = []
    for inbound in inbounds:
        total_quantity += inbound.quantity
        total_amount += Decimal(inbound.price) * inbound.quantity
        records.append(InboundDetail.model_validate(inbound).model_dump())

    return {
        "records": records,
        "total_quantity": total_quantity,
        "total_amount": _money(total_amount),
    }


def sales_report(db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
    sales = sale_records(db, start, end)

    total_quantity = 0
    total_amount = Decimal("0")
    records = []
    for sale in sales:
        total_quantity += sale.quantity
        total_amount += Decimal(sale.total_price)
        records.append(SaleDetail.model_validate(sale).model_dump())

    return {
        "records": records,
        "total_quantity": total_quantity,
        "total_amount": _money(total_amount),
    }


def inventory_report(db: Session, *, low_stock_threshold: int) -> dict:
    medicines = db.execute(select(Medicine).order_by(Medicine.stock.asc(), Medicine.id)).scalars().all()

    total_stock = 0
    total_value = Decimal("0")
    items = []
    low_stock_items = []
    out_of_stock_items = []
    for medicine in medicines:
        total_stock += medicine.stock
        total_value += Decimal(medicine.price) * medicine.stock
        item = MedicineRead.model_validate(medicine).model_dump()
        items.append(item)
        if medicine.stock == 0:
            out_of_stock_items.append(item)
        elif medicine.stock < low_stock_threshold:
            low_stock_items.append(item)

    return {
        "medicines": items,
        "total_stock": total_stock,
        "total_value": _money(total_value),
        "low_stock_items": low_stock_items,
        "out_of_stock_items": out_of_stock_items,
    }


def financial_report(db: Session, report_type: Optional[str] = None, *, now: Optional[datetime] = None) -> dict:
    start = period_start(report_type, now)

    sales_income = db.execute(
        select(func.coalesce(func.sum(Sale.total_price), 0)).where(Sale.sale_date >= start)
    ).scalar_one()
    purchase_cost = db.execute(
        select(func.coalesce(func.sum(Inbound.price * Inbound.quantity), 0)).where(Inbound.inbound_date >= start)
    ).scalar_one()
    sales_count = db.execute(select(func.count(Sale.id)).where(Sale.sale_date >= start)).scalar_one()
    purchase_count = db.execute(select(func.count(Inbound.id)).where(Inbound.inbound_date >= start)).scalar_one()

    costs = average_inbound_costs(db)
    sold = db.execute(
        select(Sale.medicine_id, func.sum(Sale.quantity)).where(Sale.sale_date >= start).group_by(Sale.medicine_id)
    ).all()
    cost_of_goods = sum(
        (costs.get(medicine_id, Decimal("0")) * int(quantity) for medicine_id, quantity in sold),
        Decimal("0"),
    )

    return {
        "report_type": report_type or "monthly",
        "start_date": start,
        "sales_income": _money(sales_income),
        "purchase_cost": _money(purchase_cost),
        "gross_profit": _money(Decimal(str(sales_income)) - cost_of_goods),
        "sales_count": int(sales_count),
        "purchase_count": int(purchase_count),
    }


def top_selling(
    db: Session,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    *,
    sort_by: str = "total_sold",
    order: str = "DESC",
    limit: int = 10,
) -> list[dict]:
    if sort_by not in TOP_SELLING_SORT_KEYS:
        raise ValueError("sort_by must be one of: {}".format(", ".join(TOP_SELLING_SORT_KEYS)))
    order = order.upper()
    if order not in SORT_ORDERS:
        raise ValueError("order must be ASC or DESC")

    stmt = (
        select(
            Medicine.id,
            Medicine.code,
            Medicine.name,
            Medicine.type,
            func.sum(Sale.quantity).label("total_sold"),
            func.sum(Sale.total_price).label("total_revenue"),
        )
        .join(Medicine, Medicine.id == Sale.medicine_id)
        .where(*_between(Sale.sale_date, start, end))
        .group_by(Medicine.id, Medicine.code, Medicine.name, Medicine.type)
    )
    costs = average_inbound_costs(db)

    results = []
    for row in db.execute(stmt).all():
        revenue = Decimal(str(row.total_revenue or 0))
        cost = costs.get(row.id, Decimal("0")) * int(row.total_sold or 0)
        results.append(
            {
                "medicine_id": row.id,
                "code": row.code,
                "name": row.name,
                "type": row.type,
                "total_sold": int(row.total_sold or 0),
                "total_revenue": _money(revenue),
                "total_profit": _money(revenue - cost),
            }
        )

    results.sort(key=lambda item: (item[sort_by], -item["medicine_id"]), reverse=order == "DESC")
    return results[:limit]


def sales_trend(db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list[dict]:
    """Per-day revenue, order count, quantity and profit; gap days are zero-filled."""
    if start is not None and end is not None and (end - start).days > MAX_TREND_DAYS:
        raise ValueError("trend range must not exceed {} days".format(MAX_TREND_DAYS))
    sale_day = func.date(Sale.sale_date)
    stmt = (
        select(
            sale_day.label("sale_day"),
            Sale.medicine_id,
            func.count(Sale.id).label("order_count"),
            func.sum(Sale.quantity).label("total_quantity"),
            func.sum(Sale.total_price).label("total_revenue"),
        )
        .where(*_between(Sale.sale_date, start, end))
        .group_by(sale_day, Sale.medicine_id)
    )
    costs = average_inbound_costs(db)

    days: dict = {}
    for row in db.execute(stmt).all():
        day = normalize_date(row.sale_day)
        if day is None:
            continue
        bucket = days.setdefault(
            day,
            {"revenue": Decimal("0"), "profit": Decimal("0"), "order_count": 0, "total_quantity": 0},
        )
        revenue = Decimal(str(row.total_revenue or 0))
        quantity = int(row.total_quantity or 0)
        bucket["revenue"] += revenue
        bucket["profit"] += revenue - costs.get(row.medicine_id, Decimal("0")) * quantity
        bucket["order_count"] += int(row.order_count or 0)
        bucket["total_quantity"] += quantity

    if start is not None and end is not None:
        # ``end`` is exclusive midnight of the day after the range.
        first, last = start.date(), end.date()
        all_days = [day for day in day_sequence(first, last) if day < last]
    else:
        all_days = sorted(days)

    trend = []
    for day in all_days:
        bucket = days.get(day)
        trend.append(
            {
                "sale_day": day.isoformat(),
                "total_revenue": _money(bucket["revenue"]) if bucket else 0.0,
                "order_count": bucket["order_count"] if bucket else 0,
                "total_quantity": bucket["total_quantity"] if bucket else 0,
                "total_profit": _money(bucket["profit"]) if bucket else 0.0,
            }
        )
    return trend


__all__ = [
    "average_inbound_costs",
    "dashboard_stats",
    "financial_report",
    "inbound_records",
    "inbound_report",
    "inventory_report",
    "sale_records",
    "sales_report",
    "sales_trend",
    "top_selling",
]
