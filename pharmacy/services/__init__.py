from pharmacy.services.ledger_service import StockLedger
from pharmacy.services.report_service import dashboard_stats

__all__ = [
    "StockLedger",
    "dashboard_stats",
]
