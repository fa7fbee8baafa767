MEDICINE_STATUSES = ("active", "inactive")
USER_ROLES = ("admin", "staff")

ORDER_ID_PREFIX = "ORD"
PASSWORD_MASK = "********"

REPORT_TYPES = ("daily", "monthly")
TOP_SELLING_SORT_KEYS = ("total_sold", "total_revenue", "total_profit")
SORT_ORDERS = ("ASC", "DESC")

BACKUP_FORMATS = ("sql", "json")
BACKUP_VERSION = 1
# Restore order: referenced tables first.
BACKUP_TABLES = ("suppliers", "customers", "medicines", "inbounds", "sales")

# Column limits: INTEGER quantities, NUMERIC(10, 2) amounts.
MAX_QUANTITY = 2**31 - 1
MAX_AMOUNT_DIGITS = 10
# Longest range the sales trend zero-fills.
MAX_TREND_DAYS = 3660
