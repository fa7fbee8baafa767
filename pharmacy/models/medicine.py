from sqlalchemy import CheckConstraint, Column, Index, Integer, Numeric, String

from pharmacy.database.base import Base


class Medicine(Base):
    __tablename__ = "medicines"

    id = Column(Integer, primary_key=True)
    code = Column(String(64), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    type = Column(String(32), nullable=False)  # OTC, Rx, ...
    spec = Column(String(255), nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)

    # Written only by StockLedger (and the catalog's opening balance on create).
    stock = Column(Integer, nullable=False, default=0)

    manufacturer = Column(String(255), nullable=False, default="")
    status = Column(String(20), nullable=False, default="active")

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_medicines_stock_non_negative"),
        CheckConstraint("price >= 0", name="ck_medicines_price_non_negative"),
        Index("idx_medicines_name", "name"),
    )


__all__ = ["Medicine"]
