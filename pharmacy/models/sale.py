from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship

from pharmacy.database.base import Base


class Sale(Base):
    """One sold line; total_price is frozen at the medicine price of the sale."""

    __tablename__ = "sales"

    id = Column(Integer, primary_key=True)
    order_id = Column(String(64), nullable=False, unique=True)
    medicine_id = Column(Integer, ForeignKey("medicines.id"), nullable=False)
    customer_id = Column(Integer)

    quantity = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    sale_date = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    medicine = relationship("Medicine")
    customer = relationship(
        "Customer",
        primaryjoin="foreign(Sale.customer_id) == Customer.id",
        viewonly=True,
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
        Index("idx_sales_medicine", "medicine_id"),
        Index("idx_sales_date", "sale_date"),
    )


__all__ = ["Sale"]
