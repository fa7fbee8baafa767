from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Numeric
from sqlalchemy.orm import relationship

from pharmacy.database.base import Base


class Inbound(Base):
    """One received shipment line; its quantity is already counted in Medicine.stock."""

    __tablename__ = "inbounds"

    id = Column(Integer, primary_key=True)
    medicine_id = Column(Integer, ForeignKey("medicines.id"), nullable=False)
    # Suppliers and customers are plain references; the original data allows 0/unknown.
    supplier_id = Column(Integer)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # unit purchase price
    inbound_date = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    medicine = relationship("Medicine")
    supplier = relationship(
        "Supplier",
        primaryjoin="foreign(Inbound.supplier_id) == Supplier.id",
        viewonly=True,
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inbounds_quantity_positive"),
        Index("idx_inbounds_medicine", "medicine_id"),
        Index("idx_inbounds_date", "inbound_date"),
    )


__all__ = ["Inbound"]
