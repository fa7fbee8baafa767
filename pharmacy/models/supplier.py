from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from pharmacy.database.base import Base


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    contact = Column(String(255), nullable=False, default="")
    phone = Column(String(32), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


__all__ = ["Supplier"]
