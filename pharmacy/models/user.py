from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from pharmacy.database.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(64), nullable=False, unique=True)
    # pbkdf2 hash, see pharmacy.core.security
    password = Column(String(255), nullable=False)
    real_name = Column(String(64), nullable=False, default="")
    phone = Column(String(32), nullable=False, default="")
    role = Column(String(20), nullable=False, default="staff")

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


__all__ = ["User"]
