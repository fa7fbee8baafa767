"""Plain record maintenance for users, medicines, customers and suppliers.

None of these touch stock except the opening balance of a new medicine.
"""
import logging
from typing import Optional, Type, TypeVar

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from pharmacy.config import get_settings
from pharmacy.core.security import hash_password
from pharmacy.database.base import Base
from pharmacy.models.customer import Customer
from pharmacy.models.medicine import Medicine
from pharmacy.models.supplier import Supplier
from pharmacy.models.user import User

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


def _like(keyword: str) -> str:
    return "%{}%".format(keyword.strip())


def list_records(db: Session, model: Type[ModelT]) -> list[ModelT]:
    return list(db.execute(select(model).order_by(model.id)).scalars().all())


def get_record(db: Session, model: Type[ModelT], record_id: int) -> Optional[ModelT]:
    return db.get(model, record_id)


def apply_changes(instance, changes: dict) -> None:
    for field, value in changes.items():
        if value is None:
            continue
        setattr(instance, field, value)


def delete_record(db: Session, model: Type[ModelT], record_id: int) -> bool:
    instance = db.get(model, record_id)
    if instance is None:
        return False
    db.delete(instance)
    db.commit()
    return True


# ==============================
# Users
# ==============================

def create_user(db: Session, *, username: str, password: str, real_name="", phone="", role="staff") -> User:
    user = User(
        username=username.strip(),
        password=hash_password(password),
        real_name=real_name,
        phone=phone,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_user(db: Session, user: User, changes: dict) -> User:
    password = changes.pop("password", None)
    apply_changes(user, changes)
    if password:
        user.password = hash_password(password)
    db.commit()
    db.refresh(user)
    return user


def find_user(db: Session, username: str) -> Optional[User]:
    return db.execute(select(User).where(User.username == username.strip())).scalars().first()


def seed_admin(db: Session) -> Optional[User]:
    """Create the admin account once; an existing admin keeps its password."""
    settings = get_settings()
    if find_user(db, settings.ADMIN_USERNAME) is not None:
        return None
    admin = create_user(
        db,
        username=settings.ADMIN_USERNAME,
        password=settings.ADMIN_PASSWORD,
        real_name="Administrator",
        role="admin",
    )
    logger.warning(
        "Seeded admin user %r with the default password; change it after first login.",
        admin.username,
    )
    return admin


def search_users(db: Session, keyword: str) -> list[User]:
    pattern = _like(keyword)
    stmt = select(User).where(or_(User.username.like(pattern), User.real_name.like(pattern))).order_by(User.id)
    return list(db.execute(stmt).scalars().all())


# ==============================
# Medicines
# ==============================

def list_medicines(db: Session, search: Optional[str] = None) -> list[Medicine]:
    stmt = select(Medicine)
    if search and search.strip():
        pattern = _like(search)
        stmt = stmt.where(or_(Medicine.name.like(pattern), Medicine.code.like(pattern)))
    return list(db.execute(stmt.order_by(Medicine.id)).scalars().all())


def find_medicine_by_code(db: Session, code: str) -> Optional[Medicine]:
    return db.execute(select(Medicine).where(Medicine.code == code.strip())).scalars().first()


def create_medicine(db: Session, values: dict) -> Medicine:
    medicine = Medicine(**values)
    db.add(medicine)
    db.commit()
    db.refresh(medicine)
    return medicine


def update_medicine(db: Session, medicine: Medicine, changes: dict) -> Medicine:
    # Stock is owned by the ledger and the adjustment endpoint.
    changes.pop("stock", None)
    apply_changes(medicine, changes)
    db.commit()
    db.refresh(medicine)
    return medicine


# ==============================
# Customers & suppliers
# ==============================

def create_customer(db: Session, values: dict) -> Customer:
    customer = Customer(**values)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


def search_customers(db: Session, keyword: str) -> list[Customer]:
    pattern = _like(keyword)
    stmt = select(Customer).where(or_(Customer.name.like(pattern), Customer.phone.like(pattern))).order_by(Customer.id)
    return list(db.execute(stmt).scalars().all())


def create_supplier(db: Session, values: dict) -> Supplier:
    supplier = Supplier(**values)
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    return supplier


def search_suppliers(db: Session, keyword: str) -> list[Supplier]:
    pattern = _like(keyword)
    stmt = select(Supplier).where(or_(Supplier.name.like(pattern), Supplier.contact.like(pattern))).order_by(Supplier.id)
    return list(db.execute(stmt).scalars().all())


def update_record(db: Session, instance, changes: dict):
    apply_changes(instance, changes)
    db.commit()
    db.refresh(instance)
    return instance


__all__ = [
    "apply_changes",
    "create_customer",
    "create_medicine",
    "create_supplier",
    "create_user",
    "delete_record",
    "find_medicine_by_code",
    "find_user",
    "get_record",
    "list_medicines",
    "list_records",
    "search_customers",
    "search_suppliers",
    "search_users",
    "seed_admin",
    "update_medicine",
    "update_record",
    "update_user",
]
