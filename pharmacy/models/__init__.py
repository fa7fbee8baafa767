import importlib

from pharmacy.models.customer import Customer
from pharmacy.models.inbound import Inbound
from pharmacy.models.medicine import Medicine
from pharmacy.models.sale import Sale
from pharmacy.models.supplier import Supplier
from pharmacy.models.user import User

# Dependency order: referenced tables first.
MODEL_MODULES = (
    "pharmacy.models.user",
    "pharmacy.models.supplier",
    "pharmacy.models.customer",
    "pharmacy.models.medicine",
    "pharmacy.models.inbound",
    "pharmacy.models.sale",
)


def import_all_models() -> None:
    for module_name in MODEL_MODULES:
        importlib.import_module(module_name)


__all__ = [
    "Customer",
    "Inbound",
    "MODEL_MODULES",
    "Medicine",
    "Sale",
    "Supplier",
    "User",
    "import_all_models",
]
