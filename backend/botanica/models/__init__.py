from botanica.models.category import Category, plant_categories
from botanica.models.inventory import CHANGE_TYPES, InventoryHistory
from botanica.models.plant import Plant
from botanica.models.user import ADMIN_ROLE, User

__all__ = [
    "ADMIN_ROLE",
    "CHANGE_TYPES",
    "Category",
    "InventoryHistory",
    "Plant",
    "User",
    "plant_categories",
]
