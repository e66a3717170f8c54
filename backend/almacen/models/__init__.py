from .business import Business
from .catalog import ProductMaster
from .inventory import BusinessInventory
from .activity import Activity

__all__ = [
    'Business',
    'ProductMaster',
    'BusinessInventory',
    'Activity',
]
