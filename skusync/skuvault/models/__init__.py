from .tokens import AuthTokenPair
from .products import ExternalProductRecord
from .locations import ExternalLocationRecord
from .inventory import ExternalInventoryRecord
from .movements import ExternalMovementRecord

__all__ = [
    "AuthTokenPair",
    "ExternalProductRecord",
    "ExternalLocationRecord",
    "ExternalInventoryRecord",
    "ExternalMovementRecord",
]
