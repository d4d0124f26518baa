from . import abandoned_carts
from . import analytics

__all__ = [
    "abandoned_carts",
    "analytics",
]
