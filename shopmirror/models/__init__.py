# Database models
from shopmirror.models.database import (
    ShopifyOrder,
    ShopifyProduct,
    ShopifyCustomer,
    RESOURCE_MODELS,
)
from shopmirror.models.sync_log import SyncLog

__all__ = [
    "ShopifyOrder",
    "ShopifyProduct",
    "ShopifyCustomer",
    "RESOURCE_MODELS",
    "SyncLog",
]
