from .models import (
    Category,
    Customer,
    CustomerStats,
    ExchangeRate,
    Payment,
    Product,
    Sale,
    SaleLineItem,
    customer_key,
    settlement_status,
)
from .errors import (
    AuthorizationError,
    FxUnavailableError,
    InsufficientStockError,
    NotFoundError,
    StoreError,
    ValidationError,
)

__all__ = [
    "Category",
    "Customer",
    "CustomerStats",
    "ExchangeRate",
    "Payment",
    "Product",
    "Sale",
    "SaleLineItem",
    "customer_key",
    "settlement_status",
    "AuthorizationError",
    "FxUnavailableError",
    "InsufficientStockError",
    "NotFoundError",
    "StoreError",
    "ValidationError",
]
