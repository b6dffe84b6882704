from .currency_service import CurrencyService
from .fx_service import FxService
from .cart import Cart
from .customer_service import CustomerService
from .inventory_service import InventoryService
from .category_service import CategoryService
from .image_service import ImageService
from .sales_service import SalesService
from .payment_service import PaymentService
from .reporting_service import ReportingService
from .auth_service import AuthService

__all__ = [
    "CurrencyService",
    "FxService",
    "Cart",
    "CustomerService",
    "InventoryService",
    "CategoryService",
    "ImageService",
    "SalesService",
    "PaymentService",
    "ReportingService",
    "AuthService",
]
