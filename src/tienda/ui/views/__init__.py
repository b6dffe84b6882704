from .dashboard_view import DashboardView
from .products_view import ProductsView
from .categories_view import CategoriesView
from .sales_view import SalesView
from .customers_view import CustomersView
from .settings_view import SettingsView

__all__ = ["DashboardView", "ProductsView", "CategoriesView", "SalesView", "CustomersView", "SettingsView"]
