from __future__ import annotations

from dataclasses import dataclass

from tienda.config import AppPaths, Settings, load_settings
from tienda.repositories.sqlite_repo import SqliteRepository
from tienda.services.auth_service import AuthService
from tienda.services.category_service import CategoryService
from tienda.services.currency_service import CurrencyService
from tienda.services.customer_service import CustomerService
from tienda.services.fx_service import FxService
from tienda.services.image_service import ImageService
from tienda.services.inventory_service import InventoryService
from tienda.services.payment_service import PaymentService
from tienda.services.reporting_service import ReportingService
from tienda.services.sales_service import SalesService


@dataclass(frozen=True)
class AppContainer:
    repo: SqliteRepository
    settings: Settings
    currency: CurrencyService
    fx: FxService
    images: ImageService
    inventory: InventoryService
    categories: CategoryService
    customers: CustomerService
    sales: SalesService
    payments: PaymentService
    reporting: ReportingService
    auth: AuthService


def build_container(paths: AppPaths, settings: Settings | None = None) -> AppContainer:
    settings = settings or load_settings(paths)

    repo = SqliteRepository(paths.db_path)
    repo.init_db()

    currency = CurrencyService(repo)
    currency.refresh()
    images = ImageService(paths.images_dir, settings.images_base_url)

    return AppContainer(
        repo=repo,
        settings=settings,
        currency=currency,
        fx=FxService(settings.fx_api_url),
        images=images,
        inventory=InventoryService(repo, images),
        categories=CategoryService(repo),
        customers=CustomerService(repo),
        sales=SalesService(repo, currency),
        payments=PaymentService(repo, currency),
        reporting=ReportingService(repo, settings.low_stock_threshold),
        auth=AuthService(paths.cookie_path, settings.admin_token),
    )
