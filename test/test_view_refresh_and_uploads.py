from pathlib import Path

from PIL import Image
from conftest import make_currency, make_repo

from tienda.services.image_service import ImageService
from tienda.ui import app as app_module
from tienda.ui.views import products_view


class _Var:
    def __init__(self, value=""):
        self.value = value

    def set(self, value):
        self.value = value

    def get(self):
        return self.value


class _Button:
    def config(self, **kw):
        self.kw = kw


class _Guest:
    def is_admin(self):
        return False


class _View:
    def refresh(self):
        pass


def test_refresh_all_reloads_rates_from_store(tmp_path: Path):
    repo = make_repo(tmp_path)
    currency = make_currency(repo)
    repo.update_exchange_rate("COP", 5000.0)

    app = app_module.App.__new__(app_module.App)
    app.currency = currency
    app.auth = _Guest()
    app.role_var = _Var()
    app.login_btn = _Button()
    app.refresh_currency_bar = lambda: None
    for name in ("dashboard_view", "products_view", "categories_view", "sales_view", "customers_view", "settings_view"):
        setattr(app, name, _View())

    app.refresh_all(show_toast=False)

    assert currency.rate_for("COP") == 5000.0
    assert app.role_var.get() == "Guest"


def _png(tmp_path: Path, name: str) -> Path:
    path = tmp_path / name
    Image.new("RGB", (4, 4), "blue").save(path, "PNG")
    return path


def _products_view(tmp_path: Path, monkeypatch, picks):
    images = ImageService(tmp_path / "images", "https://cdn.example.test/store")

    class App:
        def __init__(self):
            self.images = images
            self.toasts = []

        def can_action(self, _action):
            return True

        def toast(self, text, kind="info"):
            self.toasts.append(text)

        def handle_error(self, title, err, toast_text):
            raise err

    monkeypatch.setattr(products_view.filedialog, "askopenfilename", lambda **_kw: str(picks.pop(0)))
    view = products_view.ProductsView.__new__(products_view.ProductsView)
    view.app = App()
    view.image_url = None
    view.unsaved_image = None
    view.image_var = _Var("No image")
    return view, images


def test_replacing_unsaved_upload_deletes_previous_file(tmp_path: Path, monkeypatch):
    view, images = _products_view(tmp_path, monkeypatch, [_png(tmp_path, "a.png"), _png(tmp_path, "b.png")])

    view.on_upload_image()
    first = view.image_url
    view.on_upload_image()

    assert not images.path_for(first).exists()
    assert images.path_for(view.image_url).exists()
    assert view.unsaved_image == view.image_url


def test_removing_unsaved_upload_deletes_file(tmp_path: Path, monkeypatch):
    view, images = _products_view(tmp_path, monkeypatch, [_png(tmp_path, "a.png")])

    view.on_upload_image()
    url = view.image_url
    view.on_remove_image()

    assert not images.path_for(url).exists()
    assert (view.image_url, view.unsaved_image, view.image_var.get()) == (None, None, "No image")


def test_removing_saved_image_keeps_file_until_product_is_saved(tmp_path: Path, monkeypatch):
    view, images = _products_view(tmp_path, monkeypatch, [])
    saved = images.upload(_png(tmp_path, "saved.png"))
    view.image_url = saved

    view.on_remove_image()

    assert view.image_url is None
    assert images.path_for(saved).exists()
