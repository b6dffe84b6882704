from pathlib import Path

import pytest
from PIL import Image
from conftest import make_repo, set_created_at

from tienda.domain.errors import NotFoundError, ValidationError
from tienda.services.category_service import CategoryService
from tienda.services.image_service import ImageService
from tienda.services.inventory_service import InventoryService


def _setup(tmp_path: Path):
    repo = make_repo(tmp_path)
    images = ImageService(tmp_path / "images", "https://cdn.example.test/store")
    return repo, InventoryService(repo, images), CategoryService(repo), images


def _png(tmp_path: Path, name: str = "foto.png") -> Path:
    path = tmp_path / name
    Image.new("RGB", (4, 4), "red").save(path, "PNG")
    return path


def test_add_product_validates_fields(tmp_path: Path):
    _repo, inventory, _cats, _images = _setup(tmp_path)

    with pytest.raises(ValidationError, match="Name is required"):
        inventory.add_product("  ", None, 1.0, 1)
    with pytest.raises(ValidationError, match="Price must be >= 0"):
        inventory.add_product("Cafe", None, -1.0, 1)
    with pytest.raises(ValidationError, match="Stock must be >= 0"):
        inventory.add_product("Cafe", None, 1.0, -2)
    with pytest.raises(NotFoundError, match="Category"):
        inventory.add_product("Cafe", None, 1.0, 1, category_id=42)


def test_products_list_by_stock_then_newest(tmp_path: Path):
    repo, inventory, cats, _images = _setup(tmp_path)
    cid = cats.add_category("Bebidas", "Frias y calientes")
    a = inventory.add_product("Agua", None, 1.0, 5, cid)
    b = inventory.add_product("Te", None, 1.0, 5)
    c = inventory.add_product("Cafe", None, 1.0, 9)
    set_created_at(repo, "products", a, "2024-01-02 00:00:00")
    set_created_at(repo, "products", b, "2024-01-01 00:00:00")

    rows = inventory.list_products()

    assert [p.id for p in rows] == [c, a, b]
    assert rows[1].category is not None and rows[1].category.name == "Bebidas"
    assert rows[2].category is None


def test_search_products_matches_name_or_description_and_limits(tmp_path: Path):
    _repo, inventory, _cats, _images = _setup(tmp_path)
    for i in range(10):
        inventory.add_product(f"Galleta {i}", None, 1.0, 1)
    inventory.add_product("Pan", "ideal con galleta", 1.0, 1)

    assert len(inventory.search_products("galleta")) == 8
    assert [p.name for p in inventory.search_products("IDEAL")] == ["Pan"]
    assert inventory.search_products("   ") == []


def test_filter_products_by_category_and_availability(tmp_path: Path):
    _repo, inventory, cats, _images = _setup(tmp_path)
    cid = cats.add_category("Snacks")
    sold_out = inventory.add_product("Papas", None, 1.0, 0, cid)
    in_stock = inventory.add_product("Mani", None, 1.0, 3, cid)
    inventory.add_product("Jugo", None, 1.0, 2)

    products = inventory.list_products()
    snacks = inventory.filter_products(products, category_id=cid)
    assert sorted(p.id for p in snacks) == sorted([sold_out, in_stock])

    assert inventory.filter_products(snacks, availability="sold_out")[0].id == sold_out
    assert inventory.filter_products(snacks, availability="available")[0].id == in_stock
    assert len(inventory.filter_products(products, availability="sold_out")) == 3

    with pytest.raises(ValidationError):
        inventory.filter_products(products, availability="maybe")


def test_low_stock_threshold_and_limit(tmp_path: Path):
    _repo, inventory, _cats, _images = _setup(tmp_path)
    for i, stock in enumerate([0, 1, 2, 3, 4, 5, 6, 50]):
        inventory.add_product(f"P{i}", None, 1.0, stock)

    low = inventory.low_stock()

    assert [p.stock for p in low] == [0, 1, 2, 3, 4]
    assert all(p.stock <= 5 for p in inventory.low_stock(limit=10))
    assert len(inventory.low_stock(limit=10)) == 6


def test_deleting_category_keeps_products(tmp_path: Path):
    _repo, inventory, cats, _images = _setup(tmp_path)
    cid = cats.add_category("Temporal")
    pid = inventory.add_product("Vela", None, 2.0, 1, cid)

    cats.delete_category(cid)

    assert inventory.get_product(pid).category_id is None
    with pytest.raises(NotFoundError):
        cats.delete_category(cid)


def test_categories_newest_first_and_names_required(tmp_path: Path):
    repo, _inventory, cats, _images = _setup(tmp_path)
    old = cats.add_category("Viejo")
    new = cats.add_category("Nuevo")
    set_created_at(repo, "categories", old, "2020-01-01 00:00:00")

    assert [c.id for c in cats.list_categories()] == [new, old]

    cats.update_category(old, " Antiguo ", " ")
    assert repo.get_category(old).name == "Antiguo"
    assert repo.get_category(old).description is None

    with pytest.raises(ValidationError):
        cats.add_category("   ")
    with pytest.raises(NotFoundError):
        cats.update_category(999, "X")


def test_upload_stores_image_under_products_prefix(tmp_path: Path):
    _repo, _inventory, _cats, images = _setup(tmp_path)

    url = images.upload(_png(tmp_path))

    assert url.startswith("https://cdn.example.test/store/products/")
    assert url.endswith(".png")
    stored = images.path_for(url)
    assert stored is not None and stored.exists()
    assert stored.parent == tmp_path / "images" / "products"


def test_upload_rejects_non_images_and_large_files(tmp_path: Path):
    _repo, _inventory, _cats, images = _setup(tmp_path)
    doc = tmp_path / "notas.txt"
    doc.write_text("hola", encoding="utf-8")
    big = tmp_path / "big.png"
    big.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\0" * (5 * 1024 * 1024))

    with pytest.raises(ValidationError, match="Only image files"):
        images.upload(doc)
    with pytest.raises(ValidationError, match="5MB"):
        images.upload(big)
    with pytest.raises(NotFoundError):
        images.upload(tmp_path / "missing.png")


def test_upload_checks_file_content_not_extension(tmp_path: Path):
    _repo, _inventory, _cats, images = _setup(tmp_path)
    fake = tmp_path / "fake.png"
    fake.write_text("this is not an image", encoding="utf-8")
    bmp = tmp_path / "foto.bmp"
    Image.new("RGB", (4, 4)).save(bmp, "BMP")
    jpeg_named_png = tmp_path / "foto.png"
    Image.new("RGB", (4, 4)).save(jpeg_named_png, "JPEG")

    with pytest.raises(ValidationError, match="Only image files"):
        images.upload(fake)
    with pytest.raises(ValidationError, match="PNG, JPEG, GIF and WEBP"):
        images.upload(bmp)
    assert not (tmp_path / "images" / "products").exists()

    url = images.upload(jpeg_named_png)
    assert url.endswith(".jpg")


def test_remove_ignores_foreign_urls(tmp_path: Path):
    _repo, _inventory, _cats, images = _setup(tmp_path)

    assert images.remove("https://elsewhere.test/pic.png") is False
    assert images.remove("https://cdn.example.test/store/products/../secret") is False


def test_deleting_product_removes_its_image(tmp_path: Path):
    _repo, inventory, _cats, images = _setup(tmp_path)
    url = images.upload(_png(tmp_path))
    pid = inventory.add_product("Lampara", None, 20.0, 1, image_url=url)

    inventory.delete_product(pid)

    assert not images.path_for(url).exists()
    with pytest.raises(NotFoundError):
        inventory.get_product(pid)


def test_replacing_image_removes_previous_file(tmp_path: Path):
    _repo, inventory, _cats, images = _setup(tmp_path)
    old_url = images.upload(_png(tmp_path, "a.png"))
    new_url = images.upload(_png(tmp_path, "b.png"))
    pid = inventory.add_product("Lampara", None, 20.0, 1, image_url=old_url)

    inventory.update_product(pid, "Lampara", "LED", 25.0, 1, image_url=new_url)

    p = inventory.get_product(pid)
    assert (p.price, p.description, p.image_url) == (25.0, "LED", new_url)
    assert not images.path_for(old_url).exists()
    assert images.path_for(new_url).exists()


def test_sale_items_survive_product_deletion(tmp_path: Path):
    from conftest import make_currency
    from tienda.services.cart import Cart
    from tienda.services.sales_service import SalesService

    repo, inventory, _cats, _images = _setup(tmp_path)
    pid = inventory.add_product("Taza", None, 3.0, 2)
    cart = Cart()
    cart.add(inventory.get_product(pid))
    sale_id = SalesService(repo, make_currency(repo)).checkout(cart, "Ana")

    inventory.delete_product(pid)

    [item] = repo.get_sale(sale_id).items
    assert item.product_id is None
    assert item.product_name == "Taza"
