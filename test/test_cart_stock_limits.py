import pytest

from tienda.domain.errors import InsufficientStockError
from tienda.domain.models import Product
from tienda.services.cart import Cart


def _product(pid=1, stock=3, price=2.5):
    return Product(id=pid, name=f"Producto {pid}", description=None, price=price, stock=stock)


def test_fourth_add_on_stock_three_is_rejected():
    cart = Cart()
    p = _product(stock=3)

    for _ in range(3):
        cart.add(p)

    with pytest.raises(InsufficientStockError, match=r"Only 3 available \(3 already in cart\)"):
        cart.add(p)
    assert cart.quantity_of(p.id) == 3
    assert len(cart) == 1


def test_sold_out_product_can_not_be_added():
    cart = Cart()

    with pytest.raises(InsufficientStockError, match="Only 0 available"):
        cart.add(_product(stock=0))
    assert cart.is_empty


def test_set_quantity_below_one_removes_item():
    cart = Cart()
    p = _product()
    cart.add(p)

    cart.set_quantity(p.id, 0)

    assert cart.is_empty


def test_set_quantity_above_stock_keeps_previous_quantity():
    cart = Cart()
    p = _product(stock=3)
    cart.add(p)

    with pytest.raises(InsufficientStockError):
        cart.set_quantity(p.id, 4)
    assert cart.quantity_of(p.id) == 1


def test_set_quantity_of_unknown_product_is_ignored():
    cart = Cart()
    cart.set_quantity(99, 2)

    assert cart.is_empty


def test_total_sums_line_subtotals_in_insertion_order():
    cart = Cart()
    a = _product(1, stock=5, price=2.5)
    b = _product(2, stock=5, price=10.0)
    cart.add(a)
    cart.add(b)
    cart.add(a)

    assert [it.product.id for it in cart.items] == [1, 2]
    assert cart.total() == pytest.approx(15.0)

    cart.clear()
    assert cart.total() == 0
