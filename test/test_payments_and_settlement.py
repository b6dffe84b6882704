from pathlib import Path

import pytest
from conftest import make_currency, make_repo

from tienda.domain.errors import NotFoundError, ValidationError
from tienda.domain.models import settlement_status
from tienda.services.cart import Cart
from tienda.services.customer_service import aggregate_customers
from tienda.services.inventory_service import InventoryService
from tienda.services.payment_service import PaymentService
from tienda.services.sales_service import SalesService


def _sale_of_ten_dollars(tmp_path: Path):
    repo = make_repo(tmp_path)
    currency = make_currency(repo)
    inventory = InventoryService(repo)
    pid = inventory.add_product("Mochila", None, 10.0, 4)

    cart = Cart()
    cart.add(inventory.get_product(pid))
    sale_id = SalesService(repo, currency).checkout(cart, "Ana")
    return repo, PaymentService(repo, currency), sale_id


def test_cop_payment_at_current_rate_settles_sale(tmp_path: Path):
    repo, payments, sale_id = _sale_of_ten_dollars(tmp_path)

    payments.record_payment(sale_id, "41500", "COP", method="transferencia", reference=" TRX-1 ")

    sale = repo.get_sale(sale_id)
    assert sale.total_paid == pytest.approx(10.0)
    assert sale.status == "paid"
    assert sale.remaining == 0

    [p] = sale.payments
    assert p.rate == 4150.0
    assert p.amount_in_base == pytest.approx(10.0)
    assert p.method == "transferencia"
    assert p.reference == "TRX-1"


def test_partial_payment_then_overpayment(tmp_path: Path):
    repo, payments, sale_id = _sale_of_ten_dollars(tmp_path)

    payments.record_payment(sale_id, 4, "USD")
    sale = repo.get_sale(sale_id)
    assert sale.status == "partial"
    assert payments.remaining_balance(sale) == pytest.approx(6.0)

    payments.record_payment(sale_id, 15, "USD")
    sale = repo.get_sale(sale_id)
    assert sale.status == "paid"
    assert sale.total_paid == pytest.approx(19.0)
    assert payments.remaining_balance(sale) == 0.0


def test_payment_uses_rate_at_payment_time(tmp_path: Path):
    repo, payments, sale_id = _sale_of_ten_dollars(tmp_path)
    payments.currency.update_rates({"COP": "5000"})

    payments.record_payment(sale_id, "20000", "COP")

    sale = repo.get_sale(sale_id)
    assert sale.rates["COP"] == 4150.0
    assert sale.total_paid == pytest.approx(4.0)


@pytest.mark.parametrize("raw", ["0", "-3", "abc", "", "nan", "inf"])
def test_invalid_amounts_are_rejected(tmp_path: Path, raw):
    repo, payments, sale_id = _sale_of_ten_dollars(tmp_path)

    with pytest.raises(ValidationError):
        payments.record_payment(sale_id, raw, "USD")
    assert repo.payments_for_sale(sale_id) == []


def test_unknown_method_is_rejected(tmp_path: Path):
    _repo, payments, sale_id = _sale_of_ten_dollars(tmp_path)

    with pytest.raises(ValidationError, match="method"):
        payments.record_payment(sale_id, 5, "USD", method="bitcoin")


def test_unknown_currency_is_taken_at_rate_one(tmp_path: Path):
    repo, payments, sale_id = _sale_of_ten_dollars(tmp_path)

    payments.record_payment(sale_id, 5, "EUR")

    [p] = repo.payments_for_sale(sale_id)
    assert (p.currency, p.rate, p.amount_in_base) == ("EUR", 1.0, 5.0)


def test_payment_for_missing_sale(tmp_path: Path):
    _repo, payments, _sale_id = _sale_of_ten_dollars(tmp_path)

    with pytest.raises(NotFoundError):
        payments.record_payment(999, 5, "USD")


def test_pay_rest_amount_uses_current_rate(tmp_path: Path):
    repo, payments, sale_id = _sale_of_ten_dollars(tmp_path)
    payments.record_payment(sale_id, 4, "USD")
    sale = repo.get_sale(sale_id)

    assert payments.pay_rest_amount(sale, "USD") == 6.0
    assert payments.pay_rest_amount(sale, "COP") == 24900.0
    assert payments.preview_in_base("24900", "COP") == pytest.approx(6.0)


def test_payments_are_listed_newest_first_and_removed_with_sale(tmp_path: Path):
    repo, payments, sale_id = _sale_of_ten_dollars(tmp_path)
    first = payments.record_payment(sale_id, 1, "USD")
    second = payments.record_payment(sale_id, 2, "USD")

    assert [p.id for p in payments.list_payments(sale_id)] == [second, first]

    SalesService(repo, payments.currency).delete_sale(sale_id)
    assert repo.payments_for_sale(sale_id) == []


def test_settlement_status_thresholds():
    assert settlement_status(10.0, 0.0) == "pending"
    assert settlement_status(10.0, 9.99) == "partial"
    assert settlement_status(10.0, 10.0) == "paid"
    assert settlement_status(0.0, 0.0) == "pending"
    assert settlement_status(0.1 + 0.2, 0.3) == "paid"


def test_pay_rest_on_cents_settles_sale(tmp_path: Path):
    repo = make_repo(tmp_path)
    currency = make_currency(repo)
    inventory = InventoryService(repo)
    cart = Cart()
    cart.add(inventory.get_product(inventory.add_product("Chicle", None, 0.1, 5)))
    cart.add(inventory.get_product(inventory.add_product("Caramelo", None, 0.2, 5)))
    sale_id = SalesService(repo, currency).checkout(cart, "Ana")
    payments = PaymentService(repo, currency)

    sale = repo.get_sale(sale_id)
    assert sale.total == 0.3
    payments.record_payment(sale_id, payments.pay_rest_amount(sale, "USD"), "USD")

    sale = repo.get_sale(sale_id)
    assert sale.status == "paid"
    assert sale.remaining == 0.0
    [row] = aggregate_customers(repo.list_customers(), repo.list_sales())
    assert (row.has_debt, row.pending) == (False, 0.0)
