import pytest

from pos_recap.backend.aggregator import PaymentMethod
from pos_recap.backend.services import (
    CartItem, EmptyCartError, ProductCatalog, UnknownProductError, build_cart, cart_total, checkout
)


@pytest.fixture
def cart():
    return [
        CartItem("p1", "Kopi", 10000, 4000, 2),
        CartItem("p2", "Roti", 8000, 3000, 1),
    ]


def test_checkout_computes_totals_once(cart, at):
    record = checkout(cart, "cash", now=at(2024, 5, 10, 9, 0))

    assert record.payment_method is PaymentMethod.CASH
    assert record.gross_total == 28000
    assert record.cost_total == 11000
    assert record.timestamp == at(2024, 5, 10, 9, 0)
    assert [item.product_name for item in record.line_items] == ["Kopi", "Roti"]
    assert record.line_items[0].product_id == "p1"
    assert record.check_totals(strict=True)


def test_checkout_assigns_unique_ids(cart):
    assert checkout(cart, "qris").id != checkout(cart, "qris").id


def test_checkout_defaults_to_aware_now(cart):
    record = checkout(cart, "qris")

    assert record.timestamp.tzinfo is not None


def test_quantity_is_at_least_one(at):
    record = checkout([CartItem("p1", "Kopi", 10000, 4000, 0)], "cash", now=at(2024, 5, 10))

    assert record.line_items[0].quantity == 1
    assert record.gross_total == 10000


def test_empty_cart_is_rejected():
    with pytest.raises(EmptyCartError):
        checkout([], "cash")


def test_unknown_payment_method_is_rejected(cart):
    with pytest.raises(ValueError):
        checkout(cart, "bitcoin")


def test_cart_total(cart):
    assert cart_total(cart) == 28000
    assert cart_total([]) == 0


def test_cart_item_from_dict():
    item = CartItem.from_dict(
        {"product_id": "p9", "product_name": "Teh", "selling_price": 5000, "quantity": "3"}
    )

    assert item == CartItem("p9", "Teh", 5000, 0, 3)


def test_cart_item_from_dict_requires_name_and_price():
    with pytest.raises(ValueError):
        CartItem.from_dict({"product_name": "Teh"})


def test_cart_item_from_dict_converts_numeric_strings():
    item = CartItem.from_dict(
        {"product_id": "p9", "product_name": "Teh", "selling_price": "10000", "cost_price": "2500.5"}
    )

    assert item.selling_price == 10000
    assert isinstance(item.selling_price, int)
    assert item.cost_price == 2500.5


@pytest.mark.parametrize(
    "field, value",
    [
        ("selling_price", -10000),
        ("selling_price", "abc"),
        ("selling_price", True),
        ("selling_price", [10000]),
        ("cost_price", -1),
        ("cost_price", "nan"),
        ("quantity", "dua"),
    ],
)
def test_cart_item_from_dict_rejects_bad_numbers(field, value):
    data = {"product_id": "p9", "product_name": "Teh", "selling_price": 5000, "cost_price": 2000}
    data[field] = value

    with pytest.raises(ValueError):
        CartItem.from_dict(data)


@pytest.fixture
def catalog(tmp_path):
    return ProductCatalog(tmp_path / "catalog.db")


def test_build_cart_uses_catalog_prices(catalog, at):
    kopi = catalog.add("Kopi", 10000, 4000)
    roti = catalog.add("Roti", 8000, 3000)

    cart = build_cart(
        [{"product_id": kopi.id, "quantity": 2}, {"product_id": roti.id, "selling_price": 1}],
        catalog,
    )

    assert cart == [
        CartItem(kopi.id, "Kopi", 10000, 4000, 2),
        CartItem(roti.id, "Roti", 8000, 3000, 1),
    ]
    assert checkout(cart, "cash", now=at(2024, 5, 10)).gross_total == 28000


@pytest.mark.parametrize("item", [{"product_id": "missing"}, {"quantity": 1}])
def test_build_cart_rejects_unknown_products(catalog, item):
    with pytest.raises(UnknownProductError):
        build_cart([item], catalog)
