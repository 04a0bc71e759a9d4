from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import ValidationError

from schemas import InsertCartItem, InsertOrderItem, ProductUpdate
from storage import REMOVED, SAMPLE_PRODUCTS, MemStorage
from tests.factories import make_order, make_product


# Products

def test_create_product_assigns_id_and_defaults(storage):
    product = storage.create_product(make_product(name="X", price="100", stock=5))
    assert product.id == 1
    assert product.is_active is True
    assert product.rating == "0"
    assert product.images == []
    assert product.stock == 5


def test_ids_are_never_reused(storage):
    storage.create_product(make_product())
    second = storage.create_product(make_product())
    assert storage.delete_product(second.id) is True
    third = storage.create_product(make_product())
    assert third.id == 3


def test_list_excludes_inactive_but_lookup_does_not(storage):
    active = storage.create_product(make_product(name="Active"))
    hidden = storage.create_product(make_product(name="Hidden", is_active=False))
    assert [p.id for p in storage.get_products()] == [active.id]
    assert storage.get_product_by_id(hidden.id).name == "Hidden"
    assert storage.get_product_by_id(999) is None


def test_category_filter_is_exact(storage):
    storage.create_product(make_product(category="knives"))
    storage.create_product(make_product(category="scissors"))
    storage.create_product(make_product(category="knives", is_active=False))
    assert len(storage.get_products_by_category("knives")) == 1
    assert storage.get_products_by_category("Knives") == []


def test_search_matches_name_description_category_case_insensitively(storage):
    by_name = storage.create_product(make_product(name="Santoku Knife", description="d", category="c"))
    by_desc = storage.create_product(make_product(name="n", description="Great for SANTOKU fans", category="c"))
    by_cat = storage.create_product(make_product(name="n", description="d", category="santoku"))
    storage.create_product(make_product(name="Santoku old", is_active=False))
    storage.create_product(make_product(name="Tape", description="sticky", category="tape"))

    found = {p.id for p in storage.search_products("SanToKu")}
    assert found == {by_name.id, by_desc.id, by_cat.id}


def test_update_product_merges_fields(storage):
    product = storage.create_product(make_product(colors=["Black"]))
    updated = storage.update_product(product.id, ProductUpdate(price="90", sale_price="80"))
    assert updated.price == "90"
    assert updated.sale_price == "80"
    assert updated.name == product.name
    assert updated.colors == ["Black"]
    assert storage.get_product_by_id(product.id).price == "90"


def test_update_missing_product_returns_none(storage):
    assert storage.update_product(42, ProductUpdate(price="1")) is None


def test_soft_delete_through_update(storage):
    product = storage.create_product(make_product())
    storage.update_product(product.id, ProductUpdate(is_active=False))
    assert storage.get_products() == []
    assert storage.get_product_by_id(product.id) is not None


def test_delete_product(storage):
    product = storage.create_product(make_product())
    assert storage.delete_product(product.id) is True
    assert storage.delete_product(product.id) is False
    assert storage.get_product_by_id(product.id) is None


def test_returned_products_are_copies(storage):
    product = storage.create_product(make_product(colors=["Black"]))
    product.colors.append("Red")
    product.name = "Changed"
    stored = storage.get_product_by_id(product.id)
    assert stored.colors == ["Black"]
    assert stored.name == "Santoku Knife"


def test_seed_sample_products():
    seeded = MemStorage(seed=True)
    products = seeded.get_products()
    assert len(products) == len(SAMPLE_PRODUCTS)
    assert products[0].id == 1
    assert products[0].sale_price == "1990"
    assert {p.category for p in products} == {"knives", "scissors", "tape", "accessories"}


# Cart

def test_add_to_cart_merges_same_tuple(storage):
    product = storage.create_product(make_product())
    first = storage.add_to_cart(InsertCartItem(product_id=product.id, quantity=1))
    second = storage.add_to_cart(InsertCartItem(product_id=product.id, quantity=2))
    assert first.id == second.id
    items = storage.get_cart_items()
    assert len(items) == 1
    assert items[0].quantity == 3


def test_add_to_cart_default_quantity(storage):
    product = storage.create_product(make_product())
    storage.add_to_cart(InsertCartItem(product_id=product.id))
    item = storage.add_to_cart(InsertCartItem(product_id=product.id))
    assert item.quantity == 2


def test_add_to_cart_keeps_distinct_options_apart(storage):
    product = storage.create_product(make_product())
    storage.add_to_cart(InsertCartItem(product_id=product.id, selected_color="Black"))
    storage.add_to_cart(InsertCartItem(product_id=product.id, selected_color="Grey"))
    storage.add_to_cart(InsertCartItem(product_id=product.id, selected_color="Black", selected_variant="18cm"))
    storage.add_to_cart(InsertCartItem(product_id=product.id))
    storage.add_to_cart(InsertCartItem(product_id=product.id, selected_color="Black", quantity=4))

    rows = {(i.selected_color, i.selected_variant): i.quantity for i in storage.get_cart_items()}
    assert rows == {
        ("Black", None): 5,
        ("Grey", None): 1,
        ("Black", "18cm"): 1,
        (None, None): 1,
    }


def test_update_cart_item(storage):
    product = storage.create_product(make_product())
    item = storage.add_to_cart(InsertCartItem(product_id=product.id))
    updated = storage.update_cart_item(item.id, 7)
    assert updated.quantity == 7
    assert storage.get_cart_item(item.id).quantity == 7


def test_update_cart_item_to_zero_removes_row(storage):
    product = storage.create_product(make_product())
    item = storage.add_to_cart(InsertCartItem(product_id=product.id))
    assert storage.update_cart_item(item.id, 0) == REMOVED
    assert storage.get_cart_item(item.id) is None
    assert storage.get_cart_items() == []


def test_update_missing_cart_item_returns_none(storage):
    assert storage.update_cart_item(5, 2) is None
    assert storage.update_cart_item(5, 0) is None


def test_remove_and_clear_cart(storage):
    product = storage.create_product(make_product())
    a = storage.add_to_cart(InsertCartItem(product_id=product.id, selected_color="Black"))
    storage.add_to_cart(InsertCartItem(product_id=product.id, selected_color="Grey"))
    assert storage.remove_from_cart(a.id) is True
    assert storage.remove_from_cart(a.id) is False
    assert len(storage.get_cart_items()) == 1
    storage.clear_cart()
    assert storage.get_cart_items() == []


def test_cart_drops_rows_for_deleted_products(storage):
    kept = storage.create_product(make_product(name="Kept"))
    gone = storage.create_product(make_product(name="Gone"))
    storage.add_to_cart(InsertCartItem(product_id=kept.id))
    storage.add_to_cart(InsertCartItem(product_id=gone.id))
    storage.delete_product(gone.id)
    items = storage.get_cart_items()
    assert [i.product.name for i in items] == ["Kept"]


def test_cart_join_reflects_live_product(storage):
    product = storage.create_product(make_product(price="100"))
    storage.add_to_cart(InsertCartItem(product_id=product.id))
    storage.update_product(product.id, ProductUpdate(price="120"))
    assert storage.get_cart_items()[0].product.price == "120"


def test_concurrent_adds_keep_one_row(storage):
    product = storage.create_product(make_product())

    def add(_):
        storage.add_to_cart(InsertCartItem(product_id=product.id, selected_color="Black"))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(add, range(200)))

    items = storage.get_cart_items()
    assert len(items) == 1
    assert items[0].quantity == 200


# Orders

def test_create_order_and_fetch_with_items(storage):
    knife = storage.create_product(make_product(name="Knife", price="100"))
    tape = storage.create_product(make_product(name="Tape", price="50"))
    order = storage.create_order(make_order(), [
        InsertOrderItem(product_id=knife.id, quantity=2, price="100", selected_color="Black"),
        InsertOrderItem(product_id=tape.id, quantity=2, price="50"),
    ])
    assert order.id == 1
    assert order.status == "pending"

    fetched = storage.get_order_by_id(order.id)
    assert len(fetched.items) == 2
    assert {i.order_id for i in fetched.items} == {order.id}
    assert [i.id for i in fetched.items] == [1, 2]
    assert fetched.items[0].product.name == "Knife"
    assert fetched.items[1].selected_color is None


def test_order_item_price_is_a_snapshot(storage):
    knife = storage.create_product(make_product(price="100"))
    order = storage.create_order(make_order(total="100"), [
        InsertOrderItem(product_id=knife.id, quantity=1, price="100"),
    ])
    storage.update_product(knife.id, ProductUpdate(price="999"))
    item = storage.get_order_by_id(order.id).items[0]
    assert item.price == "100"
    assert item.product.price == "999"


def test_order_items_for_deleted_products_are_dropped(storage):
    knife = storage.create_product(make_product())
    tape = storage.create_product(make_product())
    order = storage.create_order(make_order(), [
        InsertOrderItem(product_id=knife.id, quantity=1, price="100"),
        InsertOrderItem(product_id=tape.id, quantity=1, price="100"),
    ])
    storage.delete_product(tape.id)
    assert len(storage.get_order_by_id(order.id).items) == 1


def test_orders_keep_their_own_items(storage):
    knife = storage.create_product(make_product())
    first = storage.create_order(make_order(), [InsertOrderItem(product_id=knife.id, quantity=1, price="100")])
    second = storage.create_order(make_order(status="paid"), [
        InsertOrderItem(product_id=knife.id, quantity=3, price="100"),
        InsertOrderItem(product_id=knife.id, quantity=1, price="100"),
    ])
    assert len(storage.get_order_by_id(first.id).items) == 1
    assert len(storage.get_order_by_id(second.id).items) == 2
    assert [o.status for o in storage.get_orders()] == ["pending", "paid"]


def test_failed_order_leaves_nothing_behind(storage):
    knife = storage.create_product(make_product())
    good = InsertOrderItem(product_id=knife.id, quantity=1, price="100")
    bad = InsertOrderItem.model_construct(product_id=knife.id, quantity=0, price="x")

    with pytest.raises(ValidationError):
        storage.create_order(make_order(), [good, bad])

    assert storage.get_orders() == []
    assert storage.get_order_by_id(1) is None
    assert storage._order_items == {}

    order = storage.create_order(make_order(), [good])
    assert order.id == 2
    assert len(storage.get_order_by_id(order.id).items) == 1


def test_get_missing_order(storage):
    assert storage.get_order_by_id(1) is None
    assert storage.get_orders() == []
