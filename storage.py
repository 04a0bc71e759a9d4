"""
In-memory storage for the storefront.

MemStorage owns four collections (products, cart items, orders, order items),
each a dict keyed by an integer id handed out by a per-collection counter.
Counters only move forward, so a deleted id is never reused.

Lookups that miss return None (or False for deletes) instead of raising;
callers decide what "not found" means for them.
"""

from __future__ import annotations
import logging
import threading
from itertools import count
from typing import Dict, List, Literal, Optional, Union

from schemas import (
    CartItem,
    CartItemWithProduct,
    InsertCartItem,
    InsertOrder,
    InsertOrderItem,
    InsertProduct,
    Order,
    OrderItem,
    OrderItemWithProduct,
    OrderWithItems,
    Product,
    ProductUpdate,
)

logger = logging.getLogger(__name__)

REMOVED: Literal["removed"] = "removed"

# Sample catalog loaded on startup when seeding is enabled
SAMPLE_PRODUCTS: list[dict] = [
    {"name": "Santoku Kitchen Knife 18cm", "description": "Sharp Japanese Santoku knife for everyday kitchen use.", "price": "2500", "sale_price": "1990", "category": "knives", "image_url": "https://images.unsplash.com/photo-1594736797933-d0a9ba2fe65f?ixlib=rb-4.0.3&auto=format&fit=crop&w=400&h=300", "stock": 25, "rating": "4.8", "review_count": 89, "colors": ["Black", "Grey"], "variants": ["15cm", "18cm", "21cm"]},
    {"name": "Kitchen Knife Set, 6 pcs", "description": "Professional stainless steel kitchen knife set.", "price": "8500", "category": "knives", "image_url": "https://images.unsplash.com/photo-1594736797933-d0a9ba2fe65f?ixlib=rb-4.0.3&auto=format&fit=crop&w=400&h=300", "stock": 12, "rating": "4.9", "review_count": 45, "colors": ["Silver"], "variants": ["6 pcs", "8 pcs", "12 pcs"]},
    {"name": "Tailor Scissors 25cm", "description": "Professional tailor scissors for precise fabric cutting.", "price": "1800", "category": "scissors", "image_url": "https://images.unsplash.com/photo-1585435557343-3b092031d342?ixlib=rb-4.0.3&auto=format&fit=crop&w=400&h=300", "stock": 18, "rating": "4.7", "review_count": 67, "colors": ["Silver", "Black"], "variants": ["20cm", "25cm", "30cm"]},
    {"name": "Office Scissors", "description": "Comfortable scissors for the office and home.", "price": "350", "category": "scissors", "image_url": "https://images.unsplash.com/photo-1585435557343-3b092031d342?ixlib=rb-4.0.3&auto=format&fit=crop&w=400&h=300", "stock": 45, "rating": "4.5", "review_count": 123, "colors": ["Blue", "Red", "Black"], "variants": ["Small", "Medium", "Large"]},
    {"name": "Clear Packing Tape", "description": "Strong packing tape for sealing boxes and parcels.", "price": "120", "category": "tape", "image_url": "https://images.unsplash.com/photo-1586075010923-2dd4570fb338?ixlib=rb-4.0.3&auto=format&fit=crop&w=400&h=300", "stock": 100, "rating": "4.6", "review_count": 89, "colors": ["Clear"], "variants": ["48mm", "50mm", "72mm"]},
    {"name": "Double-Sided Tape", "description": "Extra strong double-sided tape for mounting and bonding.", "price": "250", "category": "tape", "image_url": "https://images.unsplash.com/photo-1586075010923-2dd4570fb338?ixlib=rb-4.0.3&auto=format&fit=crop&w=400&h=300", "stock": 65, "rating": "4.8", "review_count": 156, "colors": ["White"], "variants": ["12mm", "19mm", "25mm"]},
    {"name": "Stationery Set", "description": "Complete office set: paper clips, pins, rubber bands, sticky notes.", "price": "890", "category": "accessories", "image_url": "https://images.unsplash.com/photo-1586953208448-b95a79798f07?ixlib=rb-4.0.3&auto=format&fit=crop&w=400&h=300", "stock": 32, "rating": "4.4", "review_count": 78, "colors": ["Multicolor"], "variants": ["Basic", "Extended", "Premium"]},
    {"name": "Desk Organizer", "description": "Handy plastic organizer with compartments for small items.", "price": "650", "category": "accessories", "image_url": "https://images.unsplash.com/photo-1586953208448-b95a79798f07?ixlib=rb-4.0.3&auto=format&fit=crop&w=400&h=300", "stock": 28, "rating": "4.7", "review_count": 92, "colors": ["White", "Grey", "Blue"], "variants": ["Small", "Medium", "Large"]},
]


class MemStorage:
    def __init__(self, seed: bool = False) -> None:
        self._products: Dict[int, Product] = {}
        self._cart_items: Dict[int, CartItem] = {}
        self._orders: Dict[int, Order] = {}
        self._order_items: Dict[int, OrderItem] = {}
        self._product_ids = count(1)
        self._cart_ids = count(1)
        self._order_ids = count(1)
        self._order_item_ids = count(1)
        # FastAPI runs sync routes in a thread pool; one lock covers all collections
        self._lock = threading.RLock()
        if seed:
            self.seed_sample_products()

    def seed_sample_products(self) -> int:
        for data in SAMPLE_PRODUCTS:
            self.create_product(InsertProduct(**data))
        logger.info("Seeded %d sample products", len(SAMPLE_PRODUCTS))
        return len(SAMPLE_PRODUCTS)

    # Products

    def get_products(self) -> List[Product]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._products.values() if p.is_active]

    def get_product_by_id(self, product_id: int) -> Optional[Product]:
        with self._lock:
            product = self._products.get(product_id)
            return product.model_copy(deep=True) if product is not None else None

    def get_products_by_category(self, category: str) -> List[Product]:
        with self._lock:
            return [
                p.model_copy(deep=True)
                for p in self._products.values()
                if p.is_active and p.category == category
            ]

    def search_products(self, query: str) -> List[Product]:
        term = query.lower()
        with self._lock:
            return [
                p.model_copy(deep=True)
                for p in self._products.values()
                if p.is_active and (
                    term in p.name.lower()
                    or term in p.description.lower()
                    or term in p.category.lower()
                )
            ]

    def create_product(self, data: InsertProduct) -> Product:
        with self._lock:
            product = Product(id=next(self._product_ids), **data.model_dump())
            self._products[product.id] = product
            return product.model_copy(deep=True)

    def update_product(self, product_id: int, data: ProductUpdate) -> Optional[Product]:
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                return None
            updated = product.model_copy(update=data.changes(), deep=True)
            self._products[product_id] = updated
            return updated.model_copy(deep=True)

    def delete_product(self, product_id: int) -> bool:
        with self._lock:
            return self._products.pop(product_id, None) is not None

    # Cart

    def get_cart_items(self) -> List[CartItemWithProduct]:
        with self._lock:
            result = []
            for item in self._cart_items.values():
                product = self._products.get(item.product_id)
                if product is not None:
                    result.append(CartItemWithProduct(**item.model_dump(), product=product.model_copy(deep=True)))
            return result

    def get_cart_item(self, item_id: int) -> Optional[CartItem]:
        with self._lock:
            item = self._cart_items.get(item_id)
            return item.model_copy() if item is not None else None

    def add_to_cart(self, data: InsertCartItem) -> CartItem:
        with self._lock:
            existing = next(
                (
                    item for item in self._cart_items.values()
                    if item.product_id == data.product_id
                    and item.selected_color == data.selected_color
                    and item.selected_variant == data.selected_variant
                ),
                None,
            )
            if existing is not None:
                existing.quantity += data.quantity
                return existing.model_copy()

            item = CartItem(id=next(self._cart_ids), **data.model_dump())
            self._cart_items[item.id] = item
            return item.model_copy()

    def update_cart_item(self, item_id: int, quantity: int) -> Union[CartItem, Literal["removed"], None]:
        """Set a row's quantity. A quantity of zero or less removes the row and
        returns ``REMOVED``; an unknown id returns None."""
        with self._lock:
            item = self._cart_items.get(item_id)
            if item is None:
                return None
            if quantity <= 0:
                del self._cart_items[item_id]
                return REMOVED
            item.quantity = quantity
            return item.model_copy()

    def remove_from_cart(self, item_id: int) -> bool:
        with self._lock:
            return self._cart_items.pop(item_id, None) is not None

    def clear_cart(self) -> None:
        with self._lock:
            self._cart_items.clear()

    # Orders

    def create_order(self, data: InsertOrder, items: List[InsertOrderItem]) -> Order:
        with self._lock:
            # Build everything first so a bad item leaves no partial order behind
            order = Order(id=next(self._order_ids), **data.model_dump())
            order_items = [
                OrderItem(id=next(self._order_item_ids), order_id=order.id, **item.model_dump())
                for item in items
            ]
            self._orders[order.id] = order
            for order_item in order_items:
                self._order_items[order_item.id] = order_item
            logger.info("Created order %s with %d items", order.id, len(order_items))
            return order.model_copy()

    def get_orders(self) -> List[Order]:
        with self._lock:
            return [o.model_copy() for o in self._orders.values()]

    def get_order_by_id(self, order_id: int) -> Optional[OrderWithItems]:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                return None
            items = []
            for item in self._order_items.values():
                if item.order_id != order_id:
                    continue
                product = self._products.get(item.product_id)
                if product is not None:
                    items.append(OrderItemWithProduct(**item.model_dump(), product=product.model_copy(deep=True)))
            return OrderWithItems(**order.model_dump(), items=items)
