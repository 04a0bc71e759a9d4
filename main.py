import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from config import Settings, get_settings
from schemas import (
    CartItem,
    CartItemWithProduct,
    CartQuantityUpdate,
    CreateOrderRequest,
    InsertCartItem,
    InsertProduct,
    Order,
    OrderWithItems,
    Product,
    ProductUpdate,
)
from storage import REMOVED, MemStorage

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("storefront")

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.storage = MemStorage(seed=settings.SEED_SAMPLE_PRODUCTS)
    logger.info("Storage ready")
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Utilities

def get_storage(request: Request) -> MemStorage:
    # built once by the lifespan handler
    return request.app.state.storage


@lru_cache
def passcode_hash(passcode: str) -> str:
    return pwd_context.hash(passcode)


def verify_passcode(plain: str, config: Settings) -> bool:
    return pwd_context.verify(plain, passcode_hash(config.ADMIN_PASSCODE))


def create_access_token(data: dict, config: Settings, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str, config: Settings) -> dict:
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


# Auth models

class AdminLoginInput(BaseModel):
    passcode: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


# Dependency guarding admin routes

def get_current_admin(
    authorization: Optional[str] = Header(default=None),
    config: Settings = Depends(get_settings),
) -> Dict[str, str]:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    token = authorization.split(" ", 1)[1]
    payload = decode_token(token, config)
    if payload.get("sub") != "admin":
        raise HTTPException(status_code=401, detail="Invalid token")
    return {"role": "admin"}


# Routes
@app.get("/")
def read_root():
    return {"message": "Storefront API"}


@app.get("/test")
def test_storage(storage: MemStorage = Depends(get_storage)):
    return {
        "backend": "✅ Running",
        "storage": "in-memory",
        "products": len(storage.get_products()),
        "cart_items": len(storage.get_cart_items()),
        "orders": len(storage.get_orders()),
    }


# Admin auth
@app.post("/api/admin/login", response_model=TokenResponse)
def admin_login(payload: AdminLoginInput, config: Settings = Depends(get_settings)):
    if not verify_passcode(payload.passcode, config):
        logger.warning("Rejected admin login attempt")
        raise HTTPException(status_code=401, detail="Invalid passcode")
    return TokenResponse(access_token=create_access_token({"sub": "admin"}, config))


@app.get("/api/admin/me")
def admin_me(admin: dict = Depends(get_current_admin)):
    return admin


# Products
@app.get("/api/products", response_model=List[Product])
def list_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    storage: MemStorage = Depends(get_storage),
):
    if search:
        products = storage.search_products(search)
        if category:
            products = [p for p in products if p.category == category]
        return products
    if category:
        return storage.get_products_by_category(category)
    return storage.get_products()


@app.get("/api/products/category/{category}", response_model=List[Product])
def list_products_by_category(category: str, storage: MemStorage = Depends(get_storage)):
    return storage.get_products_by_category(category)


@app.get("/api/products/search/{query}", response_model=List[Product])
def search_products(query: str, storage: MemStorage = Depends(get_storage)):
    return storage.search_products(query)


@app.get("/api/products/{product_id}", response_model=Product)
def get_product(product_id: int, storage: MemStorage = Depends(get_storage)):
    product = storage.get_product_by_id(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.post("/api/products", response_model=Product, status_code=201)
def create_product(
    data: InsertProduct,
    storage: MemStorage = Depends(get_storage),
    admin: dict = Depends(get_current_admin),
):
    product = storage.create_product(data)
    logger.info("Created product %s (%s)", product.id, product.name)
    return product


@app.api_route("/api/products/{product_id}", methods=["PUT", "PATCH"], response_model=Product)
def update_product(
    product_id: int,
    data: ProductUpdate,
    storage: MemStorage = Depends(get_storage),
    admin: dict = Depends(get_current_admin),
):
    if not data.changes():
        raise HTTPException(status_code=400, detail="No fields to update")
    product = storage.update_product(product_id, data)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    logger.info("Updated product %s", product_id)
    return product


@app.delete("/api/products/{product_id}")
def delete_product(
    product_id: int,
    storage: MemStorage = Depends(get_storage),
    admin: dict = Depends(get_current_admin),
):
    if not storage.delete_product(product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    logger.info("Deleted product %s", product_id)
    return {"ok": True}


# Cart
@app.get("/api/cart", response_model=List[CartItemWithProduct])
def get_cart(storage: MemStorage = Depends(get_storage)):
    return storage.get_cart_items()


@app.post("/api/cart", response_model=CartItem, status_code=201)
def add_to_cart(item: InsertCartItem, storage: MemStorage = Depends(get_storage)):
    # ensure product exists
    if storage.get_product_by_id(item.product_id) is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return storage.add_to_cart(item)


@app.put("/api/cart/{item_id}")
def update_cart_item(item_id: int, payload: CartQuantityUpdate, storage: MemStorage = Depends(get_storage)):
    result = storage.update_cart_item(item_id, payload.quantity)
    if result is None:
        raise HTTPException(status_code=404, detail="Cart item not found")
    if result == REMOVED:
        return {"ok": True, "removed": True}
    return result


@app.delete("/api/cart/{item_id}")
def remove_from_cart(item_id: int, storage: MemStorage = Depends(get_storage)):
    if not storage.remove_from_cart(item_id):
        raise HTTPException(status_code=404, detail="Cart item not found")
    return {"ok": True}


@app.delete("/api/cart")
def clear_cart(storage: MemStorage = Depends(get_storage)):
    storage.clear_cart()
    logger.info("Cart cleared")
    return {"ok": True}


# Orders
@app.post("/api/orders", response_model=Order, status_code=201)
def create_order(payload: CreateOrderRequest, storage: MemStorage = Depends(get_storage)):
    if not payload.items:
        raise HTTPException(status_code=400, detail="Order has no items")
    for item in payload.items:
        if storage.get_product_by_id(item.product_id) is None:
            raise HTTPException(status_code=400, detail=f"Invalid product {item.product_id}")
    order = storage.create_order(payload.order, payload.items)
    # checkout empties the cart
    storage.clear_cart()
    return order


@app.get("/api/orders", response_model=List[Order])
def list_orders(storage: MemStorage = Depends(get_storage), admin: dict = Depends(get_current_admin)):
    return storage.get_orders()


@app.get("/api/orders/{order_id}", response_model=OrderWithItems)
def get_order(order_id: int, storage: MemStorage = Depends(get_storage)):
    order = storage.get_order_by_id(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
