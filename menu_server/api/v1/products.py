"""
Product inventory routes
"""

from typing import Optional

from fastapi import APIRouter, Depends

from ...core.database import DatabaseManager, get_db
from ...core.error_handler import create_success_response
from ...core.security import get_operator_id
from ...models.product import ProductCreate, ProductUpdate
from ...schemas.inventory import StockChangeRequest
from ...services.product_service import ProductService

router = APIRouter()


@router.get("")
def list_products(
    status: Optional[str] = None,
    category: Optional[str] = None,
    low_stock: bool = False,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    products = ProductService(db).list_products(status=status, category=category, low_stock=low_stock)
    return create_success_response(products, f"{len(products)} products")


@router.post("")
def create_product(
    req: ProductCreate,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    product = ProductService(db).create_product(req, operator_id)
    return create_success_response(product, f"Product '{product.name}' created")


@router.get("/alerts")
def get_alerts(db: DatabaseManager = Depends(get_db), operator_id: int = Depends(get_operator_id)):
    alerts = ProductService(db).get_alerts()
    return create_success_response(alerts, f"{alerts['total_alerts']} alerts")


@router.get("/categories")
def get_categories(db: DatabaseManager = Depends(get_db), operator_id: int = Depends(get_operator_id)):
    return create_success_response(ProductService(db).list_categories())


@router.get("/{product_id}")
def get_product(
    product_id: int,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    return create_success_response(ProductService(db).get_product(product_id))


@router.put("/{product_id}")
def update_product(
    product_id: int,
    req: ProductUpdate,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    product = ProductService(db).update_product(product_id, req, operator_id)
    return create_success_response(product, f"Product '{product.name}' updated")


@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    ProductService(db).delete_product(product_id, operator_id)
    return create_success_response(message="Product deleted")


@router.post("/{product_id}/increase-stock")
def increase_stock(
    product_id: int,
    req: StockChangeRequest,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    product = ProductService(db).increase_stock(product_id, req.quantity, operator_id)
    return create_success_response(product, f"Stock of '{product.name}' increased")


@router.post("/{product_id}/decrease-stock")
def decrease_stock(
    product_id: int,
    req: StockChangeRequest,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    product = ProductService(db).decrease_stock(product_id, req.quantity, operator_id)
    return create_success_response(product, f"Stock of '{product.name}' decreased")
