"""
Product inventory service
Stock levels are read by the requirement calculator and changed by
serving meals or by explicit increase/decrease operations
"""

import json
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .base_service import BaseService
from ..core.exceptions import (
    InsufficientStockError,
    ProductNotFoundError,
    UnitMismatchError,
    ValidationError,
)
from ..core.units import units_compatible
from ..models.product import Product, ProductCreate, ProductStatus, ProductUpdate
from ..utils.display import format_quantity

PRODUCT_COLUMNS = """
    product_id, name, category, unit, stock_quantity, min_stock_level,
    status, created_at, updated_at
"""


class ProductService(BaseService):
    """Product inventory"""

    def create_product(self, data: ProductCreate, operator_id: int = None) -> Product:
        """Create a product with its opening stock"""
        with self.db.transaction() as conn:
            row = conn.execute(
                """
                INSERT INTO products (name, category, unit, stock_quantity, min_stock_level, status)
                VALUES (?, ?, ?, ?, ?, ?)
                RETURNING product_id
                """,
                [data.name, data.category, data.unit, data.stock_quantity,
                 data.min_stock_level, ProductStatus(data.status).value]
            ).fetchone()
            product_id = row[0]
            self._log_operation(conn, "product_create", operator_id,
                                {"product_id": product_id, "name": data.name})
        return self.get_product(product_id)

    def get_product(self, product_id: int) -> Product:
        """Load one product"""
        row = self.db.fetch_dict(
            f"SELECT {PRODUCT_COLUMNS} FROM products WHERE product_id = ?", [product_id]
        )
        if not row:
            raise ProductNotFoundError(product_id)
        return Product(**row)

    def list_products(self, status: Optional[str] = None, category: Optional[str] = None,
                      low_stock: bool = False) -> List[Product]:
        """Products filtered by status, category and low stock"""
        clauses, params = [], []
        if status:
            clauses.append("status = ?")
            params.append(ProductStatus(status).value)
        if category:
            clauses.append("category = ?")
            params.append(category)
        if low_stock:
            clauses.append("stock_quantity < min_stock_level")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.db.fetch_dicts(
            f"SELECT {PRODUCT_COLUMNS} FROM products {where} ORDER BY name, product_id", params
        )
        return [Product(**row) for row in rows]

    def get_products_by_ids(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        """Look up several products; ids that do not resolve are simply absent"""
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        placeholders = ",".join(["?"] * len(ids))
        rows = self.db.fetch_dicts(
            f"SELECT {PRODUCT_COLUMNS} FROM products WHERE product_id IN ({placeholders})", ids
        )
        return {row["product_id"]: Product(**row) for row in rows}

    def update_product(self, product_id: int, data: ProductUpdate, operator_id: int = None) -> Product:
        """Partial update; a unit change must suit every dish using the product"""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "status" in changes:
            changes["status"] = ProductStatus(changes["status"]).value
        with self.db.transaction() as conn:
            product = self.get_product(product_id)
            if "unit" in changes and changes["unit"] != product.unit:
                self._check_dishes_accept_unit(product, changes["unit"])
            if changes:
                self._update_columns(conn, product_id, changes)
                self._log_operation(conn, "product_update", operator_id,
                                    {"product_id": product_id, "changes": changes})
        return self.get_product(product_id)

    def delete_product(self, product_id: int, operator_id: int = None):
        """Delete a product; dishes keep their ingredient references"""
        with self.db.transaction() as conn:
            product = self.get_product(product_id)
            conn.execute("DELETE FROM products WHERE product_id = ?", [product_id])
            self._log_operation(conn, "product_delete", operator_id,
                                {"product_id": product_id, "name": product.name})

    def increase_stock(self, product_id: int, quantity: float, operator_id: int = None) -> Product:
        """Add quantity to stock"""
        if quantity <= 0:
            raise ValidationError("Quantity must be positive")
        with self.db.transaction() as conn:
            product = self.get_product(product_id)
            self._set_stock(conn, product_id, product.stock_quantity + quantity)
            self._log_operation(conn, "stock_increase", operator_id,
                                {"product_id": product_id, "quantity": quantity})
        return self.get_product(product_id)

    def decrease_stock(self, product_id: int, quantity: float, operator_id: int = None) -> Product:
        """Take quantity from stock; never below zero"""
        if quantity <= 0:
            raise ValidationError("Quantity must be positive")
        with self.db.transaction() as conn:
            product = self.get_product(product_id)
            if quantity > product.stock_quantity:
                raise InsufficientStockError(
                    f"Not enough {product.name}: {format_quantity(product.stock_quantity, product.unit)} in stock",
                    details={"product_id": product_id, "requested": quantity,
                             "available": product.stock_quantity}
                )
            self._set_stock(conn, product_id, product.stock_quantity - quantity)
            self._log_operation(conn, "stock_decrease", operator_id,
                                {"product_id": product_id, "quantity": quantity})
        return self.get_product(product_id)

    def get_alerts(self) -> Dict[str, object]:
        """Active products under their minimum stock level"""
        low_stock = self.list_products(status=ProductStatus.ACTIVE.value, low_stock=True)
        return {"low_stock": low_stock, "total_alerts": len(low_stock)}

    def list_categories(self) -> List[str]:
        """Distinct product categories"""
        rows = self.db.execute_query(
            "SELECT DISTINCT category FROM products WHERE category IS NOT NULL ORDER BY category"
        )
        return [row[0] for row in rows]

    def _check_dishes_accept_unit(self, product: Product, unit: str):
        """Dishes using the product must stay convertible to its new stock unit"""
        rows = self.db.fetch_dicts("SELECT dish_id, name, ingredients_json FROM dishes")
        for row in rows:
            for ingredient in json.loads(row["ingredients_json"] or "[]"):
                if ingredient["product_id"] != product.product_id:
                    continue
                if not units_compatible(ingredient["unit"], unit):
                    raise UnitMismatchError(
                        f"Dish '{row['name']}' uses {product.name} in '{ingredient['unit']}', "
                        f"which cannot be converted to '{unit}'",
                        details={"product_id": product.product_id, "dish_id": row["dish_id"],
                                 "ingredient_unit": ingredient["unit"], "product_unit": unit}
                    )

    def _set_stock(self, conn, product_id: int, stock_quantity: float):
        conn.execute(
            "UPDATE products SET stock_quantity = ?, updated_at = ? WHERE product_id = ?",
            [max(0.0, stock_quantity), datetime.now(), product_id]
        )

    def _update_columns(self, conn, product_id: int, changes: Dict[str, object]):
        assignments = ", ".join(f"{column} = ?" for column in changes)
        conn.execute(
            f"UPDATE products SET {assignments}, updated_at = ? WHERE product_id = ?",
            [*changes.values(), datetime.now(), product_id]
        )
