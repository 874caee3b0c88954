"""
Dish catalog service
Dishes are referenced by templates and copied into daily menus as snapshots
"""

import json
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .base_service import BaseService
from .product_service import ProductService
from ..core.exceptions import DishNotFoundError, ProductNotFoundError, UnitMismatchError, ValidationError
from ..core.units import units_compatible
from ..models.dish import Dish, DishCreate, DishUpdate, Ingredient, MealType

DISH_COLUMNS = """
    dish_id, name, description, category, ingredients_json, servings_count,
    preparation_time, is_active, created_by, created_at, updated_at
"""


class DishService(BaseService):
    """Dish catalog"""

    def __init__(self, db=None):
        super().__init__(db)
        self.products = ProductService(self.db)

    def create_dish(self, data: DishCreate, operator_id: int = None) -> Dish:
        """Create a dish after checking its ingredients"""
        self._validate_ingredients(data.ingredients)
        with self.db.transaction() as conn:
            row = conn.execute(
                """
                INSERT INTO dishes (name, description, category, ingredients_json,
                                    servings_count, preparation_time, is_active, created_by)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                RETURNING dish_id
                """,
                [data.name, data.description, MealType(data.category).value,
                 self._dump_ingredients(data.ingredients), data.servings_count,
                 data.preparation_time, data.is_active, operator_id]
            ).fetchone()
            dish_id = row[0]
            self._log_operation(conn, "dish_create", operator_id,
                                {"dish_id": dish_id, "name": data.name})
        return self.get_dish(dish_id)

    def get_dish(self, dish_id: int) -> Dish:
        """Load one dish"""
        row = self.db.fetch_dict(f"SELECT {DISH_COLUMNS} FROM dishes WHERE dish_id = ?", [dish_id])
        if not row:
            raise DishNotFoundError(dish_id)
        return self._row_to_dish(row)

    def list_dishes(self, category: Optional[str] = None,
                    is_active: Optional[bool] = None) -> List[Dish]:
        """Dishes filtered by category and active flag"""
        clauses, params = [], []
        if category:
            clauses.append("category = ?")
            params.append(self._parse_category(category).value)
        if is_active is not None:
            clauses.append("is_active = ?")
            params.append(is_active)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.db.fetch_dicts(
            f"SELECT {DISH_COLUMNS} FROM dishes {where} ORDER BY name, dish_id", params
        )
        return [self._row_to_dish(row) for row in rows]

    def list_active_dishes(self, category: Optional[str] = None) -> List[Dish]:
        """Active dishes, optionally for one category"""
        return self.list_dishes(category=category, is_active=True)

    def get_dishes_by_ids(self, dish_ids: Iterable[int]) -> Dict[int, Dish]:
        """Resolve several dishes at once; unknown ids are left out"""
        ids = sorted(set(dish_ids))
        if not ids:
            return {}
        placeholders = ",".join(["?"] * len(ids))
        rows = self.db.fetch_dicts(
            f"SELECT {DISH_COLUMNS} FROM dishes WHERE dish_id IN ({placeholders})", ids
        )
        return {row["dish_id"]: self._row_to_dish(row) for row in rows}

    def update_dish(self, dish_id: int, data: DishUpdate, operator_id: int = None) -> Dish:
        """Partial update; new ingredients are checked again"""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if data.ingredients is not None:
            self._validate_ingredients(data.ingredients)
            changes.pop("ingredients")
            changes["ingredients_json"] = self._dump_ingredients(data.ingredients)
        if "category" in changes:
            changes["category"] = MealType(changes["category"]).value

        with self.db.transaction() as conn:
            self.get_dish(dish_id)
            if changes:
                assignments = ", ".join(f"{column} = ?" for column in changes)
                conn.execute(
                    f"UPDATE dishes SET {assignments}, updated_at = ? WHERE dish_id = ?",
                    [*changes.values(), datetime.now(), dish_id]
                )
                self._log_operation(conn, "dish_update", operator_id,
                                    {"dish_id": dish_id, "fields": sorted(changes)})
        return self.get_dish(dish_id)

    def delete_dish(self, dish_id: int, operator_id: int = None):
        """Delete a dish and drop it from template cells; daily menus keep their snapshots"""
        with self.db.transaction() as conn:
            dish = self.get_dish(dish_id)
            conn.execute("DELETE FROM template_dishes WHERE dish_id = ?", [dish_id])
            conn.execute("DELETE FROM dishes WHERE dish_id = ?", [dish_id])
            self._log_operation(conn, "dish_delete", operator_id,
                                {"dish_id": dish_id, "name": dish.name})

    def toggle_active(self, dish_id: int, operator_id: int = None) -> Dish:
        """Flip the active flag"""
        with self.db.transaction() as conn:
            dish = self.get_dish(dish_id)
            conn.execute(
                "UPDATE dishes SET is_active = ?, updated_at = ? WHERE dish_id = ?",
                [not dish.is_active, datetime.now(), dish_id]
            )
            self._log_operation(conn, "dish_toggle", operator_id,
                                {"dish_id": dish_id, "is_active": not dish.is_active})
        return self.get_dish(dish_id)

    def _validate_ingredients(self, ingredients: List[Ingredient]):
        """Every ingredient must reference a known product in a convertible unit"""
        products = self.products.get_products_by_ids(ing.product_id for ing in ingredients)
        for ingredient in ingredients:
            product = products.get(ingredient.product_id)
            if product is None:
                raise ProductNotFoundError(ingredient.product_id)
            if not units_compatible(ingredient.unit, product.unit):
                raise UnitMismatchError(
                    f"Ingredient unit '{ingredient.unit}' is not compatible with "
                    f"'{product.name}' stocked in '{product.unit}'",
                    details={"product_id": product.product_id,
                             "ingredient_unit": ingredient.unit,
                             "product_unit": product.unit}
                )

    @staticmethod
    def _parse_category(category: str) -> MealType:
        try:
            return MealType(category)
        except ValueError:
            raise ValidationError(f"Unknown dish category: {category}")

    @staticmethod
    def _dump_ingredients(ingredients: List[Ingredient]) -> str:
        return json.dumps([ing.model_dump() for ing in ingredients], ensure_ascii=False)

    @staticmethod
    def _row_to_dish(row: dict) -> Dish:
        data = dict(row)
        raw = data.pop("ingredients_json", None)
        data["ingredients"] = json.loads(raw) if raw else []
        data["servings_count"] = data.get("servings_count") or 1
        return Dish(**data)
