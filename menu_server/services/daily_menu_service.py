"""
Daily menu service
One menu per calendar date. Serving a meal deducts the ingredients of its
dish snapshots from stock and appends consumption log entries; cancelling
puts the stock back and appends reversing entries.
"""

import json
from collections import OrderedDict
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from .base_service import BaseService, parse_meal_type, require_positive
from .dish_service import DishService
from .product_service import ProductService
from .requirement_calculator import accumulate_ingredients
from ..core.exceptions import (
    DailyMenuNotFoundError,
    DishNotFoundError,
    DuplicateMenuDateError,
    InsufficientStockError,
    MealStateError,
)
from ..models.dish import DishSnapshot, MealType, MEAL_TYPES
from ..models.menu import ConsumptionLog, DailyMenu, Meal, MealPlan, empty_meals

MENU_COLUMNS = """
    menu_id, date, meals_json, total_child_count, notes, created_by, created_at, updated_at
"""


class DailyMenuService(BaseService):
    """Calendar-dated menus"""

    def __init__(self, db=None):
        super().__init__(db)
        self.dishes = DishService(self.db)
        self.products = ProductService(self.db)

    # ---- queries ----

    def get_daily_menu(self, menu_id: int) -> DailyMenu:
        """Load one menu with its consumption log"""
        row = self.db.fetch_dict(f"SELECT {MENU_COLUMNS} FROM daily_menus WHERE menu_id = ?", [menu_id])
        if not row:
            raise DailyMenuNotFoundError(menu_id)
        return self._row_to_menu(row)

    def find_by_date(self, menu_date: date) -> Optional[DailyMenu]:
        """Menu for a date, or None"""
        row = self.db.fetch_dict(f"SELECT {MENU_COLUMNS} FROM daily_menus WHERE date = ?", [menu_date])
        return self._row_to_menu(row) if row else None

    def get_by_date(self, menu_date: date) -> DailyMenu:
        """Menu for a date; raises when there is none"""
        menu = self.find_by_date(menu_date)
        if menu is None:
            raise DailyMenuNotFoundError(str(menu_date), f"No daily menu for {menu_date}")
        return menu

    def get_today_menu(self) -> Optional[DailyMenu]:
        """Menu for the current date, if any"""
        return self.find_by_date(date.today())

    def list_daily_menus(self, start_date: Optional[date] = None,
                         end_date: Optional[date] = None) -> List[DailyMenu]:
        """Menus in date order, optionally bounded by start and end"""
        clauses, params = [], []
        if start_date:
            clauses.append("date >= ?")
            params.append(start_date)
        if end_date:
            clauses.append("date <= ?")
            params.append(end_date)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.db.fetch_dicts(f"SELECT {MENU_COLUMNS} FROM daily_menus {where} ORDER BY date", params)
        return [self._row_to_menu(row) for row in rows]

    def count_for_date(self, menu_date: date) -> int:
        """Number of menu rows stored for a date"""
        return self.db.execute_one("SELECT COUNT(*) FROM daily_menus WHERE date = ?", [menu_date])[0]

    # ---- manual editing ----

    def create_daily_menu(self, menu_date: date, meals: Dict[MealType, MealPlan] = None,
                          total_child_count: int = None, notes: str = None,
                          operator_id: int = None) -> DailyMenu:
        """Create a menu for a date that has none yet"""
        built = self._build_meals(meals or {})
        with self.db.transaction() as conn:
            if self.find_by_date(menu_date) is not None:
                raise DuplicateMenuDateError(menu_date)
            menu_id = self._insert(conn, menu_date, built,
                                   self._total_children(built, total_child_count), notes, operator_id)
            self._log_operation(conn, "daily_menu_create", operator_id,
                                {"menu_id": menu_id, "date": menu_date})
        return self.get_daily_menu(menu_id)

    def update_daily_menu(self, menu_id: int, meals: Dict[MealType, MealPlan] = None,
                          total_child_count: int = None, notes: str = None,
                          operator_id: int = None) -> DailyMenu:
        """Replace meals, child count or notes; served meals are locked"""
        with self.db.transaction() as conn:
            menu = self.get_daily_menu(menu_id)
            if meals:
                built = self._build_meals(meals)
                for key in meals:
                    meal_type = parse_meal_type(key)
                    if menu.meal(meal_type).is_served:
                        raise MealStateError(f"{meal_type.value} is already served; cancel it first",
                                             details={"menu_id": menu_id, "meal_type": meal_type.value})
                    menu.meals[meal_type] = built[meal_type]
            if total_child_count is not None:
                menu.total_child_count = total_child_count
            elif meals:
                menu.total_child_count = self._total_children(menu.meals, None)
            if notes is not None:
                menu.notes = notes
            self._save(conn, menu)
            self._log_operation(conn, "daily_menu_update", operator_id, {"menu_id": menu_id})
        return self.get_daily_menu(menu_id)

    def delete_daily_menu(self, menu_id: int, operator_id: int = None):
        """Delete a menu together with its consumption log"""
        with self.db.transaction() as conn:
            menu = self.get_daily_menu(menu_id)
            conn.execute("DELETE FROM consumption_logs WHERE menu_id = ?", [menu_id])
            conn.execute("DELETE FROM daily_menus WHERE menu_id = ?", [menu_id])
            self._log_operation(conn, "daily_menu_delete", operator_id,
                                {"menu_id": menu_id, "date": menu.date})

    def add_dish_to_meal(self, menu_id: int, meal_type, dish_id: int,
                         operator_id: int = None) -> DailyMenu:
        """Snapshot a dish into a meal unless it is already there"""
        meal_type = parse_meal_type(meal_type)
        with self.db.transaction() as conn:
            menu = self.get_daily_menu(menu_id)
            meal = menu.meal(meal_type)
            if all(snapshot.dish_id != dish_id for snapshot in meal.dishes):
                meal.dishes.append(DishSnapshot.from_dish(self.dishes.get_dish(dish_id)))
                self._save(conn, menu)
                self._log_operation(conn, "daily_menu_add_dish", operator_id, {
                    "menu_id": menu_id, "meal_type": meal_type.value, "dish_id": dish_id,
                })
        return self.get_daily_menu(menu_id)

    def remove_dish_from_meal(self, menu_id: int, meal_type, dish_id: int,
                              operator_id: int = None) -> DailyMenu:
        """Drop a dish from a meal; absent dishes are ignored"""
        meal_type = parse_meal_type(meal_type)
        with self.db.transaction() as conn:
            menu = self.get_daily_menu(menu_id)
            meal = menu.meal(meal_type)
            kept = [snapshot for snapshot in meal.dishes if snapshot.dish_id != dish_id]
            if len(kept) != len(meal.dishes):
                meal.dishes = kept
                self._save(conn, menu)
                self._log_operation(conn, "daily_menu_remove_dish", operator_id, {
                    "menu_id": menu_id, "meal_type": meal_type.value, "dish_id": dish_id,
                })
        return self.get_daily_menu(menu_id)

    # ---- template expansion target ----

    def upsert_menu_for_date(self, menu_date: date, meals: Dict[MealType, Meal],
                             total_child_count: int, operator_id: int = None) -> Tuple[DailyMenu, bool]:
        """
        Write the menu for a date, creating it or replacing the meals of the
        existing one. Meals that were already served keep their contents.

        Returns (menu, created).
        """
        with self.db.transaction() as conn:
            existing = self.find_by_date(menu_date)
            if existing is None:
                menu_id = self._insert(conn, menu_date, meals, total_child_count, None, operator_id)
                created = True
            else:
                for meal_type in MEAL_TYPES:
                    if not existing.meal(meal_type).is_served:
                        existing.meals[meal_type] = meals.get(meal_type, Meal())
                existing.total_child_count = total_child_count
                self._save(conn, existing)
                menu_id, created = existing.menu_id, False
        return self.get_daily_menu(menu_id), created

    # ---- serving ----

    def serve_meal(self, menu_id: int, meal_type, child_count: int = None,
                   operator_id: int = None) -> DailyMenu:
        """Deduct the meal's ingredients from stock; all or nothing"""
        meal_type = parse_meal_type(meal_type)
        with self.db.transaction() as conn:
            menu = self.get_daily_menu(menu_id)
            meal = menu.meal(meal_type)
            if meal.is_served:
                raise MealStateError(f"{meal_type.value} is already served",
                                     details={"menu_id": menu_id, "meal_type": meal_type.value})
            child_count = require_positive(child_count or meal.child_count, "child_count")

            product_ids = [ing.product_id for dish in meal.dishes for ing in dish.ingredients]
            products = self.products.get_products_by_ids(product_ids)
            demand = OrderedDict()
            for snapshot in meal.dishes:
                accumulate_ingredients(demand, snapshot.ingredients, snapshot.servings_count,
                                       child_count, products)

            missing = []
            for (product_id, unit), quantity in demand.items():
                product = products.get(product_id)
                if product is None or product.unit != unit or product.stock_quantity < quantity:
                    missing.append({
                        "product_id": product_id,
                        "product_name": product.name if product else None,
                        "required": quantity,
                        "available": product.stock_quantity if product else 0,
                        "unit": unit,
                    })
            if missing:
                raise InsufficientStockError(
                    f"Not enough stock to serve {meal_type.value}", details={"missing": missing}
                )

            now = datetime.now()
            for (product_id, unit), quantity in demand.items():
                product = products[product_id]
                conn.execute(
                    "UPDATE products SET stock_quantity = ?, updated_at = ? WHERE product_id = ?",
                    [max(0.0, product.stock_quantity - quantity), now, product_id]
                )
                self._insert_log(conn, menu_id, meal_type, product_id, product.name, quantity, unit, now)

            meal.child_count = child_count
            meal.served_at = now
            self._save(conn, menu)
            self._log_operation(conn, "meal_serve", operator_id, {
                "menu_id": menu_id, "meal_type": meal_type.value, "child_count": child_count,
            })
        return self.get_daily_menu(menu_id)

    def cancel_meal(self, menu_id: int, meal_type, operator_id: int = None) -> DailyMenu:
        """Undo a serve: return the deducted stock and log the reversal"""
        meal_type = parse_meal_type(meal_type)
        with self.db.transaction() as conn:
            menu = self.get_daily_menu(menu_id)
            meal = menu.meal(meal_type)
            if not meal.is_served:
                raise MealStateError(f"{meal_type.value} has not been served",
                                     details={"menu_id": menu_id, "meal_type": meal_type.value})

            consumed = conn.execute(
                """
                SELECT product_id, ANY_VALUE(product_name), ANY_VALUE(unit), SUM(quantity)
                FROM consumption_logs
                WHERE menu_id = ? AND meal_type = ?
                GROUP BY product_id
                """,
                [menu_id, meal_type.value]
            ).fetchall()
            products = self.products.get_products_by_ids(row[0] for row in consumed)
            now = datetime.now()
            for product_id, product_name, unit, quantity in consumed:
                if not quantity or quantity <= 0:
                    continue
                product = products.get(product_id)
                if product is not None:
                    conn.execute(
                        "UPDATE products SET stock_quantity = ?, updated_at = ? WHERE product_id = ?",
                        [product.stock_quantity + quantity, now, product_id]
                    )
                self._insert_log(conn, menu_id, meal_type, product_id, product_name, -quantity, unit, now)

            meal.served_at = None
            self._save(conn, menu)
            self._log_operation(conn, "meal_cancel", operator_id,
                                {"menu_id": menu_id, "meal_type": meal_type.value})
        return self.get_daily_menu(menu_id)

    # ---- helpers ----

    def _build_meals(self, plans: Dict[MealType, MealPlan]) -> Dict[MealType, Meal]:
        """Resolve requested dish ids into snapshots"""
        meals = empty_meals()
        dish_ids = [dish_id for plan in plans.values() for dish_id in plan.dish_ids]
        dishes = self.dishes.get_dishes_by_ids(dish_ids)
        for dish_id in dish_ids:
            if dish_id not in dishes:
                raise DishNotFoundError(dish_id)
        for key, plan in plans.items():
            snapshots = [DishSnapshot.from_dish(dishes[dish_id]) for dish_id in dict.fromkeys(plan.dish_ids)]
            meals[parse_meal_type(key)] = Meal(dishes=snapshots, child_count=plan.child_count)
        return meals

    @staticmethod
    def _total_children(meals: Dict[MealType, Meal], explicit: Optional[int]) -> int:
        if explicit is not None:
            return explicit
        return max((meal.child_count for meal in meals.values()), default=0)

    @staticmethod
    def _dump_meals(meals: Dict[MealType, Meal]) -> str:
        return json.dumps(
            {MealType(key).value: meal.model_dump(mode="json") for key, meal in meals.items()},
            ensure_ascii=False
        )

    def _insert(self, conn, menu_date: date, meals: Dict[MealType, Meal], total_child_count: int,
                notes: Optional[str], operator_id: Optional[int]) -> int:
        row = conn.execute(
            """
            INSERT INTO daily_menus (date, meals_json, total_child_count, notes, created_by)
            VALUES (?, ?, ?, ?, ?)
            RETURNING menu_id
            """,
            [menu_date, self._dump_meals(meals), total_child_count, notes, operator_id]
        ).fetchone()
        return row[0]

    def _save(self, conn, menu: DailyMenu):
        conn.execute(
            """
            UPDATE daily_menus
            SET meals_json = ?, total_child_count = ?, notes = ?, updated_at = ?
            WHERE menu_id = ?
            """,
            [self._dump_meals(menu.meals), menu.total_child_count, menu.notes,
             datetime.now(), menu.menu_id]
        )

    @staticmethod
    def _insert_log(conn, menu_id: int, meal_type: MealType, product_id: int,
                    product_name: Optional[str], quantity: float, unit: str, consumed_at: datetime):
        conn.execute(
            """
            INSERT INTO consumption_logs (menu_id, meal_type, product_id, product_name,
                                          quantity, unit, consumed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [menu_id, meal_type.value, product_id, product_name, quantity, unit, consumed_at]
        )

    def _row_to_menu(self, row: dict) -> DailyMenu:
        data = dict(row)
        raw = data.pop("meals_json", None)
        data["meals"] = json.loads(raw) if raw else {}
        logs = self.db.fetch_dicts(
            """
            SELECT meal_type, product_id, product_name, quantity, unit, consumed_at
            FROM consumption_logs WHERE menu_id = ? ORDER BY log_id
            """,
            [data["menu_id"]]
        )
        data["consumption_logs"] = [ConsumptionLog(**log) for log in logs]
        return DailyMenu(**data)
