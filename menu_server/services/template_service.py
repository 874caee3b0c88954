"""
Weekly menu template service
Templates are edited cell by cell; a dish appears at most once per
(weekday, meal type) cell
"""

from datetime import datetime
from typing import Dict, List, Optional

from .base_service import BaseService, parse_meal_type, parse_weekday, require_positive
from .dish_service import DishService
from ..config.settings import settings
from ..core.exceptions import TemplateNotFoundError, ValidationError
from ..models.dish import MealType
from ..models.menu import DayMeals, TemplateDish, Weekday, WeeklyMenuTemplate, WeeklyMenuTemplateUpdate

TEMPLATE_COLUMNS = """
    template_id, name, description, default_child_count, is_active,
    created_by, created_at, updated_at
"""


class WeeklyMenuTemplateService(BaseService):
    """Weekly menu templates"""

    def __init__(self, db=None):
        super().__init__(db)
        self.dishes = DishService(self.db)

    def create_template(self, name: str, default_child_count: int = None,
                        description: str = None, operator_id: int = None) -> WeeklyMenuTemplate:
        """Create a template with all 28 cells empty"""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Template name must not be empty", details={"field": "name"})
        if default_child_count is None:
            default_child_count = settings.default_child_count
        require_positive(default_child_count, "default_child_count")

        with self.db.transaction() as conn:
            row = conn.execute(
                """
                INSERT INTO weekly_menu_templates (name, description, default_child_count, created_by)
                VALUES (?, ?, ?, ?)
                RETURNING template_id
                """,
                [name, description, default_child_count, operator_id]
            ).fetchone()
            template_id = row[0]
            self._log_operation(conn, "template_create", operator_id,
                                {"template_id": template_id, "name": name})
        return self.get_template(template_id)

    def get_template(self, template_id: int) -> WeeklyMenuTemplate:
        """Load a template with its 28 cells"""
        row = self.db.fetch_dict(
            f"SELECT {TEMPLATE_COLUMNS} FROM weekly_menu_templates WHERE template_id = ?",
            [template_id]
        )
        if not row:
            raise TemplateNotFoundError(template_id)
        return WeeklyMenuTemplate(**row, days=self._load_days(template_id))

    def list_templates(self, is_active: Optional[bool] = None) -> List[WeeklyMenuTemplate]:
        """Templates by name, optionally only active or inactive ones"""
        where, params = "", []
        if is_active is not None:
            where, params = "WHERE is_active = ?", [is_active]
        rows = self.db.fetch_dicts(
            f"SELECT {TEMPLATE_COLUMNS} FROM weekly_menu_templates {where} ORDER BY name, template_id",
            params
        )
        return [WeeklyMenuTemplate(**row, days=self._load_days(row["template_id"])) for row in rows]

    def update_template(self, template_id: int, data: WeeklyMenuTemplateUpdate,
                        operator_id: int = None) -> WeeklyMenuTemplate:
        """Change header fields; cells are edited separately"""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if not changes["name"]:
                raise ValidationError("Template name must not be empty", details={"field": "name"})

        with self.db.transaction() as conn:
            self._ensure_exists(conn, template_id)
            if changes:
                assignments = ", ".join(f"{column} = ?" for column in changes)
                conn.execute(
                    f"UPDATE weekly_menu_templates SET {assignments}, updated_at = ? WHERE template_id = ?",
                    [*changes.values(), datetime.now(), template_id]
                )
                self._log_operation(conn, "template_update", operator_id,
                                    {"template_id": template_id, "changes": changes})
        return self.get_template(template_id)

    def delete_template(self, template_id: int, operator_id: int = None):
        """Delete a template; daily menus already expanded from it are kept"""
        with self.db.transaction() as conn:
            self._ensure_exists(conn, template_id)
            conn.execute("DELETE FROM template_dishes WHERE template_id = ?", [template_id])
            conn.execute("DELETE FROM weekly_menu_templates WHERE template_id = ?", [template_id])
            self._log_operation(conn, "template_delete", operator_id, {"template_id": template_id})

    def add_dish_to_day(self, template_id: int, weekday, meal_type, dish_id: int,
                        operator_id: int = None) -> WeeklyMenuTemplate:
        """Append a dish to a cell unless it is already there"""
        weekday = parse_weekday(weekday)
        meal_type = parse_meal_type(meal_type)
        with self.db.transaction() as conn:
            self._ensure_exists(conn, template_id)
            self.dishes.get_dish(dish_id)

            exists = conn.execute(
                """
                SELECT 1 FROM template_dishes
                WHERE template_id = ? AND weekday = ? AND meal_type = ? AND dish_id = ?
                """,
                [template_id, weekday.value, meal_type.value, dish_id]
            ).fetchone()
            if not exists:
                position = conn.execute(
                    """
                    SELECT COALESCE(MAX(position), -1) + 1 FROM template_dishes
                    WHERE template_id = ? AND weekday = ? AND meal_type = ?
                    """,
                    [template_id, weekday.value, meal_type.value]
                ).fetchone()[0]
                conn.execute(
                    """
                    INSERT INTO template_dishes (template_id, weekday, meal_type, dish_id, position)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    [template_id, weekday.value, meal_type.value, dish_id, position]
                )
                self._touch(conn, template_id)
                self._log_operation(conn, "template_add_dish", operator_id, {
                    "template_id": template_id, "day": weekday.value,
                    "meal_type": meal_type.value, "dish_id": dish_id,
                })
        return self.get_template(template_id)

    def remove_dish_from_day(self, template_id: int, weekday, meal_type, dish_id: int,
                             operator_id: int = None) -> WeeklyMenuTemplate:
        """Remove a dish from a cell; removing an absent dish changes nothing"""
        weekday = parse_weekday(weekday)
        meal_type = parse_meal_type(meal_type)
        with self.db.transaction() as conn:
            self._ensure_exists(conn, template_id)
            removed = conn.execute(
                """
                DELETE FROM template_dishes
                WHERE template_id = ? AND weekday = ? AND meal_type = ? AND dish_id = ?
                RETURNING dish_id
                """,
                [template_id, weekday.value, meal_type.value, dish_id]
            ).fetchall()
            if removed:
                self._touch(conn, template_id)
                self._log_operation(conn, "template_remove_dish", operator_id, {
                    "template_id": template_id, "day": weekday.value,
                    "meal_type": meal_type.value, "dish_id": dish_id,
                })
        return self.get_template(template_id)

    def _ensure_exists(self, conn, template_id: int):
        row = conn.execute(
            "SELECT 1 FROM weekly_menu_templates WHERE template_id = ?", [template_id]
        ).fetchone()
        if not row:
            raise TemplateNotFoundError(template_id)

    def _touch(self, conn, template_id: int):
        conn.execute(
            "UPDATE weekly_menu_templates SET updated_at = ? WHERE template_id = ?",
            [datetime.now(), template_id]
        )

    def _load_days(self, template_id: int) -> Dict[Weekday, DayMeals]:
        """Read the template cells and resolve dish ids to catalog entries"""
        rows = self.db.execute_query(
            """
            SELECT weekday, meal_type, dish_id FROM template_dishes
            WHERE template_id = ?
            ORDER BY weekday, meal_type, position
            """,
            [template_id]
        )
        dishes = self.dishes.get_dishes_by_ids(row[2] for row in rows)
        days = {weekday: DayMeals() for weekday in Weekday}
        for weekday, meal_type, dish_id in rows:
            dish = dishes.get(dish_id)
            entry = TemplateDish(dish_id=dish_id)
            if dish is not None:
                entry = TemplateDish(dish_id=dish_id, name=dish.name,
                                     category=dish.category, is_active=dish.is_active)
            days[Weekday(weekday)].dishes_for(MealType(meal_type)).append(entry)
        return days
