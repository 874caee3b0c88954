"""
Template expansion service
Applies a weekly template to a week or a month of calendar dates

For every day in the range the weekday's four cells are copied into that
date's daily menu (upsert by date), then the requirement calculator runs
over the same range and its shortages are returned as warnings. Shortages
never block the apply.

Failure handling follows settings.apply_failure_mode:
- best_effort: each day commits separately; failed days are reported
- fail_fast: the whole range is one transaction; any failure rolls back
"""

import calendar
import logging
from datetime import date
from typing import Dict, List, Optional

from .base_service import BaseService, require_positive
from .daily_menu_service import DailyMenuService
from .dish_service import DishService
from .requirement_calculator import RequirementCalculator, weekday_sequence
from .template_service import WeeklyMenuTemplateService
from ..config.settings import settings
from ..core.exceptions import ApplyAbortedError, BaseApplicationError, ValidationError
from ..models.dish import Dish, DishSnapshot, MealType, MEAL_TYPES
from ..models.menu import ApplyResult, DayMeals, FailedDate, Meal, WeeklyMenuTemplate

logger = logging.getLogger(__name__)

FAILURE_MODES = ("best_effort", "fail_fast")


def days_in_month(start_date: date) -> int:
    return calendar.monthrange(start_date.year, start_date.month)[1]


def build_day_meals(day_meals: DayMeals, dishes: Dict[int, Dish], child_count: int) -> Dict[MealType, Meal]:
    """Snapshot one weekday's cells into daily menu meals"""
    meals = {}
    for meal_type in MEAL_TYPES:
        snapshots = [
            DishSnapshot.from_dish(dishes[entry.dish_id])
            for entry in day_meals.dishes_for(meal_type)
            if entry.dish_id in dishes
        ]
        meals[meal_type] = Meal(dishes=snapshots, child_count=child_count)
    return meals


class MenuExpansionService(BaseService):
    """Materializes templates into daily menus"""

    def __init__(self, db=None, failure_mode: Optional[str] = None):
        super().__init__(db)
        self.failure_mode = failure_mode or settings.apply_failure_mode
        if self.failure_mode not in FAILURE_MODES:
            raise ValueError(f"Unknown apply failure mode: {self.failure_mode}")
        self.templates = WeeklyMenuTemplateService(self.db)
        self.dishes = DishService(self.db)
        self.daily_menus = DailyMenuService(self.db)
        self.calculator = RequirementCalculator(self.db)

    def apply_template_to_week(self, template_id: int, start_date: date, child_count: int,
                               operator_id: int = None) -> ApplyResult:
        """Expand seven days beginning at start_date"""
        return self._apply(template_id, start_date, 7, child_count, operator_id, "week")

    def apply_template_to_month(self, template_id: int, start_date: date, child_count: int,
                                operator_id: int = None) -> ApplyResult:
        """Expand as many days as start_date's month has, beginning at start_date"""
        if start_date is None:
            raise ValidationError("start_date is required", details={"field": "start_date"})
        return self._apply(template_id, start_date, days_in_month(start_date),
                           child_count, operator_id, "month")

    def _apply(self, template_id: int, start_date: date, days: int, child_count: int,
               operator_id: Optional[int], period: str) -> ApplyResult:
        if start_date is None:
            raise ValidationError("start_date is required", details={"field": "start_date"})
        require_positive(child_count, "child_count")

        template = self.templates.get_template(template_id)
        dishes = self.dishes.get_dishes_by_ids(template.dish_ids())
        plan = [
            (day, build_day_meals(template.day(weekday), dishes, child_count))
            for day, weekday in weekday_sequence(start_date, days)
        ]

        if self.failure_mode == "fail_fast":
            result = self._write_all_or_nothing(template, plan, child_count, operator_id, period)
        else:
            result = self._write_best_effort(template, plan, child_count, operator_id, period)

        requirements = self.calculator.calculate_for_template(template, days, child_count, start_date)
        result.shortages = [item for item in requirements if not item.sufficient]
        result.message = self._summary(template, period, days, result)
        logger.info("Applied template %s to %s from %s: %s",
                    template.template_id, period, start_date, result.message)
        return result

    def _write_best_effort(self, template: WeeklyMenuTemplate, plan, child_count: int,
                           operator_id: Optional[int], period: str) -> ApplyResult:
        result = ApplyResult()
        for day, meals in plan:
            try:
                menu, created = self.daily_menus.upsert_menu_for_date(day, meals, child_count, operator_id)
            except BaseApplicationError as e:
                logger.warning("Failed to write daily menu for %s: %s", day, e.message)
                result.failed_dates.append(FailedDate(date=day, error=e.message))
                continue
            result.created_menus.append(menu)
            if not created:
                result.updated_count += 1

        with self.db.transaction() as conn:
            self._log_apply(conn, template, plan, child_count, operator_id, period, result)
        return result

    def _write_all_or_nothing(self, template: WeeklyMenuTemplate, plan, child_count: int,
                              operator_id: Optional[int], period: str) -> ApplyResult:
        result = ApplyResult()
        written: List[str] = []
        current = None
        try:
            with self.db.transaction() as conn:
                for day, meals in plan:
                    current = day
                    menu, created = self.daily_menus.upsert_menu_for_date(day, meals, child_count, operator_id)
                    written.append(day.isoformat())
                    result.created_menus.append(menu)
                    if not created:
                        result.updated_count += 1
                self._log_apply(conn, template, plan, child_count, operator_id, period, result)
        except BaseApplicationError as e:
            logger.warning("Apply of template %s aborted at %s: %s", template.template_id, current, e.message)
            raise ApplyAbortedError(
                f"Applying '{template.name}' failed on {current}; no menus were changed",
                details={"failed_date": str(current), "error": e.message, "rolled_back": written},
            ) from e
        return result

    def _log_apply(self, conn, template: WeeklyMenuTemplate, plan, child_count: int,
                   operator_id: Optional[int], period: str, result: ApplyResult):
        self._log_operation(conn, f"template_apply_{period}", operator_id, {
            "template_id": template.template_id,
            "start_date": plan[0][0] if plan else None,
            "days": len(plan),
            "child_count": child_count,
            "written": len(result.created_menus),
            "failed": [str(item.date) for item in result.failed_dates],
        })

    @staticmethod
    def _summary(template: WeeklyMenuTemplate, period: str, days: int, result: ApplyResult) -> str:
        created = len(result.created_menus) - result.updated_count
        message = (f"Template '{template.name}' applied to {period} ({days} days): "
                   f"{created} menus created, {result.updated_count} updated")
        if result.failed_dates:
            message += f", {len(result.failed_dates)} days failed"
        if result.shortages:
            message += f". Warning: {len(result.shortages)} products are short"
        return message
