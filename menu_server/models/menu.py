"""
Weekly menu template and daily menu models
"""

from pydantic import BaseModel, Field, model_validator
from datetime import date as date_type, datetime
from typing import Dict, List, Optional
from enum import Enum
from .base import TimestampMixin
from .dish import DishSnapshot, MealType, MEAL_TYPES


class Weekday(str, Enum):
    """Template day; declaration order matches date.weekday()"""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, day: date_type) -> "Weekday":
        return WEEKDAYS[day.weekday()]


WEEKDAYS: List[Weekday] = list(Weekday)


class TemplateDish(BaseModel):
    """Dish reference inside a template cell, resolved for display"""
    dish_id: int
    name: Optional[str] = None
    category: Optional[MealType] = None
    is_active: Optional[bool] = None


class DayMeals(BaseModel):
    """Dish lists for the four meal slots of one weekday"""
    breakfast: List[TemplateDish] = Field(default_factory=list)
    lunch: List[TemplateDish] = Field(default_factory=list)
    snack: List[TemplateDish] = Field(default_factory=list)
    dinner: List[TemplateDish] = Field(default_factory=list)

    def dishes_for(self, meal_type: MealType) -> List[TemplateDish]:
        return getattr(self, MealType(meal_type).value)

    @property
    def is_empty(self) -> bool:
        return not any(self.dishes_for(meal_type) for meal_type in MEAL_TYPES)


def empty_week() -> Dict[Weekday, DayMeals]:
    return {weekday: DayMeals() for weekday in WEEKDAYS}


class WeeklyMenuTemplate(TimestampMixin):
    """Reusable 7 x 4 grid of dish assignments"""
    template_id: int
    name: str
    description: Optional[str] = None
    default_child_count: int = Field(..., ge=1)
    is_active: bool = True
    created_by: Optional[int] = None
    days: Dict[Weekday, DayMeals] = Field(default_factory=empty_week)

    @model_validator(mode="after")
    def fill_missing_days(self) -> "WeeklyMenuTemplate":
        for weekday in WEEKDAYS:
            self.days.setdefault(weekday, DayMeals())
        return self

    def day(self, weekday: Weekday) -> DayMeals:
        return self.days[Weekday(weekday)]

    def dish_ids(self) -> List[int]:
        """Distinct dish ids used anywhere in the grid"""
        seen: List[int] = []
        for day_meals in self.days.values():
            for meal_type in MEAL_TYPES:
                for dish in day_meals.dishes_for(meal_type):
                    if dish.dish_id not in seen:
                        seen.append(dish.dish_id)
        return seen


class WeeklyMenuTemplateUpdate(BaseModel):
    """Editable template header fields; cells change through add/remove"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    default_child_count: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None


class Meal(BaseModel):
    """One served slot of a daily menu"""
    dishes: List[DishSnapshot] = Field(default_factory=list)
    child_count: int = Field(0, ge=0)
    served_at: Optional[datetime] = None

    @property
    def is_served(self) -> bool:
        return self.served_at is not None


class MealPlan(BaseModel):
    """Dishes and child count requested for a meal slot"""
    dish_ids: List[int] = Field(default_factory=list)
    child_count: int = Field(0, ge=0)


def empty_meals() -> Dict[MealType, Meal]:
    return {meal_type: Meal() for meal_type in MEAL_TYPES}


class ConsumptionLog(BaseModel):
    """Stock deduction made when a meal was served (negative when reversed)"""
    meal_type: MealType
    product_id: int
    product_name: Optional[str] = None
    quantity: float
    unit: Optional[str] = None
    consumed_at: Optional[datetime] = None


class DailyMenu(TimestampMixin):
    """Calendar-dated menu; at most one per date"""
    menu_id: int
    date: date_type
    meals: Dict[MealType, Meal] = Field(default_factory=empty_meals)
    total_child_count: int = 0
    notes: Optional[str] = None
    consumption_logs: List[ConsumptionLog] = Field(default_factory=list)
    created_by: Optional[int] = None

    @model_validator(mode="after")
    def fill_missing_meals(self) -> "DailyMenu":
        for meal_type in MEAL_TYPES:
            self.meals.setdefault(meal_type, Meal())
        return self

    def meal(self, meal_type: MealType) -> Meal:
        return self.meals[MealType(meal_type)]


class RequiredProduct(BaseModel):
    """Aggregated demand for one product against current stock"""
    product_id: int
    name: str
    required: float
    available: float
    shortage: float
    unit: str
    sufficient: bool

    @classmethod
    def build(cls, product_id: int, name: str, required: float,
              available: float, unit: str) -> "RequiredProduct":
        sufficient = available >= required
        return cls(
            product_id=product_id,
            name=name,
            required=required,
            available=available,
            shortage=0.0 if sufficient else required - available,
            unit=unit,
            sufficient=sufficient,
        )


class FailedDate(BaseModel):
    """A day the expansion could not write"""
    date: date_type
    error: str


class ApplyResult(BaseModel):
    """Outcome of applying a template to a date range"""
    created_menus: List[DailyMenu] = Field(default_factory=list)
    updated_count: int = 0
    failed_dates: List[FailedDate] = Field(default_factory=list)
    shortages: List[RequiredProduct] = Field(default_factory=list)
    message: str = ""
