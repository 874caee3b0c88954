"""
Display names for the UI
"""

from ..models.dish import MealType
from ..models.menu import Weekday

MEAL_TYPE_NAMES = {
    MealType.BREAKFAST: "Завтрак",
    MealType.LUNCH: "Обед",
    MealType.SNACK: "Полдник",
    MealType.DINNER: "Ужин",
}

WEEKDAY_NAMES = {
    Weekday.MONDAY: "Понедельник",
    Weekday.TUESDAY: "Вторник",
    Weekday.WEDNESDAY: "Среда",
    Weekday.THURSDAY: "Четверг",
    Weekday.FRIDAY: "Пятница",
    Weekday.SATURDAY: "Суббота",
    Weekday.SUNDAY: "Воскресенье",
}


def get_meal_type_name(meal_type) -> str:
    return MEAL_TYPE_NAMES[MealType(meal_type)]


def get_weekday_name(weekday) -> str:
    return WEEKDAY_NAMES[Weekday(weekday)]


def format_quantity(quantity: float, unit: str) -> str:
    """Two decimals at most, trailing zeros dropped"""
    text = f"{quantity:.2f}".rstrip("0").rstrip(".")
    return f"{text} {unit}".strip()
