"""
Display lookups for the UI
"""

from fastapi import APIRouter

from ...core.error_handler import create_success_response
from ...models.dish import MEAL_TYPES
from ...models.menu import WEEKDAYS
from ...utils.display import get_meal_type_name, get_weekday_name

router = APIRouter()


@router.get("/meal-types")
def list_meal_types():
    return create_success_response(
        [{"value": meal_type.value, "name": get_meal_type_name(meal_type)} for meal_type in MEAL_TYPES]
    )


@router.get("/weekdays")
def list_weekdays():
    return create_success_response(
        [{"value": weekday.value, "name": get_weekday_name(weekday)} for weekday in WEEKDAYS]
    )
