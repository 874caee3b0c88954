"""
Daily menu routes
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from ...core.database import DatabaseManager, get_db
from ...core.error_handler import create_success_response
from ...core.security import get_operator_id
from ...models.dish import MealType
from ...schemas.menu import (
    DailyMenuCreateRequest,
    DailyMenuUpdateRequest,
    MealDishRequest,
    ServeMealRequest,
)
from ...services.daily_menu_service import DailyMenuService
from ...utils.display import get_meal_type_name

router = APIRouter()


@router.get("")
def list_daily_menus(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    menus = DailyMenuService(db).list_daily_menus(start_date, end_date)
    return create_success_response(menus, f"{len(menus)} menus")


@router.post("")
def create_daily_menu(
    req: DailyMenuCreateRequest,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    menu = DailyMenuService(db).create_daily_menu(
        req.date, req.meals, req.total_child_count, req.notes, operator_id
    )
    return create_success_response(menu, f"Menu for {menu.date} created")


@router.get("/today")
def get_today_menu(db: DatabaseManager = Depends(get_db), operator_id: int = Depends(get_operator_id)):
    menu = DailyMenuService(db).get_today_menu()
    if menu is None:
        return create_success_response(message="No menu for today")
    return create_success_response(menu)


@router.get("/date/{menu_date}")
def get_daily_menu_by_date(
    menu_date: date,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    return create_success_response(DailyMenuService(db).get_by_date(menu_date))


@router.get("/{menu_id}")
def get_daily_menu(
    menu_id: int,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    return create_success_response(DailyMenuService(db).get_daily_menu(menu_id))


@router.put("/{menu_id}")
def update_daily_menu(
    menu_id: int,
    req: DailyMenuUpdateRequest,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    menu = DailyMenuService(db).update_daily_menu(
        menu_id, req.meals, req.total_child_count, req.notes, operator_id
    )
    return create_success_response(menu, f"Menu for {menu.date} updated")


@router.delete("/{menu_id}")
def delete_daily_menu(
    menu_id: int,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    DailyMenuService(db).delete_daily_menu(menu_id, operator_id)
    return create_success_response(message="Menu deleted")


@router.post("/{menu_id}/serve/{meal_type}")
def serve_meal(
    menu_id: int,
    meal_type: MealType,
    req: Optional[ServeMealRequest] = None,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    child_count = req.child_count if req else None
    menu = DailyMenuService(db).serve_meal(menu_id, meal_type, child_count, operator_id)
    return create_success_response(menu, f"{get_meal_type_name(meal_type)} served")


@router.post("/{menu_id}/cancel/{meal_type}")
def cancel_meal(
    menu_id: int,
    meal_type: MealType,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    menu = DailyMenuService(db).cancel_meal(menu_id, meal_type, operator_id)
    return create_success_response(menu, f"{get_meal_type_name(meal_type)} cancelled")


@router.post("/{menu_id}/meal/{meal_type}/dish")
def add_dish_to_meal(
    menu_id: int,
    meal_type: MealType,
    req: MealDishRequest,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    menu = DailyMenuService(db).add_dish_to_meal(menu_id, meal_type, req.dish_id, operator_id)
    return create_success_response(menu, "Dish added")


@router.delete("/{menu_id}/meal/{meal_type}/dish/{dish_id}")
def remove_dish_from_meal(
    menu_id: int,
    meal_type: MealType,
    dish_id: int,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    menu = DailyMenuService(db).remove_dish_from_meal(menu_id, meal_type, dish_id, operator_id)
    return create_success_response(menu, "Dish removed")
