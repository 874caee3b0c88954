"""
Dish catalog routes
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...core.database import DatabaseManager, get_db
from ...core.error_handler import create_success_response
from ...core.security import get_operator_id
from ...models.dish import DishCreate, DishUpdate, MealType
from ...services.dish_service import DishService
from ...services.requirement_calculator import RequirementCalculator

router = APIRouter()


@router.get("")
def list_dishes(
    category: Optional[MealType] = None,
    is_active: Optional[bool] = None,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    dishes = DishService(db).list_dishes(category=category, is_active=is_active)
    return create_success_response(dishes, f"{len(dishes)} dishes")


@router.post("")
def create_dish(
    req: DishCreate,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    dish = DishService(db).create_dish(req, operator_id)
    return create_success_response(dish, f"Dish '{dish.name}' created")


@router.get("/category/{category}")
def list_dishes_by_category(
    category: MealType,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    return create_success_response(DishService(db).list_active_dishes(category))


@router.get("/{dish_id}")
def get_dish(
    dish_id: int,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    return create_success_response(DishService(db).get_dish(dish_id))


@router.put("/{dish_id}")
def update_dish(
    dish_id: int,
    req: DishUpdate,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    dish = DishService(db).update_dish(dish_id, req, operator_id)
    return create_success_response(dish, f"Dish '{dish.name}' updated")


@router.delete("/{dish_id}")
def delete_dish(
    dish_id: int,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    DishService(db).delete_dish(dish_id, operator_id)
    return create_success_response(message="Dish deleted")


@router.patch("/{dish_id}/toggle")
def toggle_dish(
    dish_id: int,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    dish = DishService(db).toggle_active(dish_id, operator_id)
    state = "activated" if dish.is_active else "deactivated"
    return create_success_response(dish, f"Dish '{dish.name}' {state}")


@router.get("/{dish_id}/requirements")
def get_dish_requirements(
    dish_id: int,
    child_count: int = Query(..., gt=0),
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    """Products one dish needs for child_count children"""
    items = RequirementCalculator(db).calculate_dish_requirements(dish_id, child_count)
    return create_success_response(items)
