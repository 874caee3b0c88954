"""
Weekly menu template routes
Editing, expansion into daily menus and product requirement previews
"""

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from ...config.settings import settings
from ...core.database import DatabaseManager, get_db
from ...core.error_handler import create_success_response
from ...core.security import get_operator_id
from ...models.dish import MealType
from ...models.menu import Weekday, WeeklyMenuTemplateUpdate
from ...schemas.menu import ApplyTemplateRequest, TemplateCreateRequest, TemplateDishRequest
from ...services.menu_expansion_service import MenuExpansionService
from ...services.requirement_calculator import RequirementCalculator
from ...services.template_service import WeeklyMenuTemplateService

router = APIRouter()


@router.get("")
def list_templates(
    is_active: Optional[bool] = None,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    templates = WeeklyMenuTemplateService(db).list_templates(is_active)
    return create_success_response(templates, f"{len(templates)} templates")


@router.post("")
def create_template(
    req: TemplateCreateRequest,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    template = WeeklyMenuTemplateService(db).create_template(
        req.name, req.default_child_count, req.description, operator_id
    )
    return create_success_response(template, f"Template '{template.name}' created")


@router.get("/{template_id}")
def get_template(
    template_id: int,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    return create_success_response(WeeklyMenuTemplateService(db).get_template(template_id))


@router.put("/{template_id}")
def update_template(
    template_id: int,
    req: WeeklyMenuTemplateUpdate,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    template = WeeklyMenuTemplateService(db).update_template(template_id, req, operator_id)
    return create_success_response(template, f"Template '{template.name}' updated")


@router.delete("/{template_id}")
def delete_template(
    template_id: int,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    WeeklyMenuTemplateService(db).delete_template(template_id, operator_id)
    return create_success_response(message="Template deleted")


@router.post("/{template_id}/dish")
def add_dish_to_day(
    template_id: int,
    req: TemplateDishRequest,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    template = WeeklyMenuTemplateService(db).add_dish_to_day(
        template_id, req.day, req.meal_type, req.dish_id, operator_id
    )
    return create_success_response(template, "Dish added")


@router.delete("/{template_id}/{day}/{meal_type}/{dish_id}")
def remove_dish_from_day(
    template_id: int,
    day: Weekday,
    meal_type: MealType,
    dish_id: int,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    template = WeeklyMenuTemplateService(db).remove_dish_from_day(
        template_id, day, meal_type, dish_id, operator_id
    )
    return create_success_response(template, "Dish removed")


@router.post("/{template_id}/apply-week")
def apply_template_to_week(
    template_id: int,
    req: ApplyTemplateRequest,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    result = MenuExpansionService(db).apply_template_to_week(
        template_id, req.start_date, req.child_count, operator_id
    )
    return create_success_response(result, result.message)


@router.post("/{template_id}/apply-month")
def apply_template_to_month(
    template_id: int,
    req: ApplyTemplateRequest,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    result = MenuExpansionService(db).apply_template_to_month(
        template_id, req.start_date, req.child_count, operator_id
    )
    return create_success_response(result, result.message)


@router.get("/{template_id}/required-products")
def calculate_required_products(
    template_id: int,
    days: Optional[int] = Query(None, gt=0, le=366),
    period: Literal["week", "month"] = "week",
    child_count: int = Query(..., gt=0),
    start_date: Optional[date] = None,
    db: DatabaseManager = Depends(get_db),
    operator_id: int = Depends(get_operator_id),
):
    if days is None:
        days = settings.month_horizon_days if period == "month" else 7
    items = RequirementCalculator(db).calculate_required_products(template_id, days, child_count, start_date)
    short = sum(1 for item in items if not item.sufficient)
    return create_success_response(items, f"{len(items)} products required, {short} short")
