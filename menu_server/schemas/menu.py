"""
Request models for templates and daily menus
"""

from pydantic import BaseModel, Field
from datetime import date as date_type
from typing import Dict, Optional
from ..models.dish import MealType
from ..models.menu import MealPlan, Weekday


class TemplateCreateRequest(BaseModel):
    """Create an empty weekly template"""
    name: str = Field(..., description="Template name")
    description: Optional[str] = Field(None, max_length=1000, description="Description")
    default_child_count: Optional[int] = Field(None, ge=1, description="Default number of children")


class TemplateDishRequest(BaseModel):
    """Add a dish to one template cell"""
    day: Weekday = Field(..., description="Weekday")
    meal_type: MealType = Field(..., description="Meal slot")
    dish_id: int = Field(..., description="Dish ID")


class ApplyTemplateRequest(BaseModel):
    """Expand a template starting at start_date"""
    start_date: date_type = Field(..., description="First calendar day")
    child_count: int = Field(..., gt=0, description="Children per meal")


class DailyMenuCreateRequest(BaseModel):
    date: date_type = Field(..., description="Menu date")
    meals: Dict[MealType, MealPlan] = Field(default_factory=dict)
    total_child_count: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=2000)


class DailyMenuUpdateRequest(BaseModel):
    meals: Optional[Dict[MealType, MealPlan]] = None
    total_child_count: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=2000)


class MealDishRequest(BaseModel):
    dish_id: int = Field(..., description="Dish ID")


class ServeMealRequest(BaseModel):
    """Child count defaults to the meal's planned count"""
    child_count: Optional[int] = Field(None, gt=0)
