"""
Dish catalog models
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from enum import Enum
from .base import BaseEntity, TimestampMixin


class MealType(str, Enum):
    """Meal slot of a day; also the dish category"""
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    SNACK = "snack"
    DINNER = "dinner"


MEAL_TYPES: List[MealType] = list(MealType)


class Ingredient(BaseModel):
    """Quantity of one product needed for a single child's serving"""
    product_id: int = Field(..., description="Product ID")
    quantity: float = Field(..., gt=0, description="Quantity per serving")
    unit: str = Field(..., min_length=1, max_length=20, description="Quantity unit")


class DishBase(BaseModel):
    """Dish fields"""
    name: str = Field(..., min_length=1, max_length=200, description="Dish name")
    description: Optional[str] = Field(None, max_length=1000)
    category: MealType = Field(..., description="Meal slot the dish belongs to")
    ingredients: List[Ingredient] = Field(default_factory=list)
    servings_count: int = Field(1, ge=1, description="Child servings one recipe unit yields")
    preparation_time: Optional[int] = Field(None, ge=0, description="Minutes")
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class DishCreate(DishBase):
    pass


class DishUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[MealType] = None
    ingredients: Optional[List[Ingredient]] = None
    servings_count: Optional[int] = Field(None, ge=1)
    preparation_time: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class Dish(DishBase, BaseEntity, TimestampMixin):
    """Stored dish"""
    dish_id: int = Field(..., description="Dish ID")
    created_by: Optional[int] = None


class DishSnapshot(BaseModel):
    """
    Copy of a dish taken when a menu is built

    Later catalog edits do not change menus that already hold a snapshot.
    """
    dish_id: int
    name: str
    category: MealType
    servings_count: int = 1
    ingredients: List[Ingredient] = Field(default_factory=list)

    @classmethod
    def from_dish(cls, dish: Dish) -> "DishSnapshot":
        return cls(
            dish_id=dish.dish_id,
            name=dish.name,
            category=dish.category,
            servings_count=dish.servings_count,
            ingredients=[ing.model_copy() for ing in dish.ingredients],
        )
