"""
Business logic services.
Contains service layer implementations for menu planning operations.
"""

from .product_service import ProductService
from .dish_service import DishService
from .template_service import WeeklyMenuTemplateService
from .requirement_calculator import RequirementCalculator
from .daily_menu_service import DailyMenuService
from .menu_expansion_service import MenuExpansionService

__all__ = [
    "ProductService",
    "DishService",
    "WeeklyMenuTemplateService",
    "RequirementCalculator",
    "DailyMenuService",
    "MenuExpansionService",
]
