"""
Product requirement calculator

Expands a weekly template over a horizon of calendar days, multiplies every
ingredient by the child count and compares the totals with current stock.

Per ingredient:
    required += quantity / servings_count * child_count

Quantities are converted to the product's stock unit first. Stock is read as
a snapshot; nothing is reserved.
"""

from collections import OrderedDict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from .base_service import BaseService, require_positive
from .dish_service import DishService
from .product_service import ProductService
from .template_service import WeeklyMenuTemplateService
from ..core.units import convert_quantity, to_base_unit, units_compatible
from ..models.dish import Dish, Ingredient, MEAL_TYPES
from ..models.menu import RequiredProduct, Weekday, WeeklyMenuTemplate
from ..models.product import Product

DemandKey = Tuple[int, str]


def weekday_sequence(start_date: date, days: int) -> List[Tuple[date, Weekday]]:
    """Calendar days from start_date with their template weekday"""
    return [
        (day, Weekday.from_date(day))
        for day in (start_date + timedelta(days=offset) for offset in range(days))
    ]


def accumulate_ingredients(demand: "OrderedDict[DemandKey, float]",
                           ingredients: Iterable[Ingredient],
                           servings_count: Optional[int],
                           child_count: int,
                           products: Dict[int, Product]):
    """Add one dish's ingredients, scaled to child_count, into demand"""
    servings = servings_count if servings_count and servings_count > 0 else 1
    for ingredient in ingredients:
        quantity, unit = ingredient.quantity, ingredient.unit
        product = products.get(ingredient.product_id)
        if product is not None and units_compatible(unit, product.unit):
            quantity, unit = convert_quantity(quantity, unit, product.unit), product.unit
        else:
            quantity, unit = to_base_unit(quantity, unit)
        key = (ingredient.product_id, unit)
        demand[key] = demand.get(key, 0.0) + quantity / servings * child_count


def reconcile_with_stock(demand: "OrderedDict[DemandKey, float]",
                         products: Dict[int, Product]) -> List[RequiredProduct]:
    """One RequiredProduct per demanded (product, unit); unknown products have no stock"""
    result = []
    for (product_id, unit), required in demand.items():
        if required <= 0:
            continue
        product = products.get(product_id)
        available = 0.0
        name = f"Unknown product (ID: {product_id})"
        if product is not None:
            name = product.name
            if units_compatible(unit, product.unit):
                available = product.stock_quantity
        result.append(RequiredProduct.build(product_id, name, required, available, unit))
    return sort_requirements(result)


def sort_requirements(items: List[RequiredProduct]) -> List[RequiredProduct]:
    """Insufficient first, then by name"""
    return sorted(items, key=lambda item: (item.sufficient, item.name.lower(), item.product_id))


class RequirementCalculator(BaseService):
    """Aggregates ingredient demand for templates and single dishes"""

    def __init__(self, db=None):
        super().__init__(db)
        self.templates = WeeklyMenuTemplateService(self.db)
        self.dishes = DishService(self.db)
        self.products = ProductService(self.db)

    def calculate_required_products(self, template_id: int, days: int, child_count: int,
                                    start_date: Optional[date] = None) -> List[RequiredProduct]:
        """Requirements of a stored template over days from start_date"""
        require_positive(days, "days")
        require_positive(child_count, "child_count")
        template = self.templates.get_template(template_id)
        return self.calculate_for_template(template, days, child_count, start_date)

    def calculate_for_template(self, template: WeeklyMenuTemplate, days: int, child_count: int,
                               start_date: Optional[date] = None) -> List[RequiredProduct]:
        """Requirements of an already loaded template"""
        start_date = start_date or date.today()
        dishes = self.dishes.get_dishes_by_ids(template.dish_ids())
        products = self.products.get_products_by_ids(
            ing.product_id for dish in dishes.values() for ing in dish.ingredients
        )

        demand: "OrderedDict[DemandKey, float]" = OrderedDict()
        for _, weekday in weekday_sequence(start_date, days):
            day_meals = template.day(weekday)
            for meal_type in MEAL_TYPES:
                for entry in day_meals.dishes_for(meal_type):
                    dish = dishes.get(entry.dish_id)
                    # deleted dishes drop out of the calculation
                    if dish is None:
                        continue
                    accumulate_ingredients(demand, dish.ingredients, dish.servings_count,
                                           child_count, products)
        return reconcile_with_stock(demand, products)

    def calculate_dish_requirements(self, dish_id: int, child_count: int) -> List[RequiredProduct]:
        """Products one dish needs for child_count children"""
        require_positive(child_count, "child_count")
        dish: Dish = self.dishes.get_dish(dish_id)
        products = self.products.get_products_by_ids(ing.product_id for ing in dish.ingredients)
        demand: "OrderedDict[DemandKey, float]" = OrderedDict()
        accumulate_ingredients(demand, dish.ingredients, dish.servings_count, child_count, products)
        return reconcile_with_stock(demand, products)
