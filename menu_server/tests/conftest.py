"""
Test configuration
Every test gets its own in-memory DuckDB database
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from ..app import create_app
from ..core.database import DatabaseManager
from ..core.security import create_access_token
from ..models.dish import DishCreate, Ingredient, MealType
from ..models.product import ProductCreate
from ..services import (
    DailyMenuService,
    DishService,
    MenuExpansionService,
    ProductService,
    RequirementCalculator,
    WeeklyMenuTemplateService,
)

# 2024-06-03 is a Monday
MONDAY = date(2024, 6, 3)


@pytest.fixture
def test_db():
    db = DatabaseManager(":memory:")
    db.init_database()
    yield db
    db.close()


@pytest.fixture
def product_service(test_db):
    return ProductService(test_db)


@pytest.fixture
def dish_service(test_db):
    return DishService(test_db)


@pytest.fixture
def template_service(test_db):
    return WeeklyMenuTemplateService(test_db)


@pytest.fixture
def calculator(test_db):
    return RequirementCalculator(test_db)


@pytest.fixture
def daily_menu_service(test_db):
    return DailyMenuService(test_db)


@pytest.fixture
def expansion_service(test_db):
    return MenuExpansionService(test_db, failure_mode="best_effort")


@pytest.fixture
def oatmeal(product_service):
    return product_service.create_product(
        ProductCreate(name="Oatmeal", category="grains", unit="g", stock_quantity=1000)
    )


@pytest.fixture
def milk(product_service):
    return product_service.create_product(
        ProductCreate(name="Milk", category="dairy", unit="l", stock_quantity=20, min_stock_level=5)
    )


@pytest.fixture
def apples(product_service):
    return product_service.create_product(
        ProductCreate(name="Apples", category="fruit", unit="pcs", stock_quantity=100)
    )


@pytest.fixture
def porridge(dish_service, oatmeal):
    """50 g of oatmeal per child"""
    return dish_service.create_dish(DishCreate(
        name="Porridge",
        category=MealType.BREAKFAST,
        ingredients=[Ingredient(product_id=oatmeal.product_id, quantity=50, unit="g")],
    ))


@pytest.fixture
def milk_soup(dish_service, milk):
    """200 ml of milk per child"""
    return dish_service.create_dish(DishCreate(
        name="Milk soup",
        category=MealType.LUNCH,
        ingredients=[Ingredient(product_id=milk.product_id, quantity=200, unit="ml")],
    ))


@pytest.fixture
def baked_apples(dish_service, apples):
    """One recipe of 2 apples serves 4 children"""
    return dish_service.create_dish(DishCreate(
        name="Baked apples",
        category=MealType.SNACK,
        ingredients=[Ingredient(product_id=apples.product_id, quantity=2, unit="pcs")],
        servings_count=4,
    ))


@pytest.fixture
def standard_week(template_service, porridge):
    """Template with porridge on Monday breakfast only"""
    template = template_service.create_template("Standard Week", 30)
    return template_service.add_dish_to_day(
        template.template_id, "monday", "breakfast", porridge.dish_id
    )


@pytest.fixture
def full_week(template_service, porridge, milk_soup, baked_apples):
    """Porridge every breakfast, milk soup on weekdays, baked apples on Wednesday"""
    template = template_service.create_template("Full Week", 25)
    template_id = template.template_id
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"):
        template_service.add_dish_to_day(template_id, day, "breakfast", porridge.dish_id)
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday"):
        template_service.add_dish_to_day(template_id, day, "lunch", milk_soup.dish_id)
    return template_service.add_dish_to_day(template_id, "wednesday", "snack", baked_apples.dish_id)


@pytest.fixture
def app_instance(test_db):
    return create_app(test_db)


@pytest.fixture
def client(app_instance):
    return TestClient(app_instance)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(1)}"}
