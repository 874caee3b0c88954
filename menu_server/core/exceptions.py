"""
Application exception classes
Each error carries a stable error_code used by the HTTP error handler
"""

from typing import Any, Dict


class BaseApplicationError(Exception):
    """Base class for application errors"""

    default_code = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class DatabaseError(BaseApplicationError):
    """Database failure"""
    default_code = "DATABASE_ERROR"


class ConcurrencyError(BaseApplicationError):
    """Write conflict"""
    default_code = "CONCURRENCY_CONFLICT"


class AuthenticationError(BaseApplicationError):
    """Missing or invalid operator token"""
    default_code = "AUTHENTICATION_REQUIRED"


class ValidationError(BaseApplicationError):
    """Input rejected before touching storage"""
    default_code = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """Referenced entity does not exist"""
    default_code = "RESOURCE_NOT_FOUND"
    entity = "Resource"

    def __init__(self, entity_id: Any, message: str = None):
        self.entity_id = entity_id
        super().__init__(
            message or f"{self.entity} not found: {entity_id}",
            details={"id": entity_id},
        )


class TemplateNotFoundError(NotFoundError):
    default_code = "TEMPLATE_NOT_FOUND"
    entity = "Weekly menu template"


class DishNotFoundError(NotFoundError):
    default_code = "DISH_NOT_FOUND"
    entity = "Dish"


class ProductNotFoundError(NotFoundError):
    default_code = "PRODUCT_NOT_FOUND"
    entity = "Product"


class DailyMenuNotFoundError(NotFoundError):
    default_code = "DAILY_MENU_NOT_FOUND"
    entity = "Daily menu"


class BusinessRuleError(BaseApplicationError):
    """Business rule violation"""
    default_code = "BUSINESS_RULE_VIOLATION"


class DuplicateMenuDateError(BusinessRuleError):
    """A daily menu already exists for the date"""
    default_code = "DAILY_MENU_DUPLICATE"

    def __init__(self, menu_date):
        super().__init__(
            f"Daily menu for {menu_date} already exists",
            details={"date": str(menu_date)},
        )


class UnitMismatchError(BusinessRuleError):
    """Ingredient unit cannot be converted to the product unit"""
    default_code = "UNIT_MISMATCH"


class InsufficientStockError(BusinessRuleError):
    """Not enough stock for the requested deduction"""
    default_code = "INSUFFICIENT_STOCK"


class MealStateError(BusinessRuleError):
    """Meal cannot move to the requested state"""
    default_code = "MEAL_STATE_INVALID"


class ApplyAbortedError(BusinessRuleError):
    """Fail-fast template expansion rolled back"""
    default_code = "APPLY_ABORTED"
