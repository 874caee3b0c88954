"""
Shared service plumbing: database access and the operation log
"""

import json
from typing import Any, Dict, Optional

from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import ValidationError
from ..models.dish import MealType
from ..models.menu import Weekday


class BaseService:
    """Base class for services bound to one DatabaseManager"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db or db_manager

    def _log_operation(self, conn, action: str, operator_id: Optional[int],
                       details: Dict[str, Any]):
        """Write an operation log row inside the caller's transaction"""
        conn.execute(
            "INSERT INTO logs (actor_id, action, detail_json) VALUES (?, ?, ?)",
            [operator_id, action, json.dumps(details, ensure_ascii=False, default=str)]
        )


def parse_weekday(value) -> Weekday:
    try:
        return Weekday(value)
    except ValueError:
        raise ValidationError(f"Unknown weekday: {value}")


def parse_meal_type(value) -> MealType:
    try:
        return MealType(value)
    except ValueError:
        raise ValidationError(f"Unknown meal type: {value}")


def require_positive(value, field: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer", details={"field": field})
    return value
