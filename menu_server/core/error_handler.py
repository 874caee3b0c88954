"""
Unified error handling
Maps application exceptions to a standard JSON envelope and HTTP status

Response shape:
    {"success": false, "error_code": ..., "message": ..., "details": {...}}
"""

import json
import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


class ErrorResponse:
    """Standard error response"""

    def __init__(self, error_code: str, message: str,
                 details: Optional[Dict[str, Any]] = None,
                 http_status: int = 400):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }

    def to_json_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.http_status,
            content=self.to_dict()
        )


class ErrorHandler:
    """Global error handler"""

    ERROR_CODE_STATUS_MAP = {
        "VALIDATION_ERROR": 400,
        "AUTHENTICATION_REQUIRED": 401,
        "RESOURCE_NOT_FOUND": 404,
        "BUSINESS_RULE_VIOLATION": 422,
        "CONCURRENCY_CONFLICT": 409,
        "DATABASE_ERROR": 500,
        "INTERNAL_ERROR": 500,

        # catalog and inventory
        "PRODUCT_NOT_FOUND": 404,
        "DISH_NOT_FOUND": 404,
        "UNIT_MISMATCH": 422,
        "INSUFFICIENT_STOCK": 409,

        # templates and menus
        "TEMPLATE_NOT_FOUND": 404,
        "DAILY_MENU_NOT_FOUND": 404,
        "DAILY_MENU_DUPLICATE": 409,
        "MEAL_STATE_INVALID": 409,
        "APPLY_ABORTED": 422,
    }

    @classmethod
    def handle_application_error(cls, error: BaseApplicationError) -> ErrorResponse:
        http_status = cls.ERROR_CODE_STATUS_MAP.get(error.error_code, 400)
        return ErrorResponse(
            error_code=error.error_code,
            message=error.message,
            details=error.details,
            http_status=http_status
        )

    @classmethod
    def handle_http_exception(cls, error: HTTPException) -> ErrorResponse:
        return ErrorResponse(
            error_code="HTTP_ERROR",
            message=str(error.detail),
            details={"status_code": error.status_code},
            http_status=error.status_code
        )

    @classmethod
    def handle_validation_error(cls, error: Exception) -> ErrorResponse:
        errors = error.errors() if hasattr(error, "errors") else str(error)
        return ErrorResponse(
            error_code="VALIDATION_ERROR",
            message="Request validation failed",
            details={"validation_errors": json.loads(json.dumps(errors, default=str))},
            http_status=422
        )

    @classmethod
    def handle_unknown_error(cls, error: Exception, db=None) -> ErrorResponse:
        error_details = {
            "type": type(error).__name__,
            "message": str(error),
            "traceback": traceback.format_exc()
        }
        cls._log_system_error(error_details, db)

        return ErrorResponse(
            error_code="INTERNAL_ERROR",
            message=str(error) or "Internal server error",
            details={"error_type": type(error).__name__},
            http_status=500
        )

    @classmethod
    def _log_system_error(cls, error_details: Dict[str, Any], db=None):
        """Record the error in the logs table, falling back to the console"""
        if db is not None:
            try:
                db.execute_query(
                    "INSERT INTO logs(actor_id, action, detail_json) VALUES (?,?,?)",
                    [None, "system_error", json.dumps(error_details, ensure_ascii=False)]
                )
                return
            except Exception:
                logger.warning("Failed to write system_error row", exc_info=True)
        logger.error("Unhandled error: %s", error_details)


async def application_error_handler(request: Request, exc: BaseApplicationError) -> JSONResponse:
    return ErrorHandler.handle_application_error(exc).to_json_response()


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return ErrorHandler.handle_http_exception(exc).to_json_response()


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return ErrorHandler.handle_validation_error(exc).to_json_response()


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    db = getattr(request.app.state, "db", None)
    return ErrorHandler.handle_unknown_error(exc, db).to_json_response()


def create_success_response(data: Any = None, message: str = "OK") -> Dict[str, Any]:
    """Build the standard success envelope"""
    response = {
        "success": True,
        "message": message
    }

    if data is not None:
        response["data"] = to_jsonable(data)

    return response


def to_jsonable(data: Any) -> Any:
    """Dump pydantic models (also inside lists and dicts) to JSON-safe values"""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [to_jsonable(item) for item in data]
    if isinstance(data, dict):
        return {key: to_jsonable(value) for key, value in data.items()}
    return data
