"""
API routes and endpoints.
"""

from fastapi import APIRouter
from .v1 import daily_menus, dishes, products, reference, templates

api_router = APIRouter()

api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(dishes.router, prefix="/dishes", tags=["dishes"])
api_router.include_router(templates.router, prefix="/weekly-menu-template", tags=["weekly menu templates"])
api_router.include_router(daily_menus.router, prefix="/daily-menu", tags=["daily menus"])
api_router.include_router(reference.router, prefix="/reference", tags=["reference"])
