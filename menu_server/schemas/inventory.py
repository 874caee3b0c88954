"""
Request models for stock changes
"""

from pydantic import BaseModel, Field


class StockChangeRequest(BaseModel):
    """Increase or decrease stock"""
    quantity: float = Field(..., gt=0, description="Amount in the product's unit")
