"""
Base model classes
Shared configuration and common fields
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class TimestampMixin(BaseModel):
    """Creation and update timestamps"""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BaseEntity(BaseModel):
    """Base persisted entity"""

    model_config = {"from_attributes": True}
