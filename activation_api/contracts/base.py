"""
This module contains the base contracts for the application.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseContract(BaseModel):
    """
    A base contract for all contracts; reads straight from ORM rows.
    """
    model_config = ConfigDict(from_attributes=True)


class CamelRequest(BaseModel):
    """
    Request bodies posted by the dashboard use camelCase keys
    (``scheduledStartAt``); snake_case is accepted as well.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimestampedContract(BaseContract):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
