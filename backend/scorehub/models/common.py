"""
backend/scorehub/models/common.py

Purpose:
    Shared Pydantic V2 base for API models. Python attributes and MongoDB
    fields are snake_case; the JSON wire format is camelCase.

Dependencies:
    - pydantic
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys, still accepts snake_case input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageResponse(CamelModel):
    message: str
