"""Shared schema helpers and the response envelope."""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Serializes as camelCase; accepts camelCase or snake_case input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class FieldError(BaseModel):
    field: Optional[str] = None
    message: str


class ApiResponse(BaseModel, Generic[T]):
    """Envelope shared by every response."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    errors: Optional[list[FieldError]] = None
