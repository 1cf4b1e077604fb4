"""Shared schema building blocks."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model exposing camelCase JSON while accepting snake_case input too."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope: ``{statusCode, data, message, success}``."""

    status_code: int = 200
    data: T
    message: str = "Success"
    success: bool = True


class ErrorDetail(CamelModel):
    """One field-level validation problem."""

    field: str
    message: str
    code: str = "validation"


class ErrorResponse(CamelModel):
    """Failure envelope: ``{statusCode, message, success, error, errors?}``."""

    status_code: int
    message: str
    success: bool = False
    error: str
    errors: list[ErrorDetail] | None = None


class Pagination(CamelModel):
    """Pagination metadata for list responses."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool = Field(default=False)
