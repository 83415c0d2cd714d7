"""Common schemas used across the application."""

from typing import Any, Generic, TypeVar, List, Optional
from pydantic import BaseModel, Field


T = TypeVar("T")


class ResponseMessage(BaseModel):
    """Generic response message schema."""

    message: str = Field(..., description="Response message")


class ErrorResponse(BaseModel):
    """Error payload returned for 4xx/5xx responses."""

    error: str = Field(..., description="Human-readable error message")
    detail: Any = Field(default=None, description="Error detail")
    details: Optional[List[Any]] = Field(
        default=None, description="Field errors for validation failures"
    )


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated response schema."""

    items: List[T] = Field(..., description="List of items")
    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number", ge=1)
    page_size: int = Field(..., description="Number of items per page", ge=1)
    total_pages: int = Field(..., description="Total number of pages")


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str = Field(..., description="Service status", examples=["healthy"])
    version: str = Field(..., description="API version", examples=["1.0.0"])
    database: str = Field(..., description="Database status", examples=["connected"])
