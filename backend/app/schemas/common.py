"""
Common schemas shared by all endpoints.
"""
from decimal import Decimal
from typing import Annotated, Any, Optional
from pydantic import BaseModel, PlainSerializer

# Decimal in Python, plain number in JSON
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class SuccessResponse(BaseModel):
    """Success envelope. Payload fields are added by subclasses."""
    success: bool = True
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    """Failure envelope."""
    success: bool = False
    message: str
    error: Optional[Any] = None


class PaginatedResponse(SuccessResponse):
    page: int
    limit: int
    totalItems: int
    totalPages: int


class HealthResponse(BaseModel):
    code: int
    message: str
