"""
Error envelope shared by every router's OpenAPI `responses` block.
"""
from typing import Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """`{code, message, details}` body of every 4xx/5xx response."""

    code: str
    message: str
    details: Optional[dict[str, Any]] = None
