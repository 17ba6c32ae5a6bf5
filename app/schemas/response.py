"""
app/schemas/response.py

Purpose: HTTP error body shared by every exception handler
"""

from pydantic import BaseModel, Field
from typing import Optional, Any


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str = Field(..., description="Human-readable message")
    code: str = Field(..., description="Stable machine code, e.g. PERSISTENCE_ERROR")
    details: Optional[Any] = None
