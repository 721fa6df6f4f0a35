"""
Generic response schemas
"""

from pydantic import BaseModel, Field
from typing import Any, Optional, Dict
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorDetail(BaseModel):
    """Error detail schema"""
    code: str
    message: str
    details: Optional[Dict[str, Any]] = {}


class ErrorResponse(BaseModel):
    """Generic error response"""
    success: bool = False
    error: ErrorDetail


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    timestamp: datetime = Field(default_factory=_utcnow)
    services: Optional[Dict[str, bool]] = None


class MessageResponse(BaseModel):
    """Simple message response"""
    success: bool = True
    message: str


# Documented error bodies shared by the routers
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    401: {"model": ErrorResponse, "description": "Not authenticated"},
    403: {"model": ErrorResponse, "description": "Forbidden"},
    404: {"model": ErrorResponse, "description": "Not found"},
    409: {"model": ErrorResponse, "description": "Conflict"},
}
