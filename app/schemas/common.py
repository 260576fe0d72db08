from typing import Any, List, Optional

from pydantic import BaseModel


class FieldError(BaseModel):
    field: str
    message: str
    value: Any = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: Optional[List[FieldError]] = None
    # production 이외 환경에서만 채움
    stack: Optional[str] = None


class HealthResponse(BaseModel):
    success: bool = True
    message: str
    timestamp: str
