"""Common response schemas."""

from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    detail: str
    code: Optional[str] = None


class RelayErrorResponse(BaseModel):
    """Body returned by the relay when the upstream is unreachable."""

    error: bool = True
    message: str
    code: Optional[str] = None

