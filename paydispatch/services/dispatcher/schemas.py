"""API response schemas for the dispatcher endpoints."""

from typing import Any

from pydantic import BaseModel


class DispatchResponse(BaseModel):
    """Outcome of one processed callback record."""

    outcome: str
    reason: str | None = None
    message: str | None = None
    value: Any = None
