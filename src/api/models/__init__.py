"""API Pydantic models."""

from .requests import EventCreate, EventUpdate
from .responses import ErrorResponse, EventData, HealthResponse

__all__ = ["EventCreate", "EventUpdate", "EventData", "ErrorResponse", "HealthResponse"]
