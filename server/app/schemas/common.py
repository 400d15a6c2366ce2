"""Shared response models for endpoints that return simple JSON dicts."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    service: str | None = None
