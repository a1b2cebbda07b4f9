"""Pydantic schemas for the Prepwise API surface (feature payloads live with their flows)."""

from typing import Any, List, Optional
from pydantic import BaseModel


class HealthResponse(BaseModel):
    ok: bool


class ProviderStatusResponse(BaseModel):
    enabled: bool
    ok: bool
    provider: Optional[str] = None
    message: str


class ViolationSchema(BaseModel):
    path: str
    constraint: str
    actual: Any = None


class InvalidRequestDetail(BaseModel):
    message: str
    violations: List[ViolationSchema]
