"""Pydantic models for the capability catalog endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class CapabilityResponse(BaseModel):
    """A normalized capability descriptor."""

    name: str = Field(description="Capability name")
    description: str = Field(description="Capability description")
    parameters: dict[str, Any] = Field(description="Normalized object schema")
    session_name: str = Field(description="Session that advertised the capability")


class RefreshFailureResponse(BaseModel):
    """A session that failed to list its capabilities."""

    session_name: str
    message: str


class CapabilityListResponse(BaseModel):
    """The capability catalog."""

    capabilities: list[CapabilityResponse]
    sessions: list[str] = Field(description="Registered sessions in dispatch order")
    failures: list[RefreshFailureResponse] = Field(default_factory=list)
