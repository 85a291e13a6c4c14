"""Pydantic models for API request and response schemas.

This package contains all Pydantic models used for validating and
serializing API requests and responses across all endpoints.
"""

from opencoder_server.models.capabilities import (
    CapabilityListResponse,
    CapabilityResponse,
    RefreshFailureResponse,
)
from opencoder_server.models.conversations import (
    ConversationDetailResponse,
    ConversationListResponse,
    ConversationResponse,
    CreateConversationRequest,
    MessageResponse,
)

__all__ = [
    "CapabilityListResponse",
    "CapabilityResponse",
    "ConversationDetailResponse",
    "ConversationListResponse",
    "ConversationResponse",
    "CreateConversationRequest",
    "MessageResponse",
    "RefreshFailureResponse",
]
