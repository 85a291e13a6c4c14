"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions that are used across
multiple routers to inject common dependencies like settings and services.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from opencoder_server.capabilities import CapabilityCatalog, SessionRegistry
from opencoder_server.config import OpenCoderSettings
from opencoder_server.services import Conversation, ConversationManager


@lru_cache
def get_settings() -> OpenCoderSettings:
    """Get the application settings instance.

    This function is cached so that the same settings instance is reused
    across all requests. Settings are loaded from environment variables
    with the OPENCODER_ prefix.

    Returns:
        OpenCoderSettings: The application configuration settings.
    """
    return OpenCoderSettings()


def _app_state(request: Request, name: str):
    if not hasattr(request.app.state, name):
        raise HTTPException(
            status_code=503,
            detail=f"{name} not initialized",
        )
    return getattr(request.app.state, name)


def get_conversation_manager(request: Request) -> ConversationManager:
    """Get the ConversationManager created at startup.

    Raises:
        HTTPException: If the app has not finished starting (503 Service Unavailable).
    """
    return _app_state(request, "conversation_manager")


def get_session_registry(request: Request) -> SessionRegistry:
    """Get the capability session registry created at startup."""
    return _app_state(request, "session_registry")


def get_catalog(request: Request) -> CapabilityCatalog:
    """Get the capability catalog created at startup."""
    return _app_state(request, "catalog")


def get_conversation(
    conversation_id: str,
    manager: Annotated[ConversationManager, Depends(get_conversation_manager)],
) -> Conversation:
    """Resolve the conversation named in the path.

    Raises:
        HTTPException: 404 if the conversation doesn't exist
    """
    try:
        return manager.get(conversation_id)
    except KeyError:
        raise HTTPException(
            status_code=404,
            detail={
                "error": {
                    "code": "conversation_not_found",
                    "message": f"Conversation {conversation_id} not found",
                    "details": {"conversation_id": conversation_id},
                }
            },
        )
