"""Conversations router.

This module provides REST API endpoints for:
- Creating new conversations
- Listing all conversations
- Retrieving a conversation with its transcript
- Resetting a conversation to its system prompt
- Deleting conversations
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from opencoder_server.dependencies import get_conversation, get_conversation_manager
from opencoder_server.errors import TurnInProgress
from opencoder_server.models.conversations import (
    ConversationDetailResponse,
    ConversationListResponse,
    ConversationResponse,
    CreateConversationRequest,
    message_to_response,
)
from opencoder_server.services import Conversation, ConversationManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


def _summary(conversation: Conversation) -> ConversationResponse:
    return ConversationResponse(
        conversation_id=conversation.conversation_id,
        model=conversation.model,
        created_at=conversation.created_at,
        message_count=len(conversation.state),
        state=conversation.orchestrator.state.value,
    )


def _detail(conversation: Conversation) -> ConversationDetailResponse:
    return ConversationDetailResponse(
        **_summary(conversation).model_dump(),
        messages=[message_to_response(m) for m in conversation.state.messages],
    )


@router.post(
    "",
    response_model=ConversationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new conversation",
)
async def create_conversation(
    request: CreateConversationRequest,
    manager: Annotated[ConversationManager, Depends(get_conversation_manager)],
) -> ConversationResponse:
    """Create a new conversation.

    The system prompt is fixed for the lifetime of the conversation. When
    omitted, the configured default prompt is used.
    """
    conversation = manager.create(
        system_prompt=request.system_prompt,
        model=request.model,
    )
    return _summary(conversation)


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    manager: Annotated[ConversationManager, Depends(get_conversation_manager)],
) -> ConversationListResponse:
    """List all conversations, newest first."""
    return ConversationListResponse(
        conversations=[_summary(c) for c in manager.list()]
    )


@router.get("/{conversation_id}", response_model=ConversationDetailResponse)
async def get_conversation_detail(
    conversation: Annotated[Conversation, Depends(get_conversation)],
) -> ConversationDetailResponse:
    """Get a conversation with its full transcript."""
    return _detail(conversation)


@router.post("/{conversation_id}/reset", response_model=ConversationDetailResponse)
async def reset_conversation(
    conversation: Annotated[Conversation, Depends(get_conversation)],
    manager: Annotated[ConversationManager, Depends(get_conversation_manager)],
) -> ConversationDetailResponse:
    """Reset a conversation to its system prompt.

    Raises:
        HTTPException: 409 if a turn is in progress
    """
    try:
        manager.reset(conversation.conversation_id)
    except TurnInProgress as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": {
                    "code": "turn_in_progress",
                    "message": str(e),
                    "details": {"conversation_id": conversation.conversation_id},
                }
            },
        )
    return _detail(conversation)


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation: Annotated[Conversation, Depends(get_conversation)],
    manager: Annotated[ConversationManager, Depends(get_conversation_manager)],
) -> None:
    """Delete a conversation."""
    manager.delete(conversation.conversation_id)
