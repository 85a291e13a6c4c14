"""Chat API endpoints.

This module provides endpoints that run conversation turns, either collected
into one response or streamed as Server-Sent Events.
"""

import logging
from contextlib import aclosing
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sse_starlette.sse import EventSourceResponse

from opencoder_server.dependencies import get_conversation
from opencoder_server.errors import TurnInProgress
from opencoder_server.models.chat import (
    AssistantTextDeltaEvent,
    CapabilityCallFinishedEvent,
    CapabilityCallResponse,
    CapabilityCallStartedEvent,
    ChatRequest,
    ChatResponse,
    TurnCompleteEvent,
    TurnFailedEvent,
)
from opencoder_server.models.conversations import message_to_response
from opencoder_server.orchestration import (
    AssistantTextDelta,
    CapabilityCallFinished,
    CapabilityCallStarted,
    TurnComplete,
    TurnEvent,
    TurnFailed,
    TurnState,
)
from opencoder_server.services import Conversation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/chat", tags=["chat"])


def _turn_in_progress(conversation_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "error": {
                "code": "turn_in_progress",
                "message": f"Conversation {conversation_id} already has a turn in progress",
                "details": {"conversation_id": conversation_id},
            }
        },
    )


def _empty_message() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "error": {
                "code": "empty_message",
                "message": "Message must not be empty",
                "details": {},
            }
        },
    )


def _to_sse(event: TurnEvent, conversation_id: str) -> dict[str, Any]:
    """Convert a turn event to an SSE message dict."""
    if isinstance(event, AssistantTextDelta):
        data = AssistantTextDeltaEvent(content=event.content)
    elif isinstance(event, CapabilityCallStarted):
        data = CapabilityCallStartedEvent(
            call_id=event.call_id, name=event.name, arguments=event.arguments
        )
    elif isinstance(event, CapabilityCallFinished):
        data = CapabilityCallFinishedEvent(
            call_id=event.call_id,
            name=event.name,
            result=event.result,
            error=event.error,
        )
    elif isinstance(event, TurnComplete):
        data = TurnCompleteEvent(
            conversation_id=conversation_id,
            message=message_to_response(event.message) if event.message else None,
            rounds=event.rounds,
        )
    elif isinstance(event, TurnFailed):
        data = TurnFailedEvent(
            conversation_id=conversation_id,
            reason=event.reason,
            error_type=event.error_type,
        )
    else:
        raise TypeError(f"Unknown turn event: {type(event).__name__}")

    return {"event": event.event, "data": data.model_dump_json()}


@router.post("/{conversation_id}", response_model=ChatResponse)
async def chat_non_streaming(
    request_body: ChatRequest,
    conversation: Annotated[Conversation, Depends(get_conversation)],
) -> ChatResponse:
    """Run a turn and return the final answer.

    Capability calls are executed as the model requests them; the response
    lists them in execution order.

    Raises:
        HTTPException: 400 for a blank message, 409 if a turn is already
                       running, 502 if the completion stream fails
    """
    conversation_id = conversation.conversation_id

    if not request_body.message.strip():
        raise _empty_message()

    try:
        result = await conversation.orchestrator.run_turn(request_body.message)
    except TurnInProgress:
        raise _turn_in_progress(conversation_id)

    if result.state == TurnState.FAILED:
        logger.error(f"Turn failed for conversation {conversation_id}: {result.error}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "error": {
                    "code": "turn_failed",
                    "message": result.error or "Turn failed",
                    "details": {
                        "conversation_id": conversation_id,
                        "type": result.error_type,
                    },
                }
            },
        )

    return ChatResponse(
        conversation_id=conversation_id,
        message=message_to_response(result.message) if result.message else None,
        capability_calls=[
            CapabilityCallResponse(
                call_id=c.call_id, name=c.name, result=c.result, error=c.error
            )
            for c in result.calls
        ],
    )


@router.post("/{conversation_id}/stream")
async def chat_streaming(
    request_body: ChatRequest,
    request: Request,
    conversation: Annotated[Conversation, Depends(get_conversation)],
) -> EventSourceResponse:
    """Stream a turn via Server-Sent Events (SSE).

    SSE Events:
        - assistant_text_delta: Each text chunk from the model
        - capability_call_started: A capability call is about to run
        - capability_call_finished: Result or error of a capability call
        - turn_complete: The final answer
        - turn_failed: The turn failed (stream error, round limit)

    A client disconnect cancels the turn.

    Raises:
        HTTPException: 400 for a blank message, 409 if a turn is already
                       running
    """
    conversation_id = conversation.conversation_id
    orchestrator = conversation.orchestrator

    if not request_body.message.strip():
        raise _empty_message()

    if orchestrator.busy:
        raise _turn_in_progress(conversation_id)

    logger.info(f"Starting streaming turn for conversation {conversation_id}")

    async def event_generator():
        """Generate SSE events from the orchestrator's turn events."""
        try:
            async with aclosing(
                orchestrator.submit_utterance(request_body.message)
            ) as events:
                async for event in events:
                    if await request.is_disconnected():
                        logger.warning(
                            f"Client disconnected during turn for conversation {conversation_id}"
                        )
                        break
                    yield _to_sse(event, conversation_id)
        except TurnInProgress as e:
            yield _to_sse(
                TurnFailed(reason=str(e), error_type=type(e).__name__),
                conversation_id,
            )

    return EventSourceResponse(event_generator())
