"""The orchestration loop driving one conversation.

A turn starts with a user utterance and alternates completion rounds and
capability execution until the model answers without requesting calls:

    IDLE -> AWAITING_COMPLETION -> (EXECUTING_CAPABILITIES -> AWAITING_COMPLETION)* -> DONE

A failing completion stream, the round limit or cancellation end the turn in
FAILED. Capability calls of one response run strictly one after the other, in
the order the model listed them.
"""

import json
import logging
from typing import Any, AsyncIterator

from opencoder_server.capabilities.catalog import CapabilityCatalog
from opencoder_server.capabilities.dispatcher import CapabilityDispatcher
from opencoder_server.capabilities.types import CapabilityCallRequest
from opencoder_server.conversation.state import ConversationState
from opencoder_server.conversation.types import ToolMessage, UserMessage
from opencoder_server.errors import (
    CapabilityArgumentParseError,
    CapabilityError,
    RoundLimitExceeded,
    StreamTransportError,
    TurnInProgress,
)
from opencoder_server.orchestration.accumulator import StreamAccumulator
from opencoder_server.orchestration.types import (
    AssistantTextDelta,
    CapabilityCallFinished,
    CapabilityCallStarted,
    CompletionClient,
    TextFragment,
    TurnComplete,
    TurnEvent,
    TurnFailed,
    TurnResult,
    TurnState,
)

logger = logging.getLogger(__name__)

_ACTIVE = (TurnState.AWAITING_COMPLETION, TurnState.EXECUTING_CAPABILITIES)


def parse_arguments(call: CapabilityCallRequest) -> dict[str, Any]:
    """Parse the raw argument text of a call into a JSON object.

    Blank argument text is read as an empty object.

    Raises:
        CapabilityArgumentParseError: If the text is not JSON or not an object
    """
    if not call.arguments.strip():
        return {}
    try:
        arguments = json.loads(call.arguments)
    except json.JSONDecodeError as e:
        raise CapabilityArgumentParseError(call.id, call.name, call.arguments, str(e))
    if not isinstance(arguments, dict):
        raise CapabilityArgumentParseError(
            call.id, call.name, call.arguments, "arguments must be a JSON object"
        )
    return arguments


class Orchestrator:
    """Runs turns for one conversation.

    The orchestrator owns the conversation state. The catalog and dispatcher
    are read during a turn and only changed by administrative refreshes.

    Attributes:
        conversation: The transcript of this conversation
        state: Current TurnState
        max_rounds: Maximum completion rounds per turn (None or 0 = unbounded)
        capability_timeout: Deadline in seconds for each capability dispatch
    """

    def __init__(
        self,
        conversation: ConversationState,
        client: CompletionClient,
        catalog: CapabilityCatalog,
        dispatcher: CapabilityDispatcher,
        model: str = "",
        capability_timeout: float | None = None,
        max_rounds: int | None = None,
    ):
        self.conversation = conversation
        self.client = client
        self.catalog = catalog
        self.dispatcher = dispatcher
        self.model = model
        self.capability_timeout = capability_timeout
        self.max_rounds = max_rounds
        self.state = TurnState.IDLE

    @property
    def busy(self) -> bool:
        return self.state in _ACTIVE

    async def submit_utterance(self, text: str) -> AsyncIterator[TurnEvent]:
        """Run one turn and yield its rendering events.

        Blank utterances produce no events and leave the state untouched.
        Closing the iterator or cancelling the consuming task ends the turn in
        FAILED without appending a partial assistant message.

        Args:
            text: The user utterance

        Yields:
            TurnEvent: Text deltas, capability call start/finish events and a
                       final TurnComplete or TurnFailed

        Raises:
            TurnInProgress: If another turn of this conversation is running
        """
        if not text or not text.strip():
            return
        if self.busy:
            raise TurnInProgress("A turn is already in progress for this conversation")

        self.conversation.append(UserMessage(content=text))
        self.state = TurnState.AWAITING_COMPLETION
        rounds = 0

        try:
            while True:
                self.state = TurnState.AWAITING_COMPLETION
                if self.max_rounds and rounds >= self.max_rounds:
                    raise RoundLimitExceeded(self.max_rounds)
                rounds += 1

                accumulator = StreamAccumulator()
                logger.debug(
                    f"Round {rounds}: sending {len(self.conversation)} messages "
                    f"and {len(self.catalog)} tools"
                )
                try:
                    async for fragment in self.client.stream(
                        self.conversation.messages, self.catalog.to_tools()
                    ):
                        accumulator.add(fragment)
                        if isinstance(fragment, TextFragment) and fragment.content:
                            yield AssistantTextDelta(content=fragment.content)
                except Exception as e:
                    raise StreamTransportError(e) from e

                message = accumulator.to_message(model=self.model)

                if not message.tool_calls:
                    if message.is_empty:
                        logger.warning("Completion returned neither content nor calls")
                        final = None
                    else:
                        self.conversation.append(message)
                        final = message
                    self.state = TurnState.DONE
                    logger.info(f"Turn complete after {rounds} round(s)")
                    yield TurnComplete(message=final, rounds=rounds)
                    return

                self.conversation.append(message)
                self.state = TurnState.EXECUTING_CAPABILITIES
                logger.info(f"Model requested {len(message.tool_calls)} capability call(s)")

                for call in message.tool_calls:
                    async for event in self._execute(call):
                        yield event

        except (StreamTransportError, RoundLimitExceeded) as e:
            self.state = TurnState.FAILED
            logger.error(f"Turn failed: {e}")
            yield TurnFailed(reason=str(e), error_type=type(e).__name__)

        finally:
            if self.state in _ACTIVE:
                self.state = TurnState.FAILED
                logger.warning("Turn cancelled")

    async def _execute(self, call: CapabilityCallRequest) -> AsyncIterator[TurnEvent]:
        """Execute one call and append its tool message.

        Calls with unparseable arguments are skipped and get no tool message.
        Dispatch errors become the tool message content.
        """
        try:
            arguments = parse_arguments(call)
        except CapabilityArgumentParseError as e:
            logger.warning(str(e))
            yield CapabilityCallStarted(call_id=call.id, name=call.name)
            yield CapabilityCallFinished(call_id=call.id, name=call.name, error=str(e))
            return

        yield CapabilityCallStarted(call_id=call.id, name=call.name, arguments=arguments)

        error = None
        try:
            result = await self.dispatcher.dispatch(
                call.name, arguments, timeout=self.capability_timeout
            )
        except CapabilityError as e:
            logger.error(f"Tool Error: {e}")
            error = str(e)
            result = f"Error: {e}"

        self.conversation.append(
            ToolMessage(tool_call_id=call.id, tool_name=call.name, content=result)
        )

        if error is None:
            yield CapabilityCallFinished(call_id=call.id, name=call.name, result=result)
        else:
            yield CapabilityCallFinished(call_id=call.id, name=call.name, error=error)

    async def run_turn(self, text: str) -> TurnResult:
        """Run one turn to completion and collect what it produced."""
        result = TurnResult(state=self.state)

        async for event in self.submit_utterance(text):
            if isinstance(event, CapabilityCallFinished):
                result.calls.append(event)
            elif isinstance(event, TurnComplete):
                result.message = event.message
            elif isinstance(event, TurnFailed):
                result.error = event.reason
                result.error_type = event.error_type

        result.state = self.state
        return result
