"""Accumulates completion fragments into one candidate assistant message."""

import logging
import uuid
from dataclasses import dataclass

from opencoder_server.capabilities.types import CapabilityCallRequest
from opencoder_server.conversation.types import AssistantMessage
from opencoder_server.orchestration.types import CallFragment, Fragment, TextFragment

logger = logging.getLogger(__name__)


def new_call_id() -> str:
    return f"call_{uuid.uuid4().hex[:12]}"


@dataclass
class _PartialCall:
    id: str | None = None
    name: str | None = None
    arguments: str = ""


class StreamAccumulator:
    """Merges a completion stream into content and capability calls.

    Text fragments are concatenated. Call fragments are keyed by index: the
    first non-empty id and name win and argument deltas are concatenated.
    """

    def __init__(self) -> None:
        self._content: list[str] = []
        self._calls: dict[int, _PartialCall] = {}

    @property
    def content(self) -> str:
        return "".join(self._content)

    def add(self, fragment: Fragment) -> None:
        if isinstance(fragment, TextFragment):
            if fragment.content:
                self._content.append(fragment.content)
        elif isinstance(fragment, CallFragment):
            call = self._calls.setdefault(fragment.index, _PartialCall())
            if fragment.id and not call.id:
                call.id = fragment.id
            if fragment.name and not call.name:
                call.name = fragment.name
            call.arguments += fragment.arguments_delta or ""
        else:
            raise TypeError(f"Unknown fragment type: {type(fragment).__name__}")

    def tool_calls(self) -> list[CapabilityCallRequest]:
        """Completed calls in index order.

        Calls that never received a name are dropped. Missing or duplicate ids
        are replaced by generated ones so ids stay unique within the message.
        """
        calls: list[CapabilityCallRequest] = []
        seen: set[str] = set()

        for index in sorted(self._calls):
            partial = self._calls[index]
            if not partial.name:
                logger.warning(f"Dropping capability call {index} without a name")
                continue
            call_id = partial.id
            if not call_id or call_id in seen:
                call_id = new_call_id()
                partial.id = call_id
            seen.add(call_id)
            calls.append(
                CapabilityCallRequest(
                    id=call_id, name=partial.name, arguments=partial.arguments
                )
            )

        return calls

    def to_message(self, model: str = "") -> AssistantMessage:
        """Build the candidate assistant message."""
        return AssistantMessage(
            content=self.content,
            model=model,
            tool_calls=self.tool_calls(),
        )
