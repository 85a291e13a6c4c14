"""Message types making up a conversation transcript."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from opencoder_server.capabilities.types import CapabilityCallRequest


def new_message_id() -> str:
    """Generate a 10-char hex message identifier."""
    return uuid.uuid4().hex[:10]


def utc_timestamp() -> str:
    """Current time as an ISO 8601 string with a Z suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class UserMessage:
    """A message from the user."""

    role: str = "user"
    content: str = ""
    message_id: str = field(default_factory=new_message_id)
    timestamp: str = field(default_factory=utc_timestamp)

    def __post_init__(self) -> None:
        """Validate role is always 'user'."""
        self.role = "user"


@dataclass
class SystemMessage:
    """The system prompt message."""

    role: str = "system"
    content: str = ""
    message_id: str = field(default_factory=new_message_id)
    timestamp: str = field(default_factory=utc_timestamp)

    def __post_init__(self) -> None:
        """Validate role is always 'system'."""
        self.role = "system"


@dataclass
class AssistantMessage:
    """A response from the model.

    Either carries final content or a non-empty list of capability calls.
    """

    role: str = "assistant"
    content: str = ""
    model: str = ""
    message_id: str = field(default_factory=new_message_id)
    timestamp: str = field(default_factory=utc_timestamp)
    tool_calls: list[CapabilityCallRequest] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate role is always 'assistant'."""
        self.role = "assistant"

    @property
    def is_empty(self) -> bool:
        return not self.content and not self.tool_calls


@dataclass
class ToolMessage:
    """A capability result, correlated with its call by tool_call_id."""

    role: str = "tool"
    tool_call_id: str = ""
    tool_name: str = ""
    content: str = ""
    message_id: str = field(default_factory=new_message_id)
    timestamp: str = field(default_factory=utc_timestamp)

    def __post_init__(self) -> None:
        """Validate role is always 'tool'."""
        self.role = "tool"


# Union type for all message types
Message = UserMessage | SystemMessage | AssistantMessage | ToolMessage
