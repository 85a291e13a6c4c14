"""Exception hierarchy for opencoder-server.

Only StreamTransportError, RoundLimitExceeded and cancellation end a turn.
Every other condition is turned into a tool message so the model can adapt.
"""


class OpenCoderError(Exception):
    """Base class for all opencoder-server errors."""


class InvalidMessageError(OpenCoderError):
    """A message would break the conversation transcript invariants."""


class CatalogRefreshPartialFailure(OpenCoderError):
    """A session failed to list its capabilities during a catalog refresh."""

    def __init__(self, session_name: str, cause: BaseException):
        self.session_name = session_name
        self.cause = cause
        super().__init__(
            f"Failed to list capabilities from session {session_name}: {cause}"
        )


class DuplicateCapabilityError(OpenCoderError):
    """Two sessions advertise the same capability name (strict mode only)."""

    def __init__(self, name: str, sessions: list[str]):
        self.name = name
        self.sessions = sessions
        super().__init__(
            f"Capability {name} is advertised by multiple sessions: "
            f"{', '.join(sessions)}"
        )


class CapabilityArgumentParseError(OpenCoderError):
    """The model produced an argument document that is not a JSON object."""

    def __init__(self, call_id: str, name: str, raw: str, reason: str):
        self.call_id = call_id
        self.name = name
        self.raw = raw
        super().__init__(f"Invalid arguments for {name} ({call_id}): {reason}")


class CapabilityError(OpenCoderError):
    """Base class for dispatch failures reported back to the model."""


class CapabilityNotFound(CapabilityError):
    """No session accepted the capability call.

    Sessions also raise this to signal that they do not know a capability,
    which lets the dispatcher move on to the next session.
    """

    def __init__(self, name: str, errors: dict[str, str] | None = None):
        self.name = name
        self.errors: dict[str, str] = errors or {}
        super().__init__(f"tool {name} not found in any connected server")


class CapabilityExecutionError(CapabilityError):
    """A capability was accepted but failed or exceeded its deadline."""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(f"tool {name} failed: {message}")


class StreamTransportError(OpenCoderError):
    """The completion stream itself failed."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"stream error: {cause}")


class RoundLimitExceeded(OpenCoderError):
    """The model kept requesting capability calls past the round limit."""

    def __init__(self, max_rounds: int):
        self.max_rounds = max_rounds
        super().__init__(
            f"Model requested capability calls for more than {max_rounds} rounds"
        )


class TurnInProgress(OpenCoderError):
    """A new utterance was submitted while a turn is still running."""
