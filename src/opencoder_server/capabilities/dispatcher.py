"""Capability dispatch with fallback across sessions."""

import asyncio
import json
import logging
from typing import Any

from opencoder_server.capabilities.catalog import CapabilityCatalog
from opencoder_server.capabilities.registry import SessionRegistry
from opencoder_server.capabilities.types import RESERVED_PARAMETER, CapabilitySession
from opencoder_server.errors import CapabilityExecutionError, CapabilityNotFound

logger = logging.getLogger(__name__)

EMPTY_RESULT = "Tool executed successfully"


def _content_part_text(part: Any) -> str:
    if hasattr(part, "model_dump"):
        part = part.model_dump()
    if isinstance(part, dict):
        if part.get("type") == "text":
            return str(part.get("text", ""))
        if part.get("type") == "image":
            return f"[image: {part.get('mimeType', 'unknown')}]"
        return json.dumps(part, default=str)
    return str(part)


def result_to_text(result: Any) -> str:
    """Convert a capability result to the text stored in a tool message.

    Strings pass through, ``None`` becomes a generic success note, content part
    lists (``[{"type": "text", "text": ...}]``, optionally wrapped in a
    ``{"content": [...]}`` document) are joined line by line and anything else
    is rendered as JSON.
    """
    if result is None:
        return EMPTY_RESULT
    if isinstance(result, str):
        return result
    if hasattr(result, "model_dump"):
        result = result.model_dump()

    if isinstance(result, dict) and isinstance(result.get("content"), list):
        result = result["content"]

    if isinstance(result, list) and all(
        isinstance(p, dict) and "type" in p for p in result
    ):
        if not result:
            return EMPTY_RESULT
        return "\n".join(_content_part_text(part) for part in result)

    try:
        return json.dumps(result, default=str)
    except (TypeError, ValueError):
        return str(result)


class CapabilityDispatcher:
    """Executes capability calls against the registered sessions.

    Sessions that advertised the name in the last catalog refresh are tried
    first, in registration order, followed by every other session. The first
    session that answers without raising wins. When none does, the first
    error raised by an advertising session is reported as a
    CapabilityExecutionError, otherwise CapabilityNotFound is raised.

    Note that a provider which performs a side effect and then raises may be
    followed by another provider executing the same name. Deduplicate names
    across providers when exactly-once execution matters.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        catalog: CapabilityCatalog,
        user_id: str | None = None,
    ):
        self.registry = registry
        self.catalog = catalog
        self.user_id = user_id

    def candidates(self, name: str) -> list[CapabilitySession]:
        """Sessions to try for a capability, in precedence order."""
        sessions = self.registry.sessions
        owners = set(self.catalog.owners(name))
        owned = [s for s in sessions if s.name in owners]
        others = [s for s in sessions if s.name not in owners]
        return owned + others

    async def dispatch(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> str:
        """Execute a capability and return its result as text.

        Args:
            name: Capability name
            arguments: Parsed arguments (a copy is made before injecting the user id)
            timeout: Optional deadline in seconds for the whole dispatch

        Returns:
            str: Textual representation of the result

        Raises:
            CapabilityNotFound: If no session executed the capability
            CapabilityExecutionError: If an advertising session failed or the
                                      deadline was exceeded
        """
        call_arguments = dict(arguments) if arguments else {}
        if self.user_id:
            call_arguments[RESERVED_PARAMETER] = self.user_id

        if not timeout:
            return await self._dispatch(name, call_arguments)

        try:
            return await asyncio.wait_for(
                self._dispatch(name, call_arguments), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Capability {name} timed out after {timeout}s")
            raise CapabilityExecutionError(name, f"timed out after {timeout}s")

    async def _dispatch(self, name: str, arguments: dict[str, Any]) -> str:
        errors: dict[str, str] = {}
        owners = set(self.catalog.owners(name))
        failure: Exception | None = None

        for session in self.candidates(name):
            try:
                result = await session.invoke(name, arguments)
            except Exception as e:
                logger.debug(f"Session {session.name} rejected {name}: {e}")
                errors[session.name] = str(e)
                # The first real failure of an advertising session is what the model sees
                if (
                    failure is None
                    and session.name in owners
                    and not isinstance(e, CapabilityNotFound)
                ):
                    failure = e
                continue

            logger.info(f"Capability {name} executed by session {session.name}")
            return result_to_text(result)

        if failure is not None:
            logger.warning(f"Capability {name} failed: {failure}")
            if isinstance(failure, CapabilityExecutionError):
                raise failure
            raise CapabilityExecutionError(name, str(failure)) from failure

        logger.warning(f"Capability {name} not found in any connected session")
        raise CapabilityNotFound(name, errors)
