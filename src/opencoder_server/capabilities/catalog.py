"""Capability catalog aggregated from all capability sessions.

This module turns the heterogeneous, possibly malformed capability listings of
several sessions into one normalized list of descriptors that can be handed to
the completion client, and keeps the name -> session index the dispatcher uses.
"""

import copy
import logging
from typing import Any

from opencoder_server.capabilities.types import (
    RESERVED_PARAMETER,
    CapabilityDescriptor,
    CapabilitySession,
)
from opencoder_server.errors import (
    CatalogRefreshPartialFailure,
    DuplicateCapabilityError,
)

logger = logging.getLogger(__name__)


def normalize_parameters(schema: Any) -> dict[str, Any]:
    """Normalize a capability parameter schema.

    The result is always an object schema with a ``properties`` map and never
    mentions the reserved user-identity parameter. The input is not modified
    and normalizing an already normalized schema returns an equal schema.

    Args:
        schema: Raw schema as advertised by the provider (may be None or malformed)

    Returns:
        dict: The normalized schema
    """
    if hasattr(schema, "model_dump"):
        schema = schema.model_dump(exclude_none=True)

    if not isinstance(schema, dict):
        return {"type": "object", "properties": {}}

    params = copy.deepcopy(schema)

    if params.get("type") != "object":
        params["type"] = "object"

    properties = params.get("properties")
    if not isinstance(properties, dict):
        properties = {}
    properties.pop(RESERVED_PARAMETER, None)
    params["properties"] = properties

    if "required" in params:
        required = params["required"]
        if isinstance(required, list):
            params["required"] = [r for r in required if r != RESERVED_PARAMETER]
        else:
            del params["required"]

    return params


def _get_value(obj: Any, key: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _coerce_descriptor(raw: Any, session_name: str) -> CapabilityDescriptor | None:
    """Build a normalized descriptor from a raw capability listing entry."""
    name = _get_value(raw, "name")
    if not name or not isinstance(name, str):
        logger.warning(f"Skipping capability without a name from {session_name}")
        return None

    schema = None
    for key in ("parameters", "input_schema", "inputSchema"):
        schema = _get_value(raw, key)
        if schema is not None:
            break

    return CapabilityDescriptor(
        name=name,
        description=_get_value(raw, "description") or "",
        parameters=normalize_parameters(schema),
        session_name=session_name,
    )


class CapabilityCatalog:
    """Normalized view of every capability advertised by the sessions.

    Descriptors keep provider order, then within-provider order. Duplicate
    names are kept; the first one wins at dispatch time.

    Attributes:
        strict_names: Raise DuplicateCapabilityError on duplicate names
        descriptors: Descriptors built by the last refresh
        failures: Sessions that failed to list capabilities in the last refresh
    """

    def __init__(self, strict_names: bool = False):
        self.strict_names = strict_names
        self.descriptors: list[CapabilityDescriptor] = []
        self.failures: list[CatalogRefreshPartialFailure] = []
        self._index: dict[str, list[str]] = {}

    async def refresh(
        self, sessions: list[CapabilitySession]
    ) -> list[CapabilityDescriptor]:
        """Rebuild the catalog from the given sessions.

        A session that fails to list its capabilities is logged and skipped.
        If every session fails the catalog is simply empty.

        Args:
            sessions: Sessions in registration order

        Returns:
            list[CapabilityDescriptor]: The rebuilt descriptors

        Raises:
            DuplicateCapabilityError: On duplicate names when strict_names is set.
                                      The previous catalog is left in place.
        """
        descriptors: list[CapabilityDescriptor] = []
        failures: list[CatalogRefreshPartialFailure] = []

        for session in sessions:
            try:
                listing = await session.list_capabilities()
            except Exception as e:
                failure = CatalogRefreshPartialFailure(session.name, e)
                logger.warning(f"Warning: {failure}")
                failures.append(failure)
                continue

            count = 0
            for raw in listing or []:
                descriptor = _coerce_descriptor(raw, session.name)
                if descriptor is not None:
                    descriptors.append(descriptor)
                    count += 1
            logger.debug(f"Session {session.name} advertised {count} capabilities")

        index: dict[str, list[str]] = {}
        for descriptor in descriptors:
            owners = index.setdefault(descriptor.name, [])
            if descriptor.session_name not in owners:
                owners.append(descriptor.session_name)

        for name, owners in index.items():
            if len(owners) > 1:
                if self.strict_names:
                    raise DuplicateCapabilityError(name, owners)
                logger.warning(
                    f"Capability {name} is advertised by {', '.join(owners)}; "
                    f"{owners[0]} takes precedence"
                )

        self.descriptors = descriptors
        self.failures = failures
        self._index = index

        logger.info(
            f"Capability catalog refreshed: {len(descriptors)} capabilities from "
            f"{len(sessions) - len(failures)}/{len(sessions)} sessions"
        )
        return list(descriptors)

    def owners(self, name: str) -> list[str]:
        """Names of the sessions that advertised a capability, in order."""
        return list(self._index.get(name, []))

    def get(self, name: str) -> CapabilityDescriptor | None:
        """Return the descriptor that takes precedence for a name."""
        for descriptor in self.descriptors:
            if descriptor.name == name:
                return descriptor
        return None

    def to_tools(self) -> list[dict[str, Any]]:
        """Render all descriptors as function tools."""
        return [descriptor.to_tool() for descriptor in self.descriptors]

    def __len__(self) -> int:
        return len(self.descriptors)
