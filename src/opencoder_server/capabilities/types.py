"""Data types for capability providers.

This module defines the capability descriptor and call request types, and the
protocol every capability session implements.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

# Parameter carrying the user identity. Hidden from the model, injected at dispatch.
RESERVED_PARAMETER = "uid"


@dataclass
class CapabilityDescriptor:
    """A named, schema-described operation exposed by a provider.

    Attributes:
        name: Capability name as seen by the model
        description: Human readable description
        parameters: JSON schema of the arguments (always an object schema
                    once normalized by the catalog)
        session_name: Name of the session that advertised the capability
    """

    name: str
    description: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)
    session_name: str = ""

    def to_tool(self) -> dict[str, Any]:
        """Render the descriptor as a function tool for the completion client."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass
class CapabilityCallRequest:
    """A capability call requested by the model.

    Attributes:
        id: Opaque token correlating the call with its tool message
        name: Requested capability name
        arguments: Raw JSON text of the arguments, exactly as streamed
    """

    id: str
    name: str
    arguments: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert the request to a plain dict."""
        return {"id": self.id, "name": self.name, "arguments": self.arguments}


@runtime_checkable
class CapabilitySession(Protocol):
    """One connection to a capability provider.

    ``list_capabilities`` may return CapabilityDescriptor instances, dicts or
    objects exposing ``name``, ``description`` and one of ``parameters``,
    ``input_schema`` or ``inputSchema``. ``invoke`` raises CapabilityNotFound
    for names the provider does not know and any other exception for failures.
    """

    name: str

    async def list_capabilities(self) -> list[Any]: ...

    async def invoke(self, name: str, arguments: dict[str, Any]) -> Any: ...

    async def close(self) -> None: ...
