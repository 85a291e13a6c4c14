"""Capability catalog, dispatch and providers.

This package aggregates the capabilities advertised by every provider session
into one normalized catalog and executes the calls the model requests.
"""

from opencoder_server.capabilities.catalog import CapabilityCatalog, normalize_parameters
from opencoder_server.capabilities.dispatcher import (
    EMPTY_RESULT,
    CapabilityDispatcher,
    result_to_text,
)
from opencoder_server.capabilities.functions import (
    FunctionCapabilitySession,
    discover_sessions,
)
from opencoder_server.capabilities.mcp_client import (
    McpCapabilitySession,
    open_mcp_sessions,
)
from opencoder_server.capabilities.registry import SessionRegistry
from opencoder_server.capabilities.types import (
    RESERVED_PARAMETER,
    CapabilityCallRequest,
    CapabilityDescriptor,
    CapabilitySession,
)

__all__ = [
    "EMPTY_RESULT",
    "RESERVED_PARAMETER",
    "CapabilityCallRequest",
    "CapabilityCatalog",
    "CapabilityDescriptor",
    "CapabilityDispatcher",
    "CapabilitySession",
    "FunctionCapabilitySession",
    "McpCapabilitySession",
    "SessionRegistry",
    "discover_sessions",
    "normalize_parameters",
    "open_mcp_sessions",
    "result_to_text",
]
