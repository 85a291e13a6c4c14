"""Capabilities router for inspecting and refreshing the capability catalog."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from opencoder_server.capabilities import CapabilityCatalog, SessionRegistry
from opencoder_server.dependencies import get_catalog, get_session_registry
from opencoder_server.errors import DuplicateCapabilityError
from opencoder_server.models.capabilities import (
    CapabilityListResponse,
    CapabilityResponse,
    RefreshFailureResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/capabilities", tags=["capabilities"])


def _catalog_response(
    catalog: CapabilityCatalog, registry: SessionRegistry
) -> CapabilityListResponse:
    return CapabilityListResponse(
        capabilities=[
            CapabilityResponse(
                name=d.name,
                description=d.description,
                parameters=d.parameters,
                session_name=d.session_name,
            )
            for d in catalog.descriptors
        ],
        sessions=registry.names,
        failures=[
            RefreshFailureResponse(session_name=f.session_name, message=str(f.cause))
            for f in catalog.failures
        ],
    )


@router.get("", response_model=CapabilityListResponse)
async def list_capabilities(
    catalog: Annotated[CapabilityCatalog, Depends(get_catalog)],
    registry: Annotated[SessionRegistry, Depends(get_session_registry)],
) -> CapabilityListResponse:
    """List the normalized capability catalog."""
    return _catalog_response(catalog, registry)


@router.post("/refresh", response_model=CapabilityListResponse)
async def refresh_capabilities(
    catalog: Annotated[CapabilityCatalog, Depends(get_catalog)],
    registry: Annotated[SessionRegistry, Depends(get_session_registry)],
) -> CapabilityListResponse:
    """Rebuild the catalog from every registered session.

    Sessions that fail to list their capabilities are reported in
    ``failures`` and skipped.

    Raises:
        HTTPException: 409 if strict capability names are enabled and two
                       sessions advertise the same name
    """
    try:
        await catalog.refresh(registry.sessions)
    except DuplicateCapabilityError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": {
                    "code": "duplicate_capability",
                    "message": str(e),
                    "details": {"name": e.name, "sessions": e.sessions},
                }
            },
        )

    return _catalog_response(catalog, registry)
