"""FastAPI application factory and lifespan management.

This module contains the create_app() factory function that creates and configures
the FastAPI application instance, including lifespan management for startup/shutdown
and router registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from opencoder_server.capabilities import (
    CapabilityCatalog,
    CapabilityDispatcher,
    CapabilitySession,
    SessionRegistry,
    discover_sessions,
    open_mcp_sessions,
)
from opencoder_server.config import OpenCoderSettings
from opencoder_server.ollama import OllamaClient, OllamaCompletionClient
from opencoder_server.routers import capabilities, chat, conversations, health
from opencoder_server.services import ConversationManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI application.

    Startup creates the Ollama client, opens one capability session per tool
    file and per configured MCP provider, builds the capability catalog and the
    conversation manager, and stores them in app.state. Shutdown closes every
    session.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: OpenCoderSettings = app.state.settings

    ollama_client = OllamaClient(host=settings.ollama_host)
    app.state.ollama_client = ollama_client
    logger.info(f"Initialized Ollama client with host: {settings.ollama_host}")

    connected = await ollama_client.check_connection()
    if connected:
        logger.info("Successfully connected to Ollama")
    else:
        logger.warning("Could not connect to Ollama - check if server is running")

    registry = SessionRegistry(app.state.extra_sessions)
    for session in discover_sessions(settings.resolved_tools_dir):
        try:
            registry.add(session)
        except ValueError as e:
            logger.error(f"Failed to register tool provider: {e}")
    for session in await open_mcp_sessions(settings.mcp_servers):
        try:
            registry.add(session)
        except ValueError as e:
            logger.error(f"Failed to register MCP provider: {e}")
            await session.close()
    if len(registry) == 0:
        logger.warning("No capability sessions registered - the model has no tools")

    catalog = CapabilityCatalog(strict_names=settings.strict_capability_names)
    await catalog.refresh(registry.sessions)

    dispatcher = CapabilityDispatcher(registry, catalog, user_id=settings.user_id)

    app.state.session_registry = registry
    app.state.catalog = catalog
    app.state.conversation_manager = ConversationManager(
        client_factory=lambda model: OllamaCompletionClient(ollama_client, model),
        catalog=catalog,
        dispatcher=dispatcher,
        default_model=settings.model,
        default_system_prompt=settings.system_prompt,
        capability_timeout=settings.capability_timeout,
        max_rounds=settings.max_capability_rounds,
    )
    logger.info(f"Ready · {len(registry)} capability sessions, {len(catalog)} capabilities")

    yield

    await registry.close_all()
    await ollama_client.close()
    logger.info("Capability sessions and Ollama client closed")


def create_app(
    settings: OpenCoderSettings | None = None,
    sessions: list[CapabilitySession] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional OpenCoderSettings instance. If not provided,
                  settings will be loaded from environment variables.
        sessions: Optional capability sessions registered ahead of the ones
                  discovered in the tools directory.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from opencoder_server.dependencies import get_settings

        settings = get_settings()

    app = FastAPI(
        title="opencoder-server",
        description="Headless FastAPI server for tool-using LLM conversations via Ollama",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings in app.state for lifespan access
    app.state.settings = settings
    app.state.extra_sessions = list(sessions or [])

    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(capabilities.router)
    app.include_router(conversations.router)
    app.include_router(chat.router)

    return app
