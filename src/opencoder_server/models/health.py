"""Health check response model."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for the health check endpoint.

    Attributes:
        status: Health status indicator ("ok" or "error").
        version: The version of opencoder-server.
        ollama_connected: Optional boolean indicating Ollama connectivity.
        ollama_host: Optional string with the Ollama host URL.
        capability_sessions: Number of registered capability sessions.
    """

    status: str = Field(..., description="Health status of the service")
    version: str = Field(..., description="Version of opencoder-server")
    ollama_connected: bool | None = Field(
        default=None,
        description="Whether Ollama is connected",
    )
    ollama_host: str | None = Field(
        default=None,
        description="Ollama host URL",
    )
    capability_sessions: int = Field(
        default=0,
        description="Number of registered capability sessions",
    )
