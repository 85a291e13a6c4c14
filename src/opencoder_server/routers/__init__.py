"""FastAPI routers for API endpoints.

This package contains all route handlers organized by resource type.
Each router module defines endpoints for a specific domain (health,
capabilities, conversations, chat).
"""

from opencoder_server.routers import capabilities, chat, conversations, health

__all__ = [
    "capabilities",
    "chat",
    "conversations",
    "health",
]
