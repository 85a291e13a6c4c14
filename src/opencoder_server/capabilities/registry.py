"""Ordered registry of open capability sessions."""

import logging

from opencoder_server.capabilities.types import CapabilitySession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Holds capability sessions in registration order.

    Registration order is dispatch precedence. The registry is only mutated by
    administrative operations (adding or closing sessions), never while a
    capability call is being dispatched.
    """

    def __init__(self, sessions: list[CapabilitySession] | None = None):
        self._sessions: list[CapabilitySession] = []
        for session in sessions or []:
            self.add(session)

    @property
    def sessions(self) -> list[CapabilitySession]:
        """Sessions in registration order (a copy)."""
        return list(self._sessions)

    @property
    def names(self) -> list[str]:
        return [session.name for session in self._sessions]

    def __len__(self) -> int:
        return len(self._sessions)

    def add(self, session: CapabilitySession) -> None:
        """Register a session.

        Args:
            session: The session to append

        Raises:
            ValueError: If a session with the same name is already registered
        """
        if session.name in self.names:
            raise ValueError(f"Session {session.name} is already registered")
        self._sessions.append(session)
        logger.info(f"Registered capability session: {session.name}")

    def get(self, name: str) -> CapabilitySession | None:
        for session in self._sessions:
            if session.name == name:
                return session
        return None

    async def close_all(self) -> None:
        """Close every session, best effort, and empty the registry."""
        for session in self._sessions:
            try:
                await session.close()
                logger.debug(f"Closed capability session: {session.name}")
            except Exception as e:
                logger.warning(f"Failed to close session {session.name}: {e}")
        self._sessions = []
