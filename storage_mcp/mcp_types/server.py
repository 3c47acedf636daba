"""
Server-related types
Lifecycle states and the exceptions that cross module boundaries.
"""

from enum import Enum
from typing import Optional, Sequence


class ServerState(Enum):
    """Process lifecycle states, in the only order they may occur."""
    CREATED = "created"
    INITIALIZING = "initializing"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"
    CLOSED = "closed"


# INITIALIZING -> CLOSED is the fatal startup path; READY is skipped.
ALLOWED_TRANSITIONS = {
    ServerState.CREATED: {ServerState.INITIALIZING},
    ServerState.INITIALIZING: {ServerState.READY, ServerState.CLOSED},
    ServerState.READY: {ServerState.SHUTTING_DOWN},
    ServerState.SHUTTING_DOWN: {ServerState.CLOSED},
    ServerState.CLOSED: set(),
}


class InvalidStateTransition(RuntimeError):
    """Raised when the lifecycle is asked to move backwards or skip ahead."""

    def __init__(self, current: ServerState, target: ServerState):
        super().__init__(f"Cannot move from {current.value} to {target.value}")
        self.current = current
        self.target = target


class StartupError(RuntimeError):
    """Fatal failure while initializing; the server never becomes ready."""


class BackendError(Exception):
    """Failure reported by a storage backend."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class CredentialError(Exception):
    """A single credential source could not produce a credential."""


class NoCredentialsAvailable(StartupError):
    """Every configured credential source failed."""

    def __init__(self, tried: Sequence[str]):
        if tried:
            message = f"No credentials available (tried: {', '.join(tried)})"
        else:
            message = "No credentials available (no credential sources configured)"
        super().__init__(message)
        self.tried = list(tried)
