"""
Backends Module

Each integration is data: an ordered tool catalog, an ordered list of
credential sources, and a factory that builds the backend client from the
credential that won.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from storage_mcp.auth import Credential, CredentialSource
from storage_mcp.config import Config
from storage_mcp.mcp_types import ToolDefinition

from .base import BackendClient
from .dropbox import DROPBOX_TOOLS, DropboxClient, dropbox_credential_sources
from .google_drive import GOOGLE_DRIVE_TOOLS, GoogleDriveClient, google_drive_credential_sources


@dataclass(frozen=True)
class Integration:
    """Everything the server needs to expose one storage backend."""
    name: str
    server_name: str
    tools: Tuple[ToolDefinition, ...]
    credential_sources: Callable[[Config], List[CredentialSource]]
    client_factory: Callable[[Credential, Config], BackendClient]


DROPBOX = Integration(
    name="dropbox",
    server_name="dropbox-mcp",
    tools=DROPBOX_TOOLS,
    credential_sources=dropbox_credential_sources,
    client_factory=DropboxClient.from_credential,
)

GOOGLE_DRIVE = Integration(
    name="google-drive",
    server_name="google-drive-mcp",
    tools=GOOGLE_DRIVE_TOOLS,
    credential_sources=google_drive_credential_sources,
    client_factory=GoogleDriveClient.from_credential,
)

INTEGRATIONS: Dict[str, Integration] = {
    DROPBOX.name: DROPBOX,
    GOOGLE_DRIVE.name: GOOGLE_DRIVE,
}


def get_integration(name: str) -> Integration:
    try:
        return INTEGRATIONS[name]
    except KeyError:
        available = ", ".join(sorted(INTEGRATIONS))
        raise ValueError(f"Unknown backend '{name}'. Available: {available}") from None


__all__ = [
    "BackendClient",
    "Integration",
    "INTEGRATIONS",
    "DROPBOX",
    "GOOGLE_DRIVE",
    "get_integration",
    "DropboxClient",
    "GoogleDriveClient",
]
