"""
Credential Resolver
Tries credential sources in priority order; the first success wins.
"""

from typing import List, Sequence

from storage_mcp.auth.sources import Credential, CredentialSource
from storage_mcp.mcp_types import CredentialError, NoCredentialsAvailable


class CredentialResolver:
    """Ordered fallback over credential sources.

    A single mandatory token is just a list of length one.
    """

    def __init__(self, sources: Sequence[CredentialSource], logger):
        self.sources: List[CredentialSource] = list(sources)
        self.logger = logger

    def resolve(self) -> Credential:
        """Return the first credential any source produces.

        Raises NoCredentialsAvailable if every source fails.
        """
        tried = []
        for source in self.sources:
            tried.append(source.kind)
            try:
                credential = source.resolve()
            except (CredentialError, OSError, ValueError) as e:
                self.logger.warning(f"Credential source {source.kind} unavailable: {e}")
                continue
            self.logger.info(f"Using {source.kind} credentials from {credential.source or source.description}")
            return credential

        raise NoCredentialsAvailable(tried)
