"""
Auth Module
Credential sources and the resolver that picks one at startup.
"""

from .sources import Credential, CredentialSource, json_file_source, env_token_source
from .resolver import CredentialResolver

__all__ = [
    "Credential",
    "CredentialSource",
    "CredentialResolver",
    "json_file_source",
    "env_token_source",
]
