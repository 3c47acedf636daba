"""
Credential Sources

A credential source is plain data: a kind label and a loader. Integrations
describe their authentication as an ordered list of these.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from storage_mcp.mcp_types import CredentialError


@dataclass(frozen=True)
class Credential:
    """Opaque authorization material handed to a backend client."""
    kind: str
    secret: Any = field(repr=False)
    source: str = ""


@dataclass(frozen=True)
class CredentialSource:
    """One strategy for obtaining a credential."""
    kind: str
    load: Callable[[], Credential]
    description: str = ""

    def resolve(self) -> Credential:
        return self.load()


def json_file_source(
    kind: str,
    path: Union[str, Path],
    required_keys: Sequence[str] = (),
) -> CredentialSource:
    """Credential read from a JSON file (service account, saved OAuth token)."""
    file_path = Path(path).expanduser()

    def load() -> Credential:
        if not file_path.is_file():
            raise CredentialError(f"{file_path} does not exist")
        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CredentialError(f"{file_path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise CredentialError(f"{file_path} must contain a JSON object")
        missing = [key for key in required_keys if not data.get(key)]
        if missing:
            raise CredentialError(f"{file_path} is missing {', '.join(missing)}")
        return Credential(kind=kind, secret=data, source=str(file_path))

    return CredentialSource(kind=kind, load=load, description=str(file_path))


def env_token_source(
    kind: str,
    variable: str,
    environ: Optional[Mapping[str, str]] = None,
) -> CredentialSource:
    """Credential taken verbatim from an environment variable."""

    def load() -> Credential:
        env = os.environ if environ is None else environ
        token = (env.get(variable) or "").strip()
        if not token:
            raise CredentialError(f"{variable} environment variable is not set")
        return Credential(kind=kind, secret=token, source=f"${variable}")

    return CredentialSource(kind=kind, load=load, description=f"${variable}")
