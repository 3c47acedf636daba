"""
Google Drive backend

Tool catalog and Drive REST v3 client.

Credentials are tried in order: service account file, saved OAuth token file,
then an access token in the environment.
"""

import json
import uuid
from typing import Any, Dict, List, Optional

import httpx

from storage_mcp.auth import Credential, CredentialSource, env_token_source, json_file_source
from storage_mcp.backends.base import BackendClient, Operation
from storage_mcp.backends.google_auth import Authorizer, authorizer_for
from storage_mcp.config import Config
from storage_mcp.mcp_types import FieldSpec, ToolDefinition

API_URL = "https://www.googleapis.com/drive/v3"
UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3"

SEARCH_FIELDS = "files(id, name, mimeType, size, createdTime, modifiedTime, webViewLink, owners, shared)"
PERMISSION_FIELDS = "permissions(id, type, role, emailAddress, displayName)"


GOOGLE_DRIVE_TOOLS = (
    ToolDefinition(
        name="search_files",
        description="Search for files in Google Drive using advanced queries",
        inputSchema={
            "query": FieldSpec(
                "string",
                "Search query (e.g., \"name contains 'report' and mimeType = 'application/pdf'\")",
                required=True,
            ),
            "max_results": FieldSpec("number", "Maximum number of results (default: 10)", default=10),
            "include_shared_drives": FieldSpec("boolean", "Include shared drive files", default=False),
        },
    ),
    ToolDefinition(
        name="get_file_metadata",
        description="Get detailed metadata for a file",
        inputSchema={
            "file_id": FieldSpec("string", "Google Drive file ID", required=True),
        },
    ),
    ToolDefinition(
        name="list_shared_drives",
        description="List all shared drives (team drives) accessible to the user",
    ),
    ToolDefinition(
        name="get_file_permissions",
        description="Get sharing permissions for a file",
        inputSchema={
            "file_id": FieldSpec("string", "Google Drive file ID", required=True),
        },
    ),
    ToolDefinition(
        name="create_file",
        description="Create a new file in Google Drive",
        inputSchema={
            "name": FieldSpec("string", "File name", required=True),
            "content": FieldSpec("string", "File content (for text files)", required=True),
            "mime_type": FieldSpec("string", "MIME type (default: text/plain)", default="text/plain"),
            "parent_id": FieldSpec("string", "Parent folder ID (optional)"),
        },
    ),
    ToolDefinition(
        name="update_file_content",
        description="Update the content of an existing file",
        inputSchema={
            "file_id": FieldSpec("string", "File ID to update", required=True),
            "content": FieldSpec("string", "New file content", required=True),
        },
    ),
    ToolDefinition(
        name="delete_file",
        description="Delete a file (moves to trash)",
        inputSchema={
            "file_id": FieldSpec("string", "File ID to delete", required=True),
        },
    ),
)


def google_drive_credential_sources(config: Config) -> List[CredentialSource]:
    return [
        json_file_source(
            "service_account",
            config.google_credentials_path,
            required_keys=("client_email", "private_key"),
        ),
        json_file_source("oauth_token", config.google_token_path),
        env_token_source("access_token", config.google_token_var),
    ]


def _multipart_related(metadata: Dict[str, Any], content: str, mime_type: str):
    """Body for a Drive multipart upload (metadata part, then media part)."""
    boundary = f"storage-mcp-{uuid.uuid4().hex}"
    body = (
        f"--{boundary}\r\n"
        "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        f"{json.dumps(metadata)}\r\n"
        f"--{boundary}\r\n"
        f"Content-Type: {mime_type}\r\n\r\n"
        f"{content}\r\n"
        f"--{boundary}--\r\n"
    ).encode("utf-8")
    return body, f"multipart/related; boundary={boundary}"


class GoogleDriveClient(BackendClient):
    """Google Drive REST v3 client."""

    name = "Google Drive"

    def __init__(self, authorizer: Authorizer, timeout: float = 30.0, http_client: Optional[httpx.AsyncClient] = None):
        self._authorizer = authorizer
        super().__init__(timeout=timeout, http_client=http_client)

    @classmethod
    def from_credential(cls, credential: Credential, config: Config) -> "GoogleDriveClient":
        return cls(authorizer_for(credential), timeout=config.request_timeout)

    def operations(self) -> Dict[str, Operation]:
        return {
            "search_files": self.search_files,
            "get_file_metadata": self.get_file_metadata,
            "list_shared_drives": self.list_shared_drives,
            "get_file_permissions": self.get_file_permissions,
            "create_file": self.create_file,
            "update_file_content": self.update_file_content,
            "delete_file": self.delete_file,
        }

    async def probe(self) -> Dict[str, Any]:
        return await self._request("GET", f"{API_URL}/about", params={"fields": "user"})

    async def search_files(self, args: Dict[str, Any]) -> Dict[str, Any]:
        query = args["query"]
        include_shared = bool(args.get("include_shared_drives", False))

        result = await self._request("GET", f"{API_URL}/files", params={
            "q": query,
            "pageSize": int(args.get("max_results", 10)),
            "fields": SEARCH_FIELDS,
            "supportsAllDrives": str(include_shared).lower(),
            "includeItemsFromAllDrives": str(include_shared).lower(),
        })
        files = result.get("files", [])

        return {
            "query": query,
            "found": len(files),
            "files": [
                {
                    "id": f.get("id"),
                    "name": f.get("name"),
                    "mimeType": f.get("mimeType"),
                    "size": f.get("size"),
                    "created": f.get("createdTime"),
                    "modified": f.get("modifiedTime"),
                    "link": f.get("webViewLink"),
                    "owners": [o.get("emailAddress") for o in f.get("owners", [])],
                    "shared": f.get("shared"),
                }
                for f in files
            ],
        }

    async def get_file_metadata(self, args: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("GET", f"{API_URL}/files/{args['file_id']}", params={"fields": "*"})

    async def list_shared_drives(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result = await self._request("GET", f"{API_URL}/drives", params={"pageSize": 100})
        drives = result.get("drives", [])

        return {
            "found": len(drives),
            "drives": [
                {"id": d.get("id"), "name": d.get("name"), "createdTime": d.get("createdTime")}
                for d in drives
            ],
        }

    async def get_file_permissions(self, args: Dict[str, Any]) -> Dict[str, Any]:
        file_id = args["file_id"]
        result = await self._request(
            "GET",
            f"{API_URL}/files/{file_id}/permissions",
            params={"fields": PERMISSION_FIELDS},
        )
        return {"file_id": file_id, "permissions": result.get("permissions", [])}

    async def create_file(self, args: Dict[str, Any]) -> Dict[str, Any]:
        mime_type = args.get("mime_type", "text/plain")
        metadata: Dict[str, Any] = {"name": args["name"], "mimeType": mime_type}
        if args.get("parent_id"):
            metadata["parents"] = [args["parent_id"]]

        body, content_type = _multipart_related(metadata, args["content"], mime_type)
        result = await self._request(
            "POST",
            f"{UPLOAD_URL}/files",
            params={"uploadType": "multipart", "fields": "id, name, webViewLink"},
            headers={"Content-Type": content_type},
            content=body,
        )
        return {"created": True, "file": result}

    async def update_file_content(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result = await self._request(
            "PATCH",
            f"{UPLOAD_URL}/files/{args['file_id']}",
            params={"uploadType": "media", "fields": "id, name, modifiedTime"},
            headers={"Content-Type": "text/plain; charset=UTF-8"},
            content=args["content"].encode("utf-8"),
        )
        return {"updated": True, "file": result}

    async def delete_file(self, args: Dict[str, Any]) -> Dict[str, Any]:
        file_id = args["file_id"]
        await self._request(
            "PATCH",
            f"{API_URL}/files/{file_id}",
            params={"supportsAllDrives": "true"},
            json={"trashed": True},
        )
        return {"deleted": True, "file_id": file_id}

    async def _request(self, method: str, url: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> Dict[str, Any]:
        auth_headers = {"Authorization": await self._authorizer.authorization(self._http)}
        if headers:
            auth_headers.update(headers)
        response = await self._send(method, url, headers=auth_headers, **kwargs)
        return response.json() if response.content else {}

    def error_message(self, response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            message = body["error"].get("message")
            if message:
                return f"Google Drive API error: {message}"
        return f"Google Drive API error (HTTP {response.status_code})"
