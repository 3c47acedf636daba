"""
Dropbox backend

Tool catalog and HTTP API v2 client for Dropbox.
Authentication is a single access token (DROPBOX_ACCESS_TOKEN).
"""

import json
from typing import Any, Dict, List, Optional

import httpx

from storage_mcp.auth import Credential, CredentialSource, env_token_source
from storage_mcp.backends.base import BackendClient, Operation
from storage_mcp.config import Config
from storage_mcp.mcp_types import BackendError, FieldSpec, ToolDefinition

API_URL = "https://api.dropboxapi.com/2"
CONTENT_URL = "https://content.dropboxapi.com/2"


DROPBOX_TOOLS = (
    ToolDefinition(
        name="search_files",
        description="Search for files in Dropbox",
        inputSchema={
            "query": FieldSpec("string", "Search query", required=True),
            "max_results": FieldSpec("number", "Maximum number of results (default: 20)", default=20),
            "path": FieldSpec("string", "Limit search to specific folder path"),
        },
    ),
    ToolDefinition(
        name="list_folder",
        description="List contents of a folder",
        inputSchema={
            "path": FieldSpec("string", "Folder path (empty string for root)", default=""),
            "recursive": FieldSpec("boolean", "List recursively", default=False),
        },
    ),
    ToolDefinition(
        name="get_metadata",
        description="Get metadata for a file or folder",
        inputSchema={
            "path": FieldSpec("string", "File or folder path", required=True),
        },
    ),
    ToolDefinition(
        name="upload_file",
        description="Upload a file to Dropbox",
        inputSchema={
            "path": FieldSpec("string", "Destination path in Dropbox", required=True),
            "content": FieldSpec("string", "File content (text)", required=True),
            "mode": FieldSpec(
                "string",
                "Upload mode: add, overwrite, or update",
                enum=("add", "overwrite", "update"),
                default="add",
            ),
        },
    ),
    ToolDefinition(
        name="download_file",
        description="Download file content from Dropbox",
        inputSchema={
            "path": FieldSpec("string", "File path in Dropbox", required=True),
        },
    ),
    ToolDefinition(
        name="delete",
        description="Delete a file or folder",
        inputSchema={
            "path": FieldSpec("string", "Path to delete", required=True),
        },
    ),
    ToolDefinition(
        name="create_folder",
        description="Create a new folder",
        inputSchema={
            "path": FieldSpec("string", "Folder path to create", required=True),
        },
    ),
    ToolDefinition(
        name="get_shared_link",
        description="Get or create a shared link for a file",
        inputSchema={
            "path": FieldSpec("string", "File or folder path", required=True),
        },
    ),
    ToolDefinition(
        name="move_file",
        description="Move or rename a file",
        inputSchema={
            "from_path": FieldSpec("string", "Source path", required=True),
            "to_path": FieldSpec("string", "Destination path", required=True),
        },
    ),
)


def dropbox_credential_sources(config: Config) -> List[CredentialSource]:
    return [env_token_source("access_token", config.dropbox_token_var)]


def _entry(metadata: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "path": metadata.get("path_display"),
        "name": metadata.get("name"),
        "type": metadata.get(".tag"),
        "size": metadata.get("size"),
        "modified": metadata.get("server_modified"),
    }


class DropboxClient(BackendClient):
    """Dropbox HTTP API v2 client."""

    name = "Dropbox"

    def __init__(self, access_token: str, timeout: float = 30.0, http_client: Optional[httpx.AsyncClient] = None):
        self._headers = {"Authorization": f"Bearer {access_token}"}
        super().__init__(timeout=timeout, http_client=http_client)

    @classmethod
    def from_credential(cls, credential: Credential, config: Config) -> "DropboxClient":
        return cls(credential.secret, timeout=config.request_timeout)

    def operations(self) -> Dict[str, Operation]:
        return {
            "search_files": self.search_files,
            "list_folder": self.list_folder,
            "get_metadata": self.get_metadata,
            "upload_file": self.upload_file,
            "download_file": self.download_file,
            "delete": self.delete,
            "create_folder": self.create_folder,
            "get_shared_link": self.get_shared_link,
            "move_file": self.move_file,
        }

    async def probe(self) -> Dict[str, Any]:
        return await self._rpc("users/get_current_account")

    async def search_files(self, args: Dict[str, Any]) -> Dict[str, Any]:
        query = args["query"]
        options: Dict[str, Any] = {"max_results": int(args.get("max_results", 20))}
        if args.get("path"):
            options["path"] = args["path"]

        result = await self._rpc("files/search_v2", {"query": query, "options": options})
        matches = result.get("matches", [])

        return {
            "query": query,
            "found": len(matches),
            "has_more": result.get("has_more", False),
            "matches": [_entry(m.get("metadata", {}).get("metadata", {})) for m in matches],
        }

    async def list_folder(self, args: Dict[str, Any]) -> Dict[str, Any]:
        path = args.get("path", "")
        # The API addresses the root as "", not "/"
        api_path = "" if path == "/" else path

        result = await self._rpc("files/list_folder", {
            "path": api_path,
            "recursive": args.get("recursive", False),
        })

        return {
            "path": path or "/",
            "entries": [_entry(e) for e in result.get("entries", [])],
            "has_more": result.get("has_more", False),
        }

    async def get_metadata(self, args: Dict[str, Any]) -> Dict[str, Any]:
        return await self._rpc("files/get_metadata", {"path": args["path"]})

    async def upload_file(self, args: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._content(
            "files/upload",
            {"path": args["path"], "mode": args.get("mode", "add")},
            content=args["content"].encode("utf-8"),
        )
        result = response.json()

        return {
            "uploaded": True,
            "path": result.get("path_display"),
            "size": result.get("size"),
            "id": result.get("id"),
        }

    async def download_file(self, args: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._content("files/download", {"path": args["path"]})
        metadata = json.loads(response.headers.get("Dropbox-API-Result", "{}"))

        return {
            "path": metadata.get("path_display", args["path"]),
            "size": metadata.get("size", len(response.content)),
            "content": response.content.decode("utf-8", errors="replace"),
        }

    async def delete(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result = await self._rpc("files/delete_v2", {"path": args["path"]})
        return {"deleted": True, "metadata": result.get("metadata")}

    async def create_folder(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result = await self._rpc("files/create_folder_v2", {"path": args["path"]})
        return {"created": True, "path": result.get("metadata", {}).get("path_display")}

    async def get_shared_link(self, args: Dict[str, Any]) -> Dict[str, Any]:
        path = args["path"]

        try:
            existing = await self._rpc("sharing/list_shared_links", {"path": path})
        except BackendError:
            existing = {}
        links = existing.get("links", [])
        if links:
            return {"url": links[0].get("url"), "existing": True}

        created = await self._rpc("sharing/create_shared_link_with_settings", {"path": path})
        return {"url": created.get("url"), "existing": False}

    async def move_file(self, args: Dict[str, Any]) -> Dict[str, Any]:
        from_path = args["from_path"]
        result = await self._rpc("files/move_v2", {
            "from_path": from_path,
            "to_path": args["to_path"],
        })
        return {
            "moved": True,
            "from": from_path,
            "to": result.get("metadata", {}).get("path_display"),
        }

    async def _rpc(self, route: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Call an RPC-style endpoint (JSON in, JSON out)."""
        if payload is None:
            response = await self._send("POST", f"{API_URL}/{route}", headers=self._headers)
        else:
            response = await self._send("POST", f"{API_URL}/{route}", headers=self._headers, json=payload)
        return response.json() if response.content else {}

    async def _content(self, route: str, api_arg: Dict[str, Any], content: Optional[bytes] = None) -> httpx.Response:
        """Call a content endpoint; arguments travel in the Dropbox-API-Arg header."""
        headers = {**self._headers, "Dropbox-API-Arg": json.dumps(api_arg)}
        if content is None:
            return await self._send("POST", f"{CONTENT_URL}/{route}", headers=headers)
        headers["Content-Type"] = "application/octet-stream"
        return await self._send("POST", f"{CONTENT_URL}/{route}", headers=headers, content=content)

    def error_message(self, response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error_summary"):
            return f"Dropbox API error: {body['error_summary']}"
        text = response.text.strip()[:200]
        return f"Dropbox API error (HTTP {response.status_code}){': ' + text if text else ''}"
