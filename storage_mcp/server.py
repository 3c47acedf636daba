#!/usr/bin/env python3
"""
Storage MCP Server
Lifecycle for one storage integration served over stdio.

    CREATED -> INITIALIZING -> READY -> SHUTTING_DOWN -> CLOSED
                     |                                     ^
                     +------------- fatal startup ---------+
"""

import asyncio
import signal
from contextlib import AsyncExitStack
from typing import AsyncContextManager, Callable, Optional

from storage_mcp.auth import CredentialResolver
from storage_mcp.backends import BackendClient, Integration
from storage_mcp.config import Config
from storage_mcp.mcp_types import (
    ALLOWED_TRANSITIONS,
    InvalidStateTransition,
    ServerState,
    StartupError,
)
from storage_mcp.session import ProtocolSession
from storage_mcp.tools import Dispatcher, ToolRegistry
from storage_mcp.transport import StdioTransport
from storage_mcp.utils import Logger

TransportFactory = Callable[[Logger], AsyncContextManager[StdioTransport]]

EXIT_OK = 0
EXIT_STARTUP_FAILED = 1


class StorageMCPServer:
    """Main MCP Server for a storage integration."""

    def __init__(
        self,
        integration: Integration,
        config: Config,
        logger: Optional[Logger] = None,
        shutdown: Optional[asyncio.Event] = None,
        transport_factory: TransportFactory = StdioTransport.open,
    ):
        self.integration = integration
        self.config = config
        self.logger = logger or Logger(name=integration.server_name, level=config.log_level)
        self.shutdown = shutdown or asyncio.Event()
        self.transport_factory = transport_factory

        self.registry = ToolRegistry(integration.tools, self.logger)
        self.backend: Optional[BackendClient] = None
        self.dispatcher: Optional[Dispatcher] = None
        self.session: Optional[ProtocolSession] = None
        self._transport_stack = AsyncExitStack()
        self._state = ServerState.CREATED

    @property
    def state(self) -> ServerState:
        return self._state

    def _transition(self, target: ServerState) -> None:
        if target not in ALLOWED_TRANSITIONS[self._state]:
            raise InvalidStateTransition(self._state, target)
        self.logger.debug(f"State {self._state.value} -> {target.value}")
        self._state = target

    async def run(self) -> int:
        """Run the full lifecycle and return the process exit status."""
        self._transition(ServerState.INITIALIZING)
        try:
            await self.initialize()
        except StartupError as e:
            self.logger.error(f"Failed to start server: {e}")
            await self._close_transport()
            await self._close_backend()
            self._transition(ServerState.CLOSED)
            return EXIT_STARTUP_FAILED

        self._transition(ServerState.READY)
        self.logger.info(f"{self.integration.server_name} running on stdio with {len(self.registry)} tools")
        await self._serve_until_stopped()

        self._transition(ServerState.SHUTTING_DOWN)
        abandoned = await self.session.drain(self.config.drain_timeout)
        await self._close_transport()
        await self._close_backend()
        self._transition(ServerState.CLOSED)

        self.logger.info(
            f"Server closed after {self.session.handled} request(s)"
            + (f", {abandoned} abandoned" if abandoned else "")
        )
        return EXIT_OK

    async def initialize(self) -> None:
        """Resolve credentials, build the backend, probe it, attach the transport.

        Raises StartupError (including NoCredentialsAvailable) on any failure.
        """
        sources = self.integration.credential_sources(self.config)
        credential = CredentialResolver(sources, self.logger).resolve()

        try:
            self.backend = self.integration.client_factory(credential, self.config)
        except (ValueError, KeyError, TypeError) as e:
            raise StartupError(f"Could not build {self.integration.name} client from {credential.kind}: {e}") from e
        self.logger.info(f"Initialized {self.backend.name} client with {credential.kind}")

        try:
            await self.backend.probe()
        except Exception as e:
            raise StartupError(f"{self.backend.name} connection test failed: {e}") from e
        self.logger.info(f"Connected to {self.backend.name} successfully")

        self.dispatcher = Dispatcher(self.registry, self.backend, self.logger)

        try:
            transport = await self._transport_stack.enter_async_context(self.transport_factory(self.logger))
        except OSError as e:
            raise StartupError(f"Could not attach stdio transport: {e}") from e

        self.session = ProtocolSession(
            self.registry,
            self.dispatcher,
            transport,
            self.logger,
            server_name=self.integration.server_name,
        )

    async def _serve_until_stopped(self) -> None:
        """Serve until the transport closes or shutdown is requested."""
        serving = asyncio.create_task(self.session.serve())
        stopping = asyncio.create_task(self.shutdown.wait())

        done, _ = await asyncio.wait({serving, stopping}, return_when=asyncio.FIRST_COMPLETED)
        if serving in done:
            error = serving.exception()
            if error:
                self.logger.error(f"Transport failed: {error}")
            else:
                self.logger.info("Transport closed, shutting down")
        else:
            self.logger.info("Shutdown requested")

        # Only acceptance stops here; dispatched calls keep running until drain.
        for task in (serving, stopping):
            if not task.done():
                task.cancel()
        await asyncio.gather(serving, stopping, return_exceptions=True)

    async def _close_transport(self) -> None:
        """Flush pending responses and release stdin/stdout."""
        try:
            await self._transport_stack.aclose()
        except Exception as e:
            self.logger.warning(f"Error closing stdio transport: {e}")

    async def _close_backend(self) -> None:
        if self.backend is None:
            return
        try:
            await self.backend.aclose()
        except Exception as e:
            self.logger.warning(f"Error closing {self.backend.name} client: {e}")


def install_signal_handlers(shutdown: asyncio.Event) -> None:
    """Set ``shutdown`` on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform/loop; Ctrl+C still raises KeyboardInterrupt
            pass


async def run_stdio(integration: Integration, config: Config) -> int:
    """Run in stdio mode (for MCP hosts)."""
    shutdown = asyncio.Event()
    install_signal_handlers(shutdown)
    server = StorageMCPServer(integration, config, shutdown=shutdown)
    return await server.run()
