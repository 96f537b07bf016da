"""llms-mcp: MCP server exposing a project's llms.txt as resources.

Lists the project's llms.txt together with every file and URL it links to,
and reads any of them on request:
- resources/list: the catalog built at startup (or by resources_refresh)
- resources/read: local files via file:/// URIs, remote pages via http(s)
- resources_refresh: tool that rescans the project and rebuilds the catalog

The project root comes from --project-path or the ProjectPath environment
variable. Without one, the catalog is simply empty.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote

import httpx
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ResourceError
from mcp.server.lowlevel import NotificationOptions
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server
from mcp.types import Resource as MCPResource
from pydantic import BaseModel, ValidationError

from . import __version__
from .parsers import ResourceDescriptor
from .resources import USER_AGENT, ResourceReadError, ResourceResolver, classify_uri

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)
logger = logging.getLogger("llms-mcp")


# -------------------------
# Constants
# -------------------------

PROJECT_PATH_ENV_VARS = ("ProjectPath", "LLMS_MCP_PROJECT_PATH")
DEFAULT_HTTP_TIMEOUT = 30  # seconds
HTTP_CLOSE_TIMEOUT = 2.0


# -------------------------
# Data models
# -------------------------


@dataclass
class Config:
    """Server configuration."""

    project_path: str | None
    timeout: int = DEFAULT_HTTP_TIMEOUT
    fetch_remote: bool = True
    include_bare_file_urls: bool = False
    test_mode: bool = False


class RefreshResult(BaseModel):
    """Result of rescanning the project."""

    project_path: str | None
    count: int
    uris: list[str]


# -------------------------
# FastMCP Server
# -------------------------


resource_resolver: ResourceResolver | None = None


def _ensure_resolver() -> ResourceResolver:
    if resource_resolver is None:
        raise RuntimeError("Server not initialized")
    return resource_resolver


def _to_mcp_resource(r: ResourceDescriptor) -> MCPResource:
    return MCPResource(uri=r.uri, name=r.name, description=r.description, mimeType=r.mimeType)


class LlmsMcpServer(FastMCP):
    """FastMCP server whose resources come from the llms.txt catalog."""

    async def list_resources(self) -> list[MCPResource]:
        try:
            resolver = _ensure_resolver()
        except RuntimeError:
            # Server not initialized yet
            return []

        resources: list[MCPResource] = []
        for r in resolver.list_resources():
            try:
                resources.append(_to_mcp_resource(r))
            except ValidationError:
                logger.warning(f"Skipping resource with invalid URI: {r.uri!r} ({r.name})")
        return resources

    async def read_resource(self, uri: Any) -> Iterable[ReadResourceContents]:
        resolver = _ensure_resolver()
        uri_str = _catalog_uri(resolver, str(uri))

        try:
            content = await resolver.read_resource(uri_str)
        except ResourceReadError as e:
            raise ResourceError(f"Failed to read resource: {e}") from e

        return [ReadResourceContents(content=content.text, mime_type=content.mimeType)]

    def initialization_options(self) -> InitializationOptions:
        return self._mcp_server.create_initialization_options(
            notification_options=NotificationOptions(resources_changed=True)
        )

    async def run_stdio_async(self) -> None:
        async with stdio_server() as (read_stream, write_stream):
            await self._mcp_server.run(read_stream, write_stream, self.initialization_options())


def _catalog_uri(resolver: ResourceResolver, uri: str) -> str:
    """Map a URI as the client sent it back to the catalog's own spelling.

    Listed URIs go through AnyUrl, which may percent-encode them. URIs that
    are not in the catalog fall back to unquoting file paths.
    """
    for r in resolver.list_resources():
        if r.uri == uri:
            return r.uri
        try:
            if str(_to_mcp_resource(r).uri) == uri:
                return r.uri
        except ValidationError:
            continue

    if classify_uri(uri) == "file":
        return unquote(uri)
    return uri


mcp = LlmsMcpServer(
    "llms-mcp",
    instructions=(
        "This server provides access to llms.txt files that help LLMs understand "
        "project context and documentation."
    ),
)


# -------------------------
# Tools
# -------------------------


@mcp.tool()
async def resources_refresh() -> RefreshResult:
    """Rescan the project for llms.txt and rebuild the resource list."""
    resolver = _ensure_resolver()
    catalog = await resolver.rescan()
    logger.info("Rescanned %s: %d resource(s)", resolver.project_path, len(catalog))

    await _notify_resource_list_changed()

    return RefreshResult(
        project_path=resolver.project_path,
        count=len(catalog),
        uris=[r.uri for r in catalog],
    )


async def _notify_resource_list_changed() -> None:
    try:
        session = mcp.get_context().session
    except ValueError:
        # Called outside of an MCP request
        return
    await session.send_resource_list_changed()


# -------------------------
# Initialization / CLI
# -------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="llms-mcp", description="MCP server for exposing llms.txt files as resources"
    )
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--project-path",
        default=None,
        help="Project root containing llms.txt (default: $ProjectPath)",
    )
    parser.add_argument(
        "--timeout", type=int, default=DEFAULT_HTTP_TIMEOUT, help="HTTP timeout seconds"
    )
    parser.add_argument(
        "--no-fetch", action="store_true", help="Do not fetch remote URLs when reading resources"
    )
    parser.add_argument(
        "--include-bare-file-urls",
        action="store_true",
        help="Also list file:// references that are not markdown links",
    )
    parser.add_argument(
        "--test", action="store_true", help="Print the scanned resources and exit"
    )
    return parser.parse_args(argv)


def resolve_project_path(cli_value: str | None) -> str | None:
    if cli_value:
        return cli_value
    for name in PROJECT_PATH_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None


def config_from_args(args: argparse.Namespace) -> Config:
    return Config(
        project_path=resolve_project_path(args.project_path),
        timeout=args.timeout,
        fetch_remote=not args.no_fetch,
        include_bare_file_urls=args.include_bare_file_urls,
        test_mode=args.test,
    )


@asynccontextmanager
async def managed_resources(cfg: Config) -> AsyncIterator[ResourceResolver]:
    """Create the HTTP client and resolver, scan once, and clean up on exit."""
    global resource_resolver

    if not cfg.project_path:
        logger.warning("Could not determine project path.")

    http_client: httpx.AsyncClient | None = None
    if cfg.fetch_remote:
        http_client = httpx.AsyncClient(
            timeout=cfg.timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    resolver = ResourceResolver(
        cfg.project_path,
        http_client=http_client,
        include_bare_file_urls=cfg.include_bare_file_urls,
    )
    resource_resolver = resolver
    try:
        catalog = await resolver.rescan()
        logger.info("Found %d resource(s) in %s", len(catalog), cfg.project_path or "<unset>")
        yield resolver
    finally:
        resource_resolver = None
        logger.debug("Cleaning up resources...")

        if http_client is not None:
            try:
                await asyncio.wait_for(http_client.aclose(), timeout=HTTP_CLOSE_TIMEOUT)
            except TimeoutError:
                logger.warning("HTTP client close timed out")
            except Exception as e:
                logger.error(f"Error closing HTTP client: {e}")


def print_report(cfg: Config, resolver: ResourceResolver) -> None:
    """Print the scanned catalog for --test mode."""
    catalog = resolver.list_resources()
    print("llms-mcp Server Test Mode")
    print(f"Project directory: {cfg.project_path or 'Not set'}")
    if not catalog:
        print("No resources found. Please check your project structure.")
    else:
        print("Scanned resources:")
        for r in catalog:
            print(f"- {r.name} ({r.uri}): {r.description}")
    print("Server test completed.")


SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def install_signal_handlers(
    loop: asyncio.AbstractEventLoop, shutdown_event: asyncio.Event
) -> None:
    """Set ``shutdown_event`` on SIGTERM/SIGINT, falling back to signal.signal."""

    def shutdown_handler() -> None:
        logger.info("Received shutdown signal, shutting down...")
        shutdown_event.set()

    def signal_handler_sync(signum, frame):
        sig = signal.Signals(signum)
        logger.info(f"Received {sig.name}, shutting down...")
        loop.call_soon_threadsafe(shutdown_event.set)

    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, shutdown_handler)
        except (NotImplementedError, ValueError) as e:
            logger.warning(f"Could not register signal handler for {sig.name}: {e}")
            signal.signal(sig, signal_handler_sync)


def remove_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.remove_signal_handler(sig)
        except (NotImplementedError, ValueError, OSError):
            pass


def log_server_exit(server_task: asyncio.Task) -> None:
    if server_task.cancelled():
        logger.info("MCP server task cancelled")
        return
    exc = server_task.exception()
    if exc is not None:
        logger.error(f"MCP server stopped with an error: {exc!r}")
    else:
        logger.info("MCP server stopped normally")


def main(argv: list[str] | None = None) -> None:
    cfg = config_from_args(parse_args(argv))
    logger.info(
        "Starting llms-mcp server in %s mode...", "test" if cfg.test_mode else "normal"
    )

    async def run_report() -> None:
        async with managed_resources(cfg) as resolver:
            print_report(cfg, resolver)

    async def run_server() -> None:
        """Run the stdio server until it exits or a shutdown signal arrives."""
        shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        async with managed_resources(cfg):
            install_signal_handlers(loop, shutdown_event)
            logger.info("llms-mcp ready. Server accepting connections...")
            try:
                server_task = asyncio.create_task(mcp.run_stdio_async())
                shutdown_task = asyncio.create_task(shutdown_event.wait())

                done, _ = await asyncio.wait(
                    {server_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
                )

                if shutdown_task in done:
                    logger.info("Shutting down...")
                    server_task.cancel()
                    with suppress(TimeoutError, asyncio.CancelledError):
                        await asyncio.wait_for(server_task, timeout=HTTP_CLOSE_TIMEOUT)
                else:
                    shutdown_task.cancel()
                    log_server_exit(server_task)
            except Exception as e:
                logger.error(f"Server error: {e}")
            finally:
                remove_signal_handlers(loop)

    try:
        asyncio.run(run_report() if cfg.test_mode else run_server())
    except KeyboardInterrupt:
        pass
    finally:
        logger.info("Server shutdown complete")


if __name__ == "__main__":
    main()
