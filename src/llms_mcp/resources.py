"""Resource catalog and resource reading for llms.txt projects.

The catalog lists the manifest itself followed by every file and URL it
links to. Reading is independent of the catalog: any ``file:///`` or
``http(s)://`` URI can be read, whether or not it was listed.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Literal

import httpx
from pydantic import BaseModel

from . import __version__
from .parsers import (
    ResourceDescriptor,
    get_metadata,
    get_mime_type,
    parse_content,
    path_to_uri,
    process_resources,
    uri_to_path,
)
from .parsers.parser import DEFAULT_MIME_TYPE, FILE_URI_PREFIX, URL_PREFIXES
from .scanner import find_llms_txt

logger = logging.getLogger("llms-mcp")

USER_AGENT = f"llms-mcp/{__version__}"

UriKind = Literal["file", "url", "unsupported"]


# -------------------------
# Errors
# -------------------------


class ResourceReadError(Exception):
    """A resource could not be read."""


class ResourceNotFoundError(ResourceReadError):
    pass


class ResourceAccessDeniedError(ResourceReadError):
    pass


class UnsupportedSchemeError(ResourceReadError):
    pass


class RemoteFetchError(ResourceReadError):
    """Fetching a remote URL failed; ``status_code`` is set for HTTP errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


# -------------------------
# Models
# -------------------------


class ResourceContent(BaseModel):
    """Content returned by resources/read."""

    uri: str
    mimeType: str
    text: str


def classify_uri(uri: str) -> UriKind:
    if uri.startswith(FILE_URI_PREFIX):
        return "file"
    if uri.startswith(URL_PREFIXES):
        return "url"
    return "unsupported"


def _read_text(path: str) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read()


# -------------------------
# Resolver
# -------------------------


class ResourceResolver:
    """Owns the resource catalog for one project root."""

    def __init__(
        self,
        project_path: str | None,
        http_client: httpx.AsyncClient | None = None,
        include_bare_file_urls: bool = False,
    ) -> None:
        self.project_path = project_path
        self.http_client = http_client
        self.include_bare_file_urls = include_bare_file_urls
        self._catalog: list[ResourceDescriptor] = []

    def list_resources(self) -> list[ResourceDescriptor]:
        """Return the catalog built by the last :meth:`rescan`."""
        return list(self._catalog)

    async def rescan(self) -> list[ResourceDescriptor]:
        """Rebuild the catalog from the manifest and replace the cached one."""
        self._catalog = await self.build_catalog()
        return self.list_resources()

    async def build_catalog(self) -> list[ResourceDescriptor]:
        llms_txt_path = await asyncio.to_thread(find_llms_txt, self.project_path)
        if not llms_txt_path:
            return []

        metadata = get_metadata(llms_txt_path)
        manifest_uri = path_to_uri(llms_txt_path)
        resources = [
            ResourceDescriptor(
                uri=manifest_uri,
                name=metadata.name,
                description=metadata.description,
                mimeType=DEFAULT_MIME_TYPE,
            )
        ]

        if self.project_path is None:
            return resources

        try:
            content = await asyncio.to_thread(_read_text, llms_txt_path)
            parsed = parse_content(content, include_bare_file_urls=self.include_bare_file_urls)
            referenced = process_resources(parsed, self.project_path)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to parse llms.txt content: {e}")
            return resources

        resources.extend(r for r in referenced if r.uri != manifest_uri)
        return resources

    async def read_resource(self, uri: str) -> ResourceContent:
        """Read one resource by URI.

        Raises a :class:`ResourceReadError` subclass on failure.
        """
        kind = classify_uri(uri)
        if kind == "file":
            return await self._read_file_resource(uri)
        if kind == "url":
            return await self._read_url_resource(uri)
        raise UnsupportedSchemeError(f"Unsupported resource URI scheme: {uri}")

    async def _read_file_resource(self, uri: str) -> ResourceContent:
        filepath = uri_to_path(uri)
        try:
            text = await asyncio.to_thread(_read_text, filepath)
        except FileNotFoundError:
            raise ResourceNotFoundError(f"File not found: {filepath}") from None
        except PermissionError:
            raise ResourceAccessDeniedError(f"Access denied: {filepath}") from None
        except (OSError, UnicodeDecodeError) as e:
            raise ResourceReadError(f"Failed to read file: {e}") from e

        return ResourceContent(
            uri=uri,
            mimeType=get_mime_type(os.path.splitext(filepath)[1]),
            text=text,
        )

    async def _read_url_resource(self, uri: str) -> ResourceContent:
        if self.http_client is None:
            return ResourceContent(
                uri=uri,
                mimeType=DEFAULT_MIME_TYPE,
                text=(
                    f"URL content not available: {uri}\n\n"
                    "Reason: Remote fetching is disabled for this server."
                ),
            )

        try:
            response = await self.http_client.get(uri, headers={"User-Agent": USER_AGENT})
        except httpx.HTTPError as e:
            raise RemoteFetchError(f"Failed to fetch URL: {e}") from e

        if not response.is_success:
            raise RemoteFetchError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        content_type = response.headers.get("content-type") or DEFAULT_MIME_TYPE
        return ResourceContent(
            uri=uri,
            mimeType=content_type.split(";")[0].strip(),
            text=response.text,
        )
