"""Turn llms.txt links into resource descriptors."""

from __future__ import annotations

import os
import re

from pydantic import BaseModel

from .links import iter_bare_file_urls, iter_markdown_links

FILE_URL_PREFIX = "file://"
FILE_URI_PREFIX = "file:///"
URL_PREFIXES = ("http://", "https://")

MANIFEST_DESCRIPTION = "Project context file for AI assistance"
DEFAULT_MIME_TYPE = "text/plain"
URL_MIME_TYPE = "text/html"

MIME_TYPES = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".js": "text/javascript",
    ".ts": "text/typescript",
    ".json": "application/json",
    ".html": "text/html",
    ".css": "text/css",
    ".py": "text/x-python",
    ".yml": "text/yaml",
    ".yaml": "text/yaml",
    ".xml": "text/xml",
}

_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:")


class FileReference(BaseModel):
    """A ``file://`` link found in the manifest."""

    text: str
    path: str
    original_url: str


class UrlReference(BaseModel):
    """An ``http(s)://`` link found in the manifest."""

    text: str
    url: str


class ParsedReferences(BaseModel):
    """References extracted from one manifest, in document order."""

    file_references: list[FileReference] = []
    url_references: list[UrlReference] = []


class ResourceDescriptor(BaseModel):
    """Catalog entry exposed through resources/list."""

    uri: str
    name: str
    description: str
    mimeType: str


class ManifestMetadata(BaseModel):
    name: str
    description: str


def get_metadata(file_path: str) -> ManifestMetadata:
    return ManifestMetadata(name=os.path.basename(file_path), description=MANIFEST_DESCRIPTION)


def get_mime_type(ext: str) -> str:
    """Map a file extension (with dot) to a MIME type, defaulting to text/plain."""
    return MIME_TYPES.get(ext.lower(), DEFAULT_MIME_TYPE)


def parse_content(content: str, include_bare_file_urls: bool = False) -> ParsedReferences:
    """Extract file and URL references from llms.txt content.

    Only markdown links count by default. With ``include_bare_file_urls`` set,
    ``file://`` occurrences outside markdown links are added after them, named
    after the file they point to.
    """
    file_references: list[FileReference] = []
    url_references: list[UrlReference] = []

    for link in iter_markdown_links(content):
        target = link.target
        if target.startswith(FILE_URL_PREFIX):
            file_references.append(
                FileReference(
                    text=link.text,
                    path=target[len(FILE_URL_PREFIX) :],
                    original_url=target,
                )
            )
        elif target.startswith(URL_PREFIXES):
            url_references.append(UrlReference(text=link.text, url=target))

    if include_bare_file_urls:
        seen = {ref.original_url for ref in file_references}
        for full_match, path in iter_bare_file_urls(content):
            if full_match in seen:
                continue
            seen.add(full_match)
            file_references.append(
                FileReference(text=os.path.basename(path), path=path, original_url=full_match)
            )

    return ParsedReferences(file_references=file_references, url_references=url_references)


def resolve_file_path(path: str, project_path: str) -> str:
    """Resolve a reference path against the project root."""
    if path.startswith("./"):
        return os.path.abspath(os.path.join(project_path, path[2:]))
    if path.startswith("/"):
        return path
    return os.path.abspath(os.path.join(project_path, path))


def path_to_uri(path: str) -> str:
    """Build the ``file:///`` URI for an absolute path."""
    normalized = path.replace("\\", "/")
    if normalized.startswith("/"):
        normalized = normalized[1:]
    return f"{FILE_URI_PREFIX}{normalized}"


def uri_to_path(uri: str) -> str:
    """Inverse of :func:`path_to_uri`, using the platform separator."""
    path = uri[len(FILE_URI_PREFIX) :]
    if not _WINDOWS_DRIVE.match(path):
        path = "/" + path
    return path.replace("/", os.sep)


def process_resources(parsed: ParsedReferences, project_path: str) -> list[ResourceDescriptor]:
    """Resolve references into descriptors, dropping repeated URIs.

    Files come first, then URLs; the first occurrence of a URI wins.
    """
    resources: list[ResourceDescriptor] = []
    seen_uris: set[str] = set()

    for file_ref in parsed.file_references:
        resolved_path = resolve_file_path(file_ref.path, project_path)
        uri = path_to_uri(resolved_path)
        if uri in seen_uris:
            continue
        seen_uris.add(uri)

        resources.append(
            ResourceDescriptor(
                uri=uri,
                name=file_ref.text,
                description=f"Referenced file: {file_ref.path}",
                mimeType=get_mime_type(os.path.splitext(resolved_path)[1]),
            )
        )

    for url_ref in parsed.url_references:
        if url_ref.url in seen_uris:
            continue
        seen_uris.add(url_ref.url)

        resources.append(
            ResourceDescriptor(
                uri=url_ref.url,
                name=url_ref.text,
                description=f"External URL: {url_ref.url}",
                mimeType=URL_MIME_TYPE,
            )
        )

    return resources
