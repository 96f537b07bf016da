"""Parser module for llms.txt files."""

from .links import RawLink, iter_bare_file_urls, iter_markdown_links
from .parser import (
    FileReference,
    ManifestMetadata,
    ParsedReferences,
    ResourceDescriptor,
    UrlReference,
    get_metadata,
    get_mime_type,
    parse_content,
    path_to_uri,
    process_resources,
    resolve_file_path,
    uri_to_path,
)

__all__ = [
    "FileReference",
    "ManifestMetadata",
    "ParsedReferences",
    "RawLink",
    "ResourceDescriptor",
    "UrlReference",
    "get_metadata",
    "get_mime_type",
    "iter_bare_file_urls",
    "iter_markdown_links",
    "parse_content",
    "path_to_uri",
    "process_resources",
    "resolve_file_path",
    "uri_to_path",
]
