"""Raw link scanning for llms.txt content."""

from __future__ import annotations

import re
from collections.abc import Iterator

from pydantic import BaseModel

# [label](target); neither part may contain its closing bracket
MARKDOWN_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
BARE_FILE_URL_PATTERN = re.compile(r"file://([^\s)]+)")


class RawLink(BaseModel):
    """A link as written in the manifest, before classification."""

    text: str
    target: str


def iter_markdown_links(content: str) -> Iterator[RawLink]:
    """Yield every markdown link in ``content``, left to right."""
    for match in MARKDOWN_LINK_PATTERN.finditer(content):
        yield RawLink(text=match.group(1), target=match.group(2))


def iter_bare_file_urls(content: str) -> Iterator[tuple[str, str]]:
    """Yield ``(full_match, path)`` for each ``file://`` occurrence in ``content``.

    This also sees the targets of markdown links; callers filter those out.
    """
    for match in BARE_FILE_URL_PATTERN.finditer(content):
        yield match.group(0), match.group(1)
