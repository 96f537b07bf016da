"""Locate the llms.txt manifest in a project root."""

from __future__ import annotations

import os

LLMS_TXT_FILENAME = "llms.txt"


def find_llms_txt(project_path: str | None) -> str | None:
    """Return the absolute path of ``<project_path>/llms.txt``, or None.

    Only the root itself is checked; subdirectories are never searched.
    """
    if not project_path:
        return None

    try:
        if not os.path.isdir(project_path):
            return None
        candidate = os.path.join(project_path, LLMS_TXT_FILENAME)
        if os.path.isfile(candidate):
            return os.path.abspath(candidate)
    except (OSError, ValueError):
        # e.g. embedded null bytes in the path
        return None

    return None
