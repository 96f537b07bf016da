"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest


def pytest_collection_modifyitems(session, config, items):
    """Mark tests by the component they exercise."""
    for item in items:
        path = str(item.fspath)
        if "test_scanner" in path:
            item.add_marker(pytest.mark.scanner)
        elif "test_parsers" in path:
            item.add_marker(pytest.mark.parsing)
        elif "test_resources" in path:
            item.add_marker(pytest.mark.resources)
        elif "test_server" in path:
            item.add_marker(pytest.mark.mcp_server)


SAMPLE_LLMS_TXT = """# Sample Project

> Context for AI assistants.

## Docs

- [Architecture](file://./docs/architecture.md): how the pieces fit
- [Setup guide](file://docs/setup.txt)
- [Config](file://./config/settings.json)
- [Architecture again](file://./docs/architecture.md)

## External

- [Homepage](https://example.com/)
- [Homepage mirror](https://example.com/)
- [Reference](http://example.org/reference)
- [Not a resource](mailto:team@example.com)
"""


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project root with an llms.txt and the local files it references."""
    (tmp_path / "docs").mkdir()
    (tmp_path / "config").mkdir()
    (tmp_path / "docs" / "architecture.md").write_text("# Architecture\n", encoding="utf-8")
    (tmp_path / "docs" / "setup.txt").write_text("Run make.\n", encoding="utf-8")
    (tmp_path / "config" / "settings.json").write_text('{"debug": true}\n', encoding="utf-8")
    (tmp_path / "llms.txt").write_text(SAMPLE_LLMS_TXT, encoding="utf-8")
    return tmp_path
