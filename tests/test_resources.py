"""Tests for catalog building and resource reading."""

import logging
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from llms_mcp.resources import (
    USER_AGENT,
    RemoteFetchError,
    ResourceAccessDeniedError,
    ResourceNotFoundError,
    ResourceReadError,
    ResourceResolver,
    UnsupportedSchemeError,
    classify_uri,
)


def file_uri(path: Path) -> str:
    return "file:///" + str(path).lstrip("/")


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
class TestCatalog:
    async def test_no_manifest_gives_empty_catalog(self, tmp_path: Path):
        resolver = ResourceResolver(str(tmp_path))
        assert await resolver.rescan() == []
        assert resolver.list_resources() == []

    async def test_missing_project_path(self):
        resolver = ResourceResolver(None)
        assert await resolver.rescan() == []

    async def test_list_before_scan_is_empty(self, project_dir: Path):
        resolver = ResourceResolver(str(project_dir))
        assert resolver.list_resources() == []

    async def test_catalog_order_and_dedup(self, project_dir: Path):
        resolver = ResourceResolver(str(project_dir))
        catalog = await resolver.rescan()

        assert [(r.uri, r.name) for r in catalog] == [
            (file_uri(project_dir / "llms.txt"), "llms.txt"),
            (file_uri(project_dir / "docs" / "architecture.md"), "Architecture"),
            (file_uri(project_dir / "docs" / "setup.txt"), "Setup guide"),
            (file_uri(project_dir / "config" / "settings.json"), "Config"),
            ("https://example.com/", "Homepage"),
            ("http://example.org/reference", "Reference"),
        ]
        uris = [r.uri for r in catalog]
        assert len(uris) == len(set(uris))

    async def test_manifest_descriptor(self, project_dir: Path):
        resolver = ResourceResolver(str(project_dir))
        manifest = (await resolver.rescan())[0]

        assert manifest.uri == file_uri(project_dir / "llms.txt")
        assert manifest.name == "llms.txt"
        assert manifest.description == "Project context file for AI assistance"
        assert manifest.mimeType == "text/plain"

    async def test_self_reference_listed_once(self, tmp_path: Path):
        (tmp_path / "llms.txt").write_text(
            "- [Me](file://./llms.txt)\n- [Also me](file://llms.txt)\n", encoding="utf-8"
        )
        resolver = ResourceResolver(str(tmp_path))
        catalog = await resolver.rescan()

        assert [r.name for r in catalog] == ["llms.txt"]

    async def test_unreadable_manifest_keeps_manifest_entry(self, tmp_path: Path, caplog):
        (tmp_path / "llms.txt").write_bytes(b"[a](file://a.md)\n\xff\xfe\xfa")
        resolver = ResourceResolver(str(tmp_path))

        with caplog.at_level(logging.WARNING, logger="llms-mcp"):
            catalog = await resolver.rescan()

        assert [r.name for r in catalog] == ["llms.txt"]
        assert "Failed to parse llms.txt content" in caplog.text

    async def test_rescan_replaces_catalog(self, tmp_path: Path):
        resolver = ResourceResolver(str(tmp_path))
        assert await resolver.rescan() == []

        (tmp_path / "llms.txt").write_text("[Site](https://example.com)\n", encoding="utf-8")
        catalog = await resolver.rescan()

        assert [r.name for r in catalog] == ["llms.txt", "Site"]
        assert resolver.list_resources() == catalog

    async def test_bare_file_urls_option(self, tmp_path: Path):
        (tmp_path / "llms.txt").write_text("Notes: file://./notes.md\n", encoding="utf-8")

        default = await ResourceResolver(str(tmp_path)).rescan()
        enabled = await ResourceResolver(str(tmp_path), include_bare_file_urls=True).rescan()

        assert len(default) == 1
        assert [r.uri for r in enabled] == [
            file_uri(tmp_path / "llms.txt"),
            file_uri(tmp_path / "notes.md"),
        ]
        assert enabled[1].name == "notes.md"

    async def test_instances_are_isolated(self, project_dir: Path, tmp_path_factory):
        empty = tmp_path_factory.mktemp("empty")
        a = ResourceResolver(str(project_dir))
        b = ResourceResolver(str(empty))
        await a.rescan()
        await b.rescan()

        assert len(a.list_resources()) == 6
        assert b.list_resources() == []


@pytest.mark.asyncio
class TestReadFile:
    async def test_read_markdown(self, project_dir: Path):
        uri = file_uri(project_dir / "docs" / "architecture.md")
        content = await ResourceResolver(str(project_dir)).read_resource(uri)

        assert content.uri == uri
        assert content.mimeType == "text/markdown"
        assert content.text == "# Architecture\n"

    async def test_unknown_extension_is_plain_text(self, tmp_path: Path):
        (tmp_path / "Makefile").write_text("all:\n", encoding="utf-8")
        content = await ResourceResolver(None).read_resource(file_uri(tmp_path / "Makefile"))

        assert content.mimeType == "text/plain"

    async def test_missing_file(self, tmp_path: Path):
        missing = tmp_path / "missing.md"
        with pytest.raises(ResourceNotFoundError, match="File not found") as exc_info:
            await ResourceResolver(None).read_resource(file_uri(missing))

        assert str(missing) in str(exc_info.value)

    async def test_access_denied(self, tmp_path: Path):
        target = tmp_path / "secret.md"
        with patch("llms_mcp.resources._read_text", side_effect=PermissionError(13, "denied")):
            with pytest.raises(ResourceAccessDeniedError, match="Access denied") as exc_info:
                await ResourceResolver(None).read_resource(file_uri(target))

        assert str(target) in str(exc_info.value)

    async def test_directory_is_a_read_failure(self, tmp_path: Path):
        with pytest.raises(ResourceReadError, match="Failed to read file"):
            await ResourceResolver(None).read_resource(file_uri(tmp_path))

    async def test_catalog_round_trip(self, project_dir: Path):
        resolver = ResourceResolver(str(project_dir))
        catalog = await resolver.rescan()

        for descriptor in catalog:
            if classify_uri(descriptor.uri) != "file":
                continue
            content = await resolver.read_resource(descriptor.uri)
            assert content.text
            assert content.mimeType == descriptor.mimeType


@pytest.mark.asyncio
class TestReadUrl:
    async def test_success_strips_charset(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["user_agent"] = request.headers["user-agent"]
            return httpx.Response(
                200, text="<h1>Docs</h1>", headers={"content-type": "text/html; charset=utf-8"}
            )

        async with mock_client(handler) as client:
            content = await ResourceResolver(None, http_client=client).read_resource(
                "https://example.com/docs"
            )

        assert content.uri == "https://example.com/docs"
        assert content.mimeType == "text/html"
        assert content.text == "<h1>Docs</h1>"
        assert seen["user_agent"] == USER_AGENT

    async def test_missing_content_type_defaults_to_plain(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"raw body")

        async with mock_client(handler) as client:
            content = await ResourceResolver(None, http_client=client).read_resource(
                "http://example.com/raw"
            )

        assert content.mimeType == "text/plain"
        assert content.text == "raw body"

    async def test_http_404(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        async with mock_client(handler) as client:
            with pytest.raises(RemoteFetchError, match="HTTP 404: Not Found") as exc_info:
                await ResourceResolver(None, http_client=client).read_resource(
                    "https://example.com/missing"
                )

        assert exc_info.value.status_code == 404

    async def test_network_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(RemoteFetchError, match="Failed to fetch URL") as exc_info:
                await ResourceResolver(None, http_client=client).read_resource(
                    "https://example.com/"
                )

        assert exc_info.value.status_code is None

    async def test_fetch_disabled_returns_placeholder(self):
        content = await ResourceResolver(None).read_resource("https://example.com/")

        assert content.mimeType == "text/plain"
        assert content.text.startswith("URL content not available: https://example.com/")


@pytest.mark.asyncio
class TestUnsupportedScheme:
    @pytest.mark.parametrize("uri", ["ftp://x", "file://relative.md", "docs/a.md", ""])
    async def test_unsupported(self, uri: str):
        with pytest.raises(UnsupportedSchemeError, match="Unsupported resource URI scheme"):
            await ResourceResolver(None).read_resource(uri)


def test_classify_uri():
    assert classify_uri("file:///a.md") == "file"
    assert classify_uri("https://a.dev") == "url"
    assert classify_uri("http://a.dev") == "url"
    assert classify_uri("ftp://a.dev") == "unsupported"
