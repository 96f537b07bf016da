"""llms-mcp: expose a project's llms.txt and the files it references as MCP resources."""

try:
    from importlib.metadata import version

    __version__ = version("llms-mcp")
except ImportError:
    # Fallback for development/editable installs
    __version__ = "0.1.0-dev"
