"""Element Picker MCP Server - robust selectors and a named element registry."""

__version__ = "0.1.0"
