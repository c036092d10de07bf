"""Transport adapters (MCP stdio) around trello_mcp.core."""
