"""
Trello MCP tools.

Every public module here is discovered by trello_mcp.core.registry; async
functions whose first parameter is ``client`` are exposed as tools.
"""
