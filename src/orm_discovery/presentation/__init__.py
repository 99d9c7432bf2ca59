"""
Presentation Layer - MCP server exposing the content client and research history.
"""
