"""MCP stdio server exposing the Halo sync operations."""
