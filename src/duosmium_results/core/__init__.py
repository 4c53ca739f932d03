"""Core business logic — record loading, scoring interpretation, queries, and search.

This module is framework-agnostic. It has no dependency on MCP, FastMCP,
or any server framework, and never touches the filesystem; callers hand it
parsed records and get typed, interpreted results back.
"""
