"""Duosmium Results MCP Server.

Ask your AI about Science Olympiad results: who placed where, how a team
scored overall, and which tournaments or teams match a search.
"""

__version__ = "0.1.0"
