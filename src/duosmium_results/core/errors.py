"""Error taxonomy shared by the loader, interpreter, queries, and search."""

from __future__ import annotations


class ResultsError(Exception):
    """Base class for every error raised by the results engine."""


class ParseError(ResultsError):
    """A raw record is missing a field or has a malformed one."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class ConsistencyError(ResultsError):
    """An entity references a team or event its tournament does not declare."""


class NotFoundError(ResultsError):
    """A tournament, team, event, or placement does not exist."""

    def __init__(self, kind: str, key: str, message: str | None = None):
        self.kind = kind
        self.key = key
        super().__init__(message or f'{kind.capitalize()} "{key}" not found')


class FetchError(ResultsError):
    """An external catalog source could not be fetched."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Failed to fetch {source}: {message}")


class ValidationError(ResultsError):
    """Caller arguments are malformed."""
