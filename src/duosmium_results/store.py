"""Results record store.

One YAML file per tournament at <DUOSMIUM_PATH>/data/results/<id>.yaml.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .config import get_data_root
from .core.errors import NotFoundError, ParseError, ValidationError

logger = logging.getLogger(__name__)

RESULTS_SUBDIR = Path("data") / "results"
RECORD_SUFFIX = ".yaml"


def get_results_dir() -> Path:
    return get_data_root() / RESULTS_SUBDIR


def list_tournament_ids() -> list[str]:
    """Every tournament id in the store, sorted."""
    results_dir = get_results_dir()
    try:
        names = [p.name for p in results_dir.iterdir() if p.is_file()]
    except OSError as exc:
        logger.error("Error reading tournaments directory %s: %s", results_dir, exc)
        return []
    return sorted(name[: -len(RECORD_SUFFIX)] for name in names if name.endswith(RECORD_SUFFIX))


def record_path(tournament_id: str) -> Path:
    """Path of a tournament's record. Ids that could escape the store are rejected."""
    if not tournament_id or "/" in tournament_id or "\\" in tournament_id or tournament_id.startswith("."):
        raise ValidationError(f"Invalid tournament id {tournament_id!r}")
    return get_results_dir() / f"{tournament_id}{RECORD_SUFFIX}"


def record_mtime(tournament_id: str) -> int:
    try:
        return record_path(tournament_id).stat().st_mtime_ns
    except FileNotFoundError as exc:
        raise NotFoundError("tournament", tournament_id, f'Tournament "{tournament_id}" not found') from exc


def read_record_text(tournament_id: str) -> str:
    try:
        return record_path(tournament_id).read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise NotFoundError("tournament", tournament_id, f'Tournament "{tournament_id}" not found') from exc


def read_record(tournament_id: str) -> Any:
    """Parsed YAML content of a tournament's record."""
    text = read_record_text(tournament_id)
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ParseError(f"{tournament_id}{RECORD_SUFFIX}", f"invalid YAML: {exc}") from exc
