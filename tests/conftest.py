"""
Pytest configuration and fixtures for the results engine tests
"""

import copy

import pytest
import yaml

from duosmium_results.cache import reset_cache
from duosmium_results.core.interpreter import interpret
from duosmium_results.core.loader import load_record


DEMO_RECORD = {
    "Tournament": {
        "level": "Invitational",
        "location": "Demo",
        "state": "CA",
        "division": "C",
        "year": 2024,
        "date": "2024-02-03",
    },
    "Events": [
        {"name": "Anatomy"},
        {"name": "Bridge Building"},
        {"name": "Write It Do It"},
    ],
    "Teams": [
        {"number": 1, "school": "Alpha High School", "city": "Irvine", "state": "CA"},
        {"number": 2, "school": "Beta High School", "suffix": "Varsity"},
        {"number": 3, "school": "Gamma Middle School"},
        {"number": 4, "school": "Exhibition Academy", "exhibition": True},
    ],
    "Placings": [
        {"event": "Anatomy", "team": 4, "place": 1},
        {"event": "Anatomy", "team": 1, "place": 2},
        {"event": "Anatomy", "team": 2, "place": 3},
        {"event": "Anatomy", "team": 3, "place": 4},
        {"event": "Bridge Building", "team": 1, "place": 2},
        {"event": "Bridge Building", "team": 2, "place": 1},
        {"event": "Bridge Building", "team": 3, "place": 3},
        {"event": "Bridge Building", "team": 4, "participated": False},
        {"event": "Write It Do It", "team": 1, "place": 2},
        {"event": "Write It Do It", "team": 2, "place": 2},
        {"event": "Write It Do It", "team": 3, "place": 1},
    ],
}

ORANGE_COUNTY_RECORD = {
    "Tournament": {
        "level": "Regionals",
        "location": "Orange County",
        "state": "sCA",
        "division": "B",
        "year": 1989,
        "date": "1989-03-10",
    },
    "Events": [{"name": "Bridge Building"}, {"name": "Mystery Substance"}],
    "Teams": [
        {"number": 1, "school": "Lincoln Middle School", "city": "Anaheim", "state": "CA"},
        {"number": 2, "school": "Irvine Intermediate", "city": "Irvine", "state": "CA"},
    ],
    "Placings": [
        {"event": "Bridge Building", "team": 1, "place": 1},
        {"event": "Bridge Building", "team": 2, "place": 2},
        {"event": "Mystery Substance", "team": 1, "place": 2},
        {"event": "Mystery Substance", "team": 2, "place": 1},
    ],
}

NORCAL_STATES_RECORD = {
    "Tournament": {
        "level": "States",
        "location": "UC Davis",
        "state": "nCA",
        "division": "C",
        "year": 2023,
        "worst placings dropped": 1,
    },
    "Events": [{"name": "Chemistry Lab"}, {"name": "Fossils"}],
    "Teams": [
        {"number": 10, "school": "Mission San Jose High School", "city": "Fremont", "state": "CA"},
        {"number": 11, "school": "Lynbrook High School", "city": "San Jose", "state": "CA"},
    ],
    "Placings": [
        {"event": "Chemistry Lab", "team": 10, "place": 1},
        {"event": "Chemistry Lab", "team": 11, "place": 2},
        {"event": "Fossils", "team": 10, "place": 2},
        {"event": "Fossils", "team": 11, "place": 1},
    ],
}

RECORDS = {
    "demo-2024": DEMO_RECORD,
    "1989-03-10_sCA_orange_county_regional_b": ORANGE_COUNTY_RECORD,
    "2023-04-22_nCA_states_c": NORCAL_STATES_RECORD,
}


def make_record(teams, placings, events=None, drops=0, penalties=None, **tournament):
    """Build a raw record dict from compact team/placing lists."""
    if events is None:
        events = sorted({p["event"] for p in placings})
    record = {
        "Tournament": {"name": "Test Tournament", "level": "Invitational", "worst placings dropped": drops, **tournament},
        "Events": [{"name": e} if isinstance(e, str) else e for e in events],
        "Teams": [{"number": t, "school": f"School {t}"} if isinstance(t, int) else t for t in teams],
        "Placings": placings,
    }
    if penalties:
        record["Penalties"] = penalties
    return record


def interpret_record(record, tournament_id="test"):
    return interpret(load_record(tournament_id, copy.deepcopy(record)))


@pytest.fixture
def demo():
    """Interpreted demo-2024 tournament"""
    return interpret_record(DEMO_RECORD, "demo-2024")


@pytest.fixture
def results_store(tmp_path, monkeypatch):
    """A duosmium checkout with a few result files, wired up via DUOSMIUM_PATH"""
    results_dir = tmp_path / "data" / "results"
    results_dir.mkdir(parents=True)
    for tournament_id, record in RECORDS.items():
        (results_dir / f"{tournament_id}.yaml").write_text(yaml.safe_dump(record, sort_keys=False))
    (results_dir / "broken.yaml").write_text("Tournament:\n  level: Invitational\nTeams: not-a-list\n")
    (results_dir / "README.md").write_text("not a results file\n")

    monkeypatch.setenv("DUOSMIUM_PATH", str(tmp_path))
    monkeypatch.setenv("SEARCH_SOURCE", "corpus")
    monkeypatch.setenv("RESULTS_CACHE_SIZE", "16")
    reset_cache()
    yield results_dir
    reset_cache()
