"""
Tests for the MCP tool, resource, and health handlers
"""

import json

import pytest
import yaml
from mcp.shared.exceptions import McpError
from mcp.types import INVALID_PARAMS, INVALID_REQUEST

from duosmium_results import server
from duosmium_results.core.queries import TournamentQueries


pytestmark = pytest.mark.asyncio


class TestTournamentTools:

    async def test_list_tournaments(self, results_store):
        result = await server.list_tournaments()
        assert result["count"] == 4
        assert result["summary"].startswith("Available Tournaments (4):\n")
        assert "demo-2024" in result["tournaments"]

    async def test_tournament_info(self, results_store):
        result = await server.get_tournament_info("demo-2024")
        assert result["found"] is True
        assert result["title"] == "Demo Invitational"
        assert result["team_count"] == 4
        assert "Events (3):" in result["summary"]

    async def test_missing_tournament(self, results_store):
        result = await server.get_tournament_info("nope")
        assert result == {"found": False, "kind": "tournament", "summary": 'Tournament "nope" not found'}

    async def test_broken_tournament_is_an_error(self, results_store):
        with pytest.raises(McpError) as exc_info:
            await server.get_tournament_info("broken")
        assert "Failed to get tournament info" in exc_info.value.error.message

    async def test_invalid_id_is_invalid_params(self, results_store):
        with pytest.raises(McpError) as exc_info:
            await server.get_tournament_rankings("../etc/passwd")
        assert exc_info.value.error.code == INVALID_PARAMS

    async def test_teams_roster(self, results_store):
        result = await server.get_tournament_teams("demo-2024")
        assert result["total_teams"] == 4
        assert "#1 Alpha High School (Irvine, CA)" in result["summary"]
        assert "#2 Beta High School - Varsity" in result["summary"]
        assert "#4 Exhibition Academy [Exhibition]" in result["summary"]


class TestPlacementTools:

    async def test_overall_placement(self, results_store):
        result = await server.get_team_placement("demo-2024", "#3")
        assert result["team"]["rank"] == 3
        assert "Overall Rank: 3\n" in result["summary"]
        assert "placement" not in result

    async def test_event_placement(self, results_store):
        result = await server.get_team_placement("demo-2024", "Beta", "write it do it")
        assert result["placement"]["place"] == 2
        assert result["placement"]["tie"] is True
        assert "Placement: 2 (tie)" in result["summary"]

    async def test_no_show_placement(self, results_store):
        result = await server.get_team_placement("demo-2024", "4", "Bridge Building")
        assert result["placement"]["place_text"] == "DQ/NS"
        assert result["placement"]["points"] == 4

    async def test_unknown_team(self, results_store):
        result = await server.get_team_placement("demo-2024", "42", "Write It Do It")
        assert result["found"] is False
        assert result["kind"] == "team"

    async def test_missing_pair(self, results_store):
        result = await server.get_team_placement("demo-2024", "4", "Write It Do It")
        assert result["found"] is False
        assert result["summary"] == 'No placement found for team "Exhibition Academy" (#4) in event "Write It Do It"'

    async def test_all_placements_show_dropped(self, results_store):
        result = await server.get_team_all_placements("2023-04-22_nCA_states_c", "10")
        assert result["tournament"] == "NorCal Science Olympiad State Tournament"
        assert "Fossils: 2 (2 points) [DROPPED]" in result["summary"]
        assert [p["event"] for p in result["placements"]] == ["Chemistry Lab", "Fossils"]


class TestRankingsTool:

    async def test_rankings_summary(self, results_store):
        result = await server.get_tournament_rankings("demo-2024")
        lines = result["summary"].split("\n")
        assert lines[0] == "Tournament: Demo Invitational"
        assert "1. Alpha High School (#1) - 5 points (tie)" in lines
        assert "3. Gamma Middle School (#3) - 7 points" in lines
        assert lines[-1] == "-. Exhibition Academy (#4) - 5 points (Exhibition)"

    async def test_rankings_limit(self, results_store):
        result = await server.get_tournament_rankings("demo-2024", limit=1)
        assert [t["number"] for t in result["rankings"]] == [1]
        assert result["total_teams"] == 4


class TestSearchAndFetch:

    async def test_search(self, results_store):
        result = await server.search("orang county")
        assert result["source"] == "corpus"
        assert result["type"] == "both"
        assert result["results"][0]["id"] == "1989-03-10_sCA_orange_county_regional_b"
        assert result["summary"].startswith('Search results for "orang county"')

    async def test_search_no_hits(self, results_store):
        result = await server.search("zzzzqqqq", type="schools")
        assert result["count"] == 0
        assert result["summary"] == 'No teams found matching "zzzzqqqq"'

    async def test_search_bad_limit(self, results_store):
        with pytest.raises(McpError) as exc_info:
            await server.search("demo", limit=0)
        assert exc_info.value.error.code == INVALID_PARAMS

    async def test_search_bad_type(self, results_store):
        with pytest.raises(McpError) as exc_info:
            await server.search("demo", type="players")
        assert exc_info.value.error.code == INVALID_PARAMS

    async def test_fetch_title_matches_info(self, results_store):
        fetched = await server.fetch("demo-2024")
        info = await server.get_tournament_info("demo-2024")
        assert fetched["title"] == info["title"] == "Demo Invitational"
        assert fetched["url"] == "https://www.duosmium.org/results/demo-2024"
        assert json.loads(fetched["text"])["Tournament"]["level"] == "Invitational"
        assert fetched["metadata"]["team_count"] == 4

    async def test_fetch_missing(self, results_store):
        result = await server.fetch("nope")
        assert result["found"] is False


TRIAL_RECORD = {
    "Tournament": {"name": "Trial Invitational", "short name": "TI", "level": "Invitational"},
    "Events": [{"name": "Anatomy"}, {"name": "Codebusters", "trial": True}],
    "Teams": [
        {"number": 1, "school": "Alpha High School", "school abbreviation": "Alpha", "track": "Gold"},
        {"number": 2, "school": "Beta High School"},
    ],
    "Placings": [
        {"event": "Anatomy", "team": 1, "place": 1},
        {"event": "Anatomy", "team": 2, "place": 2},
        {"event": "Codebusters", "team": 1, "place": 2},
        {"event": "Codebusters", "team": 2, "place": 1},
    ],
}


@pytest.fixture
def trial_store(results_store):
    (results_store / "trial-2024.yaml").write_text(yaml.safe_dump(TRIAL_RECORD, sort_keys=False))
    return results_store


class TestTrialEventOutput:

    async def test_info_marks_trial_events(self, trial_store):
        result = await server.get_tournament_info("trial-2024")
        assert result["short_name"] == "TI"
        assert result["events"][1] == {"name": "Codebusters", "trial": True, "trialed": False}
        assert "Codebusters (trial)" in result["summary"].split("\n")

    async def test_event_placement_flags_trial(self, trial_store):
        result = await server.get_team_placement("trial-2024", "1", "Codebusters")
        assert result["placement"]["trial"] is True
        assert "Event: Codebusters (trial event, not counted)" in result["summary"]
        assert result["team"]["points"] == 1

    async def test_all_placements_flag_trial_and_team_details(self, trial_store):
        result = await server.get_team_all_placements("trial-2024", "Alpha")
        assert "Codebusters: 2 (2 points) [TRIAL]" in result["summary"]
        assert result["team"]["school_abbreviation"] == "Alpha"
        assert result["team"]["track"] == "Gold"
        assert result["team"]["rank"] == 1

    async def test_team_resolved_once_per_placement(self, trial_store, monkeypatch):
        calls = []
        resolve_team = TournamentQueries.resolve_team

        def counting_resolve(self, identifier):
            calls.append(identifier)
            return resolve_team(self, identifier)

        monkeypatch.setattr(TournamentQueries, "resolve_team", counting_resolve)
        await server.get_team_placement("trial-2024", "Beta", "Anatomy")
        assert calls == ["Beta"]


class TestResourcesAndHealth:

    async def test_resource_is_verbatim(self, results_store):
        text = await server.tournament_results("demo-2024")
        assert text == (results_store / "demo-2024.yaml").read_text()

    async def test_missing_resource(self, results_store):
        with pytest.raises(McpError) as exc_info:
            await server.tournament_results("nope")
        assert exc_info.value.error.code == INVALID_REQUEST
        assert exc_info.value.error.message == "Resource not found: nope"

    async def test_available_results(self, results_store):
        listing = await server.available_results()
        assert listing["uri_template"] == "duosmium://results/{id}"
        assert "2023-04-22_nCA_states_c" in listing["tournaments"]

    async def test_health(self):
        response = await server.health(None)
        assert json.loads(response.body) == {
            "status": "ok",
            "service": "duosmium-results-mcp",
            "version": "0.1.0",
        }
