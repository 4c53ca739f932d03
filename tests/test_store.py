"""
Unit tests for the results record store and configuration
"""

import pytest

from duosmium_results import config
from duosmium_results.core.errors import NotFoundError, ParseError, ValidationError
from duosmium_results.store import list_tournament_ids, read_record, read_record_text, record_path


class TestRecordStore:

    def test_list_ids_sorted_yaml_only(self, results_store):
        assert list_tournament_ids() == [
            "1989-03-10_sCA_orange_county_regional_b",
            "2023-04-22_nCA_states_c",
            "broken",
            "demo-2024",
        ]

    def test_missing_directory_lists_nothing(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DUOSMIUM_PATH", str(tmp_path / "nowhere"))
        assert list_tournament_ids() == []

    def test_read_record_text_is_verbatim(self, results_store):
        assert read_record_text("demo-2024") == (results_store / "demo-2024.yaml").read_text()

    def test_read_record_parses_yaml(self, results_store):
        assert read_record("demo-2024")["Tournament"]["level"] == "Invitational"

    def test_unknown_tournament(self, results_store):
        with pytest.raises(NotFoundError) as exc_info:
            read_record("nope")
        assert str(exc_info.value) == 'Tournament "nope" not found'

    @pytest.mark.parametrize("tournament_id", ["../secrets", "a/b", "a\\b", ".hidden", ""])
    def test_rejects_escaping_ids(self, results_store, tournament_id):
        with pytest.raises(ValidationError):
            record_path(tournament_id)

    def test_invalid_yaml(self, results_store):
        (results_store / "bad-yaml.yaml").write_text("Tournament: [unclosed\n")
        with pytest.raises(ParseError):
            read_record("bad-yaml")


class TestConfig:

    def test_data_root_required(self, monkeypatch):
        monkeypatch.delenv("DUOSMIUM_PATH", raising=False)
        with pytest.raises(ValueError, match="DUOSMIUM_PATH"):
            config.get_data_root()

    def test_search_source(self, monkeypatch):
        monkeypatch.setenv("SEARCH_SOURCE", "Catalog")
        assert config.get_search_source() == "catalog"
        monkeypatch.setenv("SEARCH_SOURCE", "elsewhere")
        with pytest.raises(ValidationError):
            config.get_search_source()

    def test_catalog_urls_required(self, monkeypatch):
        monkeypatch.setenv("CATALOG_TOURNAMENTS_URL", "https://catalog.test/tournaments.json")
        monkeypatch.delenv("CATALOG_SCHOOLS_URL", raising=False)
        with pytest.raises(ValueError):
            config.get_catalog_urls()

    def test_defaults(self, monkeypatch):
        for name in ("RESULTS_CACHE_SIZE", "SEARCH_CONCURRENCY", "PORT", "MCP_TRANSPORT"):
            monkeypatch.delenv(name, raising=False)
        assert config.get_cache_size() == 256
        assert config.get_search_concurrency() == 16
        assert config.get_port() == 3000
        assert config.get_transport() == "streamable-http"
