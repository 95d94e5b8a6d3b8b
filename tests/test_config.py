"""
Tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from esexport.core.config import (
    ClientConfig,
    ConfigError,
    ExportConfig,
    LoggingConfig,
    PartitionConfig,
    load_export_config,
    parse_query,
    trace_from_env,
)
from esexport.core.cursor import MalformedQuery


class TestModels:
    """Tests for pydantic config models."""

    def test_defaults(self):
        config = ExportConfig()

        assert config.client.host == "http://localhost:9200"
        assert config.client.search_context_ttl == "1m"
        assert config.partition.count == 1
        assert config.partition.field is None
        assert config.partition.query == {}
        assert config.output is None
        assert config.progress_interval == 0.5
        assert config.trace is False

    @pytest.mark.parametrize("host", ["invalid-url", "localhost:9200", "ftp://example.com"])
    def test_invalid_host(self, host):
        with pytest.raises(ValidationError):
            ClientConfig(host=host)

    def test_negative_partition_count(self):
        with pytest.raises(ValidationError):
            PartitionConfig(count=-1)

    @pytest.mark.parametrize("count,sliced", [(0, False), (1, False), (2, True)])
    def test_sliced(self, count, sliced):
        assert PartitionConfig(count=count).sliced is sliced

    def test_log_level_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")


class TestLoadExportConfig:
    """Tests for YAML loading."""

    def test_missing_default_file_returns_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert load_export_config() == ExportConfig()

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_export_config(tmp_path / "nope.yaml")

        assert "not found" in str(exc_info.value)

    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "esexport.yaml"
        path.write_text(
            "client:\n"
            "  host: http://es:9200\n"
            "  index: logs\n"
            "partition:\n"
            "  count: 4\n"
            "  field: date\n"
            "  query:\n"
            "    size: 100\n"
            "output: out.jsonl\n"
        )

        config = load_export_config(path)

        assert config.client.host == "http://es:9200"
        assert config.client.index == "logs"
        assert config.partition.count == 4
        assert config.partition.field == "date"
        assert config.partition.query == {"size": 100}
        assert str(config.output) == "out.jsonl"

    def test_expands_env_vars(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ES_HOST", "http://from-env:9200")
        monkeypatch.delenv("ES_INDEX", raising=False)
        path = tmp_path / "esexport.yaml"
        path.write_text(
            "client:\n"
            "  host: ${ES_HOST}\n"
            "  index: ${ES_INDEX:-fallback}\n"
        )

        config = load_export_config(path)

        assert config.client.host == "http://from-env:9200"
        assert config.client.index == "fallback"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "esexport.yaml"
        path.write_text("")

        assert load_export_config(path) == ExportConfig()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "esexport.yaml"
        path.write_text("client: [unclosed\n")

        with pytest.raises(ConfigError) as exc_info:
            load_export_config(path)

        assert exc_info.value.details

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "esexport.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            load_export_config(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "esexport.yaml"
        path.write_text("partition:\n  count: -3\n")

        with pytest.raises(ConfigError) as exc_info:
            load_export_config(path)

        assert exc_info.value.path == path


class TestParseQuery:
    """Tests for query parsing."""

    def test_parses_object(self):
        assert parse_query('{"size": 10, "query": {"match_all": {}}}') == {
            "size": 10,
            "query": {"match_all": {}},
        }

    @pytest.mark.parametrize("text", ["", "{not json", "[1, 2]", "42", '"text"'])
    def test_rejects_non_objects(self, text):
        with pytest.raises(MalformedQuery):
            parse_query(text)


class TestTraceFromEnv:
    """Tests for the tracing environment switch."""

    def test_unset(self, monkeypatch):
        monkeypatch.delenv("ESEXPORTDEBUG", raising=False)

        assert trace_from_env() is False

    def test_set(self, monkeypatch):
        monkeypatch.setenv("ESEXPORTDEBUG", "1")

        assert trace_from_env() is True

    def test_empty(self, monkeypatch):
        monkeypatch.setenv("ESEXPORTDEBUG", "")

        assert trace_from_env() is False
