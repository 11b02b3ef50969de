from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest

from bulkdata.config import (
    BulkConfig,
    ConfigurationError,
    EngineConfig,
    MissingConfigurationError,
    get_bulk_config,
    get_database_config,
    get_storage_config,
    int_env,
    require_env_vars,
)
from bulkdata.config.storage import DEFAULT_DB_FILENAME


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", " value ")

    assert require_env_vars(["EXAMPLE_VAR"]) == {"EXAMPLE_VAR": "value"}


def test_require_env_vars_raises_when_any_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("BLANK_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR", "BLANK_VAR"])

    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)


def test_int_env_validates_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COUNT_VAR", "abc")
    with pytest.raises(ConfigurationError, match="integer"):
        int_env("COUNT_VAR", 1)

    monkeypatch.setenv("COUNT_VAR", "-1")
    with pytest.raises(ConfigurationError, match=">= 0"):
        int_env("COUNT_VAR", 1)

    monkeypatch.delenv("COUNT_VAR")
    assert int_env("COUNT_VAR", 7) == 7


def test_bulk_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BULKDATA_DEFAULT_DATA_SOURCE", "customers")
    monkeypatch.setenv("BULKDATA_MAX_FAILURES", "25")
    monkeypatch.delenv("BULKDATA_DEFAULT_ENTITY_TYPE", raising=False)

    config = get_bulk_config()

    assert config.default_data_source == "customers"
    assert config.default_entity_type == BulkConfig().default_entity_type
    assert config.max_failures == 25


def test_bulk_config_rejects_zero_progress_interval(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BULKDATA_PROGRESS_INTERVAL", "0")

    with pytest.raises(ConfigurationError):
        get_bulk_config()


def test_engine_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BULKDATA_ENGINE_URL", "https://engine.test/api")
    monkeypatch.setenv("BULKDATA_ENGINE_TOKEN", "secret")
    monkeypatch.setenv("BULKDATA_ENGINE_TIMEOUT", "5")

    config = EngineConfig.from_environment()

    assert config.base_url == "https://engine.test/api/"
    assert config.timeout_seconds == 5.0
    assert config.headers()["Authorization"] == "Bearer secret"


def test_engine_config_requires_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BULKDATA_ENGINE_URL", raising=False)

    with pytest.raises(MissingConfigurationError, match="BULKDATA_ENGINE_URL"):
        EngineConfig.from_environment()


def test_database_config_prefers_explicit_uri(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BULKDATA_DATABASE_URI", "sqlite:///override.db")
    monkeypatch.setenv("BULKDATA_DATABASE_ECHO", "true")

    config = get_database_config()

    assert config.uri == "sqlite:///override.db"
    assert config.echo


def test_database_config_falls_back_to_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("BULKDATA_DATABASE_URI", raising=False)
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("BULKDATA_DATA_DIR", str(tmp_path / "data-dir"))

    config = get_database_config()

    expected_path = (tmp_path / "data-dir" / DEFAULT_DB_FILENAME).resolve()
    assert config.uri == f"sqlite+pysqlite:///{expected_path}"
    assert expected_path.parent.exists()
    assert get_storage_config().http_cache_path().parent == expected_path.parent
