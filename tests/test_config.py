"""Tests for configuration, connector parameters and cursor persistence."""

from pathlib import Path

import pytest
import yaml

from trade_importer.config import (
    ConfigError,
    env_var_name,
    load_config,
    load_connector_parameters,
    load_cursor,
    save_cursor,
    write_parameters_template,
)
from trade_importer.connectors.registry import BITTREX
from trade_importer.models.currency import Currency


def write_yaml(path: Path, data: object) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_settings_uses_defaults(self, tmp_path: Path) -> None:
        """Test that a missing settings file yields defaults."""
        config = load_config(config_dir=tmp_path)

        assert config.logging.level == "INFO"
        assert config.output.write_errors is True
        assert config.state_file == Path("state.yaml")

    def test_loads_settings(self, tmp_path: Path) -> None:
        """Test parsing of every settings section."""
        write_yaml(tmp_path / "settings.yaml", {
            "logging": {"level": "DEBUG", "file": "logs/run.log"},
            "output": {"write_errors": False},
            "currencies": {"pepe": {"fiat": False}, "CZK2": "fiat"},
            "currency_overrides": {"Bittrex": {"xbt": "btc"}},
            "private_dir": "secrets",
            "state_file": "var/state.yaml",
        })

        config = load_config(config_dir=tmp_path)

        assert config.logging.level == "DEBUG"
        assert config.logging.file == "logs/run.log"
        assert config.output.write_errors is False
        assert config.currencies == {"PEPE": False, "CZK2": True}
        assert config.currency_overrides == {"bittrex": {"XBT": "BTC"}}
        assert config.private_dir == Path("secrets")
        assert config.state_file == Path("var/state.yaml")

    def test_build_resolver_merges_overrides(self, tmp_path: Path) -> None:
        """Test configured currencies and overrides reach the resolver."""
        write_yaml(tmp_path / "settings.yaml", {
            "currencies": {"PEPE": "crypto"},
            "currency_overrides": {"anycoin": {"PEP": "PEPE"}},
        })

        resolver = load_config(config_dir=tmp_path).build_resolver("anycoin")

        assert resolver.resolve("PEP") == Currency("PEPE")
        # Built-in alias of the same exchange is kept
        assert resolver.resolve("XDG") == Currency("DOGE")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test that malformed YAML is a configuration error."""
        path = tmp_path / "settings.yaml"
        path.write_text("logging: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(settings_path=path)

    def test_non_mapping_currencies(self, tmp_path: Path) -> None:
        """Test that a wrongly shaped section is rejected."""
        path = write_yaml(tmp_path / "settings.yaml", {"currencies": ["BTC"]})

        with pytest.raises(ConfigError, match="currencies"):
            load_config(settings_path=path)


class TestConnectorParameters:
    """Tests for connector parameter files and templates."""

    def test_env_var_name(self) -> None:
        assert env_var_name("bittrex", "apiSecret") == "BITTREX_API_SECRET"
        assert env_var_name("kraken", "apiKey") == "KRAKEN_API_KEY"

    def test_loads_parameter_file(self, tmp_path: Path) -> None:
        """Test reading values from the connector's YAML file."""
        write_yaml(tmp_path / "bittrexApiConnector.yaml", {"apiKey": "k", "apiSecret": "s"})

        assert load_connector_parameters(BITTREX, tmp_path) == {"apiKey": "k", "apiSecret": "s"}

    def test_environment_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that absent parameters are read from the environment."""
        write_yaml(tmp_path / "bittrexApiConnector.yaml", {"apiKey": "k"})
        monkeypatch.setenv("BITTREX_API_SECRET", "from-env")

        values = load_connector_parameters(BITTREX, tmp_path)

        assert values == {"apiKey": "k", "apiSecret": "from-env"}

    def test_template_lists_parameters(self, tmp_path: Path) -> None:
        """Test the written parameter template."""
        path = write_parameters_template(BITTREX, tmp_path / "private")

        assert path.name == "bittrexApiConnector.yaml.template"
        content = path.read_text(encoding="utf-8")
        assert "# API Secret (secret)" in content
        assert yaml.safe_load(content) == {"apiKey": "", "apiSecret": ""}


class TestCursorState:
    """Tests for cursor persistence."""

    def test_missing_state_file(self, tmp_path: Path) -> None:
        assert load_cursor(tmp_path / "state.yaml", "bittrexApiConnector") is None

    def test_round_trip_keeps_other_connectors(self, tmp_path: Path) -> None:
        """Test that saving one cursor preserves the others."""
        state = tmp_path / "state" / "state.yaml"

        save_cursor(state, "krakenApiConnector", "K-1")
        save_cursor(state, "bittrexApiConnector", "b-42")

        assert load_cursor(state, "bittrexApiConnector") == "b-42"
        assert load_cursor(state, "krakenApiConnector") == "K-1"

    def test_saving_none_clears_cursor(self, tmp_path: Path) -> None:
        """Test that a None cursor removes the entry."""
        state = tmp_path / "state.yaml"
        save_cursor(state, "bittrexApiConnector", "b-42")

        save_cursor(state, "bittrexApiConnector", None)

        assert load_cursor(state, "bittrexApiConnector") is None
