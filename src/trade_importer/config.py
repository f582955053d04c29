"""Configuration loading and validation for the trade importer."""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from trade_importer.connectors.base import ConnectorDescriptor
from trade_importer.processing.currency_resolver import (
    DEFAULT_OVERRIDES,
    CurrencyResolver,
    build_currency_table,
)
from trade_importer.utils.logging_config import get_logger

logger = get_logger(__name__)

TEMPLATE_FILE_SUFFIX = ".template"


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


@dataclass
class OutputConfig:
    """Configuration for output generation.

    Attributes:
        write_errors: Whether to write errors.csv next to the transactions.
    """

    write_errors: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "OutputConfig":
        """Create from dictionary."""
        return cls(
            write_errors=bool(data.get("write_errors", True)),
        )


@dataclass
class LoggingConfig:
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Path to log file.
    """

    level: str = "INFO"
    file: str = "trade_importer.log"

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "LoggingConfig":
        """Create from dictionary."""
        return cls(
            level=str(data.get("level", "INFO")),
            file=str(data.get("file", "trade_importer.log")),
        )


@dataclass
class Config:
    """Main configuration container.

    Attributes:
        currencies: Extra currency codes mapped to their fiat flag.
        currency_overrides: Per-exchange code -> canonical code tables,
            merged over the built-in tables.
        output: Output generation configuration.
        logging: Logging configuration.
        private_dir: Directory holding connector parameter files.
        state_file: File persisting the sync cursor per connector.
    """

    currencies: dict[str, bool] = field(default_factory=dict)
    currency_overrides: dict[str, dict[str, str]] = field(default_factory=dict)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    private_dir: Path = field(default_factory=lambda: Path("private"))
    state_file: Path = field(default_factory=lambda: Path("state.yaml"))

    def build_resolver(self, exchange: str) -> CurrencyResolver:
        """Create the currency resolver for one exchange.

        Args:
            exchange: Exchange id selecting the override table.

        Returns:
            Resolver over the built-in table extended with configured currencies.
        """
        overrides: dict[str, dict[str, str]] = {k: dict(v) for k, v in DEFAULT_OVERRIDES.items()}
        for name, table in self.currency_overrides.items():
            overrides.setdefault(name.lower(), {}).update(table)
        return CurrencyResolver.for_exchange(
            exchange,
            currencies=build_currency_table(extra=self.currencies),
            overrides=overrides,
        )


def load_yaml_file(path: Path) -> dict[str, object]:
    """Load a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content.

    Raises:
        FileNotFoundError: If file doesn't exist.
        ConfigError: If the file is invalid YAML or not a mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(content).__name__}")
    return content


def _parse_currencies(data: object) -> dict[str, bool]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"'currencies' must be a mapping, got {type(data).__name__}")

    currencies: dict[str, bool] = {}
    for code, spec in data.items():
        # Accept "BTC: {fiat: false}" or the short form "EUR: fiat"
        if isinstance(spec, dict):
            currencies[str(code).upper()] = bool(spec.get("fiat", False))
        else:
            currencies[str(code).upper()] = str(spec).lower() == "fiat"
    return currencies


def _parse_overrides(data: object) -> dict[str, dict[str, str]]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"'currency_overrides' must be a mapping, got {type(data).__name__}")

    overrides: dict[str, dict[str, str]] = {}
    for exchange, table in data.items():
        if not isinstance(table, dict):
            raise ConfigError(f"Overrides for '{exchange}' must be a mapping")
        overrides[str(exchange).lower()] = {
            str(k).upper(): str(v).upper() for k, v in table.items()
        }
    return overrides


def load_config(
    settings_path: Optional[Path] = None,
    config_dir: Optional[Path] = None,
) -> Config:
    """Load configuration from settings.yaml.

    Args:
        settings_path: Path to settings.yaml (or None to use default).
        config_dir: Base config directory (default: ./config).

    Returns:
        Complete Config object (defaults when the file is missing).

    Raises:
        ConfigError: If the settings file is malformed.
    """
    if config_dir is None:
        config_dir = Path("config")
    if settings_path is None:
        settings_path = config_dir / "settings.yaml"

    config = Config()

    if not settings_path.exists():
        logger.warning(f"Settings file not found: {settings_path}, using defaults")
        return config

    data = load_yaml_file(settings_path)

    if "logging" in data:
        config.logging = LoggingConfig.from_dict(data["logging"])  # type: ignore[arg-type]
    if "output" in data:
        config.output = OutputConfig.from_dict(data["output"])  # type: ignore[arg-type]
    config.currencies = _parse_currencies(data.get("currencies"))
    config.currency_overrides = _parse_overrides(data.get("currency_overrides"))
    if "private_dir" in data:
        config.private_dir = Path(str(data["private_dir"]))
    if "state_file" in data:
        config.state_file = Path(str(data["state_file"]))

    logger.info(
        f"Loaded settings from {settings_path} "
        f"({len(config.currencies)} extra currencies, "
        f"{len(config.currency_overrides)} override tables)"
    )
    return config


def get_parameters_path(connector_id: str, private_dir: Path) -> Path:
    """Return the parameter file path of a connector."""
    return private_dir / f"{connector_id}.yaml"


def env_var_name(exchange: str, parameter_id: str) -> str:
    """Environment variable holding a connector parameter.

    Example: ("bittrex", "apiSecret") -> "BITTREX_API_SECRET".
    """
    snake = re.sub(r"(?<!^)(?=[A-Z])", "_", parameter_id).upper()
    return f"{exchange.upper()}_{snake}"


def load_connector_parameters(
    descriptor: ConnectorDescriptor,
    private_dir: Path,
    path: Optional[Path] = None,
) -> dict[str, str]:
    """Load connector parameter values.

    Values come from the connector's YAML parameter file; parameters absent
    there fall back to environment variables (see env_var_name).

    Args:
        descriptor: Connector descriptor.
        private_dir: Directory holding parameter files.
        path: Explicit parameter file (overrides private_dir).

    Returns:
        Parameter values keyed by parameter id (possibly incomplete).
    """
    if path is None:
        path = get_parameters_path(descriptor.id, private_dir)

    values: dict[str, str] = {}
    if path.exists():
        data = load_yaml_file(path)
        values = {str(k): str(v) for k, v in data.items() if v is not None}
        logger.debug(f"Loaded {len(values)} parameters from {path}")

    for param in descriptor.parameters:
        if not values.get(param.id):
            env_value = os.environ.get(env_var_name(descriptor.exchange, param.id))
            if env_value:
                values[param.id] = env_value

    return values


def write_parameters_template(descriptor: ConnectorDescriptor, private_dir: Path) -> Path:
    """Write a parameter template for a connector.

    The template lists every declared parameter with its label as a comment
    and its default as value. Rename it without the ".template" suffix after
    filling in real values.

    Args:
        descriptor: Connector descriptor.
        private_dir: Directory for the template.

    Returns:
        Path of the written template.
    """
    path = get_parameters_path(descriptor.id, private_dir)
    template_path = path.with_name(path.name + TEMPLATE_FILE_SUFFIX)
    private_dir.mkdir(parents=True, exist_ok=True)

    lines = [
        f"# Fill in proper values and remove the '{TEMPLATE_FILE_SUFFIX}' file name suffix "
        f"to use the {descriptor.name}.",
    ]
    for param in descriptor.parameters:
        lines.append(f"# {param.label} ({param.type.value})")
        lines.append(yaml.safe_dump({param.id: param.default}, default_flow_style=False).strip())

    with open(template_path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")

    logger.info(f"Wrote parameter template {template_path}")
    return template_path


def load_cursor(state_path: Path, connector_id: str) -> Optional[str]:
    """Load the persisted sync cursor of a connector.

    Args:
        state_path: Path to the state file.
        connector_id: Connector id.

    Returns:
        Last downloaded transaction id, or None for a full sync.
    """
    if not state_path.exists():
        return None

    data = load_yaml_file(state_path)
    cursors = data.get("cursors") or {}
    if not isinstance(cursors, dict):
        raise ConfigError(f"'cursors' in {state_path} must be a mapping")

    value = cursors.get(connector_id)
    return str(value) if value is not None else None


def save_cursor(state_path: Path, connector_id: str, cursor: Optional[str]) -> None:
    """Persist the sync cursor of a connector.

    Other connectors' cursors in the same file are preserved.

    Args:
        state_path: Path to the state file.
        connector_id: Connector id.
        cursor: New cursor (None clears it).
    """
    data: dict[str, object] = {}
    if state_path.exists():
        data = load_yaml_file(state_path)

    cursors = dict(data.get("cursors") or {})  # type: ignore[call-overload]
    if cursor is None:
        cursors.pop(connector_id, None)
    else:
        cursors[connector_id] = cursor
    data["cursors"] = cursors

    state_path.parent.mkdir(parents=True, exist_ok=True)
    with open(state_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Saved cursor for {connector_id} to {state_path}")
