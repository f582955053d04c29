"""Exchange connectors and their descriptors."""

from trade_importer.connectors.base import (
    ConnectorConfigError,
    ConnectorDescriptor,
    ConnectorParameterDescriptor,
    ConnectorParameterType,
    ExchangeConnector,
)
from trade_importer.connectors.registry import (
    DESCRIPTORS,
    create_connector,
    get_descriptor,
)

__all__ = [
    "ConnectorConfigError",
    "ConnectorDescriptor",
    "ConnectorParameterDescriptor",
    "ConnectorParameterType",
    "ExchangeConnector",
    "DESCRIPTORS",
    "create_connector",
    "get_descriptor",
]
