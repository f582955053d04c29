"""Registry of the available exchange connectors."""

from typing import Mapping, Optional

from trade_importer.clients.base import BaseTradeClient
from trade_importer.connectors.base import (
    PARAMETER_API_KEY,
    PARAMETER_API_SECRET,
    ConnectorConfigError,
    ConnectorDescriptor,
    ExchangeConnector,
)
from trade_importer.processing.currency_resolver import CurrencyResolver

BITTREX = ConnectorDescriptor(
    id="bittrexApiConnector",
    name="Bittrex Connector",
    exchange="bittrex",
    parameters=(PARAMETER_API_KEY, PARAMETER_API_SECRET),
)

KRAKEN = ConnectorDescriptor(
    id="krakenApiConnector",
    name="Kraken Connector",
    exchange="kraken",
    parameters=(PARAMETER_API_KEY, PARAMETER_API_SECRET),
)

DESCRIPTORS: dict[str, ConnectorDescriptor] = {d.id: d for d in (BITTREX, KRAKEN)}


def get_descriptor(connector_id: str) -> ConnectorDescriptor:
    """Look up a connector descriptor by id or exchange name.

    Raises:
        ConnectorConfigError: If no connector matches.
    """
    if connector_id in DESCRIPTORS:
        return DESCRIPTORS[connector_id]
    for descriptor in DESCRIPTORS.values():
        if descriptor.exchange == connector_id.lower():
            return descriptor
    raise ConnectorConfigError(
        f"Unknown connector '{connector_id}'. Available: {', '.join(DESCRIPTORS)}"
    )


def create_connector(
    connector_id: str,
    parameters: Mapping[str, str],
    client: Optional[BaseTradeClient] = None,
    resolver: Optional[CurrencyResolver] = None,
) -> ExchangeConnector:
    """Create a connector instance.

    Args:
        connector_id: Connector id or exchange name.
        parameters: Parameter values keyed by parameter id.
        client: Optional trade client overriding the exchange default.
        resolver: Optional currency resolver.

    Returns:
        Configured ExchangeConnector.
    """
    return ExchangeConnector(get_descriptor(connector_id), parameters, client=client, resolver=resolver)
