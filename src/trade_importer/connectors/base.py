"""Exchange connectors: descriptors and the sync cycle."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

from trade_importer.clients.base import BaseTradeClient
from trade_importer.models.transaction import DownloadResult
from trade_importer.processing.batch_converter import BatchConverter
from trade_importer.processing.classifier import TransactionClassifier
from trade_importer.processing.currency_resolver import CurrencyResolver
from trade_importer.processing.deduplicator import IncrementalFetcher
from trade_importer.utils.logging_config import LogContext, get_logger

logger = get_logger(__name__)


class ConnectorConfigError(Exception):
    """Raised when connector parameters are missing or invalid."""

    pass


class ConnectorParameterType(Enum):
    """How a connector parameter is entered and displayed."""

    STRING = "string"
    SECRET = "secret"


@dataclass(frozen=True)
class ConnectorParameterDescriptor:
    """A declared connector parameter.

    Attributes:
        id: Parameter key (e.g., "apiKey").
        type: Plain string or secret.
        label: Human-readable label.
        default: Default value.
    """

    id: str
    type: ConnectorParameterType
    label: str
    default: str = ""


@dataclass(frozen=True)
class ConnectorDescriptor:
    """Static description of a connector.

    Attributes:
        id: Connector id.
        name: Display name.
        exchange: ccxt exchange id, also selects the currency override table.
        parameters: Declared parameters.
    """

    id: str
    name: str
    exchange: str
    parameters: tuple[ConnectorParameterDescriptor, ...] = field(default_factory=tuple)

    def validate_parameters(self, parameters: Mapping[str, str]) -> dict[str, str]:
        """Check that every declared parameter has a value.

        Declared defaults fill in absent values; empty values count as missing.

        Returns:
            Parameter values keyed by parameter id.

        Raises:
            ConnectorConfigError: If any parameter is missing.
        """
        values: dict[str, str] = {}
        missing: list[str] = []
        for param in self.parameters:
            value = parameters.get(param.id) or param.default
            if not value:
                missing.append(param.id)
            else:
                values[param.id] = str(value)
        if missing:
            raise ConnectorConfigError(
                f"Missing parameters for connector '{self.id}': {', '.join(missing)}"
            )
        return values


PARAMETER_API_KEY = ConnectorParameterDescriptor(
    "apiKey", ConnectorParameterType.STRING, "API Key", ""
)
PARAMETER_API_SECRET = ConnectorParameterDescriptor(
    "apiSecret", ConnectorParameterType.SECRET, "API Secret", ""
)


class ExchangeConnector:
    """Runs one synchronization cycle against an exchange account.

    A cycle fetches one page of trades, drops trades up to the last seen id,
    converts the rest and returns the clusters with the new cursor. A fetch
    failure propagates and leaves the caller's cursor untouched.
    """

    def __init__(
        self,
        descriptor: ConnectorDescriptor,
        parameters: Mapping[str, str],
        client: Optional[BaseTradeClient] = None,
        resolver: Optional[CurrencyResolver] = None,
    ):
        """Initialize connector.

        Args:
            descriptor: Connector descriptor.
            parameters: Parameter values keyed by parameter id.
            client: Trade client (default ccxt client for the exchange).
            resolver: Currency resolver (default built-in table with the
                exchange's overrides).

        Raises:
            ConnectorConfigError: If a required parameter is missing and no
                client was given.
        """
        self.descriptor = descriptor
        self.parameters = dict(parameters)

        # Credentials are only required when talking to the exchange itself
        if client is None:
            from trade_importer.clients.ccxt_client import CcxtTradeClient

            self.parameters = descriptor.validate_parameters(parameters)
            client = CcxtTradeClient(
                exchange_id=descriptor.exchange,
                api_key=self.parameters[PARAMETER_API_KEY.id],
                api_secret=self.parameters[PARAMETER_API_SECRET.id],
            )
        self.client = client

        if resolver is None:
            resolver = CurrencyResolver.for_exchange(descriptor.exchange)
        self.fetcher = IncrementalFetcher(client)
        self.converter = BatchConverter(TransactionClassifier(resolver))

    @property
    def id(self) -> str:
        return self.descriptor.id

    def get_transactions(self, last_transaction_id: Optional[str]) -> DownloadResult:
        """Download and convert trades newer than the given id.

        Args:
            last_transaction_id: Cursor returned by the previous cycle, or
                None for the full available history.

        Returns:
            DownloadResult with clusters, row errors and the new cursor.

        Raises:
            FetchError: If the trades cannot be retrieved.
        """
        context = {**self.parameters, "connector": self.id, "cursor": last_transaction_id}
        with LogContext(logger, "sync", **context):
            new_trades, cursor = self.fetcher.fetch_new(last_transaction_id)
            parse_result = self.converter.convert(new_trades)
        return DownloadResult(parse_result=parse_result, last_downloaded_transaction_id=cursor)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ExchangeConnector":
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object | None) -> None:
        self.close()
