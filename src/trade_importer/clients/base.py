"""Abstract base class for exchange trade clients."""

from abc import ABC, abstractmethod
from typing import Optional

from trade_importer.models.transaction import FetchedTrade


class FetchError(Exception):
    """Exception raised when retrieving raw trades fails.

    A fetch failure aborts the whole sync cycle; the cursor is not advanced.
    """

    def __init__(self, message: str, source: Optional[str] = None):
        """Initialize FetchError.

        Args:
            message: Error message.
            source: Optional exchange id or file the trades were read from.
        """
        self.source = source
        super().__init__(message)


class BaseTradeClient(ABC):
    """Abstract base class for all trade clients.

    Subclasses must implement fetch_trades(), returning one page of raw
    trades ordered oldest to newest. A payload that cannot be mapped is
    returned as a MalformedTrade in its place; only a failure of the
    download itself raises. Retries, rate limiting and timeouts
    belong to the client, never to the classifier.
    """

    @property
    def name(self) -> str:
        """Return client name for logging.

        Returns:
            Client name string.
        """
        return self.__class__.__name__

    @abstractmethod
    def fetch_trades(self) -> list[FetchedTrade]:
        """Fetch one page of raw trades.

        Returns:
            RawTradeRecord or MalformedTrade entries, oldest first.

        Raises:
            FetchError: On any network, authentication or file failure.
        """
        pass

    def close(self) -> None:
        """Release any resources held by the client."""
        return None
