"""Incremental synchronization: trimming already-seen exchange trades."""

from typing import TYPE_CHECKING, Optional, Sequence

from trade_importer.models.transaction import FetchedTrade
from trade_importer.utils.logging_config import get_logger

if TYPE_CHECKING:
    from trade_importer.clients.base import BaseTradeClient

logger = get_logger(__name__)


class Deduplicator:
    """Selects the trades of a freshly fetched block not seen before.

    The block is assumed ordered oldest to newest (exchange API contract).
    The previously seen id acts as a watermark: everything up to and
    including it is dropped. When the watermark is not in the block it has
    aged out of the exchange's window and the whole block is kept; downstream
    storage is expected to be idempotent on transaction id.
    """

    def find_index(self, transaction_id: str, block: Sequence[FetchedTrade]) -> int:
        """Return the index of the trade with the given id, or -1."""
        for i, trade in enumerate(block):
            if trade.id == transaction_id:
                return i
        return -1

    def select_new(
        self,
        previous_id: Optional[str],
        block: Sequence[FetchedTrade],
    ) -> list[FetchedTrade]:
        """Return the trades of the block that come after the watermark.

        Args:
            previous_id: Last processed trade id, or None for a first sync.
            block: Freshly fetched trades, oldest first.

        Returns:
            New trades in block order (never fails; may be empty).
        """
        if previous_id is None:
            return list(block)

        index = self.find_index(previous_id, block)
        if index == -1:
            if block:
                logger.warning(
                    f"Last seen transaction {previous_id} not found in block of "
                    f"{len(block)} trades; keeping the whole block"
                )
            return list(block)

        new_trades = list(block[index + 1 :])
        logger.debug(
            f"Skipped {index + 1} already seen trades, {len(new_trades)} new"
        )
        return new_trades

    def next_cursor(
        self,
        previous_id: Optional[str],
        block: Sequence[FetchedTrade],
    ) -> Optional[str]:
        """Return the watermark for the next call.

        This is the id of the last trade of the full (untrimmed) block that
        carries one, or the previous watermark when no trade does.
        """
        for trade in reversed(block):
            if trade.id is not None:
                return trade.id
        return previous_id


class IncrementalFetcher:
    """Fetches a page from an exchange client and trims already-seen trades."""

    def __init__(self, client: "BaseTradeClient", deduplicator: Optional[Deduplicator] = None):
        """Initialize fetcher.

        Args:
            client: Exchange client to poll.
            deduplicator: Deduplicator to use (default new instance).
        """
        self.client = client
        self.deduplicator = deduplicator if deduplicator is not None else Deduplicator()

    def fetch_new(
        self, previous_id: Optional[str]
    ) -> tuple[list[FetchedTrade], Optional[str]]:
        """Fetch new trades since the watermark.

        Args:
            previous_id: Last processed trade id, or None for full history.

        Returns:
            Tuple of (new trades oldest first, next watermark).

        Raises:
            FetchError: Propagated from the client; the watermark is not advanced.
        """
        block = self.client.fetch_trades()
        new_trades = self.deduplicator.select_new(previous_id, block)
        cursor = self.deduplicator.next_cursor(previous_id, block)
        logger.info(
            f"Fetched {len(block)} trades, {len(new_trades)} new "
            f"(cursor {previous_id} -> {cursor})"
        )
        return new_trades, cursor


def select_new(
    previous_id: Optional[str],
    block: Sequence[FetchedTrade],
) -> list[FetchedTrade]:
    """Convenience function to select trades after a watermark.

    Args:
        previous_id: Last processed trade id, or None.
        block: Freshly fetched trades, oldest first.

    Returns:
        New trades in block order.
    """
    return Deduplicator().select_new(previous_id, block)
