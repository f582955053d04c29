"""Tests for incremental synchronization and duplicate trimming."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from trade_importer.clients.base import BaseTradeClient, FetchError
from trade_importer.models.transaction import MalformedTrade, RawTradeRecord, TransactionKind
from trade_importer.processing.deduplicator import Deduplicator, IncrementalFetcher, select_new


def create_trade(uid: str) -> RawTradeRecord:
    """Helper to create a minimal BUY record with the given id."""
    return RawTradeRecord(
        id=uid,
        timestamp=datetime(2024, 3, 1, tzinfo=timezone.utc),
        base_code="BTC",
        quote_code="USD",
        kind=TransactionKind.BUY,
        volume=Decimal("1"),
    )


def ids(trades: list[RawTradeRecord]) -> list[str | None]:
    return [t.id for t in trades]


T1, T2, T3, T4 = (create_trade(f"t{i}") for i in range(1, 5))


class TestSelectNew:
    """Tests for Deduplicator.select_new."""

    def test_no_previous_id_returns_full_block(self) -> None:
        """Test that a first sync keeps every trade."""
        assert ids(select_new(None, [T1, T2, T3])) == ["t1", "t2", "t3"]

    def test_trims_up_to_and_including_previous(self) -> None:
        """Test that trades up to the watermark are dropped."""
        assert ids(select_new("t2", [T1, T2, T3, T4])) == ["t3", "t4"]

    def test_previous_is_last_returns_empty(self) -> None:
        """Test that nothing is returned when the watermark is the newest trade."""
        assert select_new("t3", [T1, T2, T3]) == []

    def test_previous_not_found_returns_full_block(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that an aged-out watermark keeps the whole block and warns."""
        with caplog.at_level("WARNING"):
            result = select_new("t0", [T2, T3])

        assert ids(result) == ["t2", "t3"]
        assert "t0" in caplog.text

    def test_empty_block(self) -> None:
        """Test that an empty block stays empty."""
        assert select_new("t1", []) == []
        assert select_new(None, []) == []

    def test_result_is_suffix_of_block(self) -> None:
        """Test that the selection is always a suffix in block order."""
        block = [T1, T2, T3, T4]
        for previous in (None, "t1", "t2", "t3", "t4", "missing"):
            result = select_new(previous, block)
            assert result == block[len(block) - len(result):]
            assert previous not in ids(result)


class TestNextCursor:
    """Tests for Deduplicator.next_cursor."""

    def test_cursor_is_last_id_of_full_block(self) -> None:
        """Test the cursor comes from the untrimmed block."""
        assert Deduplicator().next_cursor("t3", [T1, T2, T3]) == "t3"
        assert Deduplicator().next_cursor(None, [T1, T2]) == "t2"

    def test_cursor_skips_trailing_trades_without_id(self) -> None:
        """Test that id-less trades at the end never reset the cursor."""
        anonymous = RawTradeRecord(
            id=None,
            timestamp=datetime(2024, 3, 1, tzinfo=timezone.utc),
            base_code="BTC",
            kind=TransactionKind.BUY,
            volume=Decimal("1"),
        )
        malformed = MalformedTrade(id=None, payload="[]", message="Malformed trade payload")

        assert Deduplicator().next_cursor("t1", [T1, T2, anonymous]) == "t2"
        assert Deduplicator().next_cursor("t1", [T2, malformed, anonymous]) == "t2"
        assert Deduplicator().next_cursor("t1", [anonymous, malformed]) == "t1"

    def test_empty_block_keeps_previous_cursor(self) -> None:
        """Test that an empty page does not reset the cursor."""
        assert Deduplicator().next_cursor("t7", []) == "t7"


class TestIncrementalFetcher:
    """Tests for IncrementalFetcher."""

    def test_sequential_fetches_return_only_new_trades(self) -> None:
        """Test two overlapping pages yield each trade once."""
        client = MagicMock(spec=BaseTradeClient)
        client.fetch_trades.side_effect = [[T1, T2, T3], [T2, T3, T4]]
        fetcher = IncrementalFetcher(client)

        first, cursor = fetcher.fetch_new(None)
        second, cursor = fetcher.fetch_new(cursor)

        assert ids(first) == ["t1", "t2", "t3"]
        assert ids(second) == ["t4"]
        assert cursor == "t4"

    def test_fetch_error_propagates(self) -> None:
        """Test that fetch failures are not swallowed."""
        client = MagicMock(spec=BaseTradeClient)
        client.fetch_trades.side_effect = FetchError("User trade history download failed.")

        with pytest.raises(FetchError):
            IncrementalFetcher(client).fetch_new("t1")
