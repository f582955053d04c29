"""Trade client reading a captured page of raw trades from a JSON file."""

import json
from pathlib import Path

from trade_importer.clients.base import BaseTradeClient, FetchError
from trade_importer.models.transaction import FetchedTrade, MalformedTrade, RawTradeRecord
from trade_importer.utils.logging_config import get_logger

logger = get_logger(__name__)


class JsonFileTradeClient(BaseTradeClient):
    """Replays raw trades stored in a JSON file.

    The file holds either a list of trade objects or an object with a
    "trades" list. Each trade uses the keys understood by
    RawTradeRecord.from_dict. The file order is taken as oldest to newest.
    A trade that cannot be parsed is kept as a MalformedTrade.
    """

    def __init__(self, path: Path):
        """Initialize client.

        Args:
            path: Path to the JSON file.
        """
        self.path = Path(path)

    def fetch_trades(self) -> list[FetchedTrade]:
        if not self.path.exists():
            raise FetchError(f"Trade file not found: {self.path}", source=str(self.path))

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise FetchError(f"Cannot read trade file {self.path}: {e}", source=str(self.path)) from e

        if isinstance(data, dict):
            data = data.get("trades", [])
        if not isinstance(data, list):
            raise FetchError(
                f"Expected a list of trades, got {type(data).__name__}",
                source=str(self.path),
            )

        records: list[FetchedTrade] = []
        for index, item in enumerate(data):
            try:
                if not isinstance(item, dict):
                    raise ValueError(f"Expected a trade object, got {type(item).__name__}")
                records.append(RawTradeRecord.from_dict(item))
            except (KeyError, ValueError) as e:
                logger.warning(f"Malformed trade #{index} in {self.path.name}: {e!r}")
                records.append(MalformedTrade.from_payload(item, e))

        logger.info(f"Read {len(records)} trades from {self.path}")
        return records
