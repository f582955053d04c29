"""Exchange trade clients."""

from trade_importer.clients.base import BaseTradeClient, FetchError
from trade_importer.clients.ccxt_client import CcxtTradeClient, trade_from_ccxt
from trade_importer.clients.json_client import JsonFileTradeClient

__all__ = [
    "BaseTradeClient",
    "FetchError",
    "CcxtTradeClient",
    "trade_from_ccxt",
    "JsonFileTradeClient",
]
