"""Exchange metadata held in memory."""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from tradebot.connectors.base import ExchangeInfoSource
from tradebot.core.exceptions import ConnectorError, DataValidationError
from tradebot.core.logger import get_logger
from tradebot.core.models import SymbolFilter


class StaticExchangeInfo(ExchangeInfoSource):
    """Symbol filters loaded once, from config or an ``exchangeInfo`` dump."""

    def __init__(self, filters: Optional[Iterable[SymbolFilter]] = None):
        self._filters: Dict[str, SymbolFilter] = {}
        self.logger = get_logger("connectors.exchange_info")
        for symbol_filter in filters or []:
            self.add(symbol_filter)

    def add(self, symbol_filter: SymbolFilter) -> None:
        self._filters[symbol_filter.symbol.upper()] = symbol_filter

    def get_symbol_filter(self, symbol: str) -> Optional[SymbolFilter]:
        return self._filters.get(symbol.upper())

    def symbols(self):
        return sorted(self._filters)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "StaticExchangeInfo":
        """Parse a Binance ``/api/v3/exchangeInfo`` response body.

        Symbols whose filters are inconsistent are skipped with a warning.
        """
        info = cls()
        for entry in payload.get("symbols", []):
            try:
                info.add(SymbolFilter.from_exchange_info(entry))
            except DataValidationError as e:
                info.logger.warning(f"Skipping {entry.get('symbol', '?')}: {e}")
        return info

    @classmethod
    def from_file(cls, path: str) -> "StaticExchangeInfo":
        file_path = Path(path)
        try:
            with open(file_path, 'r') as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            raise ConnectorError(f"Failed to read exchange info from {path}: {e}") from e
        return cls.from_payload(payload)
