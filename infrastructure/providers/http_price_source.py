"""
Price source backed by a JSON quote endpoint.
"""

from decimal import Decimal
from typing import Any, Dict, Optional, Set

import requests

from domain.exceptions import PriceSourceError
from domain.value_objects import to_decimal
from infrastructure.interfaces import PriceSource, PriceSourceFactory
from utils.logging import get_logger

logger = get_logger(__name__)


class HttpPriceSource(PriceSource):
    """
    Fetches prices with a single GET per batch.

    The endpoint receives ``?symbols=A,B,C`` and answers either with a flat
    ``{"A": 1.23}`` object or with the quotes nested under ``"prices"``.
    Each quote may be a number or an object carrying ``price`` or ``usd``.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, api_key: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        if not base_url:
            raise ValueError("HttpPriceSource requires a base_url")

        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

        logger.info(f"HttpPriceSource initialized for {base_url}")

    def get_prices(self, symbols: Set[str]) -> Dict[str, Decimal]:
        if not symbols:
            return {}

        try:
            response = self.session.get(
                self.base_url,
                params={"symbols": ",".join(sorted(symbols))},
                timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except requests.Timeout as e:
            raise PriceSourceError(
                f"Price request timed out after {self.timeout}s", metadata={'url': self.base_url}
            ) from e
        except requests.RequestException as e:
            raise PriceSourceError(
                f"Price request failed: {e}", metadata={'url': self.base_url}
            ) from e
        except ValueError as e:
            raise PriceSourceError(
                f"Price response is not valid JSON: {e}", metadata={'url': self.base_url}
            ) from e

        quotes = payload.get("prices", payload) if isinstance(payload, dict) else {}
        prices: Dict[str, Decimal] = {}

        for symbol in symbols:
            price = self._parse_quote(quotes.get(symbol))
            if price is not None:
                prices[symbol] = price

        logger.debug(f"Retrieved {len(prices)}/{len(symbols)} prices from {self.base_url}")
        return prices

    @staticmethod
    def _parse_quote(quote: Any) -> Optional[Decimal]:
        if isinstance(quote, dict):
            quote = quote.get("price", quote.get("usd"))
        if quote is None:
            return None
        try:
            price = to_decimal(quote)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed quote: {quote!r}")
            return None
        return price if price >= 0 else None


# Register the source
PriceSourceFactory.register("http", HttpPriceSource)
