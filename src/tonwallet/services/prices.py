"""Native coin market price from CoinGecko with an injected cache."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from tonwallet.types import PriceCache

logger = logging.getLogger(__name__)

TON_COINGECKO_ID = "the-open-network"


class PriceFeed:
    """TON/USD price lookup.

    Never raises: when the feed is down the last cached price is returned, or 0
    if nothing was ever fetched.
    """

    timeout_s = 10.0

    def __init__(
        self,
        url: str,
        cache: Optional[PriceCache] = None,
        client: Optional[httpx.AsyncClient] = None,
        coin_id: str = TON_COINGECKO_ID,
        vs_currency: str = "usd",
    ):
        self.url = url
        self.cache = cache if cache is not None else PriceCache()
        self.coin_id = coin_id
        self.vs_currency = vs_currency
        self._client = client

    async def _fetch(self) -> Decimal:
        params = {"ids": self.coin_id, "vs_currencies": self.vs_currency}
        if self._client is not None:
            response = await self._client.get(self.url, params=params, timeout=self.timeout_s)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.get(self.url, params=params, timeout=self.timeout_s)
        response.raise_for_status()
        data = response.json()
        return Decimal(str(data[self.coin_id][self.vs_currency]))

    async def get_price(self) -> Decimal:
        """Current price in the quote currency."""
        if self.cache.is_fresh():
            return self.cache.value

        try:
            price = await self._fetch()
        except (httpx.HTTPError, KeyError, TypeError, ValueError, InvalidOperation) as e:
            logger.warning(f"Price feed unavailable: {e}")
            if self.cache.value is not None:
                return self.cache.value
            return Decimal("0")

        self.cache.update(price)
        logger.debug(f"{self.coin_id} price: {price} {self.vs_currency}")
        return price
