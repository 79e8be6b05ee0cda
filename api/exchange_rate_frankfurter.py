import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from api import format_amount
from base import ExchangeRateAPIBase
from config.settings import settings

cfg = settings.exchange_rate


class ExchangeRateFrankfurterClient(ExchangeRateAPIBase):
    """Exchange rates from the public Frankfurter API.

    Results are plain text because the caller is a model tool loop, so every
    failure is reported as a readable string instead of an exception.
    """

    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.base = (base_url or cfg.base_url).rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=cfg.timeout_seconds)
        self.logger = logging.getLogger("app")

    def _url(self, path: str) -> str:
        return f"{self.base}{path}"

    async def _retry_get(self, path: str, params: Dict[str, Any]) -> httpx.Response:
        delay = cfg.backoff_factor
        last_exc: Optional[Exception] = None
        for attempt in range(1, cfg.max_retries + 1):
            try:
                resp = await self.client.get(self._url(path), params=params)
                if resp.status_code >= 500:
                    raise httpx.HTTPStatusError(f"Server error {resp.status_code}", request=resp.request, response=resp)
                return resp
            except httpx.HTTPError as e:
                last_exc = e
                if attempt == cfg.max_retries:
                    break
                self.logger.warning(f"Attempt {attempt} failed for {path}: {e}. Retrying in {delay:.1f}s...")
                await asyncio.sleep(delay)
                delay *= 2
        self.logger.error(f"All {cfg.max_retries} attempts failed for {path}: {last_exc}")
        raise last_exc

    async def _latest(self, params: Dict[str, Any]) -> Dict[str, Any]:
        resp = await self._retry_get("/latest", params)
        resp.raise_for_status()
        return resp.json()

    async def get_rate(self, from_currency: str, to_currency: str) -> str:
        src, dst = from_currency.upper(), to_currency.upper()
        try:
            self.logger.info(f"Fetching exchange rate {src} -> {dst}")
            data = await self._latest({"from": src, "to": dst})
            rate = (data.get("rates") or {}).get(dst)
            if rate is None:
                return f"Unable to get exchange rate from {src} to {dst}"
            return f"1 {src} = {float(rate):.4f} {dst}"
        except Exception as e:
            self.logger.error(f"Error fetching exchange rate from {src} to {dst}: {e}")
            return f"Error fetching exchange rate: {e}"

    async def convert(self, amount: float, from_currency: str, to_currency: str) -> str:
        src, dst = from_currency.upper(), to_currency.upper()
        shown = format_amount(amount)
        try:
            self.logger.info(f"Converting {shown} {src} to {dst}")
            data = await self._latest({"from": src, "to": dst, "amount": shown})
            converted = (data.get("rates") or {}).get(dst)
            if converted is None:
                return f"Unable to convert {shown} {src} to {dst}"
            return f"{shown} {src} = {float(converted):.2f} {dst}"
        except Exception as e:
            self.logger.error(f"Error converting currency from {src} to {dst}: {e}")
            return f"Error converting currency: {e}"

    async def aclose(self) -> None:
        await self.client.aclose()
