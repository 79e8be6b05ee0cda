from typing import Dict

from api import format_amount
from base import ExchangeRateAPIBase


class ExchangeRateLocalClient(ExchangeRateAPIBase):
    """A local mock with fixed EUR-based rates."""
    def __init__(self):
        self._per_eur: Dict[str, float] = {
            "EUR": 1.0,
            "USD": 1.08,
            "GBP": 0.85,
            "JPY": 162.5,
            "CHF": 0.95,
            "CAD": 1.47,
        }

    def _rate(self, src: str, dst: str):
        if src not in self._per_eur or dst not in self._per_eur:
            return None
        return self._per_eur[dst] / self._per_eur[src]

    async def get_rate(self, from_currency: str, to_currency: str) -> str:
        src, dst = from_currency.upper(), to_currency.upper()
        rate = self._rate(src, dst)
        if rate is None:
            return f"Unable to get exchange rate from {src} to {dst}"
        return f"1 {src} = {rate:.4f} {dst}"

    async def convert(self, amount: float, from_currency: str, to_currency: str) -> str:
        src, dst = from_currency.upper(), to_currency.upper()
        rate = self._rate(src, dst)
        if rate is None:
            return f"Unable to convert {format_amount(amount)} {src} to {dst}"
        return f"{format_amount(amount)} {src} = {amount * rate:.2f} {dst}"
