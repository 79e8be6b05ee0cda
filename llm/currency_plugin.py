import json
import logging
from typing import Any, Dict, List

from base import ExchangeRateAPIBase


CURRENCY_TOOLS: List[Dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "get_exchange_rate",
            "description": "Get current exchange rate between two currencies using Frankfurter API",
            "parameters": {
                "type": "object",
                "properties": {
                    "from_currency": {"type": "string", "description": "Source currency code (e.g., USD, EUR, GBP)"},
                    "to_currency": {"type": "string", "description": "Target currency code (e.g., USD, EUR, GBP)"},
                },
                "required": ["from_currency", "to_currency"],
                "additionalProperties": False,
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "convert_currency",
            "description": "Convert amount from one currency to another using current exchange rates",
            "parameters": {
                "type": "object",
                "properties": {
                    "amount": {"type": "number", "description": "Amount to convert"},
                    "from_currency": {"type": "string", "description": "Source currency code (e.g., USD, EUR, GBP)"},
                    "to_currency": {"type": "string", "description": "Target currency code (e.g., USD, EUR, GBP)"},
                },
                "required": ["amount", "from_currency", "to_currency"],
                "additionalProperties": False,
            },
        },
    },
]


class CurrencyPlugin:
    """Currency tools exposed to the model. Every result is text."""

    name = "CurrencyPlugin"
    tools = CURRENCY_TOOLS

    def __init__(self, rates: ExchangeRateAPIBase):
        self.rates = rates
        self.logger = logging.getLogger("app")

    async def call(self, name: str, arguments: str) -> str:
        try:
            args = json.loads(arguments or "{}")
        except json.JSONDecodeError:
            self.logger.warning(f"Invalid tool arguments for {name}: {arguments!r}")
            return f"Invalid arguments for {name}"

        try:
            if name == "get_exchange_rate":
                return await self.rates.get_rate(str(args["from_currency"]), str(args["to_currency"]))
            if name == "convert_currency":
                return await self.rates.convert(float(args["amount"]), str(args["from_currency"]), str(args["to_currency"]))
        except (KeyError, TypeError, ValueError) as e:
            self.logger.warning(f"Bad arguments for {name}: {e}")
            return f"Invalid arguments for {name}: {e}"
        return f"Unknown tool {name}"
