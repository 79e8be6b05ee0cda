from abc import ABC, abstractmethod
from typing import (
    Any,
    AsyncIterator,
    Dict,
    List,
    Optional
)

from models import CompletionResult


class ConfigurationError(Exception):
    """Raised when a required setting is missing."""


class CompletionHandle(ABC):

    @abstractmethod
    async def complete(self, messages: List[Dict[str, Any]],
                       tools: Optional[List[Dict[str, Any]]] = None) -> CompletionResult:
        """Single-shot completion"""

    @abstractmethod
    def stream(self, messages: List[Dict[str, Any]],
               tools: Optional[List[Dict[str, Any]]] = None) -> AsyncIterator[CompletionResult]:
        """Incremental completion"""

    async def aclose(self) -> None:
        """Release the underlying client"""


class ExchangeRateAPIBase(ABC):

    @abstractmethod
    async def get_rate(self, from_currency: str, to_currency: str) -> str:
        """Get exchange rate"""

    @abstractmethod
    async def convert(self, amount: float, from_currency: str, to_currency: str) -> str:
        """Convert amount"""

    async def aclose(self) -> None:
        """Release network resources"""
