import copy
from typing import Any, Dict, List, Optional

import pytest

from agent import TravelAgent
from base import CompletionHandle, ExchangeRateAPIBase
from memory.session_registry import SessionRegistry
from models import CompletionResult, ToolCallRequest


class FakeHandle(CompletionHandle):
    """Scripted completion handle.

    `replies` feeds complete(); `rounds` feeds stream(), one list of pieces per
    call. The last entry repeats once the script runs out.
    """

    def __init__(self, replies: Optional[List[CompletionResult]] = None,
                 rounds: Optional[List[List[CompletionResult]]] = None,
                 error: Optional[Exception] = None):
        self.replies = list(replies or [CompletionResult(content="Hello traveler")])
        self.rounds = list(rounds or [[CompletionResult(content="Hello "), CompletionResult(content="traveler")]])
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, messages, tools=None):
        self.calls.append({"kind": "complete", "messages": copy.deepcopy(messages), "tools": tools})
        if self.error:
            raise self.error
        return self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]

    async def stream(self, messages, tools=None):
        self.calls.append({"kind": "stream", "messages": copy.deepcopy(messages), "tools": tools})
        if self.error:
            raise self.error
        pieces = self.rounds.pop(0) if len(self.rounds) > 1 else self.rounds[0]
        for piece in pieces:
            yield piece


class FakeProvider:
    def __init__(self, handle: Optional[CompletionHandle] = None, errors: Optional[List[Exception]] = None):
        self.handle = handle or FakeHandle()
        self.errors = list(errors or [])
        self.resolve_calls = 0

    def resolve(self) -> CompletionHandle:
        self.resolve_calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.handle


class FakeRates(ExchangeRateAPIBase):
    def __init__(self):
        self.calls: List[tuple] = []

    async def get_rate(self, from_currency, to_currency):
        self.calls.append(("get_rate", from_currency, to_currency))
        return f"1 {from_currency.upper()} = 0.9200 {to_currency.upper()}"

    async def convert(self, amount, from_currency, to_currency):
        self.calls.append(("convert", amount, from_currency, to_currency))
        return f"{amount:g} {from_currency.upper()} = {amount * 0.92:.2f} {to_currency.upper()}"


class CountingAgent(TravelAgent):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.invoke_calls = 0
        self.stream_calls = 0

    async def invoke(self, text, session_id="default"):
        self.invoke_calls += 1
        return await super().invoke(text, session_id)

    async def stream(self, text, session_id="default"):
        self.stream_calls += 1
        async for response in super().stream(text, session_id):
            yield response


def tool_call(name: str, arguments: str, call_id: str = "call_1") -> CompletionResult:
    return CompletionResult(tool_calls=[ToolCallRequest(id=call_id, name=name, arguments=arguments)])


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return SessionRegistry(ttl_seconds=2 * 60 * 60, sweep_interval=300, clock=clock)


@pytest.fixture
def rates():
    return FakeRates()


@pytest.fixture
def handle():
    return FakeHandle()


@pytest.fixture
def provider(handle):
    return FakeProvider(handle)
