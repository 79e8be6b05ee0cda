import asyncio
import logging
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

from base import CompletionHandle, ExchangeRateAPIBase
from config.settings import settings
from llm.azure_openai import CompletionProvider
from llm.currency_plugin import CurrencyPlugin
from models import AgentResponse, CompletionResult
from prompts import PROMPTS
from utils import get_api_class

agent_cfg = settings.agent

EMPTY_REPLY = "I apologize, but I couldn't generate a response. Please try again."
ERROR_REPLY = "I apologize, but I encountered an error processing your request. Please try again."


class AgentState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class TravelAgent:
    """Travel assistant backed by a hosted chat model with currency tools.

    Initialization is lazy and single-flight: the first caller starts it,
    concurrent callers await the same attempt, and a failed attempt is retried
    on the next call.
    """

    name = "TravelManagerAgent"

    def __init__(
        self,
        provider: CompletionProvider,
        exchange_rates: Optional[ExchangeRateAPIBase] = None,
        max_tool_rounds: int = agent_cfg.max_tool_rounds,
    ):
        self.provider = provider
        self.exchange_rates = exchange_rates
        self.max_tool_rounds = max_tool_rounds
        self.state = AgentState.UNINITIALIZED
        self._handle: Optional[CompletionHandle] = None
        self._plugin: Optional[CurrencyPlugin] = None
        self._init_task: Optional[asyncio.Future] = None
        self._lock = asyncio.Lock()
        self.logger = logging.getLogger("app")

    def log(self, session_id: str, msg: str, level: str = "info"):
        extra = {'extra_data': {"session_id": session_id, "agent": self.name}}
        getattr(self.logger, level)(msg, extra=extra)

    async def _initialize(self) -> None:
        self.logger.info("Initializing travel agent")
        handle = self.provider.resolve()
        rates = self.exchange_rates
        if rates is None:
            rates = get_api_class(settings.modules.exchange_rate_client_name)()
        self._plugin = CurrencyPlugin(rates)
        self._handle = handle
        self.state = AgentState.READY
        self.logger.info("Travel agent initialized successfully")

    async def ensure_ready(self) -> None:
        if self.state is AgentState.READY:
            return
        async with self._lock:
            if self._init_task is None:
                self.state = AgentState.INITIALIZING
                self._init_task = asyncio.ensure_future(self._initialize())
            task = self._init_task
        try:
            await asyncio.shield(task)
        except Exception:
            async with self._lock:
                if self._init_task is task:
                    self._init_task = None
                    self.state = AgentState.FAILED
            self.logger.exception("Failed to initialize travel agent")
            raise

    def _messages(self, text: str) -> List[Dict[str, Any]]:
        return [
            {"role": "system", "content": PROMPTS['travel_manager'].strip()},
            {"role": "user", "content": text},
        ]

    async def _run_tools(self, messages: List[Dict[str, Any]], result: CompletionResult,
                         used: List[str]) -> None:
        messages.append({
            "role": "assistant",
            "content": result.content or None,
            "tool_calls": [
                {"id": tc.id, "type": "function", "function": {"name": tc.name, "arguments": tc.arguments}}
                for tc in result.tool_calls
            ],
        })
        for tc in result.tool_calls:
            output = await self._plugin.call(tc.name, tc.arguments)
            used.append(tc.name)
            messages.append({"role": "tool", "tool_call_id": tc.id, "content": output})

    def _final(self, content: str, used: List[str]) -> AgentResponse:
        if not content.strip():
            return AgentResponse.final(EMPTY_REPLY, self.name)
        return AgentResponse.final(content, self.name, metadata={"tools": used} if used else None)

    async def invoke(self, text: str, session_id: str = "default") -> AgentResponse:
        self.log(session_id, f"Processing sync request: {text}")
        try:
            await self.ensure_ready()
            messages = self._messages(text)
            used: List[str] = []
            for _ in range(self.max_tool_rounds):
                result = await self._handle.complete(messages, tools=self._plugin.tools)
                if not result.tool_calls:
                    break
                await self._run_tools(messages, result, used)
            else:
                result = await self._handle.complete(messages)
            return self._final(result.content, used)
        except Exception:
            self.log(session_id, "Error processing sync request", level="exception")
            return AgentResponse.error(ERROR_REPLY, self.name)

    async def stream(self, text: str, session_id: str = "default") -> AsyncIterator[AgentResponse]:
        """Yield the reply as a sequence ending in one task-complete response.

        Upstream fragments are collected and sent as a single terminal
        response; callers must not rely on the sequence having length one.
        """
        self.log(session_id, f"Processing user request: {text}")
        try:
            await self.ensure_ready()
            messages = self._messages(text)
            used: List[str] = []
            fragments: List[str] = []
            for round_no in range(self.max_tool_rounds + 1):
                tools = self._plugin.tools if round_no < self.max_tool_rounds else None
                parts: List[str] = []
                calls = []
                async for piece in self._handle.stream(messages, tools=tools):
                    if piece.content:
                        parts.append(piece.content)
                    calls.extend(piece.tool_calls)
                if not calls:
                    fragments = parts
                    break
                await self._run_tools(messages, CompletionResult(content="".join(parts), tool_calls=calls), used)
            response = self._final("".join(fragments), used)
        except Exception:
            self.log(session_id, "Error processing user request", level="exception")
            response = AgentResponse.error(ERROR_REPLY, self.name)
        yield response

    async def aclose(self) -> None:
        if self._plugin is not None:
            await self._plugin.rates.aclose()
