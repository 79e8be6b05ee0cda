import logging
import threading
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from azure.identity.aio import DefaultAzureCredential, get_bearer_token_provider
from openai import AsyncAzureOpenAI
from tenacity import (
    retry,
    stop_after_attempt,
    wait_random_exponential
)

from base import CompletionHandle, ConfigurationError
from config.settings import AzureOpenAISettings, settings
from models import CompletionResult, ToolCallRequest

agent_cfg = settings.agent

COGNITIVE_SERVICES_SCOPE = "https://cognitiveservices.azure.com/.default"


class AzureOpenAIHandle(CompletionHandle):
    def __init__(self, client: AsyncAzureOpenAI, deployment: str, credential_mode: str):
        self.client = client
        self.deployment = deployment
        self.credential_mode = credential_mode
        self.logger = logging.getLogger("app")

    @retry(wait=wait_random_exponential(min=1, max=5), stop=stop_after_attempt(agent_cfg.max_retries), reraise=True)
    async def _create(self, messages: List[Dict[str, Any]], tools: Optional[List[Dict[str, Any]]], stream: bool):
        kwargs: Dict[str, Any] = {
            "model": self.deployment,
            "messages": messages,
            "temperature": agent_cfg.temperature,
            "stream": stream,
        }
        if tools:
            kwargs["tools"] = tools
        return await self.client.chat.completions.create(**kwargs)

    async def complete(self, messages: List[Dict[str, Any]],
                       tools: Optional[List[Dict[str, Any]]] = None) -> CompletionResult:
        resp = await self._create(messages, tools, stream=False)
        message = resp.choices[0].message
        calls = [
            ToolCallRequest(id=tc.id, name=tc.function.name, arguments=tc.function.arguments or "{}")
            for tc in (message.tool_calls or [])
        ]
        return CompletionResult(content=message.content or "", tool_calls=calls)

    async def stream(self, messages: List[Dict[str, Any]],
                     tools: Optional[List[Dict[str, Any]]] = None) -> AsyncIterator[CompletionResult]:
        """Yield text fragments as they arrive.

        Tool call deltas are assembled by index and, if the model asked for any,
        yielded together as the last item.
        """
        upstream = await self._create(messages, tools, stream=True)
        pending: Dict[int, Dict[str, str]] = {}
        try:
            async for chunk in upstream:
                # Azure sends a prompt-filter chunk with no choices first
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta.content:
                    yield CompletionResult(content=delta.content)
                for tc in delta.tool_calls or []:
                    slot = pending.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
                    if tc.id:
                        slot["id"] = tc.id
                    if tc.function is not None:
                        slot["name"] += tc.function.name or ""
                        slot["arguments"] += tc.function.arguments or ""
        finally:
            await upstream.close()
        if pending:
            yield CompletionResult(tool_calls=[ToolCallRequest(**pending[i]) for i in sorted(pending)])

    async def aclose(self) -> None:
        await self.client.close()


class CompletionProvider:
    """Resolves the Azure OpenAI deployment into a CompletionHandle.

    The handle is cached after the first successful resolution. A failed
    resolution is not cached, so the next call tries again.
    """

    def __init__(self, settings_factory: Callable[[], AzureOpenAISettings] = AzureOpenAISettings):
        self._settings_factory = settings_factory
        self._handle: Optional[CompletionHandle] = None
        self._credential: Optional[DefaultAzureCredential] = None
        self._lock = threading.Lock()
        self.logger = logging.getLogger("app")

    def resolve(self) -> CompletionHandle:
        if self._handle is not None:
            return self._handle
        with self._lock:
            if self._handle is None:
                self._handle = self._build(self._settings_factory())
            return self._handle

    def _build(self, az: AzureOpenAISettings) -> CompletionHandle:
        if not az.endpoint:
            raise ConfigurationError("AZURE_OPENAI_ENDPOINT is required")
        if not az.deployment_name:
            raise ConfigurationError("AZURE_OPENAI_DEPLOYMENT_NAME is required")
        if not az.api_version:
            raise ConfigurationError("AZURE_OPENAI_API_VERSION is required")

        common = {
            "azure_endpoint": az.endpoint,
            "api_version": az.api_version,
            "timeout": agent_cfg.request_timeout_seconds,
            "max_retries": 0,  # retries are handled by tenacity
        }
        if az.api_key:
            self.logger.info("Using API key authentication for Azure OpenAI")
            client = AsyncAzureOpenAI(api_key=az.api_key, **common)
            mode = "key"
        else:
            self.logger.info("Using Azure managed identity for authentication")
            self._credential = DefaultAzureCredential()
            token_provider = get_bearer_token_provider(self._credential, COGNITIVE_SERVICES_SCOPE)
            client = AsyncAzureOpenAI(azure_ad_token_provider=token_provider, **common)
            mode = "identity"
        return AzureOpenAIHandle(client, az.deployment_name, mode)

    async def aclose(self) -> None:
        """Close the cached client and credential; the next resolve() rebuilds them."""
        with self._lock:
            handle, credential = self._handle, self._credential
            self._handle, self._credential = None, None
        if handle is not None:
            await handle.aclose()
        if credential is not None:
            await credential.close()
        self.logger.info("Completion provider closed")
