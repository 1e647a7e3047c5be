"""
Inference client interface for codepilot.

This module is the only place that *directly* calls an LLM.  Everything else (agent loop, tools,
memory) stays model-agnostic and talks to an :class:`InferenceClient`.

Out of the box we ship an OpenAI-compatible chat-completions client.  Additional providers can be
added by implementing :class:`InferenceClient` and registering the class via
:func:`register_client`.
"""

from typing import (
    Any,
    Callable,
    Dict,
    List,
    Protocol,
    Sequence,
    Type,
    runtime_checkable,
)

import httpx
import openai

from codepilot.config import Settings
from codepilot.core.logger import (
    Logger,
    NoopLogger,
)
from codepilot.core.schema import (
    AssistantReply,
    Message,
    parse_tool_call,
)


class InferenceError(RuntimeError):
    """Raised when the inference endpoint cannot produce a reply."""


@runtime_checkable
class InferenceClient(Protocol):
    """Synchronous chat-completion endpoint with tool calling."""

    def chat_completion(
        self,
        context: Sequence[Message],
        model: str,
        max_tokens: int,
        tools: Sequence[Dict[str, Any]],
    ) -> AssistantReply:
        """Return the assistant reply for *context*, or raise :class:`InferenceError`."""


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_CLIENT_REGISTRY: Dict[str, Callable[..., InferenceClient]] = {}


def register_client(name: str) -> Callable:
    """Decorator to register an inference client class under *name*."""

    def wrapper(cls: Type) -> Type:
        _CLIENT_REGISTRY[name] = cls
        return cls

    return wrapper


def load_client(name: str, settings: Settings, logger: Logger | None = None) -> InferenceClient:
    """Factory that returns an instantiated inference client."""
    factory = _CLIENT_REGISTRY.get(name.lower())
    if factory is None:
        raise ValueError(f"Inference client '{name}' is not registered.")
    return factory.from_settings(settings, logger=logger)  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# Concrete clients
# ---------------------------------------------------------------------------
@register_client("openai")
class OpenAIInferenceClient:
    """OpenAI (or OpenAI-compatible) chat-completions client."""

    def __init__(self, client: openai.OpenAI, logger: Logger | None = None) -> None:
        self._client = client
        self._log = logger or NoopLogger()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        logger: Logger | None = None,
        http_client: httpx.Client | None = None,
    ) -> "OpenAIInferenceClient":
        client = openai.OpenAI(
            api_key=settings.OPENAI_API_KEY or "missing",
            base_url=settings.OPENAI_API_BASE_URL or None,
            timeout=float(settings.REQUEST_TIMEOUT),
            max_retries=0,
            http_client=http_client,
        )
        return cls(client, logger=logger)

    def chat_completion(
        self,
        context: Sequence[Message],
        model: str,
        max_tokens: int,
        tools: Sequence[Dict[str, Any]],
    ) -> AssistantReply:
        params: Dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [message.to_param() for message in context],
        }
        if tools:
            params["tools"] = list(tools)

        try:
            resp = self._client.chat.completions.create(**params)
        except openai.OpenAIError as exc:
            self._log.error("API call failed: %s", exc)
            raise InferenceError(f"chat completion failed: {exc}") from exc

        if not resp.choices:
            self._log.error("API call returned no choices")
            raise InferenceError("chat completion returned no choices")

        message = resp.choices[0].message
        raw_calls: List[Dict[str, Any]] = [tc.model_dump() for tc in (message.tool_calls or [])]
        reply = AssistantReply(
            content=message.content or None,
            tool_calls=[parse_tool_call(raw) for raw in raw_calls],
        )
        self._log.debug(
            "API call successful: content=%d chars, tool_calls=%d",
            len(reply.content or ""),
            len(reply.tool_calls),
        )
        return reply
