"""LLM provider client used by the orchestrator and the summarizer.

The provider is reached through LangChain's ``ChatAnthropic``.  One chat
model is built (lazily, then reused) per ``(credential, model)`` pair so
that rotating credentials never re-creates clients on every attempt.

SDK-level retries are switched off: a failed attempt is surfaced
immediately as :class:`~advisor_agent.errors.TransportError` and the
orchestrator decides whether to try the next credential.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Sequence
from typing import Any, Protocol

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from advisor_agent.errors import TransportError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 60.0

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class ChatProvider(Protocol):
    """What the orchestrator needs from a language-generation backend."""

    def generate_structured(
        self,
        credential: str,
        system_instruction: str,
        messages: Sequence[BaseMessage],
    ) -> str:
        """Return raw text expected to be the JSON reply object."""
        ...

    def generate_text(self, credential: str, prompt: str) -> str:
        """Return free text for an unstructured prompt (summaries)."""
        ...


def content_text(content: Any) -> str:
    """Flatten a chat-model message ``content`` into plain text.

    Anthropic may return either a string or a list of content blocks;
    only ``text`` blocks are kept.
    """
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def strip_code_fence(text: str) -> str:
    """Remove a single surrounding ```json fence, if the model added one."""
    text = text.strip()
    match = _CODE_FENCE.match(text)
    return match.group(1) if match else text


class AnthropicProvider:
    """``ChatProvider`` backed by Claude through ``langchain_anthropic``."""

    def __init__(
        self,
        model_name: str,
        *,
        summary_model_name: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self.model_name = model_name
        self.summary_model_name = summary_model_name or model_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._models: dict[tuple[str, str], ChatAnthropic] = {}
        self._lock = threading.Lock()

    def _build_llm(self, credential: str, model_name: str) -> ChatAnthropic:
        return ChatAnthropic(
            model=model_name,
            api_key=credential,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout=self.timeout,
            max_retries=0,  # rotation is the retry policy
        )

    def _llm(self, credential: str, model_name: str) -> ChatAnthropic:
        key = (credential, model_name)
        with self._lock:
            llm = self._models.get(key)
            if llm is None:
                llm = self._build_llm(credential, model_name)
                self._models[key] = llm
            return llm

    def _invoke(self, llm: ChatAnthropic, messages: list[BaseMessage]) -> str:
        try:
            response = llm.invoke(messages)
        except Exception as exc:
            raise TransportError(
                f"{type(exc).__name__}: {exc}",
                status_code=getattr(exc, "status_code", None),
                error_type=type(exc).__name__,
            ) from exc

        text = content_text(response.content)
        if not text.strip():
            raise TransportError("Provider returned no response text", error_type="EmptyResponse")
        return text

    def generate_structured(
        self,
        credential: str,
        system_instruction: str,
        messages: Sequence[BaseMessage],
    ) -> str:
        llm = self._llm(credential, self.model_name)
        text = self._invoke(llm, [SystemMessage(content=system_instruction), *messages])
        return strip_code_fence(text)

    def generate_text(self, credential: str, prompt: str) -> str:
        llm = self._llm(credential, self.summary_model_name)
        return self._invoke(llm, [HumanMessage(content=prompt)]).strip()
