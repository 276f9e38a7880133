"""Generation service client.

``GenerationClient`` is the seam the pipeline talks to; ``LiteLLMClient``
implements it with ``litellm.completion`` so any provider LiteLLM supports
can be configured through a model string.
"""

import logging
import time
from typing import Iterator, Optional, Protocol

import litellm

from ..core.config import settings
from ..exceptions import GenerationError, GenerationTimeoutError
from .circuit_breaker import CircuitBreakerOpen, get_breaker, run_with_timeout

logger = logging.getLogger(__name__)


class GenerationClient(Protocol):
    """Text generation collaborator."""

    def complete(self, prompt: str) -> str:
        """Single non-streaming completion."""
        ...

    def complete_streaming(self, prompt: str) -> Iterator[str]:
        """Streaming completion yielding text fragments in order."""
        ...


def collect_stream(client: GenerationClient, prompt: str) -> str:
    """Concatenate every fragment of a streaming completion."""
    return "".join(fragment for fragment in client.complete_streaming(prompt) if fragment)


class LiteLLMClient:
    """GenerationClient backed by litellm.

    Every call is bounded: the request timeout goes to litellm, the
    non-streaming path also runs under ``run_with_timeout`` and streaming
    checks a deadline between chunks. Both paths feed the per-model
    circuit breaker.
    """

    def __init__(
        self,
        model: str,
        api_key: str = "",
        api_base: str = "",
        timeout: float = 600,
        max_tokens: int = 0,
    ) -> None:
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.timeout = timeout
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, model: Optional[str] = None) -> "LiteLLMClient":
        return cls(
            model=model or settings.chat_model,
            api_key=settings.llm_api_key,
            api_base=settings.llm_api_base,
            timeout=settings.llm_timeout_seconds,
            max_tokens=settings.llm_max_tokens,
        )

    def _request_kwargs(self, prompt: str, stream: bool) -> dict:
        kwargs: dict = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "timeout": self.timeout,
            "stream": stream,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.max_tokens:
            kwargs["max_tokens"] = self.max_tokens
        return kwargs

    def complete(self, prompt: str) -> str:
        def _call() -> str:
            response = litellm.completion(**self._request_kwargs(prompt, stream=False))
            return response.choices[0].message.content or ""

        try:
            return run_with_timeout(_call, self.timeout, label=self.model)
        except (GenerationTimeoutError, CircuitBreakerOpen):
            raise
        except Exception as e:
            raise GenerationError(f"Generation failed: {e}", model=self.model) from e

    def complete_streaming(self, prompt: str) -> Iterator[str]:
        breaker = get_breaker(self.model)
        breaker.check()
        deadline = time.monotonic() + self.timeout

        try:
            response = litellm.completion(**self._request_kwargs(prompt, stream=True))
            for chunk in response:
                if time.monotonic() > deadline:
                    raise GenerationTimeoutError(f"{self.model} stream", self.timeout)
                if not chunk.choices:
                    continue
                fragment = chunk.choices[0].delta.content
                if fragment:
                    yield fragment
        except GenerationTimeoutError:
            breaker.record_failure()
            logger.error("Streaming from %s exceeded %ss", self.model, self.timeout)
            raise
        except Exception as e:
            breaker.record_failure()
            raise GenerationError(f"Streaming generation failed: {e}", model=self.model) from e
        breaker.record_success()
