"""Tests for the LiteLLM-backed generation client (litellm mocked)."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from docwarehouse.exceptions import GenerationError
from docwarehouse.services.circuit_breaker import CircuitBreakerOpen, CircuitState, get_breaker
from docwarehouse.services.llm_client import LiteLLMClient, collect_stream


def _response(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def _chunks(*parts):
    return iter([SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=p))]) for p in parts])


class TestComplete:
    @patch("docwarehouse.services.llm_client.litellm.completion")
    def test_returns_message_content(self, completion):
        completion.return_value = _response("hello")
        client = LiteLLMClient("openai/test-model", api_key="k", api_base="http://llm", timeout=30, max_tokens=100)

        assert client.complete("prompt") == "hello"

        kwargs = completion.call_args.kwargs
        assert kwargs["model"] == "openai/test-model"
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]
        assert kwargs["timeout"] == 30
        assert kwargs["api_key"] == "k"
        assert kwargs["api_base"] == "http://llm"
        assert kwargs["max_tokens"] == 100
        assert kwargs["stream"] is False

    @patch("docwarehouse.services.llm_client.litellm.completion")
    def test_optional_kwargs_omitted(self, completion):
        completion.return_value = _response(None)
        assert LiteLLMClient("m").complete("p") == ""
        assert "api_key" not in completion.call_args.kwargs
        assert "max_tokens" not in completion.call_args.kwargs

    @patch("docwarehouse.services.llm_client.litellm.completion")
    def test_errors_wrapped_and_open_circuit(self, completion):
        completion.side_effect = RuntimeError("503")
        client = LiteLLMClient("flaky-model")
        for _ in range(3):
            with pytest.raises(GenerationError):
                client.complete("p")
        assert get_breaker("flaky-model").state == CircuitState.OPEN
        with pytest.raises(CircuitBreakerOpen):
            client.complete("p")


class TestStreaming:
    @patch("docwarehouse.services.llm_client.litellm.completion")
    def test_fragments_concatenated(self, completion):
        completion.return_value = _chunks("Hel", None, "lo")
        client = LiteLLMClient("m")
        assert collect_stream(client, "p") == "Hello"
        assert completion.call_args.kwargs["stream"] is True

    @patch("docwarehouse.services.llm_client.litellm.completion")
    def test_stream_error_wrapped(self, completion):
        def broken():
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content="x"))])
            raise ConnectionError("reset")

        completion.return_value = broken()
        with pytest.raises(GenerationError):
            collect_stream(LiteLLMClient("m"), "p")
        assert get_breaker("m")._failure_count == 1
