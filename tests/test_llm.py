"""Tests for utils.llm — streaming call, retry and client setup."""

from unittest.mock import MagicMock, patch

import anthropic
import httpx
import pytest

from core.errors import ExternalServiceError
from utils.llm import AnthropicService, call_llm, get_client


def _stream_client(chunks, stop_reason="end_turn"):
    client = MagicMock()
    stream = client.messages.stream.return_value.__enter__.return_value
    stream.text_stream = iter(chunks)
    stream.get_final_message.return_value = MagicMock(stop_reason=stop_reason)
    return client


def _connection_error():
    return anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com"))


def test_call_llm_joins_stream():
    client = _stream_client(["[CODE_", "START]"])
    assert call_llm("sys", "hi", client=client, model="m", max_tokens=10) == "[CODE_START]"
    kwargs = client.messages.stream.call_args.kwargs
    assert kwargs["system"] == "sys"
    assert kwargs["messages"] == [{"role": "user", "content": "hi"}]
    assert kwargs["max_tokens"] == 10


def test_call_llm_marks_truncation():
    client = _stream_client(["partial"], stop_reason="max_tokens")
    text = call_llm("sys", "hi", client=client, model="m", max_tokens=10)
    assert text.startswith("partial")
    assert "TRUNCATED" in text


@patch("utils.llm.time.sleep")
def test_call_llm_retries_once(mock_sleep):
    client = _stream_client(["ok"])
    client.messages.stream.side_effect = [_connection_error(), client.messages.stream.return_value]
    assert call_llm("sys", "hi", client=client, model="m", max_tokens=10) == "ok"
    assert client.messages.stream.call_count == 2
    mock_sleep.assert_called_once()


@patch("utils.llm.time.sleep")
def test_call_llm_second_failure_raises(mock_sleep):
    client = MagicMock()
    client.messages.stream.side_effect = [_connection_error(), _connection_error()]
    with pytest.raises(ExternalServiceError, match="anthropic"):
        call_llm("sys", "hi", client=client, model="m", max_tokens=10)


def test_get_client_requires_key(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    with pytest.raises(ExternalServiceError, match="ANTHROPIC_API_KEY"):
        get_client()


@patch("utils.llm.anthropic.Anthropic")
def test_get_client_passes_timeout(mock_anthropic, monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    monkeypatch.setenv("FEATURESMITH_LLM_TIMEOUT", "30")
    get_client()
    mock_anthropic.assert_called_once_with(api_key="test-key", timeout=30.0)


def test_service_creates_client_lazily(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    service = AnthropicService()
    with pytest.raises(ExternalServiceError):
        service.invoke("hello")


def test_service_invoke_uses_given_client():
    client = _stream_client(["done"])
    service = AnthropicService(system_prompt="be brief", client=client, model="m", max_tokens=5)
    assert service.invoke("hello") == "done"
    assert client.messages.stream.call_args.kwargs["system"] == "be brief"
