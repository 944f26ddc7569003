"""
Tests for provider selection in LLMClient. Provider calls are patched; no network.
"""

from unittest.mock import MagicMock, patch

import pytest

from inquiro.core.errors import ServiceUnavailableError
from inquiro.llm.client import LLMClient


def test_not_configured_raises() -> None:
    client = LLMClient()
    assert client.configured is False
    with pytest.raises(ServiceUnavailableError):
        client.generate("hello")


def test_openai_used_when_key_set() -> None:
    client = LLMClient(openai_api_key="sk-test", hf_api_key="hf_test")
    with patch.object(client, "_call_openai", return_value="From OpenAI") as openai_call, \
            patch.object(client, "_call_hf") as hf_call:
        assert client.generate("hello", max_tokens=100) == "From OpenAI"
    openai_call.assert_called_once_with("hello", 100)
    hf_call.assert_not_called()


def test_empty_openai_falls_back_to_hf() -> None:
    client = LLMClient(openai_api_key="sk-test", hf_api_key="hf_test")
    with patch.object(client, "_call_openai", return_value=""), \
            patch.object(client, "_call_hf", return_value="From HF") as hf_call:
        assert client.generate("hello") == "From HF"
    hf_call.assert_called_once_with("hello", 512)


def test_every_provider_empty_raises() -> None:
    client = LLMClient(openai_api_key="sk-test", hf_api_key="hf_test")
    with patch.object(client, "_call_openai", return_value=""), \
            patch.object(client, "_call_hf", return_value=""):
        with pytest.raises(ServiceUnavailableError):
            client.generate("hello")


def test_hf_only_posts_chat_completion() -> None:
    client = LLMClient(hf_api_key="hf_test", hf_model="some/model")
    http = MagicMock()
    http.post.return_value = MagicMock(
        status_code=200,
        json=MagicMock(return_value={"choices": [{"message": {"content": "  Answer.  "}}]}),
    )
    with patch("inquiro.llm.client.httpx.Client") as client_cls:
        client_cls.return_value.__enter__.return_value = http
        assert client.generate("hello", max_tokens=64) == "Answer."

    payload = http.post.call_args.kwargs["json"]
    assert payload["model"] == "some/model"
    assert payload["max_tokens"] == 64
    assert payload["messages"] == [{"role": "user", "content": "hello"}]


def test_hf_error_status_is_unavailable() -> None:
    client = LLMClient(hf_api_key="hf_test")
    http = MagicMock()
    http.post.return_value = MagicMock(status_code=500, text="server error")
    with patch("inquiro.llm.client.httpx.Client") as client_cls:
        client_cls.return_value.__enter__.return_value = http
        with pytest.raises(ServiceUnavailableError):
            client.generate("hello")
