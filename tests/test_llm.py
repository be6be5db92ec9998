"""Tests for literatus/llm.py — openai SDK wrapper for OpenAI-compatible backends."""

import json
import logging
import os
import pytest
from unittest.mock import MagicMock, patch

from literatus.models import Config, LLMError
from literatus.llm import (
    ChatClient,
    _extract_json,
    _status_code,
    call_llm,
    create_client,
    resolve_api_key,
)

_KEY_VARS = ("LLM_API_KEY", "PERPLEXITY_API_KEY", "ANTHROPIC_API_KEY")


@pytest.fixture
def no_key_env(monkeypatch):
    for name in _KEY_VARS:
        monkeypatch.delenv(name, raising=False)


def _mock_completion(mock_openai, content='{"k":"v"}'):
    mock_chat = MagicMock()
    mock_openai.return_value.chat = mock_chat
    mock_chat.completions.create.return_value = MagicMock(
        choices=[MagicMock(message=MagicMock(content=content))]
    )
    return mock_chat


# ---------------------------------------------------------------------------
# API key resolution and create_client
# ---------------------------------------------------------------------------


def test_create_client_returns_chat_client():
    """create_client returns a ChatClient defaulting to the analysis model."""
    config = Config(api_key="sk-test", analyze_model="sonar-pro")
    client = create_client(config)
    assert isinstance(client, ChatClient)
    assert client.model == "sonar-pro"
    assert client.base_url == "https://api.perplexity.ai"


def test_create_client_uses_config_api_key():
    config = Config(api_key="sk-explicit-key")
    with patch("literatus.llm._openai.OpenAI") as mock_openai:
        create_client(config)
    _, kwargs = mock_openai.call_args
    assert kwargs["api_key"] == "sk-explicit-key"
    assert kwargs["base_url"] == "https://api.perplexity.ai"


def test_create_client_uses_env_api_key_when_config_key_is_none(no_key_env):
    config = Config(api_key=None)
    with (
        patch("literatus.llm._openai.OpenAI") as mock_openai,
        patch.dict(os.environ, {"PERPLEXITY_API_KEY": "pplx-env-key"}),
    ):
        create_client(config)
    _, kwargs = mock_openai.call_args
    assert kwargs["api_key"] == "pplx-env-key"


def test_resolve_api_key_order(no_key_env, monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "third")
    assert resolve_api_key(Config()) == "third"
    monkeypatch.setenv("PERPLEXITY_API_KEY", "second")
    assert resolve_api_key(Config()) == "second"
    monkeypatch.setenv("LLM_API_KEY", "first")
    assert resolve_api_key(Config()) == "first"
    assert resolve_api_key(Config(api_key="explicit")) == "explicit"


def test_create_client_without_any_key_raises(no_key_env):
    with pytest.raises(LLMError, match="No API key"):
        create_client(Config(api_key=None))


# ---------------------------------------------------------------------------
# ChatClient.complete
# ---------------------------------------------------------------------------


def test_complete_passes_timeout():
    with patch("literatus.llm._openai.OpenAI") as mock_openai:
        mock_chat = _mock_completion(mock_openai)
        client = create_client(Config(api_key="k", timeout_s=42))
        client.complete("hello")
    call_kwargs = mock_chat.completions.create.call_args[1]
    assert call_kwargs.get("timeout") == 42


def test_complete_omits_max_tokens_when_not_configured():
    with patch("literatus.llm._openai.OpenAI") as mock_openai:
        mock_chat = _mock_completion(mock_openai)
        client = create_client(Config(api_key="k"))
        client.complete("hello")
    call_kwargs = mock_chat.completions.create.call_args[1]
    assert "max_tokens" not in call_kwargs


def test_complete_passes_max_tokens_when_configured():
    with patch("literatus.llm._openai.OpenAI") as mock_openai:
        mock_chat = _mock_completion(mock_openai)
        client = create_client(Config(api_key="k", max_output_tokens=8192))
        client.complete("hello")
    call_kwargs = mock_chat.completions.create.call_args[1]
    assert call_kwargs.get("max_tokens") == 8192


def test_complete_sends_system_message_and_model_override():
    with patch("literatus.llm._openai.OpenAI") as mock_openai:
        mock_chat = _mock_completion(mock_openai)
        client = create_client(Config(api_key="k"))
        response = client.complete("hello", model="sonar", system="be terse")
    call_kwargs = mock_chat.completions.create.call_args[1]
    assert call_kwargs["model"] == "sonar"
    assert call_kwargs["messages"] == [
        {"role": "system", "content": "be terse"},
        {"role": "user", "content": "hello"},
    ]
    assert response.text == '{"k":"v"}'


def test_complete_without_system_sends_only_user_message():
    with patch("literatus.llm._openai.OpenAI") as mock_openai:
        mock_chat = _mock_completion(mock_openai, content=None)
        client = create_client(Config(api_key="k"))
        response = client.complete("hello")
    call_kwargs = mock_chat.completions.create.call_args[1]
    assert call_kwargs["model"] == "sonar-pro"
    assert call_kwargs["messages"] == [{"role": "user", "content": "hello"}]
    assert response.text == ""


# ---------------------------------------------------------------------------
# _extract_json (internal helper — tested directly for thorough coverage)
# ---------------------------------------------------------------------------


def test_extract_json_plain_json():
    data = {"title": "Deep Learning", "year": 2024}
    assert _extract_json(json.dumps(data)) == data


def test_extract_json_with_markdown_fences():
    data = {"key": "value"}
    assert _extract_json(f"```json\n{json.dumps(data)}\n```") == data


def test_extract_json_with_plain_fences():
    data = {"key": "value"}
    assert _extract_json(f"```\n{json.dumps(data)}\n```") == data


def test_extract_json_with_surrounding_text():
    data = {"key": "value"}
    surrounded = f"Here is the result:\n{json.dumps(data)}\nThat's all."
    assert _extract_json(surrounded) == data


def test_extract_json_raises_llm_error_on_no_json():
    with pytest.raises(LLMError, match="No JSON"):
        _extract_json("This response has no JSON object at all.")


def test_extract_json_raises_llm_error_on_invalid_json():
    with pytest.raises(LLMError):
        _extract_json('{"key": "value" BROKEN}')


@pytest.mark.parametrize(
    "exc, expected",
    [
        (Exception("Error code: 429 - rate limited"), 429),
        (type("E", (Exception,), {"status_code": 503})("x"), 503),
        (Exception("connection refused"), None),
    ],
)
def test_status_code(exc, expected):
    assert _status_code(exc) == expected


# ---------------------------------------------------------------------------
# call_llm
# ---------------------------------------------------------------------------


def test_call_llm_returns_parsed_dict():
    data = {"keyFindings": ["a"], "relevanceScore": 70}
    mock_client = MagicMock()
    mock_client.complete.return_value = MagicMock(text=json.dumps(data))

    result = call_llm(mock_client, "some prompt")
    assert result == data
    mock_client.complete.assert_called_once_with("some prompt", model=None, system=None)


def test_call_llm_passes_model_and_system():
    mock_client = MagicMock()
    mock_client.complete.return_value = MagicMock(text="{}")

    call_llm(mock_client, "p", model="sonar", system="sys")
    mock_client.complete.assert_called_once_with("p", model="sonar", system="sys")


def test_call_llm_handles_fenced_response():
    data = {"title": "T"}
    mock_client = MagicMock()
    mock_client.complete.return_value = MagicMock(text=f"```json\n{json.dumps(data)}\n```")

    assert call_llm(mock_client, "some prompt") == data


def test_call_llm_raises_llm_error_on_complete_failure():
    mock_client = MagicMock()
    mock_client.complete.side_effect = Exception("connection refused")

    with pytest.raises(LLMError, match="connection refused"):
        call_llm(mock_client, "some prompt")
    assert mock_client.complete.call_count == 1


def test_call_llm_retries_on_429_then_succeeds():
    data = {"ok": True}
    mock_client = MagicMock()
    mock_client.complete.side_effect = [
        Exception("Error code: 429 - rate limited"),
        MagicMock(text=json.dumps(data)),
    ]

    with patch("literatus.llm.time.sleep") as mock_sleep:
        result = call_llm(mock_client, "some prompt")

    assert result == data
    assert mock_client.complete.call_count == 2
    mock_sleep.assert_called_once_with(1.0)


def test_call_llm_retries_on_5xx_then_succeeds():
    data = {"ok": True}
    mock_client = MagicMock()
    mock_client.complete.side_effect = [
        Exception("Error code: 503 - upstream unavailable"),
        Exception("Error code: 500 - upstream error"),
        MagicMock(text=json.dumps(data)),
    ]

    with patch("literatus.llm.time.sleep") as mock_sleep:
        result = call_llm(mock_client, "some prompt")

    assert result == data
    assert mock_client.complete.call_count == 3
    assert mock_sleep.call_args_list[0].args == (1.0,)
    assert mock_sleep.call_args_list[1].args == (2.0,)


def test_call_llm_gives_up_after_retries():
    mock_client = MagicMock()
    mock_client.complete.side_effect = Exception("Error code: 502 - bad gateway")

    with patch("literatus.llm.time.sleep"):
        with pytest.raises(LLMError, match="502"):
            call_llm(mock_client, "some prompt")
    assert mock_client.complete.call_count == 3


def test_call_llm_raises_llm_error_on_invalid_json():
    mock_client = MagicMock()
    mock_client.complete.return_value = MagicMock(text="not valid json at all")

    with pytest.raises(LLMError):
        call_llm(mock_client, "some prompt")


def test_call_llm_retries_once_with_json_repair_then_succeeds():
    mock_client = MagicMock()
    mock_client.model = "sonar-pro"
    mock_client.base_url = "https://api.perplexity.ai"
    mock_client.complete.side_effect = [
        MagicMock(text='{"k": "v"'),  # malformed JSON
        MagicMock(text='{"k": "v"}'),  # repaired JSON
    ]

    assert call_llm(mock_client, "some prompt") == {"k": "v"}
    assert mock_client.complete.call_count == 2


def test_call_llm_repair_retry_still_fails_raises_original_parse_error():
    mock_client = MagicMock()
    mock_client.model = "sonar-pro"
    mock_client.base_url = "https://api.perplexity.ai"
    mock_client.complete.side_effect = [
        MagicMock(text='{"k": "v"'),
        MagicMock(text="still not json"),
    ]

    with pytest.raises(LLMError, match="No JSON object found"):
        call_llm(mock_client, "some prompt")
    assert mock_client.complete.call_count == 2


# ---------------------------------------------------------------------------
# Logging (caplog)
# ---------------------------------------------------------------------------


def test_call_llm_logs_call_and_response(caplog):
    mock_client = MagicMock()
    mock_client.model = "sonar-pro"
    mock_client.base_url = "https://api.perplexity.ai"
    mock_client.complete.return_value = MagicMock(text='{"key": "value"}')

    with caplog.at_level(logging.INFO, logger="literatus.llm"):
        call_llm(mock_client, "a prompt")

    messages = [r.message for r in caplog.records]
    assert any("Calling LLM" in m and "sonar-pro" in m for m in messages)
    assert any("Response received" in m for m in messages)
