"""
Unit tests for the LLM gateway.
No network - urlopen and time.sleep are patched on the gateway module.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))

import io
import json
from urllib.error import HTTPError, URLError

import pytest

import smartcrm.agents.llm_gateway as llm_gateway
from smartcrm.agents.llm_gateway import (
    ChatCompletionClient,
    LLMError,
    LLMGateway,
    ModelNotFoundError,
    ProviderNotConfiguredError,
    extract_json,
    get_gateway,
    set_gateway,
)


# ─── HELPERS ──────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, payload: dict):
        self._body = json.dumps(payload).encode()

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def completion(content: str, model: str = "gpt-test") -> dict:
    return {
        "model": model,
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"total_tokens": 17},
    }


@pytest.fixture
def transport(monkeypatch):
    """Queue of canned responses/exceptions returned by urlopen, in order."""
    state = {"queue": [], "requests": [], "sleeps": []}

    def fake_urlopen(req, timeout=None):
        state["requests"].append(req)
        item = state["queue"].pop(0)
        if isinstance(item, Exception):
            raise item
        return FakeResponse(item)

    monkeypatch.setattr(llm_gateway, "urlopen", fake_urlopen)
    monkeypatch.setattr(llm_gateway.time, "sleep", lambda s: state["sleeps"].append(s))
    return state


def http_error(code: int, body: bytes = b"{}") -> HTTPError:
    return HTTPError("http://llm.test/v1/chat/completions", code, "error", None, io.BytesIO(body))


def make_client(**kwargs) -> ChatCompletionClient:
    params = {"api_base": "http://llm.test/v1/", "api_key": "sk-test", "model": "gpt-test"}
    params.update(kwargs)
    return ChatCompletionClient(**params)


# ─── CHAT COMPLETION CLIENT ───────────────────────────────────

def test_generate_builds_chat_request(transport):
    transport["queue"].append(completion('{"subject": "Hi"}'))
    result = make_client().generate("Write an email", system="Be brief", json_mode=True,
                                    temperature=0.3)

    assert result == {"response": '{"subject": "Hi"}', "model": "gpt-test", "total_tokens": 17}
    req = transport["requests"][0]
    assert req.full_url == "http://llm.test/v1/chat/completions"
    assert req.get_header("Authorization") == "Bearer sk-test"
    payload = json.loads(req.data.decode())
    assert payload["messages"][0] == {"role": "system", "content": "Be brief"}
    assert payload["messages"][1] == {"role": "user", "content": "Write an email"}
    assert payload["response_format"] == {"type": "json_object"}
    assert payload["temperature"] == 0.3


def test_generate_retries_with_backoff(transport):
    transport["queue"].extend([URLError("down"), http_error(500), completion("ok")])
    result = make_client().generate("hello")
    assert result["response"] == "ok"
    assert len(transport["requests"]) == 3
    assert transport["sleeps"] == [2, 4]


def test_generate_gives_up_after_max_retries(transport):
    transport["queue"].extend([URLError("down")] * 3)
    with pytest.raises(LLMError, match="after 3 attempts"):
        make_client().generate("hello")
    assert transport["sleeps"] == [2, 4]


def test_generate_empty_choices_is_retried(transport):
    transport["queue"].extend([{"choices": []}, completion("second time")])
    assert make_client().generate("hello")["response"] == "second time"


def test_model_not_found_is_not_retried(transport):
    transport["queue"].append(http_error(404))
    with pytest.raises(ModelNotFoundError):
        make_client().generate("hello")
    assert len(transport["requests"]) == 1


def test_bad_credentials_are_not_retried(transport):
    transport["queue"].append(http_error(401))
    with pytest.raises(LLMError):
        make_client().generate("hello")
    assert len(transport["requests"]) == 1
    assert transport["sleeps"] == []


def test_no_api_key(transport):
    with pytest.raises(ProviderNotConfiguredError):
        make_client(api_key="").generate("hello")
    assert transport["requests"] == []


def test_health_check(transport):
    transport["queue"].append({"data": [{"id": "gpt-test"}, {"id": "gpt-other"}]})
    health = make_client().health_check()
    assert health["healthy"] is True
    assert health["model_available"] is True
    assert health["error"] is None
    assert transport["requests"][0].full_url == "http://llm.test/v1/models"


def test_health_check_model_missing(transport):
    transport["queue"].append({"data": [{"id": "gpt-other"}]})
    health = make_client().health_check()
    assert health["healthy"] is True
    assert health["model_available"] is False
    assert "gpt-test" in health["error"]


def test_health_check_without_key():
    health = make_client(api_key="").health_check()
    assert health["healthy"] is False
    assert "No API key" in health["error"]


# ─── GATEWAY ──────────────────────────────────────────────────

def test_gateway_unconfigured_identity():
    gateway = LLMGateway(make_client(api_key=""))
    assert gateway.is_configured is False
    assert gateway.provider_name == "template"
    assert gateway.model_name == "template-v1"
    assert gateway.initialize()["status"] == "degraded"


def test_gateway_generate_traces_stage(transport):
    transport["queue"].append(completion("draft"))
    gateway = LLMGateway(make_client())
    assert gateway.provider_name == "openai"

    result = gateway.generate("prompt", stage_name="cold_email", request_id="req-1")
    assert result["response"] == "draft"
    assert result["provider"] == "openai"
    assert result["model"] == "gpt-test"
    assert result["stage"] == "cold_email"
    assert result["request_id"] == "req-1"
    assert result["duration_ms"] >= 0


def test_gateway_propagates_llm_errors(transport):
    transport["queue"].append(http_error(403))
    with pytest.raises(LLMError):
        LLMGateway(make_client()).generate("prompt", stage_name="compose_email")


def test_gateway_singleton():
    set_gateway(None)
    first = get_gateway()
    assert get_gateway() is first

    replacement = LLMGateway(make_client())
    set_gateway(replacement)
    assert get_gateway() is replacement


# ─── JSON EXTRACTION ──────────────────────────────────────────

def test_extract_json_from_chatty_completion():
    text = 'Sure! Here it is:\n{"subject": "Hello", "body": "Hi Jane"}\nLet me know.'
    assert extract_json(text) == {"subject": "Hello", "body": "Hi Jane"}


def test_extract_json_failures():
    for text in ("", "no json here", "[1, 2, 3]", "{not: valid}"):
        with pytest.raises(ValueError):
            extract_json(text)
