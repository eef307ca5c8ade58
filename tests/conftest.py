"""
Shared pytest fixtures for the SmartCRM test suite.
"""

import pytest

from smartcrm.agents.error_handler import clear_errors
from smartcrm.agents.llm_gateway import ChatCompletionClient, LLMGateway, set_gateway


class FakeChatClient(ChatCompletionClient):
    """Chat client that returns a canned completion (or raises) without network."""

    def __init__(self, response: str = "", error: Exception = None):
        super().__init__(api_base="http://llm.test/v1", api_key="test-key", model="fake-model")
        self.response = response
        self.error = error
        self.calls = []

    def generate(self, prompt, model=None, temperature=0.7, max_tokens=1000,
                 system=None, json_mode=False):
        self.calls.append({
            "prompt": prompt, "model": model, "temperature": temperature,
            "max_tokens": max_tokens, "system": system, "json_mode": json_mode,
        })
        if self.error:
            raise self.error
        return {"response": self.response, "model": self.model, "total_tokens": 42}


@pytest.fixture(autouse=True)
def template_gateway():
    """Every test starts with an unconfigured gateway and an empty error buffer."""
    set_gateway(LLMGateway(ChatCompletionClient(api_key="")))
    clear_errors()
    yield
    set_gateway(None)
    clear_errors()


@pytest.fixture
def fake_llm():
    """Install a configured gateway backed by FakeChatClient.

    Usage:
        client = fake_llm(response='{"subject": "Hi", "body": "..."}')
        client = fake_llm(error=LLMError("down"))
    """
    def install(response: str = "", error: Exception = None) -> FakeChatClient:
        client = FakeChatClient(response=response, error=error)
        set_gateway(LLMGateway(client))
        return client
    return install


@pytest.fixture
def client():
    """FastAPI test client."""
    from starlette.testclient import TestClient
    from smartcrm.api.app import app
    return TestClient(app)


@pytest.fixture
def sample_contact():
    return {
        "id": "c_100",
        "name": "Jane Doe",
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "jane@acme.io",
        "phone": "+1 (555) 123-4567",
        "company": "Acme Inc",
        "title": "CEO",
        "industry": "Financial Services",
    }
