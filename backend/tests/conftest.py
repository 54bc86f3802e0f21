import json

import httpx
import pytest
from fastapi.testclient import TestClient

from ocs_ai.app import create_app
from ocs_ai.core.config import AppConfig
from ocs_ai.core.openai_qa import build_client

ENDPOINT = "https://ai.example.test/v1/chat/completions"


class FakeUpstream:
    """Stands in for the chat completions endpoint and records every call."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.body = ""
        self.exc = None
        self.reply("答案：B\n解析：因为B选项最符合题意")

    def reply(self, content, status_code=200, **extra):
        data = {"choices": [{"message": {"role": "assistant", "content": content}}]}
        data.update(extra)
        self.respond(json.dumps(data, ensure_ascii=False), status_code)

    def respond(self, body, status_code=200):
        self.body = body
        self.status_code = status_code

    def fail_with(self, exc):
        self.exc = exc

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(
            self.status_code,
            content=self.body.encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )

    @property
    def last_json(self):
        return json.loads(self.requests[-1].content)


def make_config(**ai) -> AppConfig:
    settings = {
        "base_url": ENDPOINT,
        "api_key": "sk-test",
        "model": "test-model",
        "system_prompt": "你是答题助手",
        "prompt_template": "题目：{{title}}\n选项：{{options}}\n类型：{{type}}",
        "temperature": 0.2,
        "top_p": 1.0,
        "max_tokens": 512,
        "timeout": 30,
    }
    settings.update(ai)
    return AppConfig.model_validate({"server": {"host": "127.0.0.1", "port": 8080}, "ai": settings})


@pytest.fixture()
def upstream():
    return FakeUpstream()


@pytest.fixture()
def config():
    return make_config()


@pytest.fixture()
def openai_client(config, upstream):
    return build_client(config.ai, http_client=httpx.AsyncClient(transport=httpx.MockTransport(upstream)))


@pytest.fixture()
def client(config, openai_client):
    app = create_app(config, client=openai_client)
    return TestClient(app)


@pytest.fixture()
def make_client(upstream):
    """Build a TestClient for a custom config, wired to the same fake upstream."""

    def _make(config: AppConfig) -> TestClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
        return TestClient(create_app(config, client=build_client(config.ai, http_client=http_client)))

    return _make
