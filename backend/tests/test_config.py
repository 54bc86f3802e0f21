import pytest

from ocs_ai.core.config import (
    DEFAULT_BASE_URL,
    DEFAULT_CONFIG_YAML,
    ensure_default_config,
    get_config_path,
    load_config,
)
from ocs_ai.core.errors import ConfigMissingError, ConfigParseError


@pytest.fixture(autouse=True)
def _no_env_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OCS_AI_CONFIG", raising=False)


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigMissingError):
        load_config(tmp_path / "config.yaml")


def test_default_document_loads(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    assert ensure_default_config(path) is True
    assert path.read_text(encoding="utf-8") == DEFAULT_CONFIG_YAML

    config = load_config(path)
    assert config.server.host == "127.0.0.1"
    assert config.server.port == 8080
    assert config.ai.base_url == DEFAULT_BASE_URL
    assert config.ai.model == "gpt-4o-mini"
    assert config.ai.api_key == ""
    assert config.ai.temperature == 0.2
    assert config.ai.max_tokens == 512
    assert config.ai.timeout == 30
    assert "{{title}}" in config.ai.prompt_template


def test_existing_file_is_not_overwritten(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("server:\n  port: 9000\n", encoding="utf-8")
    assert ensure_default_config(path) is False
    assert load_config(path).server.port == 9000


def test_defaults_are_backfilled(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text('ai:\n  base_url: "  "\n  timeout: 0\n  api_key:\n', encoding="utf-8")
    config = load_config(path)
    assert config.ai.base_url == DEFAULT_BASE_URL
    assert config.ai.timeout == 30
    assert config.ai.api_key == ""
    assert config.server.address == "127.0.0.1:8080"


def test_negative_timeout_is_backfilled(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("ai:\n  timeout: -5\n", encoding="utf-8")
    assert load_config(path).ai.timeout == 30


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")
    config = load_config(path)
    assert config.server.port == 8080
    assert config.ai.base_url == DEFAULT_BASE_URL


@pytest.mark.parametrize("text", [
    "server: [unclosed",
    "- just\n- a list\n",
    "server:\n  port: not-a-port\n",
    "ai:\n  temperature: hot\n",
])
def test_unparseable_config_raises(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigParseError):
        load_config(path)


def test_api_key_falls_back_to_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    path = tmp_path / "config.yaml"
    path.write_text('ai:\n  api_key: ""\n', encoding="utf-8")
    assert load_config(path).ai.api_key == "sk-env"

    path.write_text('ai:\n  api_key: "sk-file"\n', encoding="utf-8")
    assert load_config(path).ai.api_key == "sk-file"


def test_config_is_immutable(tmp_path):
    path = tmp_path / "config.yaml"
    ensure_default_config(path)
    config = load_config(path)
    with pytest.raises(Exception):
        config.ai.model = "other"


def test_config_path_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv("OCS_AI_CONFIG", str(tmp_path / "custom.yaml"))
    assert get_config_path() == (tmp_path / "custom.yaml").resolve()


def test_config_path_defaults_next_to_script(tmp_path, monkeypatch):
    monkeypatch.setattr("sys.argv", [str(tmp_path / "ocs-ai")])
    assert get_config_path() == tmp_path.resolve() / "config.yaml"
