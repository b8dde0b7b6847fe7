"""Tests for flowbot.core.config."""

import pytest
import yaml
from pydantic import ValidationError

from flowbot.core.config import Config, load_config


def test_defaults():
    cfg = Config()
    assert cfg.llm.model == "openai/gpt-4o-mini"
    assert cfg.llm.max_tokens == 1024
    assert cfg.database.path == "data/flowbot.db"
    assert cfg.server.request_timeout_s == 120
    assert cfg.skills.timeout_s == 30
    assert not cfg.channels.telegram.enabled
    assert cfg.logging.level == "INFO"


def test_from_dict():
    cfg = Config(
        llm={"model": "anthropic/claude-sonnet", "max_tokens": 256},
        providers={"anthropic": {"api_key": "sk-test"}},
    )
    assert cfg.llm.model == "anthropic/claude-sonnet"
    assert cfg.llm.max_tokens == 256
    assert cfg.providers.anthropic.api_key == "sk-test"


def test_get_api_key():
    cfg = Config(providers={"anthropic": {"api_key": "sk-ant"}})
    assert cfg.get_api_key("anthropic/claude-sonnet") == "sk-ant"
    # Falls back to the first configured key
    assert cfg.get_api_key("unknown/model") == "sk-ant"
    assert Config().get_api_key() is None


def test_get_api_base():
    cfg = Config(providers={"ollama": {"api_base": "http://localhost:11434"}})
    assert cfg.get_api_base("ollama/llama3") == "http://localhost:11434"
    assert cfg.get_api_base("openrouter/x") == "https://openrouter.ai/api/v1"
    assert cfg.get_api_base("openai/gpt-4o") is None


def test_load_yaml(tmp_path):
    f = tmp_path / "config.yaml"
    f.write_text(yaml.dump({"llm": {"model": "groq/llama3"}, "server": {"port": 9000}}))
    cfg = load_config(f)
    assert cfg.llm.model == "groq/llama3"
    assert cfg.server.port == 9000


def test_load_missing(tmp_path):
    cfg = load_config(tmp_path / "nope.yaml")
    assert cfg.llm.model == "openai/gpt-4o-mini"


def test_config_env_var_path(tmp_path, monkeypatch):
    f = tmp_path / "custom.yaml"
    f.write_text(yaml.dump({"database": {"path": "x.db"}}))
    monkeypatch.setenv("FLOWBOT_CONFIG", str(f))
    assert load_config().database.path == "x.db"


def test_env_overrides_yaml(tmp_path, monkeypatch):
    f = tmp_path / "config.yaml"
    f.write_text(yaml.dump({"llm": {"model": "groq/llama3"}}))
    monkeypatch.setenv("FLOWBOT_LLM__MODEL", "openai/gpt-4o")
    assert load_config(f).llm.model == "openai/gpt-4o"


def test_logging_level_normalized():
    assert Config(logging={"level": "warn"}).logging.level == "WARNING"
    with pytest.raises(ValidationError):
        Config(logging={"level": "loud"})
    with pytest.raises(ValidationError):
        Config(logging={"format": "xml"})


def test_skills_timeout_positive():
    with pytest.raises(ValidationError):
        Config(skills={"timeout_s": 0})


def test_load_rejects_non_mapping(tmp_path):
    from flowbot.core.errors import ValidationError as ConfigError

    f = tmp_path / "config.yaml"
    f.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(f)


def test_load_empty_file(tmp_path):
    f = tmp_path / "config.yaml"
    f.write_text("")
    assert load_config(f).server.port == 8000


def test_max_message_length():
    assert Config().server.max_message_length == 10_000
    assert Config(server={"max_message_length": 50}).server.max_message_length == 50
    with pytest.raises(ValidationError):
        Config(server={"max_message_length": 0})
