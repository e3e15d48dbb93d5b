"""Tests for configuration loading."""

import json
import os

import pytest

from hybrid_router import ConfigurationError, ModelConfig, ReasoningSettings
from hybrid_router.config import DEFAULT_BASE_URL, load_llm_mapping

ENV_VARS = (
    "OPENROUTER_BASE_URL", "OPENROUTER_API_KEY", "GEMINI_MODEL",
    "PERPLEXITY_MODEL", "LLM_CONFIG_PATH",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # load_dotenv writes os.environ directly, so snapshot and restore by hand.
    saved = {name: os.environ.pop(name) for name in ENV_VARS if name in os.environ}
    monkeypatch.chdir(tmp_path)
    yield monkeypatch
    for name in ENV_VARS:
        os.environ.pop(name, None)
    os.environ.update(saved)


def test_model_resolution_order():
    config = ModelConfig(
        base_url="http://x", api_key="k", primary_model="primary",
        fallback_model="fallback", llm_mapping={"tool_selection": "selector"},
    )
    assert config.model_for("tool_selection") == "selector"
    assert config.model_for("anything_else") == "primary"
    assert ModelConfig("http://x", "k", "", "fallback").model_for("t") == "fallback"
    with pytest.raises(ConfigurationError):
        ModelConfig("http://x", "k", "").model_for("t")


def test_llm_mapping_is_read_only():
    config = ModelConfig("http://x", "k", "m", llm_mapping={"a": "b"})
    with pytest.raises(TypeError):
        config.llm_mapping["a"] = "c"


def test_require_endpoint():
    assert ModelConfig("http://x/v1/", "k", "m").require_endpoint() == "http://x/v1"
    with pytest.raises(ConfigurationError):
        ModelConfig("", "k", "m").require_endpoint()


def test_from_env_defaults(clean_env):
    config = ModelConfig.from_env()
    assert config.base_url == DEFAULT_BASE_URL
    assert config.api_key == ""
    assert config.primary_model
    assert dict(config.llm_mapping) == {}


def test_from_env_reads_variables_and_mapping(clean_env, tmp_path):
    mapping_file = tmp_path / "llm_config.json"
    mapping_file.write_text(json.dumps({"llm_mapping": {"tool_selection": "fast-model"}}))
    clean_env.setenv("OPENROUTER_BASE_URL", "http://local/v1")
    clean_env.setenv("OPENROUTER_API_KEY", "sk-env")
    clean_env.setenv("GEMINI_MODEL", "gem")
    clean_env.setenv("LLM_CONFIG_PATH", str(mapping_file))

    config = ModelConfig.from_env()
    assert config.base_url == "http://local/v1"
    assert config.api_key == "sk-env"
    assert config.model_for("tool_selection") == "fast-model"
    assert config.model_for("other") == "gem"


def test_from_env_reads_dotenv_file(clean_env, tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text("OPENROUTER_API_KEY=sk-dotenv\n")
    assert ModelConfig.from_env(env_file).api_key == "sk-dotenv"


@pytest.mark.parametrize("content", ["not json", '{"llm_mapping": ["a"]}', '{"llm_mapping": {"a": 1}}'])
def test_bad_mapping_file_fails_loudly(tmp_path, content):
    path = tmp_path / "llm_config.json"
    path.write_text(content)
    with pytest.raises(ConfigurationError):
        load_llm_mapping(path)


def test_missing_mapping_file_fails_loudly(tmp_path):
    with pytest.raises(ConfigurationError):
        load_llm_mapping(tmp_path / "missing.json")


def test_reasoning_settings_validation():
    assert ReasoningSettings().max_rounds == 10
    with pytest.raises(ConfigurationError):
        ReasoningSettings(max_rounds=0)
