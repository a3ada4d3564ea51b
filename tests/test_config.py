from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from restyle.config.loader import ConfigLoader
from restyle.config.schema import (
    OPERATION_TYPES,
    BrowserSettings,
    HistorySettings,
    InterpreterSettings,
    RetryPolicy,
    RetrySettings,
)


def test_engine_config_loads(engine_config):
    assert engine_config.browser.base_url == "http://localhost:8000"
    assert engine_config.interpreter.provider == "openai"
    assert engine_config.selection.indicator_attribute == "data-restyle-selected"
    assert engine_config.history.limit == 50
    assert set(engine_config.retry.policies) == set(OPERATION_TYPES)
    assert engine_config.retry.policies["network"].jitter_enabled


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "engine.json"
    path.write_text(json.dumps({}), encoding="utf-8")
    config = ConfigLoader.load(path)
    assert config.artifacts_root == "artifacts"
    assert config.normalization.default_length_unit == "px"
    assert not config.history.destructive_undo


def test_policy_overrides_merge_with_defaults():
    settings = RetrySettings(policies={"validation": RetryPolicy(max_retries=6, base_delay=0.2, max_delay=2.0)})
    assert settings.policies["validation"].max_retries == 6
    assert settings.policies["network"].max_retries == 5
    assert settings.policies["generative"].backoff_multiplier == 2.5


def test_unknown_operation_type_is_rejected():
    with pytest.raises(ValidationError):
        RetrySettings(policies={"teleport": RetryPolicy(max_retries=1, base_delay=0, max_delay=0)})


def test_policy_bounds():
    with pytest.raises(ValidationError):
        RetryPolicy(max_retries=0, base_delay=0, max_delay=0)
    with pytest.raises(ValidationError):
        RetryPolicy(max_retries=1, base_delay=0, max_delay=0, timeout=0)
    with pytest.raises(ValidationError):
        HistorySettings(limit=0)


def test_provider_and_browser_names_are_normalized():
    assert InterpreterSettings(provider="Anthropic").provider == "anthropic"
    with pytest.raises(ValidationError):
        InterpreterSettings(provider="cohere")
    assert BrowserSettings(browser_matrix=["Chrome", "firefox"]).browser_matrix == ["chrome", "firefox"]
    with pytest.raises(ValidationError):
        BrowserSettings(browser_matrix=["safari"])
