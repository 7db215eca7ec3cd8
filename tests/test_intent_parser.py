"""Tests for parser orchestration and LLM response decoding."""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any

import pytest

from carmarket.intent.llm_parser import (
    LLMConfig,
    LLMParserError,
    decode_completion,
    llm_config_from_settings,
    load_prompt,
)
from carmarket.intent.parser import IntentParserError, parse_filters, parse_filters_with_source

_LLM = LLMConfig(api_key="k")


def _completion(content: str) -> bytes:
    return json.dumps({"choices": [{"message": {"content": content}}]}).encode()


def test_rules_only_when_llm_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    def _unexpected(*_args: Any, **_kwargs: Any) -> dict[str, Any]:
        raise AssertionError("llm must not be called")

    monkeypatch.setattr("carmarket.intent.parser.parse_filters_json_via_llm", _unexpected)

    result = parse_filters_with_source("bmw suv")

    assert result.source == "rules"
    assert result.filters.present() == {"make": "BMW", "body_type": "SUV"}
    assert result.confidence == 0.7


def test_llm_result_is_used_when_valid(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_llm(text: str, *, config: Any) -> dict[str, Any]:
        assert config.api_key == "k"
        return {"parsed_filters": {"make": "Porsche", "model": "911"}, "confidence": 0.93}

    monkeypatch.setattr("carmarket.intent.parser.parse_filters_json_via_llm", _fake_llm)

    result = parse_filters_with_source("a nine eleven", llm=_LLM)

    assert result.source == "llm"
    assert result.confidence == 0.93
    assert result.filters.model == "911"


@pytest.mark.parametrize(
    "llm_reply",
    [
        LLMParserError("LLM connection error"),
        {"parsed_filters": {"make": "BMW"}, "confidence": 7},
        {"parsed_filters": {}, "confidence": 0.9},
        {"unexpected": True},
    ],
)
def test_llm_problems_fall_back_to_rules(monkeypatch: pytest.MonkeyPatch, llm_reply: Any) -> None:
    def _fake_llm(_text: str, *, config: Any) -> dict[str, Any]:
        if isinstance(llm_reply, Exception):
            raise llm_reply
        return llm_reply

    monkeypatch.setattr("carmarket.intent.parser.parse_filters_json_via_llm", _fake_llm)

    result = parse_filters_with_source("diesel wagon", llm=_LLM)

    assert result.source == "rules"
    assert result.filters.present() == {"fuel_type": "Diesel", "body_type": "Wagon"}


def test_unparseable_text_raises() -> None:
    with pytest.raises(IntentParserError):
        parse_filters("tell me a joke")


def test_decode_completion_strips_code_fences() -> None:
    body = _completion('```json\n{"parsed_filters": {"make": "Kia"}, "confidence": 0.6}\n```')

    assert decode_completion(body) == {"parsed_filters": {"make": "Kia"}, "confidence": 0.6}


@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        json.dumps({"choices": []}).encode(),
        json.dumps({"choices": [{"message": {}}]}).encode(),
        _completion("sure, here you go"),
        _completion("[1, 2]"),
    ],
)
def test_decode_completion_rejects_bad_shapes(body: bytes) -> None:
    with pytest.raises(LLMParserError):
        decode_completion(body)


def _settings(**overrides: Any) -> Any:
    values: dict[str, Any] = {
        "llm_enabled": True,
        "llm_api_key": "secret",
        "llm_model": "local-model",
        "llm_api_base": "http://localhost:11434/v1",
        "llm_timeout_s": 5.0,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_llm_config_from_settings() -> None:
    assert llm_config_from_settings(_settings(llm_enabled=False)) is None

    with pytest.raises(LLMParserError):
        llm_config_from_settings(_settings(llm_api_key=None))

    cfg = llm_config_from_settings(_settings())

    assert cfg == LLMConfig(
        api_key="secret",
        model="local-model",
        api_base="http://localhost:11434/v1",
        timeout_s=5.0,
    )


def test_prompt_lists_the_output_contract() -> None:
    prompt = load_prompt()

    assert "parsed_filters" in prompt
    assert "confidence" in prompt
