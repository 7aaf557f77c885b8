"""Tests for the optional AI enricher."""

from __future__ import annotations

import json

import pytest
import requests
from pydantic import ValidationError

from conftest import NOW, make_candidate
from wincleaner.core.classifier import classify
from wincleaner.core.enrichment import AIEnricher, EnrichmentConfig, build_prompt, parse_verdict
from wincleaner.models.item import RetentionPolicy, RiskLevel

GOOD_VERDICT = {"confidence": 0.95, "risk_level": "medium", "can_delete": False, "reason": "still in use"}


class FakeResponse:
    def __init__(self, body=None, status=200, text=None):
        self._body = body
        self.status_code = status
        self.text = text if text is not None else json.dumps(body)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return json.loads(self.text)


class FakeSession:
    def __init__(self, *responses, error=None):
        self.responses = list(responses)
        self.error = error
        self.calls = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)


def _reply(content):
    return FakeResponse({"choices": [{"message": {"content": content}}]})


def _enricher(*responses, error=None, **config):
    config.setdefault("provider", "openai")
    config.setdefault("api_key", "sk-test")
    session = FakeSession(*responses, error=error)
    return AIEnricher(EnrichmentConfig(**config), session=session), session


class TestConfig:
    def test_disabled_by_default(self):
        assert not EnrichmentConfig().enabled

    def test_openai_needs_a_key(self):
        assert not EnrichmentConfig(provider="openai").enabled
        assert EnrichmentConfig(provider="openai", api_key="sk").enabled

    def test_local_needs_no_key(self):
        assert EnrichmentConfig(provider="local").enabled

    def test_default_endpoints(self):
        assert EnrichmentConfig(provider="openai").endpoint == "https://api.openai.com/v1/chat/completions"
        assert EnrichmentConfig(provider="local").endpoint == "http://localhost:11434/v1/chat/completions"

    def test_base_url_override(self):
        config = EnrichmentConfig(provider="local", base_url="http://gpu-box:8000/v1/")
        assert config.endpoint == "http://gpu-box:8000/v1/chat/completions"


class TestParseVerdict:
    def test_plain_json(self):
        verdict = parse_verdict(json.dumps(GOOD_VERDICT))
        assert verdict.risk_level == "medium"
        assert verdict.confidence == 0.95

    def test_code_fence_is_stripped(self):
        verdict = parse_verdict(f"```json\n{json.dumps(GOOD_VERDICT)}\n```")
        assert verdict.reason == "still in use"

    @pytest.mark.parametrize(
        "changes",
        [
            {"confidence": 1.5},
            {"risk_level": "unknown"},
            {"can_delete": "yes"},
            {"confidence": "0.9"},
        ],
    )
    def test_invalid_fields_are_rejected(self, changes):
        with pytest.raises(ValidationError):
            parse_verdict(json.dumps({**GOOD_VERDICT, **changes}))

    def test_missing_field_is_rejected(self):
        body = {k: v for k, v in GOOD_VERDICT.items() if k != "reason"}
        with pytest.raises(ValidationError):
            parse_verdict(json.dumps(body))

    def test_prose_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_verdict("I think this file is safe to delete.")


def test_prompt_describes_the_candidate():
    prompt = build_prompt(make_candidate(r"C:\Temp\a.tmp", size=42))
    assert r"C:\Temp\a.tmp" in prompt
    assert "42 bytes" in prompt


class TestAssess:
    def test_confident_verdict_is_mapped(self):
        enricher, _session = _enricher(_reply(json.dumps(GOOD_VERDICT)))
        assessment = enricher.assess(make_candidate(r"C:\Temp\a.tmp"))

        assert assessment.risk is RiskLevel.CAUTION
        assert assessment.can_delete is False
        assert assessment.reason == "still in use"

    def test_critical_maps_to_high(self):
        enricher, _session = _enricher(_reply(json.dumps({**GOOD_VERDICT, "risk_level": "critical"})))
        assert enricher.assess(make_candidate(r"C:\Temp\a.tmp")).risk is RiskLevel.HIGH

    def test_request_shape(self):
        enricher, session = _enricher(_reply(json.dumps(GOOD_VERDICT)), model="gpt-test", timeout=5.0)
        enricher.assess(make_candidate(r"C:\Temp\a.tmp"))

        call = session.calls[0]
        assert call["url"] == "https://api.openai.com/v1/chat/completions"
        assert call["headers"]["Authorization"] == "Bearer sk-test"
        assert call["json"]["model"] == "gpt-test"
        assert call["timeout"] == 5.0
        assert [m["role"] for m in call["json"]["messages"]] == ["system", "user"]

    def test_local_provider_sends_no_authorization(self):
        enricher, session = _enricher(_reply(json.dumps(GOOD_VERDICT)), provider="local", api_key="")
        enricher.assess(make_candidate(r"C:\Temp\a.tmp"))
        assert "Authorization" not in session.calls[0]["headers"]

    def test_verdicts_are_cached_per_file_state(self):
        enricher, session = _enricher(_reply(json.dumps(GOOD_VERDICT)), _reply(json.dumps(GOOD_VERDICT)))
        candidate = make_candidate(r"C:\Temp\a.tmp")
        enricher.assess(candidate)
        enricher.assess(candidate)
        assert len(session.calls) == 1

        enricher.assess(make_candidate(r"C:\Temp\a.tmp", size=2048))
        assert len(session.calls) == 2

    def test_low_confidence_is_no_opinion(self):
        enricher, _session = _enricher(_reply(json.dumps({**GOOD_VERDICT, "confidence": 0.5})))
        assert enricher.assess(make_candidate(r"C:\Temp\a.tmp")) is None

    def test_min_confidence_is_configurable(self):
        enricher, _session = _enricher(
            _reply(json.dumps({**GOOD_VERDICT, "confidence": 0.5})), min_confidence=0.4
        )
        assert enricher.assess(make_candidate(r"C:\Temp\a.tmp")) is not None

    def test_disabled_makes_no_request(self):
        enricher, session = _enricher(provider="disabled")
        assert enricher.assess(make_candidate(r"C:\Temp\a.tmp")) is None
        assert session.calls == []

    @pytest.mark.parametrize(
        "response",
        [
            FakeResponse({"error": "rate limited"}, status=429),
            FakeResponse(text="<html>bad gateway</html>"),
            FakeResponse({"choices": []}),
            _reply("not json at all"),
            _reply(None),
            _reply({"risk_level": "low"}),
            _reply(json.dumps({**GOOD_VERDICT, "risk_level": "maybe"})),
        ],
    )
    def test_bad_responses_are_no_opinion(self, response):
        enricher, _session = _enricher(response)
        assert enricher.assess(make_candidate(r"C:\Temp\a.tmp")) is None

    def test_network_error_is_no_opinion(self):
        enricher, _session = _enricher(error=requests.ConnectionError("refused"))
        assert enricher.assess(make_candidate(r"C:\Temp\a.tmp")) is None

    def test_failures_are_not_cached(self):
        enricher, session = _enricher(
            FakeResponse({"error": "busy"}, status=503), _reply(json.dumps(GOOD_VERDICT))
        )
        candidate = make_candidate(r"C:\Temp\a.tmp")
        assert enricher.assess(candidate) is None
        assert enricher.assess(candidate) is not None
        assert len(session.calls) == 2

    def test_empty_reply_leaves_classification_unchanged(self):
        enricher, _session = _enricher(_reply(None), provider="local", api_key="")
        candidate = make_candidate(r"C:\Users\User\AppData\Local\Temp\a.tmp")

        item = classify(candidate, RetentionPolicy(), NOW, enricher=enricher)

        assert item == classify(candidate, RetentionPolicy(), NOW)
        assert item.risk_level is RiskLevel.SAFE
        assert item.can_delete
