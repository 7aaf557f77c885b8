"""Optional AI second opinion on cleanup candidates.

Talks to any OpenAI-compatible chat completions endpoint (OpenAI itself
or a local server such as Ollama). The enricher is advisory: every
failure means "no opinion", and the classifier only lets an opinion make
a verdict stricter.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Literal

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wincleaner.models.item import RawCandidate, RiskLevel

log = logging.getLogger(__name__)

PROVIDERS = ("disabled", "openai", "local")

_DEFAULT_BASE_URLS = {
    "openai": "https://api.openai.com/v1",
    "local": "http://localhost:11434/v1",
}

_SYSTEM_PROMPT = (
    "You are an expert on Windows system files and applications. "
    "Judge whether deleting the given file or registry key is safe. "
    "Answer with a single JSON object and nothing else."
)

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

_RISK_MAP = {
    "low": RiskLevel.SAFE,
    "medium": RiskLevel.CAUTION,
    "high": RiskLevel.HIGH,
    "critical": RiskLevel.HIGH,
}


@dataclass(frozen=True)
class EnrichmentConfig:
    provider: str = "disabled"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    base_url: str = ""
    timeout: float = 20.0
    min_confidence: float = 0.8
    max_tokens: int = 1000
    temperature: float = 0.1

    @property
    def enabled(self) -> bool:
        if self.provider == "local":
            return True
        return self.provider == "openai" and bool(self.api_key)

    @property
    def endpoint(self) -> str:
        base = self.base_url or _DEFAULT_BASE_URLS.get(self.provider, "")
        return f"{base.rstrip('/')}/chat/completions"


class EnrichmentVerdict(BaseModel):
    """Schema the model's JSON answer must satisfy exactly."""

    model_config = ConfigDict(strict=True)

    confidence: float = Field(ge=0.0, le=1.0)
    risk_level: Literal["low", "medium", "high", "critical"]
    can_delete: bool
    reason: str


@dataclass(frozen=True)
class Assessment:
    risk: RiskLevel
    can_delete: bool
    reason: str
    confidence: float

    @classmethod
    def from_verdict(cls, verdict: EnrichmentVerdict) -> Assessment:
        return cls(
            risk=_RISK_MAP[verdict.risk_level],
            can_delete=verdict.can_delete,
            reason=verdict.reason,
            confidence=verdict.confidence,
        )


def parse_verdict(content: str) -> EnrichmentVerdict:
    """Decode a model reply; raises ``ValidationError`` on any mismatch."""
    text = content.strip()
    fenced = _FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    return EnrichmentVerdict.model_validate_json(text)


def build_prompt(candidate: RawCandidate) -> str:
    modified = candidate.last_modified.isoformat() if candidate.last_modified else "unknown"
    return (
        "Analyze this cleanup candidate:\n"
        f"- Name: {candidate.name}\n"
        f"- Path: {candidate.path}\n"
        f"- Size: {candidate.size_bytes} bytes\n"
        f"- Type: {candidate.type_tag}\n"
        f"- Last modified: {modified}\n\n"
        "Reply with JSON of the form\n"
        '{"confidence": 0.95, "risk_level": "low|medium|high|critical", '
        '"can_delete": true, "reason": "short explanation"}'
    )


class AIEnricher:
    """Caches one verdict per (path, size, mtime) for the lifetime of the instance."""

    def __init__(self, config: EnrichmentConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self._session = session or requests.Session()
        self._cache: dict[tuple[str, int, str], EnrichmentVerdict] = {}

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def assess(self, candidate: RawCandidate) -> Assessment | None:
        """Return a confident assessment, or None when there is no usable opinion."""
        if not self.enabled:
            return None

        mtime = candidate.last_modified.isoformat() if candidate.last_modified else ""
        key = (candidate.path, candidate.size_bytes, mtime)
        verdict = self._cache.get(key)
        if verdict is None:
            verdict = self._request(candidate)
            if verdict is None:
                return None
            self._cache[key] = verdict

        if verdict.confidence < self.config.min_confidence:
            log.debug("Ignoring low-confidence verdict (%.2f) for %s", verdict.confidence, candidate.path)
            return None
        return Assessment.from_verdict(verdict)

    def _request(self, candidate: RawCandidate) -> EnrichmentVerdict | None:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(candidate)},
            ],
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }

        try:
            resp = self._session.post(
                self.config.endpoint, headers=headers, json=payload, timeout=self.config.timeout
            )
            resp.raise_for_status()
            content = resp.json()["choices"][0]["message"]["content"]
            if not isinstance(content, str):
                log.debug("Enrichment reply for %s carried no text content", candidate.path)
                return None
            return parse_verdict(content)
        except (requests.RequestException, ValidationError, json.JSONDecodeError) as exc:
            log.debug("Enrichment failed for %s: %s", candidate.path, exc)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            log.debug("Unexpected enrichment response for %s: %s", candidate.path, exc)
        return None
