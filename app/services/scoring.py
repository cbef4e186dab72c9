import json
from typing import Protocol

import structlog
from anthropic import Anthropic
from pydantic import ValidationError

from app.core.config import get_settings, is_scoring_configured
from app.schemas.screening import ScoreResult

logger = structlog.get_logger()


class ScoringError(Exception):
    """The scoring service answered with something that is not a usable score."""


class Scorer(Protocol):
    def evaluate(self, candidate: dict, role: dict) -> ScoreResult: ...


def extract_json(text_content: str) -> dict:
    if "```json" in text_content:
        text_content = text_content.split("```json")[1].split("```")[0]
    elif "```" in text_content:
        text_content = text_content.split("```")[1].split("```")[0]
    return json.loads(text_content.strip())


class ClaudeScorer:
    def __init__(self, client: Anthropic, model: str, max_tokens: int = 1500):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    def evaluate(self, candidate: dict, role: dict) -> ScoreResult:
        response = self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": build_prompt(candidate, role)}],
        )

        try:
            data = extract_json(response.content[0].text)
            return ScoreResult.model_validate(data)
        except (json.JSONDecodeError, IndexError, AttributeError, ValidationError) as e:
            logger.error("scoring_invalid_response", error=str(e))
            raise ScoringError(f"Unusable scoring response: {e}") from e


def build_prompt(candidate: dict, role: dict) -> str:
    return f"""Evaluate this candidate against this role. Answer ONLY with valid JSON.

ROLE:
{json.dumps(role, ensure_ascii=False)}

CANDIDATE:
{json.dumps(candidate, ensure_ascii=False)[:6000]}

SCORING:
- Use the role weights when present, otherwise weight skills 50%, experience 30%, education 20%.
- A must-have skill counts as satisfied only if the profile shows it explicitly or through a close equivalent.
- knockout is true only when the candidate fails one of the role knockouts (work authorization, location, salary, ...).
- Base every statement on observable facts from the profile. No personality inference.

JSON format:
{{
    "score_total": 72,
    "score_breakdown": {{"skills": 80, "experience": 70, "education": 60}},
    "must_haves_satisfied": ["Python"],
    "missing_must_haves": ["Kubernetes"],
    "knockout": false,
    "reasons": "two or three sentences",
    "flags": {{"salary_above_range": false}}
}}"""


def get_scorer() -> Scorer | None:
    if not is_scoring_configured():
        return None
    settings = get_settings()
    return ClaudeScorer(
        Anthropic(api_key=settings.ANTHROPIC_API_KEY),
        model=settings.ANTHROPIC_MODEL,
        max_tokens=settings.SCORING_MAX_TOKENS,
    )
