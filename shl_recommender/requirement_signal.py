"""
Requirement signal extraction.

Labels a hiring query with coarse needs (technical / behavioral /
cognitive) and a seniority level using fixed token tables. The tables are
plain data so they can be tested and swapped without touching the
balancer.

An optional Gemini call can also produce a short human-readable narrative
of the query's requirements. The narrative is for display only: it never
changes the structured signal, and any failure simply yields ``None``.
"""

import re
from functools import lru_cache
from typing import Mapping, Optional, Pattern, Sequence

import google.generativeai as genai

from .config import GEMINI_API_KEY, GEMINI_MODEL
from .logging_config import get_logger
from .models import RequirementSignal, SeniorityLevel

logger = get_logger(__name__)


# Language tokens with symbols are rewritten before matching
TOKEN_ALIASES = {
    "c++": "cpp",
    "c#": "csharp",
}

TECHNICAL_TOKENS = (
    "java", "python", "sql", "javascript", "coding", "programming",
    "developer", "technical", "cpp", "csharp",
)

BEHAVIORAL_TOKENS = (
    "collaborate", "personality", "behavioral", "leadership",
    "communication", "soft skill",
)

COGNITIVE_TOKENS = (
    "cognitive", "analytical", "problem solving", "problem-solving",
    "problemsolving", "reasoning", "ability",
)


def normalize_query(query: str, aliases: Mapping[str, str] = TOKEN_ALIASES) -> str:
    """Lower-case the query and rewrite aliased tokens (``c++`` -> ``cpp``)."""
    text = str(query or "").lower()
    for source, target in aliases.items():
        text = text.replace(source.lower(), target)
    return text


@lru_cache(maxsize=32)
def _token_pattern(tokens: Sequence[str]) -> Pattern:
    # Plain substrings: "sql" also hits "mysql", "ability" hits "capability"
    alternatives = "|".join(re.escape(t.lower()) for t in tokens)
    return re.compile(alternatives)


def _has_any(text: str, tokens: Sequence[str]) -> bool:
    if not tokens:
        return False
    return _token_pattern(tuple(tokens)).search(text) is not None


def detect_level(normalized: str) -> SeniorityLevel:
    if "senior" in normalized:
        return SeniorityLevel.SENIOR
    if "entry" in normalized:
        return SeniorityLevel.ENTRY
    return SeniorityLevel.MID


def classify(
    query: str,
    technical_tokens: Sequence[str] = TECHNICAL_TOKENS,
    behavioral_tokens: Sequence[str] = BEHAVIORAL_TOKENS,
    cognitive_tokens: Sequence[str] = COGNITIVE_TOKENS,
    aliases: Mapping[str, str] = TOKEN_ALIASES,
) -> RequirementSignal:
    """
    Derive the requirement signal of a hiring query.

    Pure function of the query text; the token tables can be overridden.

    Example:
        >>> classify("Senior Java developer who can lead a team").to_dict()
        {'needsTechnical': True, 'needsBehavioral': False, 'needsCognitive': False, 'level': 'senior'}
    """
    normalized = normalize_query(query, aliases)
    return RequirementSignal(
        needs_technical=_has_any(normalized, technical_tokens),
        needs_behavioral=_has_any(normalized, behavioral_tokens),
        needs_cognitive=_has_any(normalized, cognitive_tokens),
        level=detect_level(normalized),
    )


class RequirementNarrator:
    """
    Optional Gemini-backed narrative of a query's requirements.

    Without an API key the narrator is disabled and :meth:`describe`
    returns None. API errors are logged and also yield None.
    """

    NARRATIVE_PROMPT_TEMPLATE = """Analyze this hiring query and identify:
1. Technical skills needed (programming languages, tools)
2. Soft skills needed (collaboration, leadership, communication)
3. Job level (entry/mid/senior)
4. Key competencies to assess

Query: "{query}"

Respond with a brief analysis focusing on what types of assessments would be most relevant."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key if api_key is not None else GEMINI_API_KEY
        self.model_name = model or GEMINI_MODEL
        self._model = None
        self.stats = {
            "requests": 0,
            "errors": 0,
        }

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _get_model(self):
        if self._model is None:
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(self.model_name)
            logger.info(f"Requirement narrator initialized (model={self.model_name})")
        return self._model

    def describe(self, query: str) -> Optional[str]:
        """Return a short narrative for display, or None if unavailable."""
        if not self.enabled:
            return None

        self.stats["requests"] += 1
        prompt = self.NARRATIVE_PROMPT_TEMPLATE.format(query=normalize_query(query))
        try:
            response = self._get_model().generate_content(prompt)
            text = (response.text or "").strip()
            return text or None
        except Exception as e:
            self.stats["errors"] += 1
            logger.warning(f"LLM requirement narrative failed, using heuristic signal only: {e}")
            return None

    def get_stats(self) -> dict:
        return self.stats.copy()
