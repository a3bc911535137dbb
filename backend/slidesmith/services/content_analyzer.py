from __future__ import annotations

import logging
import re
from collections import Counter

from slidesmith.schemas import (
    Audience,
    Complexity,
    ContentAnalysis,
    Domain,
    KeyTopic,
    Purpose,
    Tone,
)
from slidesmith.text_utils import round_half_up

logger = logging.getLogger("slidesmith.analyzer")

STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "of", "to", "in", "on", "for", "with", "by",
    "is", "are", "was", "were", "be", "this", "that", "it", "as", "at", "from",
    "we", "you", "they", "i", "about", "into", "over", "under", "between",
    "your", "our", "their", "but", "not", "can", "will", "just", "so", "if",
    "then", "than",
})

MIN_SLIDES = 3
MAX_SLIDES = 40
DEFAULT_WORDS_PER_SLIDE = 120
DEFAULT_TOPIC_LIMIT = 7

COMPLEXITY_FACTORS: dict[str, float] = {
    "beginner": 1.0,
    "intermediate": 1.1,
    "advanced": 1.3,
}

_TOKEN_SPLIT_RE = re.compile(r"[^a-z0-9]+")

# First match wins; the order of each list is significant.
AUDIENCE_RULES: list[tuple[Audience, re.Pattern[str]]] = [
    ("students", re.compile(r"\b(class|lecture|students?|exam|homework|course)\b")),
    ("executives", re.compile(r"\b(roi|stakeholders?|kpis?|board|executives?|strategy)\b")),
    ("technical", re.compile(r"\b(api|code|developers?|sdk|architecture|runtime|algorithms?)\b")),
]

DOMAIN_RULES: list[tuple[Domain, re.Pattern[str]]] = [
    ("technology", re.compile(r"\b(api|cloud|microservices?|runtime|compilers?|frontend|backend|databases?)\b")),
    ("business", re.compile(r"\b(markets?|revenue|profits?|roi|kpis?|customers?|sales|marketing|strategy)\b")),
    ("medicine", re.compile(r"\b(patients?|clinical|therapy|symptoms?|diagnosis|medicine|surgery)\b")),
    ("education", re.compile(r"\b(curriculum|lessons?|teachers?|students?|pedagogy|education)\b")),
    ("science", re.compile(r"\b(experiments?|hypothesis|physics|biology|chemistry|research)\b")),
]

PURPOSE_RULES: list[tuple[Purpose, re.Pattern[str]]] = [
    ("educate", re.compile(r"\b(how to|tutorial|guide|step by step|learn)")),
    ("persuade", re.compile(r"\b(recommend|should|must|convince|why)\b")),
    ("inspire", re.compile(r"\b(inspire|motivate|vision|aspire|story)")),
]

TONE_RULES: list[tuple[Tone, re.Pattern[str]]] = [
    ("academic", re.compile(r"\b(therefore|hence|consequently|notwithstanding|whereas)\b")),
    ("business", re.compile(r"\b(profits?|markets?|roi|stakeholders?|synergy|roadmap)\b")),
    ("casual", re.compile(r"\b(lol|hey|cool|awesome|guys|gonna|wanna)\b")),
]

_FORMAL_CUES_RE = re.compile(r"\b(therefore|however|moreover|furthermore|hence|thus)\b")
_CASUAL_CUES_RE = re.compile(r"\b(gonna|wanna|kinda|sorta|lol|btw|hey|cool)\b")
_CONTRACTION_RE = re.compile(r"\b\w+['’](re|s|ve|d|ll|t)\b")
_BEGINNER_CUE_RE = re.compile(r"\b(beginner|introduction|intro|overview|basics|simple)\b")
_JARGON_RE = re.compile(r"ization|ality|ivity|ology|metric|module|async|neural|quantum")


def tokenize(text: str) -> list[str]:
    return [token for token in _TOKEN_SPLIT_RE.split((text or "").lower()) if token]


def _first_match(text: str, rules: list[tuple[str, re.Pattern[str]]], default: str) -> str:
    for label, pattern in rules:
        if pattern.search(text):
            return label
    return default


def detect_audience(text: str) -> Audience:
    return _first_match(text.lower(), AUDIENCE_RULES, "general")  # type: ignore[return-value]


def detect_domain(text: str) -> Domain:
    return _first_match(text.lower(), DOMAIN_RULES, "general")  # type: ignore[return-value]


def detect_purpose(text: str) -> Purpose:
    return _first_match(text.lower(), PURPOSE_RULES, "inform")  # type: ignore[return-value]


def detect_tone(text: str) -> Tone:
    return _first_match(text.lower(), TONE_RULES, "formal")  # type: ignore[return-value]


def score_formality(text: str) -> int:
    lowered = text.lower()
    score = 5.0
    score += len(_FORMAL_CUES_RE.findall(lowered))
    score -= len(_CASUAL_CUES_RE.findall(lowered))
    score -= 0.5 * len(_CONTRACTION_RE.findall(lowered))
    return max(1, min(10, round_half_up(score)))


def assess_complexity(text: str, tokens: list[str] | None = None) -> Complexity:
    if _BEGINNER_CUE_RE.search(text.lower()):
        return "beginner"
    tokens = tokenize(text) if tokens is None else tokens
    if not tokens:
        return "beginner"
    avg_len = sum(len(token) for token in tokens) / len(tokens)
    jargon_hits = sum(1 for token in tokens if _JARGON_RE.search(token))
    if jargon_hits >= 3 or avg_len > 6.5:
        return "advanced"
    if jargon_hits >= 1 or avg_len > 5.5:
        return "intermediate"
    return "beginner"


def suggest_slide_count(
    word_count: int,
    complexity: str,
    words_per_slide: int = DEFAULT_WORDS_PER_SLIDE,
) -> int:
    factor = COMPLEXITY_FACTORS.get(complexity, 1.0)
    raw = word_count / max(1, words_per_slide) * factor
    return max(MIN_SLIDES, min(MAX_SLIDES, round_half_up(raw)))


def extract_key_topics(tokens: list[str], limit: int = DEFAULT_TOPIC_LIMIT) -> list[KeyTopic]:
    counts = Counter(token for token in tokens if len(token) >= 3 and token not in STOPWORDS)
    # Counter keeps first-seen order, so ties stay in reading order.
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [KeyTopic(term=term, count=count) for term, count in ranked[: max(0, limit)]]


class ContentAnalyzer:
    """Lexical classifier turning raw text into a ContentAnalysis record."""

    def __init__(
        self,
        *,
        words_per_slide: int = DEFAULT_WORDS_PER_SLIDE,
        topic_limit: int = DEFAULT_TOPIC_LIMIT,
    ):
        self.words_per_slide = words_per_slide
        self.topic_limit = topic_limit

    def analyze(self, text: str) -> ContentAnalysis:
        text = text or ""
        tokens = tokenize(text)
        if not tokens:
            return ContentAnalysis()

        complexity = assess_complexity(text, tokens)
        analysis = ContentAnalysis(
            audience=detect_audience(text),
            domain=detect_domain(text),
            purpose=detect_purpose(text),
            complexity=complexity,
            formality_score=score_formality(text),
            suggested_slide_count=suggest_slide_count(len(tokens), complexity, self.words_per_slide),
            key_topics=extract_key_topics(tokens, self.topic_limit),
            tone=detect_tone(text),
        )
        logger.debug(
            "content_analyzed words=%s audience=%s domain=%s complexity=%s slides=%s",
            len(tokens),
            analysis.audience,
            analysis.domain,
            analysis.complexity,
            analysis.suggested_slide_count,
        )
        return analysis
