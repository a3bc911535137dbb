from __future__ import annotations

from slidesmith.schemas import ContentAnalysis
from slidesmith.services.content_analyzer import (
    ContentAnalyzer,
    assess_complexity,
    extract_key_topics,
    score_formality,
    suggest_slide_count,
    tokenize,
)


def test_students_are_detected_from_classroom_vocabulary() -> None:
    analysis = ContentAnalyzer().analyze("The students have an exam and homework")

    assert analysis.audience == "students"


def test_empty_input_returns_neutral_defaults() -> None:
    for text in ("", "   \n\n ", "!!! ---"):
        analysis = ContentAnalyzer().analyze(text)
        assert analysis == ContentAnalysis()
        assert analysis.audience == "general"
        assert analysis.domain == "general"
        assert analysis.purpose == "inform"
        assert analysis.complexity == "beginner"
        assert analysis.suggested_slide_count == 3
        assert analysis.key_topics == []


def test_formality_score_is_clamped() -> None:
    formal = "therefore however moreover furthermore hence thus " * 5
    casual = "hey lol gonna wanna it's we're cool btw " * 5

    assert score_formality(formal) == 10
    assert score_formality(casual) == 1
    assert score_formality("plain words only") == 5


def test_suggested_slide_count_follows_word_count_and_complexity() -> None:
    assert suggest_slide_count(1000, "beginner") == 8
    assert suggest_slide_count(1000, "advanced") == 11
    assert suggest_slide_count(10, "beginner") == 3
    assert suggest_slide_count(100_000, "advanced") == 40


def test_analysis_stays_within_bounds_for_long_text() -> None:
    text = "we will discuss the data pipeline " * 2000
    analysis = ContentAnalyzer().analyze(text)

    assert 1 <= analysis.formality_score <= 10
    assert 3 <= analysis.suggested_slide_count <= 40
    assert analysis.suggested_slide_count == 40


def test_beginner_cue_short_circuits_complexity() -> None:
    text = "An overview of containerization, virtualization and observability modules"

    assert assess_complexity(text) == "beginner"
    assert assess_complexity("containerization virtualization observability modules") == "advanced"


def test_key_topics_ranked_by_frequency_with_stable_ties() -> None:
    tokens = tokenize("zeta alpha beta alpha gamma beta alpha the and")
    topics = extract_key_topics(tokens, limit=3)

    assert [(topic.term, topic.count) for topic in topics] == [("alpha", 3), ("beta", 2), ("zeta", 1)]


def test_topic_limit_is_configurable() -> None:
    analyzer = ContentAnalyzer(topic_limit=2)
    analysis = analyzer.analyze("cloud cloud cloud database database runtime api")

    assert [topic.term for topic in analysis.key_topics] == ["cloud", "database"]
    assert analysis.domain == "technology"
    assert analysis.audience == "technical"
