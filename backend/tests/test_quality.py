from __future__ import annotations

import pytest

from slidesmith.schemas import QualityIssue
from slidesmith.services.quality import (
    QualityAssuranceService,
    detect_language,
    normalize_slide,
    quality_score,
    readability_score,
)


def test_normalize_slide_cleans_whitespace_and_control_chars() -> None:
    assert normalize_slide("Title  \n\n\n\nBody\x00 text\t") == "Title\n\nBody text"


def test_validation_flags_common_problems() -> None:
    service = QualityAssuranceService()
    issues = service.validate_slides(["", "a `b", "![](x.png)\nline", "1\n2\n3\n4\n5"])

    assert [(issue.slide_index, issue.code) for issue in issues] == [
        (0, "empty"),
        (1, "md_unbalanced_backticks"),
        (2, "a11y:image_alt_missing"),
        (3, "a11y:missing_heading"),
    ]


def test_too_long_slides_are_flagged_and_split() -> None:
    service = QualityAssuranceService(max_lines_per_slide=4, min_lines_per_slide=2)
    slide = "# T\na\nb\nc\nd\ne"

    assert any(issue.code == "too_long" for issue in service.validate_slides([slide]))
    assert service.optimize_slide_count([slide]) == ["# T\na\nb\nc", "d\ne"]


def test_short_slides_are_merged() -> None:
    service = QualityAssuranceService(max_lines_per_slide=10, min_lines_per_slide=2)

    assert service.optimize_slide_count(["one", "two", "x\ny\nz"]) == ["one\n\ntwo", "x\ny\nz"]


def test_review_removes_duplicates_and_reports() -> None:
    slides = ["# A\nline one\nline two", "# a\nline  one\nLINE two"]
    result = QualityAssuranceService().review(slides)
    reviewed = result.unwrap()

    assert reviewed.slides == ["# A\nline one\nline two"]
    report = reviewed.report
    assert [issue.code for issue in report.issues] == ["duplicate"]
    assert report.metrics.total_slides == 1
    assert report.metrics.duplicate_slide_ratio == 0.5
    assert "Remove or consolidate duplicate slides" in report.suggestions
    assert report.score == 99.0


def test_language_detection() -> None:
    assert detect_language("the cat and the dog is for you") == "en"
    assert detect_language("to jest dom i ogród oraz się nie") == "pl"
    assert detect_language("12345") == "unknown"


def test_language_hint_fills_unknown() -> None:
    report = QualityAssuranceService().review(["# Intro\n12345\n67890"], language_hints=["pl"]).unwrap().report

    assert report.metrics.languages == {"pl": 1}


def test_readability_is_clamped() -> None:
    assert 0.0 <= readability_score("Supercalifragilisticexpialidocious antidisestablishmentarianism.") <= 100.0
    assert readability_score("Go. Run. Sit.") == 100.0


def test_score_decreases_with_severity() -> None:
    assert quality_score([]) == 100.0
    issues = [
        QualityIssue(slide_index=0, code="x", message="m", severity="error"),
        QualityIssue(slide_index=0, code="y", message="m", severity="warn"),
    ]
    assert quality_score(issues) == 86.0


def test_invalid_line_limits_are_rejected() -> None:
    with pytest.raises(ValueError):
        QualityAssuranceService(max_lines_per_slide=2, min_lines_per_slide=5)
