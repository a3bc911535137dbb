from __future__ import annotations

import hashlib
import logging
import re
import unicodedata
from typing import Sequence

from slidesmith.errors import SlidesmithError
from slidesmith.results import Result
from slidesmith.schemas import (
    AccessibilityMetrics,
    QualityIssue,
    QualityMetrics,
    QualityReport,
    QualityResult,
    ReadabilityMetrics,
)
from slidesmith.text_utils import strip_control_chars

logger = logging.getLogger("slidesmith.quality")

SEVERITY_PENALTIES = {"error": 10.0, "warn": 4.0, "info": 1.0}
MAX_PENALTY = 100.0

_TRAILING_SPACE_RE = re.compile(r"[ \t]+$", re.MULTILINE)
_EXTRA_BLANK_LINES_RE = re.compile(r"\n{3,}")
_MARKDOWN_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\([^)]+\)")
_HEADING_RE = re.compile(r"^\s*#\s+", re.MULTILINE)
_SENTENCE_END_RE = re.compile(r"[.!?]+(?:\s|$)")
_WORD_RE = re.compile(r"\b\w+\b")
_SYLLABLE_RE = re.compile(r"[aeiouyąęóAEIOUYĄĘÓ]{1,2}")
_POLISH_HINTS_RE = re.compile(r" (i|oraz|że|jest|się|nie|tak|na|po|do|dla) ")
_ENGLISH_HINTS_RE = re.compile(r" (the|and|is|are|of|to|for|with) ")


class QualityCheckError(SlidesmithError):
    code = "quality_failed"


def normalize_slide(text: str) -> str:
    text = unicodedata.normalize("NFC", text or "")
    text = strip_control_chars(text)
    text = _TRAILING_SPACE_RE.sub("", text)
    return _EXTRA_BLANK_LINES_RE.sub("\n\n", text).strip()


def _content_lines(text: str) -> list[str]:
    return [line for line in text.split("\n") if line.strip()]


def readability_score(text: str) -> float:
    """Approximate Flesch reading ease, clamped to [0, 100]."""
    sentences = len(_SENTENCE_END_RE.findall(text)) or 1
    words = len(_WORD_RE.findall(text)) or 1
    syllables = len(_SYLLABLE_RE.findall(text)) or round(words * 1.5)
    score = 206.835 - 1.015 * (words / sentences) - 84.6 * (syllables / words)
    return max(0.0, min(100.0, score))


def detect_language(text: str) -> str:
    sample = f" {text[:500].lower()} "
    polish = len(_POLISH_HINTS_RE.findall(sample))
    english = len(_ENGLISH_HINTS_RE.findall(sample))
    if polish > english * 1.2:
        return "pl"
    if english > polish * 1.2:
        return "en"
    return "unknown"


def _fingerprint(text: str) -> str:
    collapsed = re.sub(r"\s+", " ", text.lower()).strip()
    return hashlib.sha1(collapsed.encode("utf-8")).hexdigest()


def quality_score(issues: Sequence[QualityIssue]) -> float:
    penalty = sum(SEVERITY_PENALTIES.get(issue.severity, 1.0) for issue in issues)
    return round(max(0.0, 100.0 - min(penalty, MAX_PENALTY)), 2)


class QualityAssuranceService:
    def __init__(self, *, max_lines_per_slide: int = 20, min_lines_per_slide: int = 3):
        if min_lines_per_slide > max_lines_per_slide:
            raise ValueError("min_lines_per_slide cannot exceed max_lines_per_slide")
        self.max_lines = max_lines_per_slide
        self.min_lines = min_lines_per_slide

    def review(self, slides: Sequence[str], language_hints: Sequence[str] | None = None) -> Result[QualityResult]:
        try:
            normalized = [normalize_slide(slide) for slide in slides]
            issues = self.validate_slides(normalized)
            optimized = self.optimize_slide_count(normalized)
            deduped = self.remove_duplicates(optimized, issues)
            metrics = self.compute_metrics(deduped, issues, language_hints)
            report = QualityReport(
                issues=issues,
                metrics=metrics,
                suggestions=self.build_suggestions(metrics, issues),
                score=quality_score(issues),
            )
        except Exception as exc:
            logger.exception("quality_review_failed slides=%s", len(slides))
            error = QualityCheckError(f"Quality review failed: {exc}")
            error.__cause__ = exc
            return Result.failure(error)
        logger.info(
            "quality_reviewed slides_in=%s slides_out=%s issues=%s score=%s",
            len(slides),
            len(deduped),
            len(issues),
            report.score,
        )
        return Result.success(QualityResult(slides=deduped, report=report))

    def validate_slides(self, slides: Sequence[str]) -> list[QualityIssue]:
        issues: list[QualityIssue] = []
        for index, slide in enumerate(slides):
            lines = _content_lines(slide)
            if not lines:
                issues.append(QualityIssue(slide_index=index, code="empty", message="Slide has no content", severity="warn"))
            if len(lines) > self.max_lines:
                issues.append(
                    QualityIssue(
                        slide_index=index,
                        code="too_long",
                        message=f"Slide exceeds {self.max_lines} lines",
                        severity="warn",
                    )
                )
            if slide.count("`") % 2:
                issues.append(
                    QualityIssue(
                        slide_index=index,
                        code="md_unbalanced_backticks",
                        message="Unbalanced inline code backticks",
                    )
                )
            for alt in _MARKDOWN_IMAGE_RE.findall(slide):
                if not alt.strip():
                    issues.append(
                        QualityIssue(
                            slide_index=index,
                            code="a11y:image_alt_missing",
                            message="Image without alt text",
                            severity="warn",
                        )
                    )
            if len(lines) >= 5 and not _HEADING_RE.search(slide):
                issues.append(
                    QualityIssue(
                        slide_index=index,
                        code="a11y:missing_heading",
                        message="Consider adding a heading",
                    )
                )
        return issues

    def optimize_slide_count(self, slides: Sequence[str]) -> list[str]:
        """Split slides longer than the maximum, merge runs of very short ones."""
        split: list[str] = []
        for slide in slides:
            lines = slide.split("\n")
            if len(lines) > self.max_lines:
                for start in range(0, len(lines), self.max_lines):
                    split.append("\n".join(lines[start:start + self.max_lines]))
            else:
                split.append(slide)

        merged: list[str] = []
        buffer = ""
        for slide in split:
            if len(slide.split("\n")) < self.min_lines:
                buffer = f"{buffer}\n\n{slide}" if buffer else slide
                if len(buffer.split("\n")) >= self.min_lines:
                    merged.append(buffer.strip())
                    buffer = ""
            else:
                if buffer.strip():
                    merged.append(buffer.strip())
                buffer = ""
                merged.append(slide)
        if buffer.strip():
            merged.append(buffer.strip())
        return merged

    def remove_duplicates(self, slides: Sequence[str], issues: list[QualityIssue]) -> list[str]:
        seen: dict[str, int] = {}
        unique: list[str] = []
        for index, slide in enumerate(slides):
            key = _fingerprint(slide)
            if key in seen:
                issues.append(
                    QualityIssue(
                        slide_index=index,
                        code="duplicate",
                        message=f"Duplicate of slide {seen[key] + 1}",
                    )
                )
                continue
            seen[key] = len(unique)
            unique.append(slide)
        return unique

    def compute_metrics(
        self,
        slides: Sequence[str],
        issues: Sequence[QualityIssue],
        language_hints: Sequence[str] | None = None,
    ) -> QualityMetrics:
        total = len(slides)
        line_counts = [len(_content_lines(slide)) for slide in slides]
        duplicates = sum(1 for issue in issues if issue.code == "duplicate")
        scores = [readability_score(slide) for slide in slides]
        languages: dict[str, int] = {}
        hints = {hint.lower() for hint in (language_hints or [])}
        for slide in slides:
            language = detect_language(slide)
            if language == "unknown" and len(hints) == 1:
                language = next(iter(hints))
            languages[language] = languages.get(language, 0) + 1
        return QualityMetrics(
            total_slides=total,
            avg_lines_per_slide=sum(line_counts) / max(1, total),
            duplicate_slide_ratio=0.0 if total == 0 else duplicates / (total + duplicates),
            readability=ReadabilityMetrics(avg_flesch_reading_ease=sum(scores) / max(1, len(scores))),
            languages=languages,
            accessibility=AccessibilityMetrics(
                images_without_alt=sum(1 for issue in issues if issue.code == "a11y:image_alt_missing"),
                headings_missing=sum(1 for issue in issues if issue.code == "a11y:missing_heading"),
            ),
            issues_count=len(issues),
        )

    def build_suggestions(self, metrics: QualityMetrics, issues: Sequence[QualityIssue]) -> list[str]:
        suggestions: list[str] = []
        if metrics.avg_lines_per_slide > self.max_lines * 0.9:
            suggestions.append("Reduce content density per slide for better readability")
        if metrics.readability.avg_flesch_reading_ease < 50:
            suggestions.append("Simplify wording to improve readability")
        if metrics.accessibility.images_without_alt > 0:
            suggestions.append("Add alt text to all images for accessibility")
        if metrics.languages.get("unknown", 0) > 0:
            suggestions.append("Language could not be reliably detected for some slides; review wording")
        if any(issue.code == "duplicate" for issue in issues):
            suggestions.append("Remove or consolidate duplicate slides")
        return suggestions
