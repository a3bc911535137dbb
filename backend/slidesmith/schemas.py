from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Audience = Literal["students", "executives", "technical", "general"]
Domain = Literal["technology", "business", "medicine", "education", "science", "general"]
Purpose = Literal["inform", "persuade", "educate", "inspire"]
Complexity = Literal["beginner", "intermediate", "advanced"]
Tone = Literal["formal", "casual", "academic", "business"]


class KeyTopic(BaseModel):
    model_config = ConfigDict(frozen=True)

    term: str
    count: int = Field(ge=1)


class ContentAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    audience: Audience = "general"
    domain: Domain = "general"
    purpose: Purpose = "inform"
    complexity: Complexity = "beginner"
    formality_score: int = Field(default=5, ge=1, le=10)
    suggested_slide_count: int = Field(default=3, ge=3, le=40)
    key_topics: list[KeyTopic] = Field(default_factory=list)
    tone: Tone = "formal"


class LayoutDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    params: dict[str, Any] = Field(default_factory=dict)
    rationale: str = ""
    score: float = 0


class ThemeColors(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary: str
    secondary: str
    background: str
    text: str


class ThemeFonts(BaseModel):
    model_config = ConfigDict(frozen=True)

    heading: str
    body: str


class ThemeModifiers(BaseModel):
    model_config = ConfigDict(frozen=True)

    spacing: Literal["compact", "comfortable"] = "comfortable"
    emphasis: Literal["low", "medium", "high"] = "low"
    animations: Literal["none", "subtle", "expressive"] = "none"


class ThemeDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    colors: ThemeColors
    fonts: ThemeFonts
    modifiers: ThemeModifiers = Field(default_factory=ThemeModifiers)
    rationale: str = ""


class Template(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    id: str = Field(min_length=1)
    version: str = Field(min_length=1)
    engine_range: str | None = Field(default=None, alias="engineRange")
    layout: str = Field(min_length=1)
    extends: str | None = None
    variables: list[str] | None = None
    content: str


class RenderDebugInfo(BaseModel):
    template_chain: list[str]
    resolved_content: str
    values: dict[str, Any]
    ms: float


class RenderResult(BaseModel):
    text: str
    debug: RenderDebugInfo | None = None


class PipelinePhase(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    LAYOUTING = "layouting"
    STYLING = "styling"
    COMPOSING = "composing"
    DONE = "done"
    ERROR = "error"


class PipelineProgress(BaseModel):
    phase: PipelinePhase
    percent: int = Field(ge=0, le=100)
    message: str = ""


class PipelineMetrics(BaseModel):
    started_at: float
    finished_at: float | None = None
    duration_ms: float | None = None
    steps: dict[str, float] = Field(default_factory=dict)


class QualityIssue(BaseModel):
    slide_index: int
    code: str
    message: str
    severity: Literal["info", "warn", "error"] = "info"


class ReadabilityMetrics(BaseModel):
    avg_flesch_reading_ease: float = 0.0


class AccessibilityMetrics(BaseModel):
    images_without_alt: int = 0
    headings_missing: int = 0


class QualityMetrics(BaseModel):
    total_slides: int = 0
    avg_lines_per_slide: float = 0.0
    duplicate_slide_ratio: float = 0.0
    readability: ReadabilityMetrics = Field(default_factory=ReadabilityMetrics)
    languages: dict[str, int] = Field(default_factory=dict)
    accessibility: AccessibilityMetrics = Field(default_factory=AccessibilityMetrics)
    issues_count: int = 0


class QualityReport(BaseModel):
    issues: list[QualityIssue] = Field(default_factory=list)
    metrics: QualityMetrics = Field(default_factory=QualityMetrics)
    suggestions: list[str] = Field(default_factory=list)
    score: float = 100.0


class QualityResult(BaseModel):
    slides: list[str]
    report: QualityReport


class PipelineOutput(BaseModel):
    analysis: ContentAnalysis
    layout_decisions: list[LayoutDecision]
    theme: ThemeDecision
    slides: list[str]
    metrics: PipelineMetrics
    warnings: list[str] = Field(default_factory=list)
    quality: QualityReport | None = None
