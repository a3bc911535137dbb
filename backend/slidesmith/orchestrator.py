from __future__ import annotations

import hashlib
import logging
import re
import time
from time import perf_counter
from typing import Callable

from slidesmith.cache import BoundedCache
from slidesmith.cancellation import CancellationToken
from slidesmith.config import Settings, settings as default_settings
from slidesmith.errors import (
    AnalysisError,
    CancellationError,
    ComposeError,
    LayoutError,
    SlidesmithError,
    StyleError,
)
from slidesmith.logging_config import instance_logger, preview_text
from slidesmith.results import Result
from slidesmith.schemas import (
    ContentAnalysis,
    LayoutDecision,
    PipelineMetrics,
    PipelineOutput,
    PipelinePhase,
    PipelineProgress,
    QualityReport,
    ThemeDecision,
)
from slidesmith.services.content_analyzer import ContentAnalyzer
from slidesmith.services.layout_engine import LayoutEngine, create_default_layout_engine, default_decision
from slidesmith.services.quality import QualityAssuranceService
from slidesmith.services.slide_composer import SlideComposer
from slidesmith.services.template_engine import TemplateEngine, create_default_template_set
from slidesmith.services.theme_selector import FALLBACK_THEME, ThemeSelector, ensure_accessible_theme
from slidesmith.text_utils import normalize_newlines

ProgressCallback = Callable[[PipelineProgress], None]

PHASE_PERCENT: dict[PipelinePhase, int] = {
    PipelinePhase.ANALYZING: 5,
    PipelinePhase.LAYOUTING: 30,
    PipelinePhase.STYLING: 55,
    PipelinePhase.COMPOSING: 80,
    PipelinePhase.DONE: 100,
}

PHASE_MESSAGES: dict[PipelinePhase, str] = {
    PipelinePhase.ANALYZING: "Analyzing content",
    PipelinePhase.LAYOUTING: "Choosing slide layouts",
    PipelinePhase.STYLING: "Selecting theme",
    PipelinePhase.COMPOSING: "Composing slides",
    PipelinePhase.DONE: "Presentation ready",
}

_PARAGRAPH_SPLIT_RE = re.compile(r"\n{2,}")


def split_paragraphs(raw_markdown: str) -> list[str]:
    text = normalize_newlines(raw_markdown or "")
    return [block.strip() for block in _PARAGRAPH_SPLIT_RE.split(text) if block.strip()]


def content_hash(raw_markdown: str) -> str:
    return hashlib.sha1((raw_markdown or "").encode("utf-8")).hexdigest()


def fallback_analysis() -> ContentAnalysis:
    return ContentAnalysis()


class PresentationOrchestrator:
    """Runs analyze, layout, style and compose as one sequential pipeline.

    Analysis and layout results are cached by a hash of the raw input. The
    analyze/layout/style stages degrade to safe defaults when their component
    raises; a compose failure ends the run. ``generate`` never raises: the
    outcome is always a ``Result``.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        analyzer: ContentAnalyzer | None = None,
        layout_engine: LayoutEngine | None = None,
        theme_selector: ThemeSelector | None = None,
        composer: SlideComposer | None = None,
        template_engine: TemplateEngine | None = None,
        quality_service: QualityAssuranceService | None = None,
        on_progress: ProgressCallback | None = None,
        logger: logging.Logger | None = None,
        now: Callable[[], float] = time.time,
    ):
        self.settings = settings or default_settings
        cfg = self.settings
        if logger is None:
            logger = instance_logger("slidesmith.pipeline", cfg.log_level)
        self.logger = logger

        self.analyzer = analyzer or ContentAnalyzer(
            words_per_slide=cfg.words_per_slide,
            topic_limit=cfg.key_topics_limit,
        )
        self.layout_engine = layout_engine or create_default_layout_engine()
        self.theme_selector = theme_selector or ThemeSelector()
        if template_engine is None and composer is None:
            template_engine = TemplateEngine(
                create_default_template_set(),
                engine_version=cfg.engine_version,
                cache_size=cfg.renderer_cache_size,
            )
        self.template_engine = template_engine
        self.composer = composer or SlideComposer(
            max_lines_per_slide=cfg.max_lines_per_slide,
            template_engine=template_engine,
        )
        self.quality_service = quality_service
        if self.quality_service is None and cfg.quality_checks:
            self.quality_service = QualityAssuranceService(
                max_lines_per_slide=cfg.max_lines_per_slide,
                min_lines_per_slide=cfg.min_lines_per_slide,
            )
        self.on_progress = on_progress
        self._now = now

        self.analysis_cache: BoundedCache[str, ContentAnalysis] = BoundedCache(
            max_entries=cfg.pipeline_cache_size,
            default_ttl=cfg.pipeline_cache_ttl_seconds,
        )
        self.layout_cache: BoundedCache[str, list[LayoutDecision]] = BoundedCache(
            max_entries=cfg.pipeline_cache_size,
            default_ttl=cfg.pipeline_cache_ttl_seconds,
        )
        self.phase = PipelinePhase.IDLE
        self._percent = 0

    # Lifecycle

    def start(self) -> "PresentationOrchestrator":
        interval = self.settings.cache_cleanup_interval_seconds
        if interval and interval > 0:
            self.analysis_cache.start_cleanup(interval)
            self.layout_cache.start_cleanup(interval)
            self.logger.debug("cache_sweeper_started interval=%s", interval)
        return self

    def close(self) -> None:
        self.analysis_cache.stop_cleanup()
        self.layout_cache.stop_cleanup()

    def __enter__(self) -> "PresentationOrchestrator":
        return self.start()

    def __exit__(self, *_exc) -> None:
        self.close()

    def clear_caches(self) -> None:
        self.analysis_cache.clear()
        self.layout_cache.clear()

    # Pipeline

    def generate(
        self,
        raw_markdown: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> Result[PipelineOutput]:
        token = cancel_token or CancellationToken()
        self.phase = PipelinePhase.IDLE
        self._percent = 0
        if token.cancelled:
            self.phase = PipelinePhase.ERROR
            self.logger.info("pipeline_cancelled phase=idle reason=%s", token.reason or "")
            self._report(PipelinePhase.ERROR, 0, "Generation cancelled")
            return Result.failure(CancellationError(phase=PipelinePhase.IDLE.value))

        raw_markdown = raw_markdown or ""
        digest = content_hash(raw_markdown)
        metrics = PipelineMetrics(started_at=self._now())
        warnings: list[str] = []
        started = perf_counter()
        self.logger.info(
            "pipeline_start hash=%s chars=%s preview=%s",
            digest[:12],
            len(raw_markdown),
            preview_text(raw_markdown, self.settings.log_preview_chars),
        )

        try:
            self._enter(PipelinePhase.ANALYZING)
            step = perf_counter()
            analysis = self._analyze(raw_markdown, digest, warnings)
            metrics.steps["analyze"] = _elapsed_ms(step)
            token.raise_if_cancelled(self.phase.value)

            self._enter(PipelinePhase.LAYOUTING)
            step = perf_counter()
            paragraphs = split_paragraphs(raw_markdown)
            decisions = self._layout(paragraphs, digest, warnings, token)
            metrics.steps["layout"] = _elapsed_ms(step)
            token.raise_if_cancelled(self.phase.value)

            self._enter(PipelinePhase.STYLING)
            step = perf_counter()
            theme = self._style(analysis, warnings)
            metrics.steps["style"] = _elapsed_ms(step)
            token.raise_if_cancelled(self.phase.value)

            self._enter(PipelinePhase.COMPOSING)
            step = perf_counter()
            composed = self.composer.compose_slides(paragraphs, decisions, theme)
            if not composed.ok:
                raise composed.error or ComposeError("Slide composition failed")
            slides = composed.unwrap()
            metrics.steps["compose"] = _elapsed_ms(step)

            quality: QualityReport | None = None
            quality_service = self.quality_service
            if quality_service is not None:
                step = perf_counter()
                quality = self._review(quality_service, slides, warnings)
                metrics.steps["quality"] = _elapsed_ms(step)
            token.raise_if_cancelled(self.phase.value)
        except CancellationError as exc:
            self.logger.info("pipeline_cancelled phase=%s", exc.phase or self.phase.value)
            self._fail("Generation cancelled")
            return Result.failure(exc)
        except SlidesmithError as exc:
            self.logger.error("pipeline_failed phase=%s code=%s reason=%s", self.phase.value, exc.code, exc)
            self._fail(str(exc))
            if not isinstance(exc, ComposeError):
                wrapped = ComposeError(str(exc))
                wrapped.__cause__ = exc
                exc = wrapped
            return Result.failure(exc)
        except Exception as exc:
            self.logger.exception("pipeline_error phase=%s", self.phase.value)
            self._fail(str(exc))
            error = ComposeError(f"Generation failed: {exc}")
            error.__cause__ = exc
            return Result.failure(error)

        metrics.finished_at = self._now()
        metrics.duration_ms = _elapsed_ms(started)
        self._enter(PipelinePhase.DONE)
        self.logger.info(
            "pipeline_complete hash=%s slides=%s theme=%s warnings=%s duration_ms=%.1f",
            digest[:12],
            len(slides),
            theme.name,
            len(warnings),
            metrics.duration_ms,
        )
        return Result.success(
            PipelineOutput(
                analysis=analysis,
                layout_decisions=decisions,
                theme=theme,
                slides=slides,
                metrics=metrics,
                warnings=warnings,
                quality=quality,
            )
        )

    # Stages

    def _analyze(self, raw_markdown: str, digest: str, warnings: list[str]) -> ContentAnalysis:
        cached = self.analysis_cache.get(digest)
        if cached is not None:
            self.logger.debug("analysis_cache_hit hash=%s", digest[:12])
            return cached
        try:
            analysis = self.analyzer.analyze(raw_markdown)
        except Exception as exc:
            error = AnalysisError(f"Content analysis failed: {exc}")
            self._degrade(error, exc, warnings)
            return fallback_analysis()
        self.analysis_cache.set(digest, analysis)
        return analysis

    def _layout(
        self,
        paragraphs: list[str],
        digest: str,
        warnings: list[str],
        token: CancellationToken,
    ) -> list[LayoutDecision]:
        cached = self.layout_cache.get(digest)
        if cached is not None:
            self.logger.debug("layout_cache_hit hash=%s blocks=%s", digest[:12], len(cached))
            return list(cached)

        decisions: list[LayoutDecision] = []
        degraded = False
        for index, paragraph in enumerate(paragraphs):
            token.raise_if_cancelled(self.phase.value)
            try:
                decisions.append(self.layout_engine.decide(paragraph))
            except Exception as exc:
                error = LayoutError(f"Layout for block {index + 1} failed: {exc}")
                self._degrade(error, exc, warnings)
                decisions.append(default_decision())
                degraded = True

        try:
            decisions = self.layout_engine.optimize_flow(decisions)
        except Exception as exc:
            error = LayoutError(f"Layout flow optimization failed: {exc}")
            self._degrade(error, exc, warnings)
            degraded = True

        if not degraded:
            self.layout_cache.set(digest, list(decisions))
        return decisions

    def _style(self, analysis: ContentAnalysis, warnings: list[str]) -> ThemeDecision:
        try:
            return self.theme_selector.decide_from_analysis(analysis)
        except Exception as exc:
            error = StyleError(f"Theme selection failed: {exc}")
            self._degrade(error, exc, warnings)
            return ensure_accessible_theme(FALLBACK_THEME)

    def _review(
        self,
        service: QualityAssuranceService,
        slides: list[str],
        warnings: list[str],
    ) -> QualityReport | None:
        reviewed = service.review(slides)
        if not reviewed.ok:
            warnings.append(str(reviewed.error))
            self.logger.warning("quality_review_skipped reason=%s", reviewed.error)
            return None
        return reviewed.unwrap().report

    # Progress

    def _degrade(self, error: SlidesmithError, cause: Exception, warnings: list[str]) -> None:
        error.__cause__ = cause
        warnings.append(str(error))
        self.logger.warning("stage_fallback phase=%s code=%s reason=%s", self.phase.value, error.code, cause)

    def _enter(self, phase: PipelinePhase) -> None:
        self.phase = phase
        self._report(phase, PHASE_PERCENT[phase], PHASE_MESSAGES[phase])

    def _fail(self, message: str) -> None:
        self.phase = PipelinePhase.ERROR
        self._report(PipelinePhase.ERROR, self._percent, message)

    def _report(self, phase: PipelinePhase, percent: int, message: str) -> None:
        percent = max(self._percent, percent)
        self._percent = percent
        if self.on_progress is None:
            return
        try:
            self.on_progress(PipelineProgress(phase=phase, percent=percent, message=message))
        except Exception:
            # Progress consumers must never break generation.
            self.logger.exception("progress_callback_failed phase=%s", phase.value)


def _elapsed_ms(started: float) -> float:
    return round((perf_counter() - started) * 1000, 3)
