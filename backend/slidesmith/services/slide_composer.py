from __future__ import annotations

import logging
import re
from typing import Sequence

from slidesmith.errors import ComposeError, SlidesmithError
from slidesmith.results import Result
from slidesmith.schemas import LayoutDecision, ThemeDecision
from slidesmith.security import safe_image_ref
from slidesmith.services.layout_engine import default_decision
from slidesmith.services.template_engine import TemplateEngine
from slidesmith.text_utils import escape_markdown, normalize_newlines, slugify, strip_control_chars

logger = logging.getLogger("slidesmith.composer")

DEFAULT_MAX_LINES = 20
TITLE_MAX_CHARS = 120
EMPTY_COLUMN = "- —"
TRANSITIONS = frozenset({"fade", "slide", "zoom", "convex", "concave", "none"})

_HEADING_RE = re.compile(r"^\s*#{1,6}\s+(.+)$", re.MULTILINE)
_PROS_RE = re.compile(r"^pros\s*:?-?", re.IGNORECASE)
_CONS_RE = re.compile(r"^cons\s*:?-?", re.IGNORECASE)
_QUOTE_RE = re.compile(r"^\s*>\s*(.+)$", re.MULTILINE)
_BULLET_RE = re.compile(r"^\s*(?:[-*+]\s+|\d+[.)]\s+)")
_IMAGE_URL_RE = re.compile(r"https?://\S+?\.(?:png|jpe?g|gif|svg|webp)(?![A-Za-z0-9])", re.IGNORECASE)
_MARKDOWN_IMAGE_RE = re.compile(r"!\[[^\]]*\]\([^)]*\)")


def safe_text(text: str) -> str:
    return strip_control_chars(normalize_newlines(text or "")).strip()


def extract_title(text: str) -> str:
    match = _HEADING_RE.search(text)
    raw = match.group(1) if match else text.split("\n", 1)[0]
    return escape_markdown(raw.strip()[:TITLE_MAX_CHARS])


def render_comparison(text: str) -> str:
    left: list[str] = []
    right: list[str] = []
    for line in (row.strip() for row in text.split("\n")):
        if _PROS_RE.match(line):
            left.append(f"- {escape_markdown(_PROS_RE.sub('', line, count=1).strip())}")
        elif _CONS_RE.match(line):
            right.append(f"- {escape_markdown(_CONS_RE.sub('', line, count=1).strip())}")
    left_col = "\n".join(left) if left else EMPTY_COLUMN
    right_col = "\n".join(right) if right else EMPTY_COLUMN
    return f"::: split\n{left_col}\n:::\n{right_col}\n:::"


def extract_quote(text: str) -> str:
    match = _QUOTE_RE.search(text)
    return escape_markdown(match.group(1).strip() if match else text.strip())


def render_quote(text: str) -> str:
    quote = extract_quote(text)
    return "\n".join(f"> {line}" for line in quote.split("\n"))


def render_list(text: str, max_lines: int) -> str:
    items = [
        "- " + escape_markdown(_BULLET_RE.sub("", line, count=1).strip())
        for line in text.split("\n")
        if _BULLET_RE.match(line)
    ]
    return "\n".join(items[:max_lines])


def render_content(text: str, max_lines: int) -> str:
    lines = [line for line in text.split("\n") if line.strip()]
    return "\n".join(escape_markdown(line) for line in lines[:max_lines])


def render_image(text: str, decision: LayoutDecision, max_lines: int) -> str:
    candidates = [str(src) for src in (decision.params.get("images") or []) if src]
    refs = [ref for ref in (safe_image_ref(src) for src in candidates) if ref]
    if not refs:
        match = _IMAGE_URL_RE.search(text)
        ref = safe_image_ref(match.group(0)) if match else None
        if ref:
            refs = [ref]
    if refs:
        return "\n".join(f"![]({ref})" for ref in refs)
    if candidates:
        logger.info("image_refs_dropped count=%s", len(candidates))
    # Unusable image markup must not leak into the fallback text.
    return render_content(_MARKDOWN_IMAGE_RE.sub("", text), max_lines)


class SlideComposer:
    """Renders one slide per (paragraph, layout decision, theme) triple."""

    def __init__(
        self,
        *,
        max_lines_per_slide: int = DEFAULT_MAX_LINES,
        template_engine: TemplateEngine | None = None,
    ):
        self.max_lines = max(1, int(max_lines_per_slide))
        self.template_engine = template_engine

    def compose_slides(
        self,
        paragraphs: Sequence[str],
        decisions: Sequence[LayoutDecision],
        theme: ThemeDecision,
    ) -> Result[list[str]]:
        slides: list[str] = []
        try:
            for index, paragraph in enumerate(paragraphs):
                decision = decisions[index] if index < len(decisions) else default_decision()
                slides.append(self.render_slide(safe_text(paragraph), decision, theme))
        except SlidesmithError as exc:
            error = ComposeError(f"Slide {len(slides) + 1} could not be composed: {exc}")
            error.__cause__ = exc
            return Result.failure(error)
        except Exception as exc:
            logger.exception("compose_failed slide=%s", len(slides) + 1)
            error = ComposeError(f"Slide {len(slides) + 1} could not be composed: {exc}")
            error.__cause__ = exc
            return Result.failure(error)
        return Result.success(slides)

    def render_slide(self, text: str, decision: LayoutDecision, theme: ThemeDecision) -> str:
        kind = decision.type
        if kind == "title":
            body = f"# {extract_title(text)}"
        elif kind == "comparison":
            body = render_comparison(text)
        elif kind == "quote":
            body = render_quote(text)
        elif kind == "image":
            body = render_image(text, decision, self.max_lines)
        elif kind == "list":
            body = render_list(text, self.max_lines)
        else:
            body = render_content(text, self.max_lines)

        engine = self.template_engine
        if engine is not None:
            return self._render_with_template(engine, kind, text, body, decision, theme)
        return f"{self.render_header(theme, decision)}\n---\n{body}"

    def render_header(self, theme: ThemeDecision, decision: LayoutDecision | None = None) -> str:
        return f"<!-- slide:class={theme_class(theme)}{transition_attribute(decision)} -->"

    def _render_with_template(
        self,
        engine: TemplateEngine,
        kind: str,
        text: str,
        body: str,
        decision: LayoutDecision,
        theme: ThemeDecision,
    ) -> str:
        template_id = f"slide:{kind}" if f"slide:{kind}" in engine.template_ids else "slide:content"
        values = {
            "theme_class": theme_class(theme),
            "transition": transition_attribute(decision),
            "content": body,
            "title": extract_title(text),
            "items": body,
        }
        # Values are escaped above; the engine must not escape them twice.
        rendered = engine.render(template_id, values, escape_markdown=False)
        if not rendered.ok:
            raise rendered.error or ComposeError(f"Template '{template_id}' failed to render")
        return rendered.unwrap().text


def theme_class(theme: ThemeDecision) -> str:
    return f"theme-{slugify(theme.name)}"


def transition_attribute(decision: LayoutDecision | None) -> str:
    variant = str((decision.params if decision else {}).get("variant") or "").lower()
    return f" data-transition={variant}" if variant in TRANSITIONS else ""
