from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from slidesmith.schemas import ContentAnalysis, ThemeColors, ThemeDecision, ThemeFonts, ThemeModifiers

logger = logging.getLogger("slidesmith.theme")

MIN_CONTRAST_RATIO = 4.5
BLACK = "#000000"
WHITE = "#FFFFFF"

_HEX_RE = re.compile(r"^(?:[0-9A-Fa-f]{3}|[0-9A-Fa-f]{6})$")

ThemeContext = Mapping[str, Any]


@dataclass(frozen=True)
class ThemeRule:
    id: str
    priority: int
    matches: Callable[[dict[str, str]], bool]
    decide: Callable[[dict[str, str]], ThemeDecision]


def _theme(
    name: str,
    colors: tuple[str, str, str, str],
    fonts: tuple[str, str],
    rationale: str,
    modifiers: tuple[str, str, str],
) -> ThemeDecision:
    primary, secondary, background, text = colors
    spacing, emphasis, animations = modifiers
    return ThemeDecision(
        name=name,
        colors=ThemeColors(primary=primary, secondary=secondary, background=background, text=text),
        fonts=ThemeFonts(heading=fonts[0], body=fonts[1]),
        modifiers=ThemeModifiers(spacing=spacing, emphasis=emphasis, animations=animations),
        rationale=rationale,
    )


THEMES: dict[str, ThemeDecision] = {
    "business_professional": _theme(
        "Business Professional",
        ("#0B5FFF", "#0A2E5C", "#FFFFFF", "#111111"),
        ("Inter", "Inter"),
        "Crisp corporate palette with strong contrast",
        ("comfortable", "low", "subtle"),
    ),
    "developer_dark": _theme(
        "Developer Dark",
        ("#5EDEA3", "#1E1E1E", "#121212", "#EAEAEA"),
        ("JetBrains Mono", "Inter"),
        "Dark theme for technical audiences and code snippets",
        ("compact", "medium", "none"),
    ),
    "academic_classic": _theme(
        "Academic Classic",
        ("#2B59C3", "#D9E1F2", "#FFFFFF", "#111111"),
        ("Merriweather", "Inter"),
        "Readable serif headings for lectures and papers",
        ("comfortable", "low", "none"),
    ),
    "creative_vibrant": _theme(
        "Creative Vibrant",
        ("#FF4D6D", "#FDE74C", "#FFFFFF", "#1A1A1A"),
        ("Poppins", "Inter"),
        "High-energy palette for inspirational content",
        ("comfortable", "high", "expressive"),
    ),
    "general_neutral": _theme(
        "General Neutral",
        ("#4C7CF3", "#A3B1DA", "#FFFFFF", "#1A1A1A"),
        ("Inter", "Inter"),
        "Neutral, safe defaults for unspecified content",
        ("comfortable", "low", "none"),
    ),
}

FALLBACK_THEME = THEMES["general_neutral"]


# Accessibility

def parse_hex_color(value: str) -> tuple[int, int, int]:
    cleaned = str(value or "").strip().lstrip("#")
    if not _HEX_RE.match(cleaned):
        raise ValueError(f"Invalid hex color: {value!r}")
    if len(cleaned) == 3:
        cleaned = "".join(ch * 2 for ch in cleaned)
    return int(cleaned[0:2], 16), int(cleaned[2:4], 16), int(cleaned[4:6], 16)


def _linearize(channel: int) -> float:
    srgb = channel / 255
    return srgb / 12.92 if srgb <= 0.03928 else ((srgb + 0.055) / 1.055) ** 2.4


def relative_luminance(color: str) -> float:
    r, g, b = (_linearize(channel) for channel in parse_hex_color(color))
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def contrast_ratio(foreground: str, background: str) -> float:
    l1 = relative_luminance(foreground)
    l2 = relative_luminance(background)
    return (max(l1, l2) + 0.05) / (min(l1, l2) + 0.05)


def ensure_accessible_theme(theme: ThemeDecision, minimum: float = MIN_CONTRAST_RATIO) -> ThemeDecision:
    """Swap the text color for black or white when it fails the contrast minimum."""
    background = theme.colors.background
    if contrast_ratio(theme.colors.text, background) >= minimum:
        return theme
    text = WHITE if contrast_ratio(WHITE, background) >= contrast_ratio(BLACK, background) else BLACK
    logger.info(
        "theme_text_adjusted theme=%s old=%s new=%s background=%s",
        theme.name,
        theme.colors.text,
        text,
        background,
    )
    return theme.model_copy(
        update={
            "colors": theme.colors.model_copy(update={"text": text}),
            "rationale": f"{theme.rationale}; adjusted text for WCAG",
        }
    )


def recommend_fonts(audience: str) -> ThemeFonts:
    if re.search(r"technical|developer", audience, re.IGNORECASE):
        return ThemeFonts(heading="JetBrains Mono", body="Inter")
    if re.search(r"academic|students|education", audience, re.IGNORECASE):
        return ThemeFonts(heading="Merriweather", body="Inter")
    return ThemeFonts(heading="Inter", body="Inter")


# Rules

def _normalize_context(context: ThemeContext | ContentAnalysis) -> dict[str, str]:
    if isinstance(context, ContentAnalysis):
        raw: Mapping[str, Any] = {
            "domain": context.domain,
            "audience": context.audience,
            "tone": context.tone,
        }
    else:
        raw = context or {}
    return {key: str(raw.get(key) or "general") for key in ("domain", "audience", "tone")}


def create_default_theme_rules() -> list[ThemeRule]:
    return [
        ThemeRule(
            id="theme:business",
            priority=100,
            matches=lambda ctx: bool(
                re.search(r"executive|business", ctx["audience"], re.IGNORECASE)
                or re.search(r"business|marketing|sales", ctx["domain"], re.IGNORECASE)
                or re.search(r"business", ctx["tone"], re.IGNORECASE)
            ),
            decide=lambda _ctx: THEMES["business_professional"],
        ),
        ThemeRule(
            id="theme:technical",
            priority=90,
            matches=lambda ctx: bool(
                re.search(r"technical|developer", ctx["audience"], re.IGNORECASE)
                or re.search(r"technology", ctx["domain"], re.IGNORECASE)
            ),
            decide=lambda _ctx: THEMES["developer_dark"],
        ),
        ThemeRule(
            id="theme:academic",
            priority=80,
            matches=lambda ctx: bool(
                re.search(r"students|education", ctx["audience"], re.IGNORECASE)
                or re.search(r"education|science|medicine", ctx["domain"], re.IGNORECASE)
            ),
            decide=lambda _ctx: THEMES["academic_classic"],
        ),
        ThemeRule(
            id="theme:creative",
            priority=70,
            matches=lambda ctx: bool(re.search(r"inspire|creative|casual", ctx["tone"], re.IGNORECASE)),
            decide=lambda _ctx: THEMES["creative_vibrant"],
        ),
    ]


class ThemeSelector:
    def __init__(self, rules: Iterable[ThemeRule] | None = None):
        rules = list(rules) if rules is not None else create_default_theme_rules()
        self._rules: list[ThemeRule] = sorted(rules, key=lambda rule: -rule.priority)

    @property
    def rules(self) -> list[ThemeRule]:
        return list(self._rules)

    def add_rule(self, rule: ThemeRule) -> None:
        self._rules.append(rule)
        self._rules.sort(key=lambda item: -item.priority)

    def decide(self, context: ThemeContext | ContentAnalysis) -> ThemeDecision:
        ctx = _normalize_context(context)
        for rule in self._rules:
            try:
                if not rule.matches(ctx):
                    continue
                theme = rule.decide(ctx)
                logger.debug("theme_rule_matched rule=%s theme=%s", rule.id, theme.name)
                return ensure_accessible_theme(theme)
            except Exception as exc:
                # A broken rule or an unparseable palette falls back instead of failing the deck.
                logger.warning("theme_rule_failed rule=%s reason=%s", rule.id, exc)
                return ensure_accessible_theme(FALLBACK_THEME)
        return ensure_accessible_theme(FALLBACK_THEME)

    def decide_from_analysis(self, analysis: ContentAnalysis) -> ThemeDecision:
        return self.decide(analysis)
