from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from slidesmith.schemas import LayoutDecision

logger = logging.getLogger("slidesmith.layout")

LAYOUT_TYPES = ("title", "comparison", "quote", "list", "image", "default")
LIST_COLUMN_THRESHOLD = 6

FlowOptimizer = Callable[[list[LayoutDecision]], list[LayoutDecision]]


@dataclass(frozen=True)
class LayoutRule:
    id: str
    priority: int
    matches: Callable[[str], bool]
    decide: Callable[[str], Mapping[str, Any]]


def default_decision() -> LayoutDecision:
    return LayoutDecision(
        type="default",
        params={"columns": 1, "variant": "center"},
        rationale="fallback-default",
        score=0,
    )


class LayoutEngine:
    """Priority ordered first-match dispatch from a text block to a layout."""

    def __init__(
        self,
        rules: Iterable[LayoutRule] = (),
        *,
        flow_optimizer: FlowOptimizer | None = None,
    ):
        # sorted() is stable, so equal priorities keep insertion order.
        self._rules: list[LayoutRule] = sorted(rules, key=lambda rule: -rule.priority)
        self._flow_optimizer = flow_optimizer

    @property
    def rules(self) -> list[LayoutRule]:
        return list(self._rules)

    def add_rule(self, rule: LayoutRule) -> None:
        self._rules.append(rule)
        self._rules.sort(key=lambda item: -item.priority)

    def decide(self, text: str) -> LayoutDecision:
        for rule in self._rules:
            if not rule.matches(text):
                continue
            proposal = dict(rule.decide(text))
            rationale = proposal.get("rationale")
            score = proposal.get("score")
            logger.debug("layout_rule_matched rule=%s type=%s", rule.id, proposal.get("type"))
            return LayoutDecision(
                type=str(proposal.get("type") or "default"),
                params=dict(proposal.get("params") or {}),
                rationale=rule.id if rationale is None else str(rationale),
                score=rule.priority if score is None else score,
            )
        return default_decision()

    def decide_batch(self, texts: Iterable[str]) -> list[LayoutDecision]:
        return [self.decide(text) for text in texts]

    def optimize_flow(self, decisions: list[LayoutDecision]) -> list[LayoutDecision]:
        if self._flow_optimizer is None:
            return decisions
        optimized = self._flow_optimizer(list(decisions))
        if len(optimized) != len(decisions):
            raise ValueError("flow optimizer must return one decision per block")
        return optimized


# Default rule set

_HEADING_RE = re.compile(r"^\s*#{1,6}\s+\S")
_TITLE_KEYWORD_RE = re.compile(r"\btitle\b", re.IGNORECASE)
_VERSUS_RE = re.compile(r"\b(vs\.?|versus)(?=\s|$)", re.IGNORECASE)
_PROS_CONS_RE = re.compile(r"^\s*(pros|cons)\s*:", re.IGNORECASE | re.MULTILINE)
_QUOTE_LINE_RE = re.compile(r"^\s*>")
_CURLY_QUOTE_RE = re.compile(r"^\s*[“„«‘]")
_BULLET_LINE_RE = re.compile(r"^\s*([-*+]\s+|\d+[.)]\s+)")
_MARKDOWN_IMAGE_RE = re.compile(r"!\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")
_BARE_IMAGE_URL_RE = re.compile(r"https?://[^\s)\"'<>]+?\.(?:png|jpe?g|gif|svg|webp)(?![A-Za-z0-9])(?:\?[^\s)\"'<>]*)?", re.IGNORECASE)


def is_title(text: str) -> bool:
    first_line = text.strip().split("\n", 1)[0] if text.strip() else ""
    return bool(_HEADING_RE.match(first_line) or _TITLE_KEYWORD_RE.search(text))


def is_comparison(text: str) -> bool:
    return bool(_VERSUS_RE.search(text) or _PROS_CONS_RE.search(text))


def is_quote(text: str) -> bool:
    return bool(_QUOTE_LINE_RE.match(text) or _CURLY_QUOTE_RE.search(text))


def bullet_lines(text: str) -> list[str]:
    return [line for line in text.split("\n") if _BULLET_LINE_RE.match(line)]


def extract_image_refs(text: str) -> list[str]:
    refs: list[str] = []
    for match in _MARKDOWN_IMAGE_RE.finditer(text):
        refs.append(match.group(1))
    for match in _BARE_IMAGE_URL_RE.finditer(text):
        refs.append(match.group(0))
    return list(dict.fromkeys(refs))


def _decide_list(text: str) -> dict[str, Any]:
    items = len(bullet_lines(text))
    columns = 1 if items <= LIST_COLUMN_THRESHOLD else 2
    return {"type": "list", "params": {"columns": columns, "variant": "left", "items": items}}


def create_default_rules() -> list[LayoutRule]:
    return [
        LayoutRule(
            id="layout:title",
            priority=100,
            matches=is_title,
            decide=lambda _text: {"type": "title", "params": {"variant": "center"}},
        ),
        LayoutRule(
            id="layout:comparison",
            priority=90,
            matches=is_comparison,
            decide=lambda _text: {"type": "comparison", "params": {"columns": 2}},
        ),
        LayoutRule(
            id="layout:quote",
            priority=85,
            matches=is_quote,
            decide=lambda _text: {"type": "quote", "params": {"variant": "center"}},
        ),
        LayoutRule(
            id="layout:list",
            priority=70,
            matches=lambda text: len(bullet_lines(text)) >= 2,
            decide=_decide_list,
        ),
        LayoutRule(
            id="layout:image",
            priority=60,
            matches=lambda text: bool(extract_image_refs(text)),
            decide=lambda text: {"type": "image", "params": {"images": extract_image_refs(text), "variant": "full"}},
        ),
    ]


def create_default_layout_engine(*, flow_optimizer: FlowOptimizer | None = None) -> LayoutEngine:
    return LayoutEngine(create_default_rules(), flow_optimizer=flow_optimizer)
