from __future__ import annotations

from slidesmith.errors import ComposeError, TemplateNotFoundError
from slidesmith.schemas import LayoutDecision
from slidesmith.services.slide_composer import SlideComposer, theme_class
from slidesmith.services.template_engine import TemplateEngine, create_default_template_set
from slidesmith.services.theme_selector import THEMES

THEME = THEMES["business_professional"]
HEADER = "<!-- slide:class=theme-business-professional -->\n---\n"


def _decision(kind: str, **params) -> LayoutDecision:
    return LayoutDecision(type=kind, params=params, rationale="test", score=1)


def _compose_one(text: str, decision: LayoutDecision, composer: SlideComposer | None = None) -> str:
    composer = composer or SlideComposer()
    return composer.compose_slides([text], [decision], THEME).unwrap()[0]


def test_theme_class_is_slugged() -> None:
    assert theme_class(THEME) == "theme-business-professional"


def test_title_slide_uses_first_heading_and_escapes() -> None:
    slide = _compose_one("intro line\n## Hello *World*", _decision("title", variant="center"))

    assert slide == HEADER + r"# Hello \*World\*"


def test_missing_decision_falls_back_to_default_layout() -> None:
    result = SlideComposer().compose_slides(["first", "second\n\nline"], [_decision("title")], THEME)
    slides = result.unwrap()

    assert slides[0] == HEADER + "# first"
    assert slides[1] == HEADER + "second\nline"


def test_comparison_splits_pros_and_cons() -> None:
    slide = _compose_one("Pros: fast\nCons: complex\ncons: costly", _decision("comparison", columns=2))

    assert slide == HEADER + "::: split\n- fast\n:::\n- complex\n- costly\n:::"
    assert "::: split\n- —\n:::" in _compose_one("Cons: only downsides", _decision("comparison"))


def test_quote_uses_leading_quote_line() -> None:
    slide = _compose_one("> Less is more\nsaid someone", _decision("quote"))

    assert slide == HEADER + "> Less is more"


def test_list_keeps_bullets_and_truncates() -> None:
    text = "Agenda\n* one\n2. two\n+ three\n- four"
    slide = _compose_one(text, _decision("list"), SlideComposer(max_lines_per_slide=3))

    assert slide == HEADER + "- one\n- two\n- three"


def test_default_rendering_strips_control_characters() -> None:
    slide = _compose_one("Hello\x07 world\r\nnext_line", _decision("default"))

    assert slide == HEADER + "Hello world\nnext\\_line"


def test_image_traversal_reference_is_dropped() -> None:
    text = "![x](../../etc/passwd) caption"
    slide = _compose_one(text, _decision("image", images=["../../etc/passwd"]))

    assert "passwd" not in slide
    assert "caption" in slide


def test_image_prefers_params_then_text_url() -> None:
    from_params = _compose_one("see chart", _decision("image", images=["assets/chart.png"]))
    from_text = _compose_one("see https://Example.com/a.png now", _decision("image"))

    assert from_params == HEADER + "![](assets/chart.png)"
    assert from_text == HEADER + "![](https://example.com/a.png)"


def test_transition_variant_is_added_to_header() -> None:
    slide = _compose_one("text", _decision("default", variant="fade"))

    assert slide.startswith("<!-- slide:class=theme-business-professional data-transition=fade -->")
    assert "data-transition" not in _compose_one("text", _decision("default", variant="center"))


def test_template_rendering_matches_plain_rendering() -> None:
    plain = SlideComposer()
    templated = SlideComposer(template_engine=TemplateEngine(create_default_template_set()))
    cases = [
        ("# Big *Idea*", _decision("title")),
        ("plain text\nsecond", _decision("default", variant="fade")),
        ("- a\n- b_c", _decision("list")),
        ("Pros: x\nCons: y", _decision("comparison")),
        ("> quoted", _decision("quote")),
        ("“First line\nsecond line”", _decision("quote")),
        ("see https://example.com/i.png", _decision("image")),
        ("unknown layout", _decision("timeline")),
    ]
    for text, decision in cases:
        assert _compose_one(text, decision, templated) == _compose_one(text, decision, plain)


def test_template_failure_becomes_compose_error() -> None:
    broken = {
        "slide:content": {"id": "slide:content", "version": "1.0.0", "layout": "default", "content": "{{> ghost}}"}
    }
    composer = SlideComposer(template_engine=TemplateEngine(broken))
    result = composer.compose_slides(["text"], [_decision("default")], THEME)

    assert not result.ok
    assert isinstance(result.error, ComposeError)
    assert isinstance(result.error.__cause__, TemplateNotFoundError)
