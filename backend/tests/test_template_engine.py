from __future__ import annotations

import pytest

from slidesmith.errors import (
    EngineVersionError,
    TemplateCycleError,
    TemplateNotFoundError,
    TemplateSchemaError,
)
from slidesmith.services.template_engine import (
    TemplateEngine,
    create_default_template_set,
    satisfies,
    tokenize_content,
)


def _tpl(template_id: str, content: str, **extra) -> dict:
    return {"id": template_id, "version": "1.0.0", "layout": "default", "content": content, **extra}


def test_default_template_set_is_valid() -> None:
    engine = TemplateEngine(create_default_template_set())

    assert engine.validate_set().ok


def test_title_values_are_markdown_escaped() -> None:
    engine = TemplateEngine(create_default_template_set())
    result = engine.render("slide:title", {"title": "A*B<C>", "theme_class": "theme-x"})

    assert result.ok
    assert r"A\*B\<C\>" in result.unwrap().text


def test_escaping_can_be_disabled_per_render() -> None:
    engine = TemplateEngine({"t": _tpl("t", "{{value}}")})

    assert engine.render("t", {"value": "a_b"}).unwrap().text == r"a\_b"
    assert engine.render("t", {"value": "a_b"}, escape_markdown=False).unwrap().text == "a_b"


def test_missing_and_dotted_values() -> None:
    engine = TemplateEngine({"t": _tpl("t", "Hi {{user.name}}{{missing}}!")})

    assert engine.render("t", {"user": {"name": "Ann"}}).unwrap().text == "Hi Ann!"
    assert engine.render("t", {}).unwrap().text == "Hi !"


def test_inheritance_cycle_is_reported() -> None:
    engine = TemplateEngine(
        {
            "A": _tpl("A", "a", extends="B"),
            "B": _tpl("B", "b", extends="A"),
        }
    )
    result = engine.validate_set()

    assert not result.ok
    assert isinstance(result.error, TemplateCycleError)
    assert result.error.chain == ["A", "B", "A"]
    # A second pass starts from clean state and reports the same cycle.
    assert isinstance(engine.validate_set().error, TemplateCycleError)
    assert not engine.render("A", {}).ok


def test_missing_parent_is_not_found() -> None:
    engine = TemplateEngine({"child": _tpl("child", "x", extends="ghost")})
    result = engine.validate_set()

    assert isinstance(result.error, TemplateNotFoundError)
    assert result.error.referenced_by == "child"


def test_schema_violation_lists_issues() -> None:
    engine = TemplateEngine({"broken": {"id": "broken", "version": "1.0.0", "layout": "default"}})
    result = engine.validate_set()

    assert isinstance(result.error, TemplateSchemaError)
    assert any(issue.startswith("content") for issue in result.error.issues)


def test_incompatible_engine_range() -> None:
    engine = TemplateEngine({"new": _tpl("new", "x", engineRange="^2.0.0")}, engine_version="1.4.0")
    result = engine.validate_set()

    assert isinstance(result.error, EngineVersionError)
    assert result.error.required == "^2.0.0"


@pytest.mark.parametrize(
    ("version", "version_range", "expected"),
    [
        ("1.4.0", "^1.0.0", True),
        ("2.0.0", "^1.0.0", False),
        ("0.2.5", "^0.2.0", True),
        ("0.3.0", "^0.2.0", False),
        ("1.2.9", "~1.2.0", True),
        ("1.3.0", "~1.2.0", False),
        ("1.0.0", ">=1.0.0 <2.0.0", True),
        ("2.1.0", ">=1.0.0, <2.0.0", False),
        ("3.0.0", "^1.0.0 || ^3.0.0", True),
        ("5.0.0", "*", True),
        ("1.0.0", "1.0.0", True),
        ("1.5.0", "~1", True),
        ("2.0.0", "~1", False),
        ("0.0.5", "^0.0", True),
        ("0.1.0", "^0.0", False),
        ("0.0.3", "^0.0.3", True),
        ("0.0.4", "^0.0.3", False),
        ("1.0.0", "1.x", True),
        ("2.0.0", "1.x", False),
        ("1.2.3", "1.2.x", True),
        ("1.3.0", "1.2.x", False),
        ("1.2.9", ">1.2", False),
        ("1.3.0", ">1.2", True),
        ("1.9.9", "<=1.9", True),
        ("1.4.7", "1.2 - 1.4", True),
        ("1.5.0", "1.2 - 1.4", False),
    ],
)
def test_satisfies_ranges(version: str, version_range: str, expected: bool) -> None:
    assert satisfies(version, version_range) is expected


def test_child_content_overrides_and_empty_content_inherits() -> None:
    engine = TemplateEngine(
        {
            "base": _tpl("base", "[{{content}}]", variables=["content"]),
            "own": _tpl("own", "<{{content}}>", extends="base", variables=["extra"]),
            "empty": _tpl("empty", "", extends="base"),
        }
    )
    values = {"content": "x"}

    assert engine.render("own", values, escape_markdown=False).unwrap().text == "<x>"
    assert engine.render("empty", values).unwrap().text == "[x]"
    resolved = engine.resolve("own")
    assert resolved.chain == ["own", "base"]
    assert resolved.template.variables == ["content", "extra"]


def test_partials_render_and_debug_info() -> None:
    engine = TemplateEngine(create_default_template_set())
    result = engine.render("slide:content", {"theme_class": "theme-a", "content": "Body"}, debug=True)
    rendered = result.unwrap()

    assert rendered.text == "<!-- slide:class=theme-a -->\n---\nBody"
    assert rendered.debug is not None
    assert rendered.debug.template_chain == ["slide:content", "base:common"]
    assert rendered.debug.ms >= 0


def test_missing_partial_is_an_error() -> None:
    engine = TemplateEngine({"t": _tpl("t", "x {{> nowhere}}")})
    result = engine.render("t", {})

    assert not result.ok
    assert isinstance(result.error, TemplateNotFoundError)


def test_recursive_partials_fail_instead_of_looping() -> None:
    engine = TemplateEngine({"a": _tpl("a", "{{> b}}"), "b": _tpl("b", "{{> a}}")})

    assert engine.validate_set().ok
    assert isinstance(engine.render("a", {}).error, TemplateCycleError)


def test_unknown_template_returns_failure() -> None:
    result = TemplateEngine({}).render("nope", {})

    assert isinstance(result.error, TemplateNotFoundError)


def test_lru_evicts_least_recently_used_renderer() -> None:
    engine = TemplateEngine(
        {name: _tpl(name, f"{name}:{{{{v}}}}") for name in ("one", "two", "three")},
        cache_size=2,
    )
    for name in ("one", "two", "three"):
        engine.render(name, {"v": 1})

    assert engine.compilations == 3
    assert engine.compiled_cache.keys() == ["two@1.0.0", "three@1.0.0"]

    engine.render("two", {"v": 1})
    assert engine.compilations == 3

    engine.render("one", {"v": 1})
    assert engine.compilations == 4
    assert "three@1.0.0" not in engine.compiled_cache


def test_cached_render_matches_fresh_compile() -> None:
    values = {"theme_class": "theme-b", "title": "Q3 *results*", "transition": " data-transition=fade"}
    cached_engine = TemplateEngine(create_default_template_set())
    first = cached_engine.render("slide:title", values).unwrap().text
    second = cached_engine.render("slide:title", values).unwrap().text
    fresh = TemplateEngine(create_default_template_set()).render("slide:title", values).unwrap().text

    assert first == second == fresh
    assert cached_engine.compilations == 1


def test_tokenizer_splits_text_variables_and_partials() -> None:
    tokens = tokenize_content("a {{ x }} b {{> p }}")

    assert [(t.kind, t.value) for t in tokens] == [("text", "a "), ("var", "x"), ("text", " b "), ("include", "p")]
