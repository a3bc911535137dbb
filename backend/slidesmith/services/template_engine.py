from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Mapping

import semver
from pydantic import ValidationError

from slidesmith.cache import BoundedCache
from slidesmith.errors import (
    EngineVersionError,
    SlidesmithError,
    TemplateCycleError,
    TemplateNotFoundError,
    TemplateSchemaError,
    TemplateValidationError,
)
from slidesmith.results import Result
from slidesmith.schemas import RenderDebugInfo, RenderResult, Template
from slidesmith.text_utils import escape_markdown as escape_md

logger = logging.getLogger("slidesmith.templates")

ENGINE_VERSION = "1.0.0"
DEFAULT_CACHE_SIZE = 256

TOKEN_PATTERN = re.compile(
    r"\{\{\s*>\s*(?P<partial>[A-Za-z0-9_.:-]+)\s*\}\}|\{\{\s*(?P<variable>[A-Za-z0-9_.:-]+)\s*\}\}"
)
_COMPARATOR_RE = re.compile(r"(\^|~|>=|<=|>|<|==|!=|=)?\s*(v?[0-9][0-9A-Za-z.+-]*|\*|x|X)")
_PARTIAL_RE = re.compile(
    r"^v?(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?(?:-([0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$"
)
_HYPHEN_RANGE_RE = re.compile(r"^(\S+)\s+-\s+(\S+)$")

TemplateSource = Template | Mapping[str, Any]


# Version ranges

def _parse_version(raw: str) -> semver.Version:
    return semver.Version.parse(raw.lstrip("v"), optional_minor_and_patch=True)


def _parse_partial(raw: str) -> tuple[list[int], str | None]:
    """Split ``1``, ``1.2``, ``1.x`` or ``1.2.3-beta`` into known parts and a prerelease."""
    match = _PARTIAL_RE.match(raw.strip())
    if match is None:
        raise ValueError(f"Invalid version: {raw!r}")
    parts: list[int] = []
    for group in match.groups()[:3]:
        if group is None or not group.isdigit():
            break
        parts.append(int(group))
    prerelease = match.group(4) if len(parts) == 3 else None
    return parts, prerelease


def _next_partial(parts: list[int]) -> semver.Version:
    if len(parts) == 1:
        return semver.Version(parts[0] + 1, 0, 0)
    return semver.Version(parts[0], parts[1] + 1, 0)


def _desugar(operator: str | None, operand: str) -> list[tuple[str, semver.Version]]:
    """Expand one npm comparator into plain bound checks."""
    parts, prerelease = _parse_partial(operand)
    if not parts:
        return []
    major, minor, patch = (parts + [0, 0])[:3]
    low = semver.Version(major, minor, patch, prerelease)
    full = len(parts) == 3

    if operator == "^":
        if major > 0 or len(parts) == 1:
            upper = semver.Version(major + 1, 0, 0)
        elif minor > 0 or len(parts) == 2:
            upper = semver.Version(0, minor + 1, 0)
        else:
            upper = semver.Version(0, 0, patch + 1)
        return [(">=", low), ("<", upper)]
    if operator == "~":
        return [(">=", low), ("<", _next_partial(parts[:2]))]
    if operator in (None, "=", "=="):
        return [("==", low)] if full else [(">=", low), ("<", _next_partial(parts))]
    if operator == ">":
        return [(">", low)] if full else [(">=", _next_partial(parts))]
    if operator == "<=":
        return [("<=", low)] if full else [("<", _next_partial(parts))]
    return [(operator, low)]


def _check(version: semver.Version, operator: str, bound: semver.Version) -> bool:
    order = version.compare(bound)
    return {
        "==": order == 0,
        "!=": order != 0,
        ">": order > 0,
        ">=": order >= 0,
        "<": order < 0,
        "<=": order <= 0,
    }[operator]


def _alternative_bounds(alternative: str, version_range: str) -> list[tuple[str, semver.Version]]:
    hyphen = _HYPHEN_RANGE_RE.match(alternative)
    if hyphen:
        return _desugar(">=", hyphen.group(1)) + _desugar("<=", hyphen.group(2))
    bounds: list[tuple[str, semver.Version]] = []
    remainder = alternative.replace(",", " ").strip()
    while remainder:
        match = _COMPARATOR_RE.match(remainder)
        if match is None:
            raise ValueError(f"Invalid version range: {version_range!r}")
        bounds.extend(_desugar(match.group(1), match.group(2)))
        remainder = remainder[match.end():].strip()
    return bounds


def satisfies(version: str, version_range: str) -> bool:
    """Check a semantic version against an npm style range.

    Supports comparators, ``^``, ``~``, x-ranges (``*``, ``1.x``, ``1.2``),
    hyphen ranges, space or comma conjunction and ``||`` alternation. Partial
    versions widen the way npm reads them: ``~1`` is ``>=1.0.0 <2.0.0`` and
    ``^0.0`` is ``>=0.0.0 <0.1.0``. Raises ValueError for malformed input.
    """
    current = _parse_version(version)
    alternatives = [part.strip() for part in version_range.split("||")]
    if not any(alternatives):
        raise ValueError(f"Empty version range: {version_range!r}")
    for alternative in alternatives:
        if not alternative:
            continue
        bounds = _alternative_bounds(alternative, version_range)
        if all(_check(current, operator, bound) for operator, bound in bounds):
            return True
    return False


# Rendering helpers

def lookup_path(values: Any, path: str) -> Any:
    current = values
    for part in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(part)
        elif current is not None and not isinstance(current, (str, int, float, bool)):
            current = getattr(current, part, None)
        else:
            return None
        if current is None:
            return None
    return current


@dataclass(frozen=True)
class Token:
    kind: str  # "text" | "var" | "include"
    value: str


def tokenize_content(content: str) -> list[Token]:
    tokens: list[Token] = []
    last = 0
    for match in TOKEN_PATTERN.finditer(content):
        if match.start() > last:
            tokens.append(Token("text", content[last:match.start()]))
        if match.group("partial"):
            tokens.append(Token("include", match.group("partial")))
        else:
            tokens.append(Token("var", match.group("variable")))
        last = match.end()
    if last < len(content):
        tokens.append(Token("text", content[last:]))
    return tokens


@dataclass(frozen=True)
class ResolvedTemplate:
    template: Template
    chain: list[str] = field(default_factory=list)


class CompiledTemplate:
    """Render function for one resolved template, built once per ``id@version``."""

    def __init__(self, engine: "TemplateEngine", template: Template):
        self.key = cache_key(template)
        self.template_id = template.id
        self.tokens = tuple(tokenize_content(template.content))
        self._engine = engine

    def __call__(self, values: Mapping[str, Any] | None = None, *, escape: bool = True) -> str:
        return self.render(values or {}, escape=escape, include_stack=(self.template_id,))

    def render(self, values: Mapping[str, Any], *, escape: bool, include_stack: tuple[str, ...]) -> str:
        out: list[str] = []
        for token in self.tokens:
            if token.kind == "text":
                out.append(token.value)
            elif token.kind == "var":
                value = lookup_path(values, token.value)
                if value is None:
                    continue
                out.append(escape_md(value) if escape else str(value))
            else:
                if token.value in include_stack:
                    raise TemplateCycleError([*include_stack, token.value])
                partial = self._engine.compiled(token.value)
                out.append(partial.render(values, escape=escape, include_stack=(*include_stack, token.value)))
        return "".join(out)


def cache_key(template: Template) -> str:
    return f"{template.id}@{template.version}"


def merge_templates(base: Template, override: Template) -> Template:
    """Shallow merge of metadata; content overrides entirely unless empty."""
    variables = list(dict.fromkeys([*(base.variables or []), *(override.variables or [])]))
    return Template(
        id=override.id,
        version=override.version,
        engine_range=override.engine_range if override.engine_range is not None else base.engine_range,
        layout=override.layout or base.layout,
        extends=override.extends,
        variables=variables,
        content=override.content or base.content,
    )


def _schema_issues(exc: ValidationError) -> list[str]:
    issues = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "template"
        issues.append(f"{location}: {error.get('msg', 'invalid')}")
    return issues


class TemplateEngine:
    def __init__(
        self,
        templates: Mapping[str, TemplateSource],
        *,
        engine_version: str = ENGINE_VERSION,
        cache_size: int = DEFAULT_CACHE_SIZE,
        cache: BoundedCache[str, CompiledTemplate] | None = None,
    ):
        self._sources: dict[str, TemplateSource] = dict(templates)
        self._parsed: dict[str, Template] = {}
        self.engine_version = engine_version
        self.compiled_cache: BoundedCache[str, CompiledTemplate] = (
            cache if cache is not None else BoundedCache(max_entries=cache_size)
        )
        self.compilations = 0

    @property
    def template_ids(self) -> list[str]:
        return list(self._sources.keys())

    def template(self, template_id: str) -> Template:
        if template_id in self._parsed:
            return self._parsed[template_id]
        source = self._sources.get(template_id)
        if source is None:
            raise TemplateNotFoundError(template_id)
        if isinstance(source, Template):
            parsed = source
        else:
            try:
                parsed = Template.model_validate(dict(source))
            except ValidationError as exc:
                raise TemplateSchemaError(template_id, _schema_issues(exc)) from exc
        if parsed.id != template_id:
            raise TemplateSchemaError(template_id, [f"id: declared as '{parsed.id}' but registered as '{template_id}'"])
        self._parsed[template_id] = parsed
        return parsed

    def validate_set(self) -> Result[bool]:
        try:
            for template_id in self._sources:
                tpl = self.template(template_id)
                if tpl.engine_range:
                    self._check_engine_range(tpl)
            self._check_cycles()
        except TemplateValidationError as exc:
            logger.warning("template_set_invalid code=%s reason=%s", exc.code, exc)
            return Result.failure(exc)
        logger.debug("template_set_valid templates=%s", len(self._sources))
        return Result.success(True)

    def resolve(self, template_id: str) -> ResolvedTemplate:
        chain: list[str] = []
        lineage: list[Template] = []
        current: str | None = template_id
        referenced_by: str | None = None
        while current is not None:
            if current in chain:
                raise TemplateCycleError([*chain, current])
            if current not in self._sources:
                raise TemplateNotFoundError(current, referenced_by=referenced_by)
            tpl = self.template(current)
            chain.append(current)
            lineage.append(tpl)
            referenced_by, current = current, tpl.extends

        resolved = lineage[-1]
        for child in reversed(lineage[:-1]):
            resolved = merge_templates(resolved, child)
        return ResolvedTemplate(template=resolved, chain=chain)

    def compiled(self, template_id: str) -> CompiledTemplate:
        resolved = self.resolve(template_id).template
        return self._get_or_compile(resolved)

    def render(
        self,
        template_id: str,
        values: Mapping[str, Any] | None = None,
        *,
        escape_markdown: bool = True,
        debug: bool = False,
    ) -> Result[RenderResult]:
        started = perf_counter()
        values = dict(values or {})
        try:
            resolved = self.resolve(template_id)
            renderer = self._get_or_compile(resolved.template)
            text = renderer(values, escape=escape_markdown)
        except SlidesmithError as exc:
            logger.warning("template_render_failed template=%s code=%s reason=%s", template_id, exc.code, exc)
            return Result.failure(exc)
        except Exception as exc:
            logger.exception("template_render_error template=%s", template_id)
            error = TemplateValidationError(f"Rendering '{template_id}' failed: {exc}")
            error.__cause__ = exc
            return Result.failure(error)

        if not debug:
            return Result.success(RenderResult(text=text))
        info = RenderDebugInfo(
            template_chain=resolved.chain,
            resolved_content=resolved.template.content,
            values=values,
            ms=(perf_counter() - started) * 1000,
        )
        return Result.success(RenderResult(text=text, debug=info))

    def find_by_layout(self, layout: str) -> str | None:
        for template_id in self._sources:
            try:
                if self.template(template_id).layout == layout:
                    return template_id
            except TemplateValidationError:
                continue
        return None

    def _get_or_compile(self, template: Template) -> CompiledTemplate:
        key = cache_key(template)
        cached = self.compiled_cache.get(key)
        if cached is not None:
            return cached
        compiled = CompiledTemplate(self, template)
        self.compilations += 1
        self.compiled_cache.set(key, compiled)
        logger.debug("template_compiled key=%s tokens=%s", key, len(compiled.tokens))
        return compiled

    def _check_engine_range(self, tpl: Template) -> None:
        required = tpl.engine_range or ""
        try:
            compatible = satisfies(self.engine_version, required)
        except ValueError as exc:
            raise EngineVersionError(tpl.id, self.engine_version, required) from exc
        if not compatible:
            raise EngineVersionError(tpl.id, self.engine_version, required)

    def _check_cycles(self) -> None:
        # Fresh visitation state on every pass.
        visited: set[str] = set()
        on_stack: list[str] = []

        def visit(template_id: str) -> None:
            if template_id in on_stack:
                start = on_stack.index(template_id)
                raise TemplateCycleError([*on_stack[start:], template_id])
            if template_id in visited:
                return
            visited.add(template_id)
            on_stack.append(template_id)
            parent = self.template(template_id).extends
            if parent:
                if parent not in self._sources:
                    raise TemplateNotFoundError(parent, referenced_by=template_id)
                visit(parent)
            on_stack.pop()

        for template_id in self._sources:
            visit(template_id)


def create_default_template_set() -> dict[str, Template]:
    header = "<!-- slide:class={{theme_class}}{{transition}} -->\n---\n"
    rows = [
        {
            "id": "base:common",
            "layout": "default",
            "variables": ["theme_class", "transition", "content"],
            "content": header + "{{content}}",
        },
        {
            "id": "slide:title",
            "layout": "title",
            "extends": "base:common",
            "variables": ["title"],
            "content": header + "# {{title}}",
        },
        {
            "id": "slide:content",
            "layout": "default",
            "extends": "base:common",
            "variables": ["content"],
            "content": "{{> base:common}}",
        },
        {
            "id": "slide:list",
            "layout": "list",
            "extends": "base:common",
            "variables": ["items"],
            "content": "",
        },
        {
            "id": "slide:quote",
            "layout": "quote",
            "extends": "base:common",
            "variables": ["content"],
            "content": "",
        },
        {
            "id": "slide:comparison",
            "layout": "comparison",
            "extends": "base:common",
            "variables": ["content"],
            "content": "",
        },
        {
            "id": "slide:image",
            "layout": "image",
            "extends": "base:common",
            "variables": ["content"],
            "content": "",
        },
    ]
    return {
        row["id"]: Template(version="1.0.0", engine_range=">=1.0.0", **row)
        for row in rows
    }
