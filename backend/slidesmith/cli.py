from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from slidesmith.config import settings
from slidesmith.logging_config import configure_logging
from slidesmith.orchestrator import PresentationOrchestrator
from slidesmith.security import validate_safe_filename
from slidesmith.services.template_engine import TemplateEngine, create_default_template_set


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s).")

    parser = argparse.ArgumentParser(prog="slidesmith", description="Turn plain text or markdown into slide markup.")
    commands = parser.add_subparsers(dest="command", required=True)

    generate = commands.add_parser(
        "generate", parents=[common], help="Generate slides from a text file ('-' reads stdin)."
    )
    generate.add_argument("input", help="Path to the source text.")
    generate.add_argument("--out", default=None, help="Write the result to this file instead of stdout.")
    generate.add_argument("--json", action="store_true", help="Emit the full pipeline output as JSON.")
    generate.add_argument("--quality", action="store_true", help="Run the quality review after composing.")

    commands.add_parser("templates", parents=[common], help="Validate the built-in template set and list its ids.")
    return parser.parse_args(argv)


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def run_generate(args: argparse.Namespace) -> int:
    if args.out:
        checked = validate_safe_filename(Path(args.out).name)
        if not checked.ok:
            print(f"Invalid output file: {checked.error}", file=sys.stderr)
            return 1
    try:
        raw = _read_input(args.input)
    except OSError as exc:
        print(f"Cannot read input: {exc}", file=sys.stderr)
        return 1

    config = settings.model_copy(update={"quality_checks": settings.quality_checks or args.quality})
    with PresentationOrchestrator(settings=config) as orchestrator:
        result = orchestrator.generate(raw)
    if not result.ok:
        print(f"Generation failed [{result.error.code}]: {result.error}", file=sys.stderr)
        return 1

    output = result.unwrap()
    if args.json:
        rendered = json.dumps(output.model_dump(mode="json"), indent=2, ensure_ascii=False)
    else:
        rendered = "\n\n".join(output.slides)
    for warning in output.warnings:
        print(f"warning: {warning}", file=sys.stderr)

    if args.out:
        Path(args.out).write_text(rendered + "\n", encoding="utf-8")
        print(f"Wrote {len(output.slides)} slides to {args.out}")
    else:
        print(rendered)
    return 0


def run_templates(_args: argparse.Namespace) -> int:
    engine = TemplateEngine(
        create_default_template_set(),
        engine_version=settings.engine_version,
        cache_size=settings.renderer_cache_size,
    )
    checked = engine.validate_set()
    if not checked.ok:
        print(f"Template set invalid [{checked.error.code}]: {checked.error}", file=sys.stderr)
        return 1
    for template_id in engine.template_ids:
        template = engine.template(template_id)
        parent = f" extends {template.extends}" if template.extends else ""
        print(f"{template_id}@{template.version} layout={template.layout}{parent}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    if args.command == "generate":
        return run_generate(args)
    return run_templates(args)


if __name__ == "__main__":
    raise SystemExit(main())
