"""Error taxonomy for the presentation pipeline."""

from __future__ import annotations


class SlidesmithError(Exception):
    code = "pipeline_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TemplateValidationError(SlidesmithError):
    """Raised when a template set cannot be used for rendering."""

    code = "template_invalid"


class TemplateNotFoundError(TemplateValidationError):
    code = "template_not_found"

    def __init__(self, template_id: str, *, referenced_by: str | None = None):
        self.template_id = template_id
        self.referenced_by = referenced_by
        if referenced_by:
            message = f"Template '{template_id}' referenced by '{referenced_by}' not found"
        else:
            message = f"Template '{template_id}' not found"
        super().__init__(message)


class TemplateSchemaError(TemplateValidationError):
    code = "template_schema"

    def __init__(self, template_id: str, issues: list[str]):
        self.template_id = template_id
        self.issues = [str(i).strip() for i in issues if str(i).strip()] or ["Schema validation failed"]
        super().__init__(self._format())

    def _format(self) -> str:
        lines = [f"Template '{self.template_id}' invalid:"]
        for issue in self.issues:
            lines.append(f"- {issue}")
        return "\n".join(lines)


class EngineVersionError(TemplateValidationError):
    code = "template_engine_incompatible"

    def __init__(self, template_id: str, engine_version: str, required: str):
        self.template_id = template_id
        self.engine_version = engine_version
        self.required = required
        super().__init__(
            f"Template '{template_id}' not compatible with engine {engine_version}. Required: {required}"
        )


class TemplateCycleError(TemplateValidationError):
    code = "template_cycle"

    def __init__(self, chain: list[str]):
        self.chain = list(chain)
        super().__init__(f"Template inheritance cycle detected: {' -> '.join(self.chain)}")


class AnalysisError(SlidesmithError):
    code = "analysis_failed"


class LayoutError(SlidesmithError):
    code = "layout_failed"


class StyleError(SlidesmithError):
    code = "style_failed"


class ComposeError(SlidesmithError):
    code = "compose_failed"


class CancellationError(SlidesmithError):
    code = "cancelled"

    def __init__(self, message: str = "Generation cancelled", *, phase: str | None = None):
        self.phase = phase
        super().__init__(message)
