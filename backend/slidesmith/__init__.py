from slidesmith.cache import BoundedCache
from slidesmith.cancellation import CancellationToken
from slidesmith.config import Settings, settings
from slidesmith.errors import (
    AnalysisError,
    CancellationError,
    ComposeError,
    EngineVersionError,
    LayoutError,
    SlidesmithError,
    StyleError,
    TemplateCycleError,
    TemplateNotFoundError,
    TemplateSchemaError,
    TemplateValidationError,
)
from slidesmith.orchestrator import PresentationOrchestrator
from slidesmith.results import Result
from slidesmith.services.content_analyzer import ContentAnalyzer
from slidesmith.services.layout_engine import LayoutEngine, LayoutRule, create_default_layout_engine
from slidesmith.services.quality import QualityAssuranceService
from slidesmith.services.slide_composer import SlideComposer
from slidesmith.services.template_engine import TemplateEngine, create_default_template_set
from slidesmith.services.theme_selector import ThemeSelector, ensure_accessible_theme

__version__ = "0.1.0"

__all__ = [
    "AnalysisError",
    "BoundedCache",
    "CancellationError",
    "CancellationToken",
    "ComposeError",
    "ContentAnalyzer",
    "EngineVersionError",
    "LayoutEngine",
    "LayoutError",
    "LayoutRule",
    "PresentationOrchestrator",
    "QualityAssuranceService",
    "Result",
    "Settings",
    "SlideComposer",
    "SlidesmithError",
    "StyleError",
    "TemplateCycleError",
    "TemplateEngine",
    "TemplateNotFoundError",
    "TemplateSchemaError",
    "TemplateValidationError",
    "ThemeSelector",
    "create_default_layout_engine",
    "create_default_template_set",
    "ensure_accessible_theme",
    "settings",
]
