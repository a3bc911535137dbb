from slidesmith.providers.base import (
    DirectExecutor,
    EchoTextGenerator,
    GeneratedImage,
    ImageGenerator,
    ProviderError,
    ResilientExecutor,
    TextGenerator,
)

__all__ = [
    "DirectExecutor",
    "EchoTextGenerator",
    "GeneratedImage",
    "ImageGenerator",
    "ProviderError",
    "ResilientExecutor",
    "TextGenerator",
]
