from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, TypeVar, runtime_checkable

from slidesmith.errors import SlidesmithError
from slidesmith.results import Result

T = TypeVar("T")


@dataclass
class GeneratedImage:
    url: str | None = None
    data_url: str | None = None
    width: int = 0
    height: int = 0
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def src(self) -> str | None:
        return self.url or self.data_url


@runtime_checkable
class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str:
        ...


@runtime_checkable
class ImageGenerator(Protocol):
    def generate_image(self, prompt: str, options: dict[str, Any] | None = None) -> GeneratedImage:
        ...


@runtime_checkable
class ResilientExecutor(Protocol):
    def execute(self, fn: Callable[[], T]) -> Result[T]:
        ...


class ProviderError(SlidesmithError):
    code = "provider_failed"


class DirectExecutor:
    """Runs the call once; failures come back as a failed Result."""

    def execute(self, fn: Callable[[], T]) -> Result[T]:
        try:
            return Result.success(fn())
        except SlidesmithError as exc:
            return Result.failure(exc)
        except Exception as exc:
            error = ProviderError(str(exc) or exc.__class__.__name__)
            error.__cause__ = exc
            return Result.failure(error)


class EchoTextGenerator:
    name = "echo"

    def generate(self, prompt: str) -> str:
        return prompt.strip()
