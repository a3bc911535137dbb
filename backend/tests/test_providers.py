from __future__ import annotations

from slidesmith.errors import AnalysisError
from slidesmith.providers import (
    DirectExecutor,
    EchoTextGenerator,
    GeneratedImage,
    ImageGenerator,
    ProviderError,
    ResilientExecutor,
    TextGenerator,
)


class StaticImageGenerator:
    def generate_image(self, prompt, options=None):
        return GeneratedImage(url=f"https://images.example.com/{len(prompt)}.png", width=640, height=480)


def test_protocols_match_structural_implementations() -> None:
    assert isinstance(EchoTextGenerator(), TextGenerator)
    assert isinstance(StaticImageGenerator(), ImageGenerator)
    assert isinstance(DirectExecutor(), ResilientExecutor)
    assert not isinstance(object(), TextGenerator)


def test_generated_image_src_prefers_url() -> None:
    assert GeneratedImage(url="https://x/a.png", data_url="data:image/png;base64,AA").src == "https://x/a.png"
    assert GeneratedImage(data_url="data:image/png;base64,AA").src.startswith("data:")


def test_direct_executor_wraps_failures() -> None:
    executor = DirectExecutor()

    assert executor.execute(lambda: EchoTextGenerator().generate("  hi ")).unwrap() == "hi"

    def boom() -> str:
        raise TimeoutError("slow upstream")

    failed = executor.execute(boom)
    assert isinstance(failed.error, ProviderError)
    assert isinstance(failed.error.__cause__, TimeoutError)

    def domain_error() -> str:
        raise AnalysisError("bad input")

    assert isinstance(executor.execute(domain_error).error, AnalysisError)
