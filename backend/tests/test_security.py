from __future__ import annotations

import pytest

from slidesmith.security import (
    InputValidationError,
    normalize_relative_path,
    safe_image_ref,
    safe_image_url,
    validate_non_empty_string,
    validate_safe_filename,
)


def test_non_empty_string_is_trimmed() -> None:
    assert validate_non_empty_string("  deck  ", "title").unwrap() == "deck"
    assert not validate_non_empty_string("   ", "title").ok
    assert not validate_non_empty_string(42, "title").ok


@pytest.mark.parametrize("name", ["../secret.md", "a/b.md", "a\\b.md", "bad|name.md", "   "])
def test_unsafe_filenames_are_rejected(name: str) -> None:
    result = validate_safe_filename(name)

    assert not result.ok
    assert isinstance(result.error, InputValidationError)


def test_safe_filename_passes() -> None:
    assert validate_safe_filename("slides.md").unwrap() == "slides.md"


def test_relative_paths_are_normalized() -> None:
    assert normalize_relative_path("images//./chart.png").unwrap() == "images/chart.png"
    assert normalize_relative_path("images\\logo.svg").unwrap() == "images/logo.svg"


@pytest.mark.parametrize("path", ["../../etc/passwd", "/etc/passwd", "C:\\win.ini", "file:///etc/passwd", ""])
def test_unsafe_relative_paths_are_rejected(path: str) -> None:
    assert not normalize_relative_path(path).ok


def test_image_urls_are_canonicalized() -> None:
    url = safe_image_url("HTTPS://user:pw@Example.COM/a b.png#frag").unwrap()

    assert url == "https://example.com/a%20b.png"
    assert safe_image_url("http://[::1]:8080/x.png").unwrap() == "http://[::1]:8080/x.png"
    assert not safe_image_url("ftp://example.com/x.png").ok


def test_safe_image_ref_drops_dangerous_references() -> None:
    assert safe_image_ref("javascript:alert(1)") is None
    assert safe_image_ref("../../etc/passwd") is None
    assert safe_image_ref("assets/chart.png") == "assets/chart.png"
    assert safe_image_ref("https://example.com/chart.png") == "https://example.com/chart.png"
