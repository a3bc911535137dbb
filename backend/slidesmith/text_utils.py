from __future__ import annotations

import math
import re
import unicodedata

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_MARKDOWN_SPECIAL_RE = re.compile(r"([*_`\[\]<>])")
_NEWLINE_RE = re.compile(r"\r\n?")


def strip_control_chars(text: str) -> str:
    """Drop control characters, keeping tabs and line breaks."""
    return _CONTROL_CHARS_RE.sub("", text)


def normalize_newlines(text: str) -> str:
    return _NEWLINE_RE.sub("\n", text)


def escape_markdown(value: object) -> str:
    text = unicodedata.normalize("NFC", str(value))
    text = strip_control_chars(text)
    return _MARKDOWN_SPECIAL_RE.sub(r"\\\1", text)


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
