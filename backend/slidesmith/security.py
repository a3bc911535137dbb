"""Pure validation helpers for user supplied names, paths and image references."""

from __future__ import annotations

import re
from urllib.parse import quote, urlsplit

from slidesmith.errors import SlidesmithError
from slidesmith.results import Result

_ILLEGAL_FILENAME_RE = re.compile(r'[\\/:*?"<>|]')
_DRIVE_PREFIX_RE = re.compile(r"^[A-Za-z]:")
_SCHEME_PREFIX_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")
_URL_PATH_SAFE = "/%:@-._~!$&'*+,;="


class InputValidationError(SlidesmithError):
    code = "invalid_input"


def validate_non_empty_string(value: object, field_name: str) -> Result[str]:
    if not isinstance(value, str):
        return Result.failure(InputValidationError(f"{field_name} must be a string"))
    trimmed = value.strip()
    if not trimmed:
        return Result.failure(InputValidationError(f"{field_name} cannot be empty"))
    return Result.success(trimmed)


def validate_safe_filename(name: str) -> Result[str]:
    if ".." in name or "/" in name or "\\" in name:
        return Result.failure(InputValidationError("Path traversal is not allowed in file names"))
    if _ILLEGAL_FILENAME_RE.search(name):
        return Result.failure(InputValidationError("File name contains illegal characters"))
    trimmed = name.strip()
    if not trimmed:
        return Result.failure(InputValidationError("File name cannot be empty"))
    return Result.success(trimmed)


def normalize_relative_path(candidate: str) -> Result[str]:
    trimmed = (candidate or "").strip()
    if not trimmed:
        return Result.failure(InputValidationError("Path cannot be empty"))
    if ".." in trimmed:
        return Result.failure(InputValidationError("Path traversal is not allowed"))
    if trimmed.startswith(("/", "\\")) or _DRIVE_PREFIX_RE.match(trimmed):
        return Result.failure(InputValidationError("Absolute paths are not allowed; use relative paths"))
    if _SCHEME_PREFIX_RE.match(trimmed):
        return Result.failure(InputValidationError("URL schemes are not allowed in relative paths"))

    normalized = re.sub(r"[\\/]+", "/", trimmed)
    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if not parts:
        return Result.failure(InputValidationError("Path cannot be empty"))
    return Result.success("/".join(parts))


def safe_image_url(src: str) -> Result[str]:
    """Canonicalize an http(s) URL, dropping credentials and fragments."""
    try:
        parts = urlsplit((src or "").strip())
        hostname = parts.hostname
        port = parts.port
    except ValueError as exc:
        return Result.failure(InputValidationError(f"Malformed URL: {exc}"))
    if parts.scheme.lower() not in {"http", "https"}:
        return Result.failure(InputValidationError("Only http and https image URLs are allowed"))
    if not hostname:
        return Result.failure(InputValidationError("Image URL has no host"))

    host = f"[{hostname.lower()}]" if ":" in hostname else hostname.lower()
    netloc = host if port is None else f"{host}:{port}"
    path = quote(parts.path or "/", safe=_URL_PATH_SAFE)
    query = quote(parts.query, safe="=&%+,;:@/?-._~") if parts.query else ""
    url = f"{parts.scheme.lower()}://{netloc}{path}"
    if query:
        url = f"{url}?{query}"
    return Result.success(url)


def safe_image_ref(src: str) -> str | None:
    """Return a sanitized image reference, or None when it must be dropped."""
    candidate = (src or "").strip()
    if re.match(r"^https?://", candidate, re.IGNORECASE):
        result = safe_image_url(candidate)
    else:
        result = normalize_relative_path(candidate)
    return result.value if result.ok else None
