from __future__ import annotations

from typing import Any
from urllib.parse import urlparse


def _parse_http_url(value: Any, *, name: str, default: str) -> str:
    url = str(value or default).strip()
    if not url:
        url = default
    if len(url) > 500:
        msg = f"{name} URL appears to be too long"
        raise ValueError(msg)
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        msg = f"{name} URL must be an absolute http(s) URL"
        raise ValueError(msg)
    return url.rstrip("/")


def _parse_positive_float(value: Any, *, name: str, default: float, maximum: float) -> float:
    try:
        parsed = float(str(value if value not in (None, "") else default))
    except ValueError as exc:
        msg = f"{name} must be a valid number"
        raise ValueError(msg) from exc
    if parsed <= 0 or parsed > maximum:
        msg = f"{name} must be between 0 and {maximum:g}"
        raise ValueError(msg)
    return parsed


def _ensure_token(value: Any, *, name: str) -> str:
    if value in (None, ""):
        return ""
    token = str(value).strip()
    if len(token) > 500:
        msg = f"{name} token appears to be too long"
        raise ValueError(msg)
    if any(char in token for char in [" ", "\n", "\t"]):
        msg = f"{name} token contains invalid characters"
        raise ValueError(msg)
    return token
