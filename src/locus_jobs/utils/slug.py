"""Utilities for generating branch-safe identifiers."""

from __future__ import annotations

import hashlib
import re
import time
from typing import Pattern

_LOWERCASE_PATTERN: Pattern[str] = re.compile(r"[^a-z0-9_.-]+")
_HYPHEN_COLLAPSE = re.compile(r"-{2,}")
_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def slugify(value: str | None, *, fallback: str = "item", max_length: int = 48) -> str:
    """Normalize ``value`` into a lowercase slug usable inside a git ref."""
    source = (value or "").strip().lower() or fallback.lower()
    slug = _normalize(source)
    if not slug:
        slug = _normalize(fallback.lower()) or "item"
    if len(slug) > max_length:
        slug = abbreviate_slug(slug, max_length=max_length)
    return slug


def abbreviate_slug(segment: str, *, max_length: int = 48) -> str:
    """Trim ``segment`` to ``max_length`` while preserving uniqueness via hashing."""
    slug = segment.strip("-") or "item"
    if len(slug) <= max_length:
        return slug

    digest = hashlib.sha256(slug.encode("utf-8")).hexdigest()[:8]
    prefix_length = max(max_length - len(digest) - 1, 1)
    prefix = slug[:prefix_length].rstrip("-") or slug[:prefix_length]
    return f"{prefix}-{digest}"


def to_base36(value: int) -> str:
    """Render a non-negative integer in base 36 (``0-9a-z``)."""
    if value < 0:
        raise ValueError("base36 encoding requires a non-negative integer")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def timestamp_token(now_ms: int | None = None) -> str:
    """Return the base36 form of the current (or supplied) millisecond clock."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return to_base36(now_ms)


def _normalize(value: str) -> str:
    slug = _LOWERCASE_PATTERN.sub("-", value)
    slug = _HYPHEN_COLLAPSE.sub("-", slug)
    return slug.strip("-")
