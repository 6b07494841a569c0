"""Locate JSON payloads embedded in noisy tool output."""

from __future__ import annotations

import json
from typing import Any, Iterator

_MAX_CANDIDATES = 32


def _balanced_end(text: str, start: int) -> int | None:
    """Return the index of the brace closing the object opened at ``start``.

    String literals are skipped so braces inside messages do not unbalance
    the scan.
    """
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def iter_json_objects(text: str) -> Iterator[dict[str, Any]]:
    """Yield every top-level JSON object found in ``text`` in order."""
    position = 0
    attempts = 0
    while attempts < _MAX_CANDIDATES:
        start = text.find("{", position)
        if start == -1:
            return
        attempts += 1
        end = _balanced_end(text, start)
        if end is None:
            position = start + 1
            continue
        try:
            payload = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            position = start + 1
            continue
        if isinstance(payload, dict):
            yield payload
        position = end + 1


def extract_json(text: str) -> dict[str, Any] | None:
    """Return the first parsable JSON object in ``text``.

    Test runners and package managers may print log lines before (or after)
    their JSON report, so the whole output is scanned rather than parsed as a
    single document.
    """
    if not text:
        return None
    stripped = text.strip()
    if stripped.startswith("{"):
        try:
            payload = json.loads(stripped)
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict):
            return payload
    return next(iter_json_objects(text), None)


def iter_ndjson(text: str) -> Iterator[dict[str, Any]]:
    """Yield JSON objects from newline-delimited output, skipping other lines."""
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped.startswith("{"):
            continue
        try:
            payload = json.loads(stripped)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict):
            yield payload


__all__ = ["extract_json", "iter_json_objects", "iter_ndjson"]
