"""Parsers turning linter output into error/warning counts.

Each linter gets its own function.  All of them follow the same degradation
order: the tool's summary line, then its per-diagnostic line format, then a
generic count of lines that start with an ``error``/``warning`` token.
"""

from __future__ import annotations

from dataclasses import dataclass

import re

_FOUND_ERRORS_RE = re.compile(r"Found (\d+) errors?", re.IGNORECASE)
_FOUND_WARNINGS_RE = re.compile(r"Found (\d+) warnings?", re.IGNORECASE)
_BIOME_DIAGNOSTIC_RE = re.compile(r"\s(error|warning)\[")
_ESLINT_SUMMARY_RE = re.compile(r"(\d+) problems?\s*\((\d+) errors?,\s*(\d+) warnings?\)")
_ESLINT_ROW_RE = re.compile(r"^\s+\d+:\d+\s+(error|warning)\s")
_RUFF_ROW_RE = re.compile(r"^\S.*?:\d+:\d+: [A-Z]+\d+\b")
_GENERIC_TOKEN_RE = re.compile(r"^\s*(?:\S+:\s*)?(error|warning)\b[:\s]", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class LintCounts:
    """Number of issues a linter reported."""

    errors: int = 0
    warnings: int = 0

    @property
    def total(self) -> int:
        return self.errors + self.warnings

    def describe(self) -> str:
        parts: list[str] = []
        if self.errors > 0:
            parts.append(f"{self.errors} error(s)")
        if self.warnings > 0:
            parts.append(f"{self.warnings} warning(s)")
        return ", ".join(parts) or "0 issues"


def _generic_counts(raw: str) -> LintCounts:
    errors = 0
    warnings = 0
    for line in raw.splitlines():
        match = _GENERIC_TOKEN_RE.match(line)
        if not match:
            continue
        if match.group(1).lower() == "error":
            errors += 1
        else:
            warnings += 1
    return LintCounts(errors=errors, warnings=warnings)


def _found_summary(raw: str) -> LintCounts | None:
    errors_match = _FOUND_ERRORS_RE.search(raw)
    warnings_match = _FOUND_WARNINGS_RE.search(raw)
    if errors_match is None and warnings_match is None:
        return None
    return LintCounts(
        errors=int(errors_match.group(1)) if errors_match else 0,
        warnings=int(warnings_match.group(1)) if warnings_match else 0,
    )


def parse_biome_output(raw: str) -> LintCounts:
    """Parse ``biome check`` output (``Found N errors.`` summary)."""
    summary = _found_summary(raw)
    if summary is not None and summary.total > 0:
        return summary

    errors = 0
    warnings = 0
    for line in raw.splitlines():
        match = _BIOME_DIAGNOSTIC_RE.search(line)
        if match is None:
            continue
        if match.group(1) == "error":
            errors += 1
        else:
            warnings += 1
    if errors or warnings:
        return LintCounts(errors=errors, warnings=warnings)
    if summary is not None:
        return summary
    return _generic_counts(raw)


def parse_eslint_output(raw: str) -> LintCounts:
    """Parse the stylish ``eslint`` formatter (``X problems (Y errors, Z warnings)``)."""
    match = _ESLINT_SUMMARY_RE.search(raw)
    if match:
        return LintCounts(errors=int(match.group(2)), warnings=int(match.group(3)))

    errors = 0
    warnings = 0
    for line in raw.splitlines():
        row = _ESLINT_ROW_RE.match(line)
        if row is None:
            continue
        if row.group(1) == "error":
            errors += 1
        else:
            warnings += 1
    if errors or warnings:
        return LintCounts(errors=errors, warnings=warnings)
    return _generic_counts(raw)


def parse_ruff_output(raw: str) -> LintCounts:
    """Parse ``ruff check`` output; ruff reports every violation as an error."""
    summary = _found_summary(raw)
    if summary is not None:
        return summary

    rows = sum(1 for line in raw.splitlines() if _RUFF_ROW_RE.match(line))
    if rows:
        return LintCounts(errors=rows)
    return _generic_counts(raw)


__all__ = ["LintCounts", "parse_biome_output", "parse_eslint_output", "parse_ruff_output"]
