"""Parsers for package-manager ``outdated`` and ``audit`` output, plus semver risk."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

import json
import re

from .json_block import iter_ndjson

_SEMVER_RE = re.compile(r"^[v^~=\s]*(\d+)\.(\d+)\.(\d+)")
_BUN_ROW_RE = re.compile(r"^\s*\|\s*(\S+)\s*\|\s*(\S+)\s*\|\s*(\S+)\s*\|\s*(\S+)\s*\|?\s*$")
_BUN_HEADER_NAMES = frozenset({"package", "name"})


class UpdateRisk(str, Enum):
    """Semver distance between the installed and the latest version."""

    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"


@dataclass(frozen=True, slots=True)
class OutdatedPackage:
    name: str
    current: str
    wanted: str
    latest: str
    risk: UpdateRisk

    @property
    def spec(self) -> str:
        return f"{self.name}@{self.latest}"


@dataclass(frozen=True, slots=True)
class AuditVulnerability:
    name: str
    severity: str
    title: str
    url: str | None = None


def parse_semver(version: str) -> tuple[int, int, int] | None:
    """Return ``(major, minor, patch)`` or ``None`` when ``version`` is not semver-like."""
    if not isinstance(version, str):
        return None
    match = _SEMVER_RE.match(version)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def classify_risk(current: str, latest: str) -> UpdateRisk:
    """Bucket an upgrade; anything unparsable is treated as a major bump."""
    current_parts = parse_semver(current)
    latest_parts = parse_semver(latest)
    if current_parts is None or latest_parts is None:
        return UpdateRisk.MAJOR
    if latest_parts[0] != current_parts[0]:
        return UpdateRisk.MAJOR
    if latest_parts[1] != current_parts[1]:
        return UpdateRisk.MINOR
    return UpdateRisk.PATCH


def _package(name: str, current: Any, wanted: Any, latest: Any) -> OutdatedPackage:
    current_value = str(current) if current else "0.0.0"
    wanted_value = str(wanted) if wanted else current_value
    latest_value = str(latest) if latest else wanted_value
    return OutdatedPackage(
        name=name,
        current=current_value,
        wanted=wanted_value,
        latest=latest_value,
        risk=classify_risk(current_value, latest_value),
    )


def parse_bun_outdated(stdout: str) -> list[OutdatedPackage]:
    """Parse the table printed by ``bun outdated``."""
    packages: list[OutdatedPackage] = []
    for line in stdout.splitlines():
        match = _BUN_ROW_RE.match(line)
        if match is None:
            continue
        name, current, _update, latest = match.groups()
        if name.lower() in _BUN_HEADER_NAMES or set(name) <= {"-", ":"}:
            continue
        packages.append(_package(name, current, latest, latest))
    return packages


def parse_npm_outdated(stdout: str) -> list[OutdatedPackage]:
    """Parse ``npm outdated --json`` / ``pnpm outdated --format json`` objects."""
    if not stdout.strip():
        return []
    try:
        payload = json.loads(stdout)
    except json.JSONDecodeError:
        return []
    if not isinstance(payload, Mapping):
        return []

    packages: list[OutdatedPackage] = []
    for name, info in payload.items():
        # npm workspaces report one entry per dependent workspace.
        if isinstance(info, list):
            info = next((item for item in info if isinstance(item, Mapping)), None)
        if not isinstance(info, Mapping):
            continue
        packages.append(_package(str(name), info.get("current"), info.get("wanted"), info.get("latest")))
    return packages


def parse_yarn_outdated(stdout: str) -> list[OutdatedPackage]:
    """Parse the NDJSON stream of ``yarn outdated --json``."""
    packages: list[OutdatedPackage] = []
    for record in iter_ndjson(stdout):
        if record.get("type") != "table":
            continue
        data = record.get("data")
        body = data.get("body") if isinstance(data, Mapping) else None
        if not isinstance(body, list):
            continue
        for row in body:
            if not isinstance(row, list) or len(row) < 4:
                continue
            name, current, wanted, latest = (str(cell) for cell in row[:4])
            packages.append(_package(name, current, wanted, latest))
    return packages


def parse_npm_audit(stdout: str) -> list[AuditVulnerability]:
    """Parse ``npm audit --json`` (v7+ ``vulnerabilities`` or legacy ``advisories``)."""
    if not stdout.strip():
        return []
    try:
        payload = json.loads(stdout)
    except json.JSONDecodeError:
        return []
    if not isinstance(payload, Mapping):
        return []

    entries = payload.get("vulnerabilities") or payload.get("advisories") or {}
    if not isinstance(entries, Mapping):
        return []

    vulnerabilities: list[AuditVulnerability] = []
    for key, info in entries.items():
        if not isinstance(info, Mapping):
            continue
        name = str(info.get("name") or info.get("module_name") or key)
        title = info.get("title") or info.get("overview")
        if not title:
            via = info.get("via")
            if isinstance(via, list):
                title = next(
                    (entry.get("title") for entry in via if isinstance(entry, Mapping) and entry.get("title")),
                    None,
                )
        url = info.get("url")
        vulnerabilities.append(
            AuditVulnerability(
                name=name,
                severity=str(info.get("severity") or "unknown"),
                title=str(title or name),
                url=str(url) if url else None,
            )
        )
    return vulnerabilities


def parse_ndjson_audit(stdout: str) -> list[AuditVulnerability]:
    """Parse ``auditAdvisory`` records emitted by yarn (and bun's JSON mode)."""
    vulnerabilities: list[AuditVulnerability] = []
    for record in iter_ndjson(stdout):
        if record.get("type") != "auditAdvisory":
            continue
        data = record.get("data")
        advisory = data.get("advisory") if isinstance(data, Mapping) else None
        if not isinstance(advisory, Mapping):
            continue
        url = advisory.get("url")
        vulnerabilities.append(
            AuditVulnerability(
                name=str(advisory.get("module_name") or "unknown"),
                severity=str(advisory.get("severity") or "unknown"),
                title=str(advisory.get("title") or "Unknown vulnerability"),
                url=str(url) if url else None,
            )
        )
    return vulnerabilities


__all__ = [
    "AuditVulnerability",
    "OutdatedPackage",
    "UpdateRisk",
    "classify_risk",
    "parse_bun_outdated",
    "parse_ndjson_audit",
    "parse_npm_audit",
    "parse_npm_outdated",
    "parse_semver",
    "parse_yarn_outdated",
]
