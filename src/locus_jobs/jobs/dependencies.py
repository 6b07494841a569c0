"""Dependency freshness and vulnerability scan with gated auto-updates.

Outdated packages are bucketed by semver distance.  Patch and minor bumps are
applied automatically only when policy allows the DEPENDENCY category and the
candidate set holds no major bump at all; otherwise every tier is reported as
a suggestion carrying the exact update command.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Literal, Optional, Sequence, Tuple

import logging

from ..parsers.package_output import (
    AuditVulnerability,
    OutdatedPackage,
    UpdateRisk,
    parse_bun_outdated,
    parse_ndjson_audit,
    parse_npm_audit,
    parse_npm_outdated,
    parse_yarn_outdated,
)
from ..schema import ChangeCategory, JobType, SuggestionType
from ..tools.git_automation import GitAutomationRequest, GitAutomationResult, run_git_automation
from ..tools.process import DEFAULT_TIMEOUT, CommandExecutor, ExecutionError, run_command
from .base import JobContext, JobResult, JobSuggestion, failure_result, should_auto_execute, timeout_option
from .remediation import dirty_files, discard_changes, files_changed_by_fix

LOGGER = logging.getLogger(__name__)

PackageManager = Literal["bun", "pnpm", "yarn", "npm"]

LOCK_FILES: Tuple[Tuple[str, PackageManager], ...] = (
    ("bun.lock", "bun"),
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
)

OUTDATED_COMMANDS: Dict[PackageManager, Tuple[str, ...]] = {
    "bun": ("bun", "outdated"),
    "npm": ("npm", "outdated", "--json"),
    "pnpm": ("pnpm", "outdated", "--format", "json"),
    "yarn": ("yarn", "outdated", "--json"),
}
AUDIT_COMMANDS: Dict[PackageManager, Tuple[str, ...]] = {
    "bun": ("bun", "audit"),
    "npm": ("npm", "audit", "--json"),
    "pnpm": ("pnpm", "audit", "--json"),
    "yarn": ("yarn", "audit", "--json"),
}
ADD_COMMANDS: Dict[PackageManager, Tuple[str, ...]] = {
    "bun": ("bun", "add"),
    "npm": ("npm", "install"),
    "pnpm": ("pnpm", "add"),
    "yarn": ("yarn", "add"),
}

_OUTDATED_PARSERS: Dict[PackageManager, Callable[[str], List[OutdatedPackage]]] = {
    "bun": parse_bun_outdated,
    "npm": parse_npm_outdated,
    "pnpm": parse_npm_outdated,
    "yarn": parse_yarn_outdated,
}
_AUDIT_PARSERS: Dict[PackageManager, Callable[[str], List[AuditVulnerability]]] = {
    "bun": parse_ndjson_audit,
    "npm": parse_npm_audit,
    "pnpm": parse_npm_audit,
    "yarn": parse_ndjson_audit,
}


@dataclass(frozen=True, slots=True)
class RiskTiers:
    patch: Tuple[OutdatedPackage, ...] = ()
    minor: Tuple[OutdatedPackage, ...] = ()
    major: Tuple[OutdatedPackage, ...] = ()

    @classmethod
    def from_packages(cls, packages: Sequence[OutdatedPackage]) -> "RiskTiers":
        return cls(
            patch=tuple(p for p in packages if p.risk is UpdateRisk.PATCH),
            minor=tuple(p for p in packages if p.risk is UpdateRisk.MINOR),
            major=tuple(p for p in packages if p.risk is UpdateRisk.MAJOR),
        )

    @property
    def safe(self) -> Tuple[OutdatedPackage, ...]:
        return self.patch + self.minor

    @property
    def total(self) -> int:
        return len(self.patch) + len(self.minor) + len(self.major)


@dataclass(frozen=True, slots=True)
class AutoUpdateOutcome:
    files_changed: int = 0
    pr_url: Optional[str] = None
    errors: Tuple[str, ...] = ()


def detect_package_manager(project_path: Path) -> Optional[PackageManager]:
    """Return the manager owning the highest-priority lock file present."""

    present = [(name, manager) for name, manager in LOCK_FILES if (project_path / name).exists()]
    if not present:
        return None
    if len(present) > 1:
        LOGGER.warning(
            "Multiple lock files found in %s; using %s and ignoring %s",
            project_path,
            present[0][0],
            ", ".join(name for name, _ in present[1:]),
        )
    return present[0][1]


def can_auto_update(tiers: RiskTiers, allowed: bool) -> bool:
    """Auto-update needs policy approval, at least one safe bump and no major bump."""
    return allowed and bool(tiers.safe) and not tiers.major


def update_hint(manager: PackageManager, packages: Sequence[OutdatedPackage]) -> str:
    return " ".join([*ADD_COMMANDS[manager], *(package.spec for package in packages)])


def _package_rows(packages: Sequence[OutdatedPackage]) -> List[Dict[str, str]]:
    return [{"name": p.name, "current": p.current, "latest": p.latest} for p in packages]


def _transitions(packages: Sequence[OutdatedPackage]) -> str:
    return ", ".join(f"{p.name} {p.current} -> {p.latest}" for p in packages)


def build_dependency_suggestions(
    manager: PackageManager,
    tiers: RiskTiers,
    vulnerabilities: Sequence[AuditVulnerability] = (),
    *,
    blocked_by_major: bool = False,
) -> List[JobSuggestion]:
    suggestions: List[JobSuggestion] = []
    if tiers.patch:
        suggestions.append(
            JobSuggestion(
                type=SuggestionType.DEPENDENCY_UPDATE,
                title=f"{len(tiers.patch)} patch update(s) available",
                description=(
                    f"Safe patch updates: {_transitions(tiers.patch)}. "
                    f"Run `{update_hint(manager, tiers.patch)}` to apply."
                ),
                metadata={"risk": "patch", "packages": _package_rows(tiers.patch)},
            )
        )
    if tiers.minor:
        suggestions.append(
            JobSuggestion(
                type=SuggestionType.DEPENDENCY_UPDATE,
                title=f"{len(tiers.minor)} minor update(s) available",
                description=(
                    f"Minor updates: {_transitions(tiers.minor)}. Generally safe but review changelogs. "
                    f"Run `{update_hint(manager, tiers.minor)}` to apply."
                ),
                metadata={"risk": "minor", "packages": _package_rows(tiers.minor)},
            )
        )
    if tiers.major:
        suggestions.append(
            JobSuggestion(
                type=SuggestionType.DEPENDENCY_UPDATE,
                title=f"{len(tiers.major)} major update(s) require review",
                description=(
                    f"Breaking changes possible: {_transitions(tiers.major)}. "
                    f"Review migration guides before running `{update_hint(manager, tiers.major)}`."
                ),
                metadata={"risk": "major", "packages": _package_rows(tiers.major)},
            )
        )
    if blocked_by_major:
        suggestions.append(
            JobSuggestion(
                type=SuggestionType.DEPENDENCY_UPDATE,
                title="Automatic dependency update skipped",
                description=(
                    f"{len(tiers.major)} major update(s) are pending, so none of the "
                    f"{len(tiers.safe)} patch/minor update(s) were applied automatically. "
                    "Upgrade the major versions manually or apply the safe updates above."
                ),
                metadata={"auto_update": "blocked", "major": [p.name for p in tiers.major]},
            )
        )
    if vulnerabilities:
        by_severity: Dict[str, List[AuditVulnerability]] = defaultdict(list)
        for vulnerability in vulnerabilities:
            by_severity[vulnerability.severity].append(vulnerability)
        lines = []
        for severity, entries in by_severity.items():
            lines.append(f"**{severity}**")
            lines.extend(
                f"- `{entry.name}`: {entry.title}" + (f" ({entry.url})" if entry.url else "")
                for entry in entries
            )
        suggestions.append(
            JobSuggestion(
                type=SuggestionType.SECURITY,
                title=f"{len(vulnerabilities)} known vulnerability(ies) in dependencies",
                description="\n".join(lines),
                metadata={
                    "vulnerabilities": [
                        {"name": v.name, "severity": v.severity, "title": v.title, "url": v.url}
                        for v in vulnerabilities
                    ],
                    "severities": {severity: len(entries) for severity, entries in by_severity.items()},
                },
            )
        )
    return suggestions


def _pull_request_body(manager: PackageManager, packages: Sequence[OutdatedPackage], files: Sequence[str]) -> str:
    lines = [
        "## Summary",
        "",
        f"Automated dependency updates applied by Locus using `{manager}`.",
        "",
        "### Updated packages",
        "",
        *(f"- `{p.name}`: {p.current} -> {p.latest} ({p.risk.value})" for p in packages),
        "",
        f"- **Files changed**: {len(files)}",
        "",
        "---",
        "*Created by Locus Agent (dependency-check)*",
    ]
    return "\n".join(lines)


class DependencyScanJob:
    """Report outdated and vulnerable dependencies; auto-apply safe bumps when allowed."""

    type = JobType.DEPENDENCY_CHECK
    name = "Dependency Check"
    agent = "locus-dependency-check"

    def __init__(self, *, executor: CommandExecutor = run_command) -> None:
        self._executor = executor

    def run(self, context: JobContext) -> JobResult:
        project_path = context.project_path
        manager = detect_package_manager(project_path)
        if manager is None:
            return JobResult(summary="No package manager lock file detected")
        LOGGER.info("Detected %s lock file in %s", manager, project_path)

        timeout = timeout_option(context, DEFAULT_TIMEOUT)
        try:
            outdated_output = self._executor(OUTDATED_COMMANDS[manager], cwd=project_path, timeout=timeout)
        except ExecutionError as error:
            return failure_result(f"Dependency check failed (outdated): {error}", str(error))
        outdated = _OUTDATED_PARSERS[manager](outdated_output.stdout)
        vulnerabilities = self._audit(manager, project_path, timeout)

        tiers = RiskTiers.from_packages(outdated)
        allowed = should_auto_execute(ChangeCategory.DEPENDENCY, context.autonomy_rules)

        outcome = AutoUpdateOutcome()
        if can_auto_update(tiers, allowed):
            outcome = self._auto_update(context, manager, tiers.safe, timeout)
        elif allowed and tiers.major and tiers.safe:
            LOGGER.info("Skipping auto-update: %d major update(s) pending", len(tiers.major))

        suggestions = build_dependency_suggestions(
            manager,
            tiers,
            vulnerabilities,
            blocked_by_major=allowed and bool(tiers.major) and bool(tiers.safe),
        )

        parts: List[str] = []
        if tiers.total:
            parts.append(
                f"{tiers.total} outdated ({len(tiers.patch)} patch, "
                f"{len(tiers.minor)} minor, {len(tiers.major)} major)"
            )
        else:
            parts.append("all dependencies up to date")
        if vulnerabilities:
            parts.append(f"{len(vulnerabilities)} vulnerability(ies)")
        if outcome.files_changed:
            parts.append(f"auto-updated {len(tiers.safe)} safe package(s)")

        return JobResult(
            summary=f"Dependency check: {', '.join(parts)} ({manager})",
            suggestions=tuple(suggestions),
            files_changed=outcome.files_changed,
            pr_url=outcome.pr_url,
            errors=outcome.errors or None,
        )

    def _audit(self, manager: PackageManager, project_path: Path, timeout: float) -> List[AuditVulnerability]:
        try:
            output = self._executor(AUDIT_COMMANDS[manager], cwd=project_path, timeout=timeout)
        except ExecutionError as error:
            LOGGER.warning("Security audit unavailable for %s: %s", manager, error)
            return []
        return _AUDIT_PARSERS[manager](output.stdout)

    def _auto_update(
        self,
        context: JobContext,
        manager: PackageManager,
        packages: Tuple[OutdatedPackage, ...],
        timeout: float,
    ) -> AutoUpdateOutcome:
        project_path = context.project_path
        baseline = dirty_files(project_path, self._executor)

        steps = (
            (*ADD_COMMANDS[manager], *(package.spec for package in packages)),
            (manager, "install"),
        )
        for command in steps:
            try:
                output = self._executor(command, cwd=project_path, timeout=timeout)
            except ExecutionError as error:
                message = str(error)
            else:
                if output.ok:
                    continue
                message = (
                    f"{' '.join(command)} exited with {output.exit_code}: "
                    f"{output.stderr.strip() or output.stdout.strip()}"
                )
            LOGGER.warning("Dependency update failed: %s", message)
            discard_changes(project_path, self._executor, files_changed_by_fix(project_path, self._executor, baseline))
            return AutoUpdateOutcome(errors=(message,))

        changed = files_changed_by_fix(project_path, self._executor, baseline)
        if not changed:
            return AutoUpdateOutcome()

        request = GitAutomationRequest(
            kind="dep-update",
            changed_files=tuple(changed),
            commit_subject=f"fix(deps): update {len(packages)} safe dependencies",
            agent=self.agent,
            commit_details=(
                f"Updated: {', '.join(package.spec for package in packages)}",
                f"Package manager: {manager}",
            ),
            pr_title=f"[Locus] Update {len(packages)} safe dependencies",
            pr_body=_pull_request_body(manager, packages, changed),
        )
        automation: GitAutomationResult = run_git_automation(project_path, request, executor=self._executor)
        return AutoUpdateOutcome(
            files_changed=automation.files_changed,
            pr_url=automation.pr_url,
            errors=automation.errors,
        )


__all__ = [
    "DependencyScanJob",
    "RiskTiers",
    "build_dependency_suggestions",
    "can_auto_update",
    "detect_package_manager",
    "update_hint",
]
