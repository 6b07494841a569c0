"""Lint analyzer: detect the project's linter, count issues, optionally auto-fix."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Literal, Optional, Tuple

import logging
import re

from ..parsers.lint_output import LintCounts, parse_biome_output, parse_eslint_output, parse_ruff_output
from ..schema import ChangeCategory, JobType, SuggestionType
from ..tools.git_automation import GitAutomationRequest, run_git_automation
from ..tools.process import DEFAULT_TIMEOUT, CommandExecutor, ExecutionError, run_command
from .base import JobContext, JobResult, JobSuggestion, failure_result, should_auto_execute, timeout_option
from .remediation import dirty_files, files_changed_by_fix

LOGGER = logging.getLogger(__name__)

LinterKind = Literal["biome", "eslint", "ruff"]

_ESLINT_RC_FILES = (
    ".eslintrc",
    ".eslintrc.js",
    ".eslintrc.cjs",
    ".eslintrc.json",
    ".eslintrc.yml",
    ".eslintrc.yaml",
)
_ESLINT_FLAT_RE = re.compile(r"^eslint\.config\.(js|cjs|mjs|ts|cts|mts)$")
_RUFF_TABLE_RE = re.compile(r"^\s*\[tool\.ruff(\]|\.)", re.MULTILINE)


@dataclass(frozen=True, slots=True)
class DetectedLinter:
    kind: LinterKind
    check_command: Tuple[str, ...]
    fix_command: Tuple[str, ...]

    @property
    def fix_hint(self) -> str:
        return " ".join(self.fix_command)


_PARSERS: dict[str, Callable[[str], LintCounts]] = {
    "biome": parse_biome_output,
    "eslint": parse_eslint_output,
    "ruff": parse_ruff_output,
}

BIOME = DetectedLinter("biome", ("bunx", "biome", "check", "."), ("bunx", "biome", "check", "--fix", "."))
ESLINT = DetectedLinter("eslint", ("npx", "eslint", "."), ("npx", "eslint", "--fix", "."))
RUFF = DetectedLinter("ruff", ("ruff", "check", "."), ("ruff", "check", "--fix", "."))


def _has_ruff_config(project_path: Path) -> bool:
    if (project_path / "ruff.toml").is_file() or (project_path / ".ruff.toml").is_file():
        return True
    pyproject = project_path / "pyproject.toml"
    if not pyproject.is_file():
        return False
    try:
        return bool(_RUFF_TABLE_RE.search(pyproject.read_text(encoding="utf-8", errors="replace")))
    except OSError:
        return False


def detect_linter(project_path: Path) -> Optional[DetectedLinter]:
    """Pick the linter from config files; the first match in priority order wins."""

    if (project_path / "biome.json").exists() or (project_path / "biome.jsonc").exists():
        return BIOME
    if any((project_path / name).exists() for name in _ESLINT_RC_FILES):
        return ESLINT
    try:
        if any(_ESLINT_FLAT_RE.match(entry.name) for entry in project_path.iterdir()):
            return ESLINT
    except OSError:
        pass
    if _has_ruff_config(project_path):
        return RUFF
    return None


def parse_lint_output(kind: LinterKind, stdout: str, stderr: str) -> LintCounts:
    return _PARSERS[kind](f"{stdout}\n{stderr}")


def build_issue_suggestions(linter: DetectedLinter, counts: LintCounts) -> List[JobSuggestion]:
    suggestions: List[JobSuggestion] = []
    if counts.errors > 0:
        suggestions.append(
            JobSuggestion(
                type=SuggestionType.CODE_FIX,
                title=f"Fix {counts.errors} lint error(s)",
                description=(
                    f"The {linter.kind} linter found {counts.errors} error(s). "
                    f"Run `{linter.fix_hint}` to auto-fix, or review the issues manually."
                ),
                metadata={"linter": linter.kind, "errors": counts.errors},
            )
        )
    if counts.warnings > 0:
        suggestions.append(
            JobSuggestion(
                type=SuggestionType.CODE_FIX,
                title=f"Resolve {counts.warnings} lint warning(s)",
                description=(
                    f"The {linter.kind} linter found {counts.warnings} warning(s). "
                    f"Run `{linter.fix_hint}` to auto-fix, or review the issues manually."
                ),
                metadata={"linter": linter.kind, "warnings": counts.warnings},
            )
        )
    return suggestions


def _pull_request_body(linter: DetectedLinter, counts: LintCounts, files: List[str]) -> str:
    lines = [
        "## Summary",
        "",
        f"Automated lint fixes applied by Locus using `{linter.kind}`.",
        "",
        f"- **Issues found**: {counts.errors} error(s), {counts.warnings} warning(s)",
        f"- **Files changed**: {len(files)}",
        "",
        "### Changed files",
        "",
        *(f"- `{path}`" for path in files),
        "",
        "---",
        "*Created by Locus Agent (lint-scan)*",
    ]
    return "\n".join(lines)


class LintScanJob:
    """Run the detected linter and either auto-fix or suggest fixes."""

    type = JobType.LINT_SCAN
    name = "Linting Scan"
    agent = "locus-lint-scan"

    def __init__(self, *, executor: CommandExecutor = run_command) -> None:
        self._executor = executor

    def run(self, context: JobContext) -> JobResult:
        project_path = context.project_path
        linter = detect_linter(project_path)
        if linter is None:
            LOGGER.info("No linter configuration found in %s", project_path)
            return JobResult(summary="No linter configuration detected")
        LOGGER.info("Detected %s in %s", linter.kind, project_path)

        timeout = timeout_option(context, DEFAULT_TIMEOUT)
        try:
            output = self._executor(linter.check_command, cwd=project_path, timeout=timeout)
        except ExecutionError as error:
            return failure_result(f"Linting scan failed: {error}", str(error))

        counts = parse_lint_output(linter.kind, output.stdout, output.stderr)
        if counts.total == 0:
            return JobResult(summary=f"Linting scan passed, no issues found ({linter.kind})")

        if should_auto_execute(ChangeCategory.STYLE, context.autonomy_rules):
            return self._auto_fix(context, linter, counts, timeout)

        return JobResult(
            summary=f"Linting scan found {counts.describe()} ({linter.kind})",
            suggestions=tuple(build_issue_suggestions(linter, counts)),
        )

    def _auto_fix(
        self,
        context: JobContext,
        linter: DetectedLinter,
        counts: LintCounts,
        timeout: float,
    ) -> JobResult:
        project_path = context.project_path
        baseline = dirty_files(project_path, self._executor)

        try:
            self._executor(linter.fix_command, cwd=project_path, timeout=timeout)
        except ExecutionError as error:
            return failure_result(f"Lint auto-fix failed: {error}", str(error))

        changed = files_changed_by_fix(project_path, self._executor, baseline)
        suggestions = tuple(build_issue_suggestions(linter, counts))
        if not changed:
            return JobResult(
                summary=(
                    f"Linting scan found {counts.describe()} but auto-fix made no changes ({linter.kind})"
                ),
                suggestions=suggestions,
            )

        request = GitAutomationRequest(
            kind="lint-fix",
            changed_files=tuple(changed),
            commit_subject=f"fix(lint): auto-fix {counts.describe()} via {linter.kind}",
            agent=self.agent,
            pr_title=f"[Locus] Auto-fix lint issues ({counts.describe()})",
            pr_body=_pull_request_body(linter, counts, changed),
        )
        automation = run_git_automation(project_path, request, executor=self._executor)
        errors = automation.errors or None

        if not automation.committed:
            return JobResult(
                summary=(
                    f"Linting scan found {counts.describe()}; auto-fix could not be committed ({linter.kind})"
                ),
                suggestions=suggestions,
                errors=errors,
            )

        created = ", PR created" if automation.pr_url else ""
        return JobResult(
            summary=(
                f"Auto-fixed {counts.describe()} across {automation.files_changed} file(s){created} ({linter.kind})"
            ),
            files_changed=automation.files_changed,
            pr_url=automation.pr_url,
            errors=errors,
        )


__all__ = ["BIOME", "ESLINT", "RUFF", "DetectedLinter", "LintScanJob", "detect_linter", "parse_lint_output"]
