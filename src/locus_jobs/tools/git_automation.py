"""Branch, commit, push and pull-request automation for auto-remediating jobs.

The workflow is a fixed sequence of fallible steps.  Each failure stops the
sequence and is reported through :class:`GitAutomationResult` rather than
raised, so callers can tell how far automation progressed:

``none``
    Nothing was created (or pre-commit work was rolled back).
``branch``
    The commit failed and the feature branch could not be removed again.
``commit``
    A local branch and commit exist; pushing failed.
``pushed``
    The branch is on the remote but no pull request was opened.
``pull_request``
    A pull request was opened and its URL captured.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Sequence

import logging

from ..utils.slug import slugify, timestamp_token
from .process import CommandExecutor, ExecutionError, run_command
from .vcs import GitError, GitRepository

LOGGER = logging.getLogger(__name__)

AutomationStage = Literal["none", "branch", "commit", "pushed", "pull_request"]
RemoteProvider = Literal["github", "gitlab", "bitbucket", "unknown"]

BRANCH_PREFIX = "locus"
CO_AUTHOR_TRAILER = "Co-authored-by: LocusAI <agent@locusai.team>"
GH_TIMEOUT = 120.0

_COMMITTED_STAGES: frozenset[str] = frozenset({"commit", "pushed", "pull_request"})


@dataclass(frozen=True, slots=True)
class GitAutomationRequest:
    """Everything the workflow needs to publish an analyzer's changes."""

    kind: str
    changed_files: tuple[str, ...]
    commit_subject: str
    agent: str
    commit_details: tuple[str, ...] = ()
    pr_title: str = ""
    pr_body: str = ""
    remote: str = "origin"

    def commit_message(self) -> str:
        lines = [self.commit_subject, ""]
        lines.extend(self.commit_details)
        lines.append(f"Agent: {self.agent}")
        lines.append(CO_AUTHOR_TRAILER)
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class GitAutomationResult:
    """Outcome of :func:`run_git_automation`."""

    stage: AutomationStage
    branch: str | None = None
    commit_sha: str | None = None
    pr_url: str | None = None
    files: tuple[str, ...] = ()
    errors: tuple[str, ...] = field(default_factory=tuple)

    @property
    def committed(self) -> bool:
        return self.stage in _COMMITTED_STAGES

    @property
    def files_changed(self) -> int:
        """Number of files that exist in a commit, ``0`` when nothing was committed."""
        return len(self.files) if self.committed else 0


def branch_name(kind: str, *, now_ms: int | None = None) -> str:
    """Return ``locus/<kind>-<base36 timestamp>``."""
    return f"{BRANCH_PREFIX}/{slugify(kind, fallback='change')}-{timestamp_token(now_ms)}"


def detect_remote_provider(repo: GitRepository, remote: str = "origin") -> RemoteProvider:
    """Classify the hosting provider from the remote URL."""

    url = (repo.remote_url(remote) or "").lower()
    if "github" in url:
        return "github"
    if "gitlab" in url:
        return "gitlab"
    if "bitbucket" in url:
        return "bitbucket"
    return "unknown"


def get_default_branch(repo: GitRepository, remote: str = "origin") -> str:
    """Resolve the repository's default branch name."""

    head = repo.remote_head(remote)
    if head:
        return head
    for candidate in ("main", "master"):
        if repo.has_local_branch(candidate):
            return candidate
    return "main"


def is_gh_available(cwd: Path | str, *, executor: CommandExecutor = run_command) -> bool:
    """Return ``True`` when the GitHub CLI is installed and authenticated."""

    try:
        result = executor(["gh", "auth", "status"], cwd=cwd, timeout=GH_TIMEOUT)
    except ExecutionError:
        return False
    return result.exit_code == 0


def _open_pull_request(
    repo: GitRepository,
    request: GitAutomationRequest,
    *,
    base: str,
    head: str,
    executor: CommandExecutor,
) -> str | None:
    if detect_remote_provider(repo, request.remote) != "github":
        LOGGER.info("Remote is not hosted on GitHub; skipping pull request creation")
        return None
    if not is_gh_available(repo.root, executor=executor):
        LOGGER.info("GitHub CLI unavailable; skipping pull request creation")
        return None

    command = [
        "gh",
        "pr",
        "create",
        "--title",
        request.pr_title or request.commit_subject,
        "--body",
        request.pr_body,
        "--base",
        base,
        "--head",
        head,
    ]
    try:
        result = executor(command, cwd=repo.root, timeout=GH_TIMEOUT)
    except ExecutionError as error:
        LOGGER.warning("Pull request creation failed: %s", error)
        return None
    if result.exit_code != 0:
        LOGGER.warning(
            "gh pr create exited with %s: %s",
            result.exit_code,
            result.stderr.strip() or result.stdout.strip(),
        )
        return None
    url = result.stdout.strip()
    return url.splitlines()[-1].strip() if url else None


def _return_to(repo: GitRepository, branch: str) -> None:
    try:
        repo.checkout(branch)
    except GitError as error:
        # Staying on the feature branch leaves the tree in a committed state.
        LOGGER.warning("Unable to check out %s after automation: %s", branch, error)


def _rollback(
    repo: GitRepository,
    files: Sequence[str],
    start_branch: str,
    branch: str | None,
) -> tuple[bool, list[str]]:
    """Discard uncommitted analyzer changes and remove the half-built branch.

    Returns whether the feature branch is still present plus any problems.
    """

    problems: list[str] = []
    try:
        repo.restore_paths(files)
    except GitError as error:
        problems.append(str(error))
    if branch is None:
        return False, problems
    try:
        repo.checkout(start_branch)
        repo.delete_branch(branch)
    except GitError as error:
        problems.append(str(error))
        return True, problems
    return False, problems


def run_git_automation(
    project_path: Path | str,
    request: GitAutomationRequest,
    *,
    executor: CommandExecutor = run_command,
    now_ms: int | None = None,
) -> GitAutomationResult:
    """Publish ``request.changed_files`` on a fresh branch, optionally opening a PR.

    Never raises for git or tool failures; inspect ``stage`` and ``errors``.
    """

    files = tuple(request.changed_files)
    if not files:
        return GitAutomationResult(stage="none", errors=("No changed files to commit.",))

    try:
        repo = GitRepository(project_path, executor=executor)
    except GitError as error:
        return GitAutomationResult(stage="none", errors=(str(error),))

    branch = branch_name(request.kind, now_ms=now_ms)
    default_branch = "main"
    start_branch = default_branch

    # Steps before the commit: any failure discards the analyzer's edits.
    created: str | None = None
    try:
        default_branch = get_default_branch(repo, request.remote)
        start_branch = repo.current_branch() or default_branch
        repo.create_branch(branch)
        created = branch
        repo.add(files)
        sha = repo.commit(request.commit_message())
    except GitError as error:
        LOGGER.warning("Git automation failed before commit: %s", error)
        leftover, problems = _rollback(repo, files, start_branch, created)
        return GitAutomationResult(
            stage="branch" if leftover else "none",
            branch=created if leftover else None,
            errors=(str(error), *problems),
        )

    LOGGER.info("Committed %d file(s) to %s (%s)", len(files), branch, sha[:7])

    stage: AutomationStage = "commit"
    errors: list[str] = []
    pr_url: str | None = None
    try:
        repo.push(request.remote, branch, set_upstream=True)
        stage = "pushed"
    except GitError as error:
        LOGGER.warning("Push of %s failed: %s", branch, error)
        errors.append(str(error))

    if stage == "pushed":
        try:
            pr_url = _open_pull_request(repo, request, base=default_branch, head=branch, executor=executor)
        except GitError as error:
            LOGGER.warning("Pull request step for %s failed: %s", branch, error)
            errors.append(str(error))
        if pr_url:
            stage = "pull_request"

    _return_to(repo, start_branch)

    return GitAutomationResult(
        stage=stage,
        branch=branch,
        commit_sha=sha,
        pr_url=pr_url,
        files=files,
        errors=tuple(errors),
    )


__all__ = [
    "AutomationStage",
    "GitAutomationRequest",
    "GitAutomationResult",
    "RemoteProvider",
    "branch_name",
    "detect_remote_provider",
    "get_default_branch",
    "is_gh_available",
    "run_git_automation",
]
