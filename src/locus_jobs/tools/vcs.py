"""Minimal git helpers.

The helpers below provide just enough structure to branch, stage the files an
analyzer touched, commit, push, and inspect the remote configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

from .process import GIT_TIMEOUT, CommandExecutor, CommandOutput, ExecutionError, run_command


class GitError(RuntimeError):
    """Raised when a git command fails or the repository cannot be used."""


class GitRepository:
    """Lightweight wrapper around ``git`` commands."""

    def __init__(
        self,
        root: Path | str,
        *,
        executor: CommandExecutor = run_command,
        timeout: float = GIT_TIMEOUT,
    ) -> None:
        self.root = Path(root).resolve()
        if not (self.root / ".git").exists():
            raise GitError(f"Not a git repository: {self.root}")
        self._executor = executor
        self._timeout = timeout

    # ------------------------------------------------------------------ git IO
    def _run_git(self, args: Sequence[str], *, check: bool = True) -> CommandOutput:
        try:
            result = self._executor(["git", *args], cwd=self.root, timeout=self._timeout)
        except ExecutionError as error:
            raise GitError(f"git {' '.join(args)} failed: {error}") from error
        if check and result.exit_code != 0:
            message = result.stderr.strip() or result.stdout.strip() or "unknown git error"
            raise GitError(f"git {' '.join(args)} failed: {message}")
        return result

    # -------------------------------------------------------------- branches
    def current_branch(self) -> str | None:
        """Return the current branch name or ``None`` when detached."""

        result = self._run_git(["rev-parse", "--abbrev-ref", "HEAD"], check=False)
        if result.exit_code != 0:
            return None
        branch = result.stdout.strip()
        if not branch or branch == "HEAD":
            return None
        return branch

    def has_local_branch(self, branch: str) -> bool:
        result = self._run_git(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"], check=False)
        return result.exit_code == 0

    def create_branch(self, branch: str) -> None:
        """Create ``branch`` from the current ``HEAD`` and check it out."""

        self._run_git(["checkout", "-b", branch])

    def checkout(self, ref: str) -> None:
        self._run_git(["checkout", ref])

    def delete_branch(self, branch: str) -> None:
        self._run_git(["branch", "-D", branch])

    # ------------------------------------------------------------- repo status
    def changed_files(self) -> List[str]:
        """Return tracked paths with unstaged modifications (``git diff --name-only``)."""

        result = self._run_git(["diff", "--name-only"])
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def restore_paths(self, paths: Sequence[str]) -> None:
        """Reset ``paths`` in both the index and the working tree to ``HEAD``."""

        if not paths:
            return
        self._run_git(["restore", "--staged", "--worktree", "--source", "HEAD", "--", *paths])

    # ------------------------------------------------------------- committing
    def add(self, paths: Sequence[str]) -> None:
        """Stage exactly ``paths``; an empty selection is rejected."""

        if not paths:
            raise GitError("Refusing to stage an empty path selection.")
        self._run_git(["add", "--", *paths])

    def commit(self, message: str) -> str:
        """Commit the staged changes and return the new ``HEAD`` SHA."""

        commit = self._run_git(["commit", "-m", message], check=False)
        if commit.exit_code != 0:
            output = commit.stderr.strip() or commit.stdout.strip() or "unknown git error"
            raise GitError(f"git commit failed: {output}")

        rev = self._run_git(["rev-parse", "HEAD"])
        return rev.stdout.strip()

    # -------------------------------------------------------------- remotes
    def remote_url(self, remote: str = "origin") -> str | None:
        result = self._run_git(["remote", "get-url", remote], check=False)
        if result.exit_code != 0:
            return None
        return result.stdout.strip() or None

    def remote_head(self, remote: str = "origin") -> str | None:
        """Return the branch ``remote/HEAD`` points at, when known locally."""

        result = self._run_git(["symbolic-ref", "--quiet", f"refs/remotes/{remote}/HEAD"], check=False)
        if result.exit_code != 0:
            return None
        ref = result.stdout.strip()
        prefix = f"refs/remotes/{remote}/"
        if ref.startswith(prefix):
            return ref[len(prefix):] or None
        return None

    def push(
        self,
        remote: str,
        branch: str,
        *,
        set_upstream: bool = False,
        force: bool = False,
    ) -> None:
        """Push ``branch`` to ``remote`` applying requested flags."""

        args: List[str] = ["push"]
        if set_upstream:
            args.append("-u")
        if force:
            args.append("--force-with-lease")
        args.extend([remote, branch])
        self._run_git(args, check=True)


__all__ = ["GitError", "GitRepository"]
