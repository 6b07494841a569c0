"""Working-tree bookkeeping around analyzer fix steps."""

from __future__ import annotations

from pathlib import Path
from typing import FrozenSet, List, Optional, Sequence

import logging

from ..tools.process import CommandExecutor
from ..tools.vcs import GitError, GitRepository

LOGGER = logging.getLogger(__name__)


def dirty_files(project_path: Path, executor: CommandExecutor) -> Optional[FrozenSet[str]]:
    """Return the currently modified tracked files, or ``None`` outside a git work tree."""

    try:
        repo = GitRepository(project_path, executor=executor)
        return frozenset(repo.changed_files())
    except GitError as error:
        LOGGER.debug("Unable to read working tree state in %s: %s", project_path, error)
        return None


def files_changed_by_fix(
    project_path: Path,
    executor: CommandExecutor,
    baseline: Optional[FrozenSet[str]],
) -> List[str]:
    """Files modified since ``baseline`` was captured.

    Files that were already dirty before the fix are left out so that the
    user's own edits never end up in an automated commit.
    """

    after = dirty_files(project_path, executor)
    if after is None:
        return []
    previous = baseline or frozenset()
    skipped = sorted(after & previous)
    if skipped:
        LOGGER.warning(
            "Leaving %d file(s) with pre-existing local edits out of the automated change: %s",
            len(skipped),
            ", ".join(skipped),
        )
    return sorted(after - previous)


def discard_changes(project_path: Path, executor: CommandExecutor, files: Sequence[str]) -> None:
    """Restore ``files`` from ``HEAD``; failures are logged."""

    if not files:
        return
    try:
        GitRepository(project_path, executor=executor).restore_paths(list(files))
    except GitError as error:
        LOGGER.warning("Unable to restore %d file(s): %s", len(files), error)


__all__ = ["dirty_files", "discard_changes", "files_changed_by_fix"]
