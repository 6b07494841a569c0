"""Tool integrations used by the analyzers."""

from .git_automation import (
    GitAutomationRequest,
    GitAutomationResult,
    detect_remote_provider,
    get_default_branch,
    is_gh_available,
    run_git_automation,
)
from .process import CommandExecutor, CommandOutput, ExecutionError, run_command
from .vcs import GitError, GitRepository

__all__ = [
    "CommandExecutor",
    "CommandOutput",
    "ExecutionError",
    "GitAutomationRequest",
    "GitAutomationResult",
    "GitError",
    "GitRepository",
    "detect_remote_provider",
    "get_default_branch",
    "is_gh_available",
    "run_command",
    "run_git_automation",
]
