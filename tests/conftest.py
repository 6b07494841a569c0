from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple, Union

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from locus_jobs.schema import AutonomyRule, ChangeCategory, JobConfig, JobType, RiskLevel  # noqa: E402
from locus_jobs.jobs.base import JobContext  # noqa: E402
from locus_jobs.tools.process import CommandOutput, ExecutionError, run_command  # noqa: E402

Handler = Union[CommandOutput, Exception, Callable[[Tuple[str, ...], Path], CommandOutput], List[Any]]


def output(stdout: str = "", stderr: str = "", exit_code: int = 0, command: Sequence[str] = ()) -> CommandOutput:
    return CommandOutput(command=tuple(command), stdout=stdout, stderr=stderr, exit_code=exit_code)


@dataclass
class FakeExecutor:
    """Executor double keyed by command prefix.

    The longest registered prefix wins.  A handler may be a ``CommandOutput``,
    an exception to raise, a callable ``(argv, cwd) -> CommandOutput`` or a
    list consumed one entry per call.  ``git`` commands go to the real binary
    unless ``real_git`` is off; anything else unregistered behaves like a
    missing executable.
    """

    handlers: Dict[Tuple[str, ...], Handler] = field(default_factory=dict)
    real_git: bool = True
    calls: List[Tuple[str, ...]] = field(default_factory=list)

    def on(self, prefix: Sequence[str], handler: Handler) -> "FakeExecutor":
        self.handlers[tuple(prefix)] = handler
        return self

    def commands(self, program: str) -> List[Tuple[str, ...]]:
        return [call for call in self.calls if call and call[0] == program]

    def __call__(
        self,
        command: Sequence[str],
        *,
        cwd: Path | str,
        timeout: float = 120.0,
        env: Mapping[str, str] | None = None,
    ) -> CommandOutput:
        argv = tuple(str(part) for part in command)
        self.calls.append(argv)

        matches = [prefix for prefix in self.handlers if argv[: len(prefix)] == prefix]
        if matches:
            handler = self.handlers[max(matches, key=len)]
            if isinstance(handler, list):
                if not handler:
                    raise AssertionError(f"No queued response left for {argv}")
                handler = handler.pop(0)
            if isinstance(handler, Exception):
                raise handler
            if callable(handler):
                return handler(argv, Path(cwd))
            return handler

        if argv and argv[0] == "git" and self.real_git:
            return run_command(argv, cwd=cwd, timeout=timeout, env=env)
        raise ExecutionError(f"Executable not available: {argv[0] if argv else ''}")


@pytest.fixture()
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


def make_context(
    project_path: Path,
    job_type: JobType,
    *,
    options: Dict[str, Any] | None = None,
    auto: Sequence[ChangeCategory] = (),
) -> JobContext:
    rules = [
        AutonomyRule(category=category, risk_level=RiskLevel.LOW, auto_execute=True) for category in auto
    ]
    return JobContext(
        workspace_id="ws-test",
        project_path=project_path,
        config=JobConfig(type=job_type, options=options or {}),
        autonomy_rules=tuple(rules),
    )


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


@dataclass(slots=True)
class GitRepo:
    """Temporary repository with a bare ``origin`` remote."""

    root: Path
    remote: Path

    def git(self, *args: str) -> str:
        return _git(self.root, *args)

    def write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def commit_all(self, message: str = "update") -> None:
        self.git("add", "-A")
        self.git("commit", "-m", message)

    def branches(self) -> List[str]:
        return [line.strip() for line in self.git("branch", "--format=%(refname:short)").splitlines() if line.strip()]

    def current_branch(self) -> str:
        return self.git("rev-parse", "--abbrev-ref", "HEAD")


@pytest.fixture()
def git_repo(tmp_path: Path) -> GitRepo:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    remote = tmp_path / "remote.git"
    remote.mkdir()
    _git(remote, "init", "--bare", "--quiet")

    root = tmp_path / "project"
    root.mkdir()
    _git(root, "init", "--quiet")
    _git(root, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(root, "config", "user.email", "dev@example.com")
    _git(root, "config", "user.name", "Locus Tests")
    _git(root, "config", "commit.gpgsign", "false")

    repo = GitRepo(root=root, remote=remote)
    repo.write("src/app.ts", "export const answer = 42\n")
    repo.write("src/util.ts", "export function add(a: number, b: number) { return a + b }\n")
    repo.write("README.md", "# project\n")
    repo.commit_all("Initial commit")
    repo.git("remote", "add", "origin", str(remote))
    repo.git("push", "--quiet", "-u", "origin", "main")
    return repo
