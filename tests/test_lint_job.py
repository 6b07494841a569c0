from __future__ import annotations

from pathlib import Path

from conftest import FakeExecutor, GitRepo, make_context, output
from locus_jobs.jobs.lint import BIOME, ESLINT, RUFF, LintScanJob, detect_linter
from locus_jobs.schema import ChangeCategory, JobType, SuggestionType
from locus_jobs.tools.process import ExecutionError

BIOME_FINDINGS = "src/app.ts:1:1 lint/style/useConst\nFound 3 errors.\n"


def test_detect_linter_priority(tmp_path: Path) -> None:
    assert detect_linter(tmp_path) is None

    (tmp_path / "pyproject.toml").write_text("[project]\nname = 'x'\n\n[tool.ruff]\nline-length = 100\n", encoding="utf-8")
    assert detect_linter(tmp_path) == RUFF

    (tmp_path / "eslint.config.mjs").write_text("export default []\n", encoding="utf-8")
    assert detect_linter(tmp_path) == ESLINT

    (tmp_path / "biome.jsonc").write_text("{}\n", encoding="utf-8")
    assert detect_linter(tmp_path) == BIOME


def test_eslint_config_name_must_match_known_extension(tmp_path: Path) -> None:
    (tmp_path / "eslint.config.json").write_text("{}\n", encoding="utf-8")
    assert detect_linter(tmp_path) is None


def test_no_linter_configuration(tmp_path: Path) -> None:
    result = LintScanJob(executor=FakeExecutor()).run(make_context(tmp_path, JobType.LINT_SCAN))
    assert result.summary == "No linter configuration detected"
    assert result.suggestions == ()


def test_clean_scan(tmp_path: Path) -> None:
    (tmp_path / "biome.json").write_text("{}\n", encoding="utf-8")
    executor = FakeExecutor().on(BIOME.check_command, output(stdout="Checked 4 files in 3ms. No fixes applied."))
    result = LintScanJob(executor=executor).run(make_context(tmp_path, JobType.LINT_SCAN))

    assert result.summary == "Linting scan passed, no issues found (biome)"
    assert result.suggestions == ()
    assert result.files_changed == 0


def test_suggestions_when_style_autofix_disallowed(tmp_path: Path) -> None:
    (tmp_path / "biome.json").write_text("{}\n", encoding="utf-8")
    executor = FakeExecutor().on(BIOME.check_command, output(stdout=BIOME_FINDINGS, exit_code=1))
    result = LintScanJob(executor=executor).run(make_context(tmp_path, JobType.LINT_SCAN))

    assert result.files_changed == 0
    assert result.pr_url is None
    assert result.summary == "Linting scan found 3 error(s) (biome)"
    (suggestion,) = result.suggestions
    assert suggestion.type is SuggestionType.CODE_FIX
    assert suggestion.title == "Fix 3 lint error(s)"
    assert "bunx biome check --fix ." in suggestion.description
    assert executor.calls == [BIOME.check_command]


def test_errors_and_warnings_produce_two_suggestions(tmp_path: Path) -> None:
    (tmp_path / ".eslintrc.json").write_text("{}\n", encoding="utf-8")
    executor = FakeExecutor().on(
        ESLINT.check_command, output(stdout="✖ 4 problems (3 errors, 1 warning)\n", exit_code=1)
    )
    result = LintScanJob(executor=executor).run(make_context(tmp_path, JobType.LINT_SCAN))

    assert [suggestion.title for suggestion in result.suggestions] == [
        "Fix 3 lint error(s)",
        "Resolve 1 lint warning(s)",
    ]
    assert result.suggestions[1].metadata == {"linter": "eslint", "warnings": 1}


def test_check_execution_failure_is_recorded(tmp_path: Path) -> None:
    (tmp_path / "biome.json").write_text("{}\n", encoding="utf-8")
    executor = FakeExecutor().on(BIOME.check_command, ExecutionError("bunx biome check . timed out after 120s"))
    result = LintScanJob(executor=executor).run(make_context(tmp_path, JobType.LINT_SCAN))

    assert result.summary.startswith("Linting scan failed:")
    assert result.errors == ("bunx biome check . timed out after 120s",)
    assert result.suggestions == ()


def _fixer(*paths: str):
    def apply(argv, cwd: Path):
        for relative in paths:
            target = cwd / relative
            target.write_text(target.read_text(encoding="utf-8") + "// fixed\n", encoding="utf-8")
        return output(command=argv)

    return apply


def _biome_repo(git_repo: GitRepo) -> GitRepo:
    git_repo.write("biome.json", "{}\n")
    git_repo.commit_all("Add biome config")
    return git_repo


def test_autofix_commits_and_pushes_without_gh(git_repo: GitRepo) -> None:
    repo = _biome_repo(git_repo)
    executor = (
        FakeExecutor()
        .on(BIOME.check_command, output(stdout=BIOME_FINDINGS, exit_code=1))
        .on(BIOME.fix_command, _fixer("src/app.ts", "src/util.ts"))
    )
    context = make_context(repo.root, JobType.LINT_SCAN, auto=[ChangeCategory.STYLE])
    result = LintScanJob(executor=executor).run(context)

    assert result.files_changed == 2
    assert result.pr_url is None
    assert result.suggestions == ()
    assert result.summary == "Auto-fixed 3 error(s) across 2 file(s) (biome)"
    assert repo.current_branch() == "main"

    fix_branches = [name for name in repo.branches() if name.startswith("locus/lint-fix-")]
    assert len(fix_branches) == 1
    message = repo.git("log", "-1", "--format=%B", fix_branches[0])
    assert message.startswith("fix(lint): auto-fix 3 error(s) via biome")
    assert "Agent: locus-lint-scan" in message
    assert "Co-authored-by: LocusAI <agent@locusai.team>" in message
    assert repo.git("ls-remote", "--heads", "origin", fix_branches[0])


def test_autofix_opens_pull_request_on_github(git_repo: GitRepo) -> None:
    repo = _biome_repo(git_repo)
    repo.git("remote", "set-url", "origin", "https://github.com/acme/app.git")
    executor = (
        FakeExecutor()
        .on(BIOME.check_command, output(stdout=BIOME_FINDINGS, exit_code=1))
        .on(BIOME.fix_command, _fixer("src/app.ts"))
        .on(("git", "push"), output())
        .on(("gh", "auth", "status"), output(stdout="Logged in to github.com"))
        .on(("gh", "pr", "create"), output(stdout="Creating pull request\nhttps://github.com/acme/app/pull/7\n"))
    )
    context = make_context(repo.root, JobType.LINT_SCAN, auto=[ChangeCategory.STYLE])
    result = LintScanJob(executor=executor).run(context)

    assert result.pr_url == "https://github.com/acme/app/pull/7"
    assert result.files_changed == 1
    assert result.summary.endswith("1 file(s), PR created (biome)")
    (create,) = [call for call in executor.calls if call[:3] == ("gh", "pr", "create")]
    assert create[create.index("--base") + 1] == "main"
    assert create[create.index("--head") + 1].startswith("locus/lint-fix-")
    assert "[Locus] Auto-fix lint issues (3 error(s))" in create


def test_autofix_without_changes_falls_back_to_suggestions(git_repo: GitRepo) -> None:
    repo = _biome_repo(git_repo)
    executor = (
        FakeExecutor()
        .on(BIOME.check_command, output(stdout=BIOME_FINDINGS, exit_code=1))
        .on(BIOME.fix_command, output())
    )
    context = make_context(repo.root, JobType.LINT_SCAN, auto=[ChangeCategory.STYLE])
    result = LintScanJob(executor=executor).run(context)

    assert result.files_changed == 0
    assert result.summary == "Linting scan found 3 error(s) but auto-fix made no changes (biome)"
    assert [suggestion.title for suggestion in result.suggestions] == ["Fix 3 lint error(s)"]
    assert repo.branches() == ["main"]


def test_autofix_leaves_preexisting_edits_out_of_commit(git_repo: GitRepo) -> None:
    repo = _biome_repo(git_repo)
    repo.write("README.md", "# project\n\nlocal notes\n")
    executor = (
        FakeExecutor()
        .on(BIOME.check_command, output(stdout=BIOME_FINDINGS, exit_code=1))
        .on(BIOME.fix_command, _fixer("src/app.ts"))
    )
    context = make_context(repo.root, JobType.LINT_SCAN, auto=[ChangeCategory.STYLE])
    result = LintScanJob(executor=executor).run(context)

    assert result.files_changed == 1
    (branch,) = [name for name in repo.branches() if name.startswith("locus/")]
    committed = repo.git("show", "--name-only", "--format=", branch).split()
    assert committed == ["src/app.ts"]
    assert "local notes" in (repo.root / "README.md").read_text(encoding="utf-8")


def test_git_timeout_during_autofix_leaves_clean_tree(git_repo: GitRepo) -> None:
    repo = _biome_repo(git_repo)
    executor = (
        FakeExecutor()
        .on(BIOME.check_command, output(stdout=BIOME_FINDINGS, exit_code=1))
        .on(BIOME.fix_command, _fixer("src/app.ts"))
        .on(("git", "symbolic-ref"), ExecutionError("git symbolic-ref timed out after 60s"))
    )
    context = make_context(repo.root, JobType.LINT_SCAN, auto=[ChangeCategory.STYLE])
    result = LintScanJob(executor=executor).run(context)

    assert result.files_changed == 0
    assert result.summary == "Linting scan found 3 error(s); auto-fix could not be committed (biome)"
    assert [suggestion.title for suggestion in result.suggestions] == ["Fix 3 lint error(s)"]
    assert result.errors and "timed out" in result.errors[0]
    assert repo.git("status", "--porcelain") == ""
    assert repo.branches() == ["main"]
