"""Pure parsers for third-party tool output.

Each tool keeps its own parser so a format change only affects one module.
"""

from .grep_output import TodoItem, parse_grep_output
from .json_block import extract_json, iter_ndjson
from .lint_output import LintCounts, parse_biome_output, parse_eslint_output, parse_ruff_output
from .package_output import (
    AuditVulnerability,
    OutdatedPackage,
    UpdateRisk,
    classify_risk,
    parse_bun_outdated,
    parse_ndjson_audit,
    parse_npm_audit,
    parse_npm_outdated,
    parse_semver,
    parse_yarn_outdated,
)
from .test_output import (
    TestCaseResult,
    TestRunSummary,
    parse_fallback_output,
    parse_jest_json,
    parse_mocha_json,
    parse_pytest_output,
)

__all__ = [
    "AuditVulnerability",
    "LintCounts",
    "OutdatedPackage",
    "TestCaseResult",
    "TestRunSummary",
    "TodoItem",
    "UpdateRisk",
    "classify_risk",
    "extract_json",
    "iter_ndjson",
    "parse_biome_output",
    "parse_bun_outdated",
    "parse_eslint_output",
    "parse_fallback_output",
    "parse_grep_output",
    "parse_jest_json",
    "parse_mocha_json",
    "parse_ndjson_audit",
    "parse_npm_audit",
    "parse_npm_outdated",
    "parse_pytest_output",
    "parse_ruff_output",
    "parse_semver",
    "parse_yarn_outdated",
]
