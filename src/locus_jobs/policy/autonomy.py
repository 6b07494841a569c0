"""Autonomy policy helpers.

An autonomy policy is an ordered list of :class:`AutonomyRule` entries.  The
engine only ever asks one question of it: may changes in a given
:class:`ChangeCategory` be executed without a human?  The first rule naming the
category answers; a category with no rule is always suggest-only.

Three presets mirror the levels offered when a workspace is set up:

``conservative``
    Nothing is executed automatically.
``balanced``
    Low-risk fixes, refactors, style and dependency changes run automatically.
``aggressive``
    Everything except features and architecture runs automatically.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Literal

from ..schema import AutonomyRule, ChangeCategory, RiskLevel

AutonomyLevel = Literal["conservative", "balanced", "aggressive"]
AUTONOMY_LEVELS: tuple[AutonomyLevel, ...] = ("conservative", "balanced", "aggressive")


@dataclass(slots=True)
class LevelDefinition:
    """Metadata describing an autonomy preset."""

    level: AutonomyLevel
    label: str
    detail: str
    auto_categories: frozenset[ChangeCategory]


_BALANCED_AUTO = frozenset(
    {ChangeCategory.FIX, ChangeCategory.REFACTOR, ChangeCategory.STYLE, ChangeCategory.DEPENDENCY}
)
_AGGRESSIVE_AUTO = frozenset(
    category
    for category in ChangeCategory
    if category not in {ChangeCategory.FEATURE, ChangeCategory.ARCHITECTURE}
)

AUTONOMY_PRESETS: dict[AutonomyLevel, LevelDefinition] = {
    "conservative": LevelDefinition(
        level="conservative",
        label="Conservative",
        detail="Only report issues, never auto-fix.",
        auto_categories=frozenset(),
    ),
    "balanced": LevelDefinition(
        level="balanced",
        label="Balanced",
        detail="Auto-fix low-risk issues (lint, patches), require approval for others.",
        auto_categories=_BALANCED_AUTO,
    ),
    "aggressive": LevelDefinition(
        level="aggressive",
        label="Aggressive",
        detail="Auto-fix everything except features and architecture.",
        auto_categories=_AGGRESSIVE_AUTO,
    ),
}


def build_autonomy_rules(level: AutonomyLevel | str) -> list[AutonomyRule]:
    """Expand a preset name into one rule per change category."""

    try:
        definition = AUTONOMY_PRESETS[level]  # type: ignore[index]
    except KeyError as error:
        valid = ", ".join(AUTONOMY_LEVELS)
        raise ValueError(f"Unknown autonomy level '{level}'. Expected one of: {valid}") from error

    rules: list[AutonomyRule] = []
    for category in ChangeCategory:
        auto = category in definition.auto_categories
        rules.append(
            AutonomyRule(
                category=category,
                risk_level=RiskLevel.LOW if auto else RiskLevel.HIGH,
                auto_execute=auto,
            )
        )
    return rules


def find_rule(category: ChangeCategory, rules: Iterable[AutonomyRule]) -> AutonomyRule | None:
    for rule in rules:
        if rule.category == category:
            return rule
    return None


def should_auto_execute(category: ChangeCategory, rules: Sequence[AutonomyRule]) -> bool:
    """Return ``True`` when ``rules`` allow ``category`` to run without approval."""

    rule = find_rule(category, rules)
    return bool(rule and rule.auto_execute)


__all__ = [
    "AUTONOMY_LEVELS",
    "AUTONOMY_PRESETS",
    "AutonomyLevel",
    "LevelDefinition",
    "build_autonomy_rules",
    "find_rule",
    "should_auto_execute",
]
