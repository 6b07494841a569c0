"""Autonomy policy evaluation."""

from .autonomy import AUTONOMY_LEVELS, AUTONOMY_PRESETS, build_autonomy_rules, find_rule, should_auto_execute

__all__ = ["AUTONOMY_LEVELS", "AUTONOMY_PRESETS", "build_autonomy_rules", "find_rule", "should_auto_execute"]
