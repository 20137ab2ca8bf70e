"""Deterministic ordering of query rules.

Rules are stably sorted by ``(order value, registration index)``:
FIRST rules precede every explicit number, LAST rules follow every
explicit number, and ties keep registration order.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Iterable

from facetflow.pipeline.rule import Rule, order_value

logger = logging.getLogger(__name__)


def sorted_rules(rules: Iterable[Rule]) -> list[Rule]:
    """Order rules for left-to-right subject folding.

    Args:
        rules: Registered query rules

    Returns:
        Rules sorted by ``(order value, registration index)``
    """
    return sorted(rules, key=lambda rule: rule.sort_key)


def _format_order(rule: Rule) -> str:
    value = order_value(rule.order)
    if value == -math.inf:
        return "first"
    if value == math.inf:
        return "last"
    return f"{value:g}"


class ExecutionPlan:
    """Ordered view over the query rules of a configuration.

    Attributes:
        rules: Rules in execution order
    """

    def __init__(self, rules: Iterable[Rule]) -> None:
        """Initialize the plan.

        Args:
            rules: Registered query rules (any order)

        Raises:
            ValueError: If a rule carries an unknown order name
            TypeError: If a rule carries a non-numeric order
        """
        self.rules: list[Rule] = sorted_rules(rules)

    @property
    def execution_order(self) -> list[str]:
        """Rule names in execution order."""
        return [rule.name for rule in self.rules]

    def get_rule(self, name: str) -> Rule:
        """Get the first rule with the given name.

        Raises:
            KeyError: If no rule has this name
        """
        for rule in self.rules:
            if rule.name == name:
                return rule
        raise KeyError(name)

    def to_ascii(self) -> str:
        """Render the plan as a numbered list.

        Returns:
            One line per rule: position, order, name and match spec
        """
        lines: list[str] = []
        for position, rule in enumerate(self.rules, start=1):
            lines.append(f"{position:>3}. [{_format_order(rule):>5}] {rule.name}  <- {rule.match.describe()}")
        return "\n".join(lines)

    def validate(self) -> list[str]:
        """Check the plan for suspicious declarations.

        Returns:
            List of warning messages (empty if valid)
        """
        warnings: list[str] = []

        counts = Counter(rule.name for rule in self.rules)
        for name, count in counts.items():
            if count > 1:
                warnings.append(f"Rule name '{name}' is used by {count} rules")

        for rule in self.rules:
            if rule.match.force and rule.match.is_empty:
                warnings.append(f"Rule '{rule.name}' is forced but has nothing to match")

        for warning in warnings:
            logger.debug("Plan validation: %s", warning)
        return warnings
