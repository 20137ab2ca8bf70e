"""Parameter matching for query rules and facets.

A match specification applies when all its conditions hold and either it
is forced, it is empty, or every matched value is present.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from facetflow.errors import UnknownConditionError

if TYPE_CHECKING:
    from facetflow.pipeline.context import Session
    from facetflow.pipeline.rule import Condition, MatchSpec


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching a spec against params.

    Attributes:
        applies: Whether the rule or facet should run
        values: Presence lookups followed by value-constraint lookups
    """

    applies: bool
    values: list[Any] = field(default_factory=list)


def is_present(value: Any) -> bool:
    """Check whether a param value counts as present.

    None, False and numeric zero are absent, as is any value with a zero
    length (``""``, ``[]``, ``{}``). Everything else is present.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if hasattr(value, "__len__"):
        return len(value) > 0
    return True


def values_for(spec: MatchSpec, params: Mapping[str, Any]) -> list[Any]:
    """Look up the values a spec passes to its action or body.

    Args:
        spec: Match specification
        params: Current parameter map

    Returns:
        ``params[key]`` for each presence key, then for each value
        constraint the required value when it equals ``params[key]``,
        otherwise False
    """
    values = [params.get(key) for key in spec.presence_keys]
    for key, required in spec.value_constraints:
        values.append(required if key in params and params[key] == required else False)
    return values


def condition_met(condition: Condition, session: Session | None) -> bool:
    """Evaluate a single condition.

    Names are looked up among the named conditions of the session's
    effective configuration and called with the session.

    Raises:
        UnknownConditionError: If a name was never registered
    """
    test = condition.test
    if isinstance(test, bool):
        value: Any = test
    elif isinstance(test, str):
        predicate = session.configuration.conditions.get(test) if session is not None else None
        if predicate is None:
            raise UnknownConditionError(test)
        value = predicate(session)
    else:
        value = test(session)
    return not value if condition.negate else bool(value)


def matches(spec: MatchSpec, params: Mapping[str, Any], session: Session | None = None) -> MatchResult:
    """Decide whether a spec applies.

    Args:
        spec: Match specification
        params: Current parameter map
        session: Evaluation context for conditions

    Returns:
        MatchResult with the applies flag and the matched values
    """
    values = values_for(spec, params)
    if not all(condition_met(condition, session) for condition in spec.conditions):
        return MatchResult(applies=False, values=values)
    if spec.force or spec.is_empty:
        return MatchResult(applies=True, values=values)
    return MatchResult(applies=all(is_present(value) for value in values), values=values)
