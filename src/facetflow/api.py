"""Functional surface over :class:`~facetflow.pipeline.configuration.Configuration`.

Each function mirrors a registration or resolution method for callers
that prefer plain calls to decorators.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from facetflow.pipeline.configuration import Configuration, SubjectFn
from facetflow.pipeline.defaults import DefaultsLayer
from facetflow.pipeline.guards import Guard, PredicateFn
from facetflow.pipeline.rule import ActionFn, BodyFn, Facet, MatchSpec, OrderKey, Rule, as_match_spec

MatchLike = MatchSpec | Mapping[str, Any] | Iterable[str] | str | None


def define_configuration(
    subject_builder: SubjectFn | None = None,
    defaults: DefaultsLayer | None = None,
    *,
    raise_on_guard_violation: bool | None = None,
    name: str = "configuration",
) -> Configuration:
    """Create a root configuration."""
    return Configuration(
        name,
        subject=subject_builder,
        defaults=defaults,
        raise_on_guard_violation=raise_on_guard_violation,
    )


def register_query_rule(
    config: Configuration,
    match_spec: MatchLike,
    action: ActionFn,
    order: OrderKey = None,
    *,
    name: str | None = None,
) -> Rule:
    """Register a query rule.

    ``match_spec`` may be a MatchSpec, presence keys (a string or an
    iterable of strings), or a mapping of value constraints.
    """
    return config.add_rule(as_match_spec(match_spec), action, order=order, name=name)


def register_sift_facet(
    config: Configuration,
    match_spec: MatchLike,
    body: BodyFn,
    name: str | None = None,
) -> Facet:
    """Register a sift facet."""
    return config.add_facet(as_match_spec(match_spec), body, name=name)


def register_guard(config: Configuration, predicate: PredicateFn, message: str | None = None) -> Guard:
    """Register a guard."""
    return config.add_guard(predicate, message)


def resolve(
    config: Configuration,
    params: Mapping[str, Any] | None = None,
    *presence_keys: str,
    extra: Mapping[str, Any] | None = None,
    subject: Any = None,
    attributes: Mapping[str, Any] | None = None,
) -> Any:
    """Resolve a configuration.

    Presence keys are coerced to True and merged with ``extra`` over
    ``params``.

    Returns:
        The final subject, or None when a guard violation was recorded

    Raises:
        GuardViolationError: On guard failure in raising mode
        UndefinedSubjectError: If no subject could be built
    """
    return config.resolve(params, *presence_keys, extra=extra, subject=subject, attributes=attributes)
